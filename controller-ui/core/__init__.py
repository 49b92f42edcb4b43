# controller-ui/core/__init__.py
"""
Core business logic modules
"""

from .address import (
    CIDRInfo,
    parse_cidr,
    is_valid_address,
    is_valid_prefix,
    is_valid_cidr,
    is_in_subnet,
    validate_pool,
    validate_route,
)
from .annotation_store import annotation_store, AnnotationStore
from .controller_client import ControllerClient
from .deltas import DeltaBuilder, BuildResult, build_member_delta
from .reconciler import NetworkReconciler, Op

__all__ = [
    # Address validation
    "CIDRInfo",
    "parse_cidr",
    "is_valid_address",
    "is_valid_prefix",
    "is_valid_cidr",
    "is_in_subnet",
    "validate_pool",
    "validate_route",
    # Annotation Store
    "annotation_store",
    "AnnotationStore",
    # Controller Client
    "ControllerClient",
    # Delta Builders
    "DeltaBuilder",
    "BuildResult",
    "build_member_delta",
    # Reconciler
    "NetworkReconciler",
    "Op",
]
