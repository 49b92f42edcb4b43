"""
Pydantic Schemas for the Network Controller UI API
Organized by domain: networks, members
"""

from .base import BaseResponse, ErrorResponse, HealthResponse
from .network import (
    IpAssignmentPool,
    Route,
    V4AssignMode,
    V6AssignMode,
    DnsConfig,
    Network,
    NetworkListResponse,
    ControllerStatus,
    network_patch,
)
from .member import (
    Peer,
    PeerPath,
    Member,
    NetworkMember,
    NetworkWithMembers,
    MemberDeleteResult,
)

__all__ = [
    # Base
    "BaseResponse",
    "ErrorResponse",
    "HealthResponse",
    # Network
    "IpAssignmentPool",
    "Route",
    "V4AssignMode",
    "V6AssignMode",
    "DnsConfig",
    "Network",
    "NetworkListResponse",
    "ControllerStatus",
    "network_patch",
    # Member
    "Peer",
    "PeerPath",
    "Member",
    "NetworkMember",
    "NetworkWithMembers",
    "MemberDeleteResult",
]
