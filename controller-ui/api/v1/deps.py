# controller-ui/api/v1/deps.py
"""
Shared API dependencies
"""

from functools import lru_cache
import logging

from fastapi import Header, HTTPException, status

from config import settings
from core.annotation_store import annotation_store
from core.controller_client import ControllerClient
from core.reconciler import NetworkReconciler

logger = logging.getLogger(__name__)

NWID_PATTERN = r"^[0-9a-fA-F]{16}$"
MEMBER_ID_PATTERN = r"^[0-9a-fA-F]{10}$"


# === Authentication Dependency ===

async def verify_admin_token(x_admin_token: str = Header(..., alias="X-Admin-Token")):
    """
    Verify admin authentication token

    Session handling lives in front of this service; the API only
    checks the shared admin token.
    """
    if x_admin_token != settings.ADMIN_SECRET:
        logger.warning("Invalid admin token attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": "Invalid or missing admin token",
                "error_code": "UNAUTHORIZED"
            },
            headers={"WWW-Authenticate": "Bearer"}
        )
    return True


# === Reconciler ===

@lru_cache()
def get_controller_client() -> ControllerClient:
    return ControllerClient()


def get_reconciler() -> NetworkReconciler:
    """
    Reconciler over the shared controller client and annotation store
    Override in tests with app.dependency_overrides.
    """
    return NetworkReconciler(get_controller_client(), annotation_store)
