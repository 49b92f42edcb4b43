# controller-ui/api/v1/members.py
"""
Member API Endpoints
Authorization, bridging, display names and IP assignments of members
"""

from fastapi import APIRouter, Body, Depends, Path, Query, status
from fastapi.responses import RedirectResponse
from typing import Any, Dict, Optional
import logging

from schemas.base import BaseResponse, ErrorResponse
from schemas.member import NetworkMember, MemberDeleteResult
from core.deltas import build_member_delta, ip_assignment_builder, member_name_builder
from core.reconciler import NetworkReconciler, Op
from .deps import MEMBER_ID_PATTERN, NWID_PATTERN, get_reconciler, verify_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_admin_token)])

NOT_FOUND = {404: {"description": "Network or member not found", "model": ErrorResponse}}
REJECTED = {422: {"description": "Invalid input", "model": ErrorResponse}}


def _nwid():
    return Path(..., pattern=NWID_PATTERN, description="16 hex digit network id")


def _member_id():
    return Path(..., pattern=MEMBER_ID_PATTERN, description="10 hex digit member address")


@router.post(
    "/networks/{nwid}/members",
    response_model=BaseResponse[NetworkMember],
    responses={**NOT_FOUND, **REJECTED},
    summary="Update member from the members form",
    description="""
    Applies exactly one facet, checked in order:
    - **auth**: authorize or deauthorize the member
    - **activeBridge**: allow the member to bridge
    - **name**: set the display name; empty clears it
    """
)
async def update_member(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Apply one member form change"""
    delta = build_member_delta(payload).unwrap(f"update member of network {nwid}")
    result = await reconciler.apply_member_delta(nwid, delta)
    return BaseResponse(message=f"Member {delta.id} updated", data=result)


@router.get(
    "/networks/{nwid}/members/{member_id}",
    response_model=NetworkMember,
    responses=NOT_FOUND,
    summary="Member detail"
)
async def member_detail(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Get member details"""
    return await reconciler.get_network_member(nwid, member_id.lower())


@router.post(
    "/networks/{nwid}/members/{member_id}/name",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Rename member",
    description="Always redirects to the member; a failed rename is logged, not raised"
)
async def rename_member(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Rename a member and redirect back to it"""
    result = await reconciler.rename_member(
        member_name_builder.build({**payload, "id": member_id})
    )
    response = RedirectResponse(
        url=f"/api/v1/networks/{nwid}/members/{member_id}",
        status_code=status.HTTP_303_SEE_OTHER
    )
    response.headers["X-Operation-Status"] = "ok" if result.ok else "failed"
    return response


@router.get(
    "/networks/{nwid}/members/{member_id}/delete",
    response_model=NetworkMember,
    responses=NOT_FOUND,
    summary="Preview member delete",
    description="The member and network a delete would affect"
)
async def preview_delete_member(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Show what a member delete would affect"""
    return await reconciler.preview_member_delete(nwid, member_id.lower())


@router.delete(
    "/networks/{nwid}/members/{member_id}",
    response_model=BaseResponse[MemberDeleteResult],
    responses=NOT_FOUND,
    summary="Delete member"
)
async def delete_member(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Delete a member and its display name"""
    member_id = member_id.lower()
    result = await reconciler.delete_member(nwid, member_id)
    message = f"Member {member_id} deleted" if result.deleted else f"Member {member_id} was not deleted"
    return BaseResponse(success=result.deleted, message=message, data=result)


@router.post(
    "/networks/{nwid}/members/{member_id}/ipAssignments",
    response_model=BaseResponse[NetworkMember],
    responses={**NOT_FOUND, **REJECTED},
    summary="Add IP assignment",
    description="The address must lie inside one of the network's managed routes"
)
async def add_ip_assignment(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Assign an IP address to a member"""
    member_id = member_id.lower()
    delta = ip_assignment_builder.build(payload).unwrap(f"add IP assignment for member {member_id}")
    result = await reconciler.apply_ip_assignment(nwid, member_id, delta.ip_address, Op.ADD)
    return BaseResponse(message=f"{delta.ip_address} assigned to {member_id}", data=result)


@router.delete(
    "/networks/{nwid}/members/{member_id}/ipAssignments",
    response_model=BaseResponse[NetworkMember],
    responses={
        **NOT_FOUND,
        409: {"description": "Position no longer holds the expected address", "model": ErrorResponse}
    },
    summary="Delete IP assignment",
    description="Delete by address; index is only honored together with the expected address"
)
async def delete_ip_assignment(
    nwid: str = _nwid(),
    member_id: str = _member_id(),
    address: Optional[str] = Query(None, description="Assigned address to remove"),
    index: Optional[int] = Query(None, ge=0, description="Position the address is expected at"),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Remove an IP address from a member"""
    member_id = member_id.lower()
    result = await reconciler.apply_ip_assignment(nwid, member_id, address, Op.DELETE, index=index)
    return BaseResponse(message=f"IP assignment removed from {member_id}", data=result)
