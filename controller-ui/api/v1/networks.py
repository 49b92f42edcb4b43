# controller-ui/api/v1/networks.py
"""
Network API Endpoints
Operators create networks and configure pools, routes, DNS and assign modes

Request bodies are raw form-like objects; they go through the delta
builders, so malformed input is rejected before any controller call.
"""

from fastapi import APIRouter, Body, Depends, Path, status
from fastapi.responses import RedirectResponse
from typing import Any, Dict, Optional
import logging

from schemas.base import BaseResponse, ErrorResponse
from schemas.network import Network, NetworkListResponse, ControllerStatus, Route, IpAssignmentPool
from schemas.member import NetworkWithMembers
from core.deltas import (
    network_name_builder,
    ip_assignment_pool_builder,
    route_builder,
    private_builder,
    v4_assign_mode_builder,
    v6_assign_mode_builder,
    dns_builder,
    easy_setup_builder,
)
from core.reconciler import NetworkReconciler, Op
from .deps import NWID_PATTERN, get_reconciler, verify_admin_token

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_admin_token)])

NOT_FOUND = {404: {"description": "Network not found", "model": ErrorResponse}}
REJECTED = {422: {"description": "Invalid input", "model": ErrorResponse}}


def _nwid():
    return Path(..., pattern=NWID_PATTERN, description="16 hex digit network id")


# === Controller ===

@router.get(
    "/status",
    response_model=ControllerStatus,
    summary="Controller status",
    description="Status of the controller node this UI manages"
)
async def controller_status(reconciler: NetworkReconciler = Depends(get_reconciler)):
    """Status of the controller node"""
    return await reconciler.get_status()


# === Networks ===

@router.get(
    "/networks",
    response_model=NetworkListResponse,
    summary="List networks",
    description="All networks on this controller"
)
async def list_networks(reconciler: NetworkReconciler = Depends(get_reconciler)):
    """List all networks with their names"""
    networks = await reconciler.list_networks()
    return NetworkListResponse(networks=networks, total=len(networks))


@router.post(
    "/networks",
    response_model=BaseResponse[Network],
    status_code=status.HTTP_201_CREATED,
    responses=REJECTED,
    summary="Create network",
    description="Create a network; the controller assigns its id"
)
async def create_network(
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Create a new network"""
    delta = network_name_builder.build(payload).unwrap("create network")
    network = await reconciler.create_network(delta)
    return BaseResponse(message=f"Network {network.nwid} created", data=network)


@router.get(
    "/networks/{nwid}",
    response_model=NetworkWithMembers,
    responses=NOT_FOUND,
    summary="Network detail",
    description="Network with every member, joined with names and peer info"
)
async def network_detail(
    nwid: str = _nwid(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Get network details with all members"""
    return await reconciler.get_network_with_members(nwid)


@router.get(
    "/networks/{nwid}/config",
    response_model=Network,
    responses=NOT_FOUND,
    summary="Network configuration",
    description="Network object only, without members"
)
async def network_config(
    nwid: str = _nwid(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Get the raw network configuration"""
    return await reconciler.get_network(nwid)


@router.delete(
    "/networks/{nwid}",
    response_model=BaseResponse[Network],
    responses=NOT_FOUND,
    summary="Delete network"
)
async def delete_network(
    nwid: str = _nwid(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Delete a network"""
    network = await reconciler.delete_network(nwid)
    return BaseResponse(message=f"Network {nwid} deleted", data=network)


@router.post(
    "/networks/{nwid}/name",
    status_code=status.HTTP_303_SEE_OTHER,
    summary="Rename network",
    description="Always redirects to the network; a failed rename is logged, not raised"
)
async def rename_network(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Rename a network and redirect back to it"""
    result = await reconciler.rename_network(nwid, network_name_builder.build(payload))
    response = RedirectResponse(url=f"/api/v1/networks/{nwid}", status_code=status.HTTP_303_SEE_OTHER)
    response.headers["X-Operation-Status"] = "ok" if result.ok else "failed"
    return response


# === IP assignment pools ===

@router.post(
    "/networks/{nwid}/ipAssignmentPools",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Add IP assignment pool"
)
async def add_ip_assignment_pool(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Add an IP assignment pool to a network"""
    delta = ip_assignment_pool_builder.build(payload).unwrap(f"add IP assignment pool on network {nwid}")
    network = await reconciler.apply_ip_assignment_pool(nwid, delta.to_pool(), Op.ADD)
    return BaseResponse(message="IP assignment pool added", data=network)


@router.delete(
    "/networks/{nwid}/ipAssignmentPools/{ip_range_start}/{ip_range_end}",
    response_model=BaseResponse[Network],
    responses=NOT_FOUND,
    summary="Delete IP assignment pool"
)
async def delete_ip_assignment_pool(
    ip_range_start: str,
    ip_range_end: str,
    nwid: str = _nwid(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Remove an IP assignment pool from a network"""
    pool = IpAssignmentPool(start=ip_range_start, end=ip_range_end)
    network = await reconciler.apply_ip_assignment_pool(nwid, pool, Op.DELETE)
    return BaseResponse(message="IP assignment pool deleted", data=network)


# === Routes ===

@router.post(
    "/networks/{nwid}/routes",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Add managed route"
)
async def add_route(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Add a managed route to a network"""
    delta = route_builder.build(payload).unwrap(f"add route on network {nwid}")
    network = await reconciler.apply_route(nwid, delta.to_route(), Op.ADD)
    return BaseResponse(message=f"Route to {delta.target} added", data=network)


@router.delete(
    "/networks/{nwid}/routes/{target_ip}/{target_prefix}",
    response_model=BaseResponse[Network],
    responses=NOT_FOUND,
    summary="Delete managed route",
    description="Without via, every route to the target is removed"
)
async def delete_route(
    target_ip: str,
    target_prefix: str,
    via: Optional[str] = None,
    nwid: str = _nwid(),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Remove a managed route from a network"""
    route = Route(target=f"{target_ip}/{target_prefix}", via=via or None)
    network = await reconciler.apply_route(nwid, route, Op.DELETE)
    return BaseResponse(message=f"Route to {route.target} deleted", data=network)


# === Single-facet settings ===

@router.post(
    "/networks/{nwid}/private",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Set access control"
)
async def set_private(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Set network access control"""
    delta = private_builder.build(payload).unwrap(f"set access control on network {nwid}")
    network = await reconciler.set_private(nwid, delta.private)
    return BaseResponse(message="Access control updated", data=network)


@router.post(
    "/networks/{nwid}/v4AssignMode",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Set IPv4 assign mode"
)
async def set_v4_assign_mode(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Set IPv4 auto-assign mode"""
    delta = v4_assign_mode_builder.build(payload).unwrap(f"set v4AssignMode on network {nwid}")
    network = await reconciler.set_v4_assign_mode(nwid, delta.to_mode())
    return BaseResponse(message="IPv4 assign mode updated", data=network)


@router.post(
    "/networks/{nwid}/v6AssignMode",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Set IPv6 assign mode"
)
async def set_v6_assign_mode(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Set IPv6 auto-assign modes"""
    delta = v6_assign_mode_builder.build(payload).unwrap(f"set v6AssignMode on network {nwid}")
    network = await reconciler.set_v6_assign_mode(nwid, delta.to_mode())
    return BaseResponse(message="IPv6 assign mode updated", data=network)


@router.post(
    "/networks/{nwid}/dns",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Set DNS",
    description="servers may be a list or one address per line; invalid entries are dropped"
)
async def set_dns(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Set network DNS configuration"""
    delta = dns_builder.build(payload).unwrap(f"set dns on network {nwid}")
    network = await reconciler.set_dns(nwid, delta.to_dns())
    return BaseResponse(message="DNS updated", data=network)


# === Easy setup ===

@router.post(
    "/networks/{nwid}/easy",
    response_model=BaseResponse[Network],
    responses={**NOT_FOUND, **REJECTED},
    summary="Easy network setup",
    description="Managed route, IP assignment pool and IPv4 auto-assign in one update"
)
async def easy_setup(
    nwid: str = _nwid(),
    payload: Dict[str, Any] = Body(default={}),
    reconciler: NetworkReconciler = Depends(get_reconciler)
):
    """Set route, pool and IPv4 auto-assign in one step"""
    delta = easy_setup_builder.build(payload).unwrap(f"easy setup of network {nwid}")
    network = await reconciler.easy_network_setup(nwid, delta)
    return BaseResponse(message="Network setup succeeded", data=network)
