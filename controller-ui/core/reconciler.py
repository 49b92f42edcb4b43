# controller-ui/core/reconciler.py
"""
Network Reconciler - merges controller state with local annotations
and applies validated configuration deltas back to the controller
"""

import asyncio
import ipaddress
import logging
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from schemas.network import (
    Network,
    IpAssignmentPool,
    Route,
    V4AssignMode,
    V6AssignMode,
    DnsConfig,
    ControllerStatus,
    network_patch,
)
from schemas.member import (
    Member,
    Peer,
    NetworkMember,
    NetworkWithMembers,
    MemberDeleteResult,
)
from .address import Problem, is_in_subnet, is_valid_address, is_valid_cidr, validate_pool, validate_route
from .annotation_store import AnnotationStore
from .controller_client import ControllerClient
from .deltas import (
    BuildResult,
    EasySetupDelta,
    MemberActiveBridgeDelta,
    MemberAuthorizationDelta,
    MemberDelta,
    MemberNameDelta,
    NetworkNameDelta,
)
from .errors import (
    AddressNotInManagedRoute,
    AmbiguousDelete,
    ControllerError,
    ErrorKind,
    FieldError,
    NotFound,
    OperationResult,
    PeerNotFound,
    PoolNotFound,
    RouteNotFound,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


class Op(str, Enum):
    """Collection edit operations"""
    ADD = "add"
    DELETE = "delete"


def _raise_problems(problems: List[Problem], submitted: Dict[str, Any], operation: str) -> None:
    if problems:
        raise ValidationFailed(
            [FieldError(field=f, kind=kind, message=message) for f, kind, message in problems],
            submitted=submitted,
            operation=operation,
        )


def _same_address(a: Optional[str], b: Optional[str]) -> bool:
    """Compare address literals by value ("fd00::1" == "fd00:0::1")"""
    if a is None or b is None:
        return a is b
    try:
        return ipaddress.ip_address(a) == ipaddress.ip_address(b)
    except ValueError:
        return a == b


def _same_target(a: str, b: str) -> bool:
    a_addr, _, a_prefix = a.partition('/')
    b_addr, _, b_prefix = b.partition('/')
    return a_prefix == b_prefix and _same_address(a_addr, b_addr)


def _same_pool(a: IpAssignmentPool, b: IpAssignmentPool) -> bool:
    return _same_address(a.start, b.start) and _same_address(a.end, b.end)


class NetworkReconciler:
    """
    Stateless operations over the controller and the annotation store

    Responsibilities:
    1. Fetch networks and members concurrently and join them with
       peer connectivity and locally stored member names
    2. Validate configuration deltas against the current network state
    3. Send partial updates to the controller

    Nothing is cached between calls: every operation fetches fresh state.
    Writes are sent once and never retried here.
    """

    def __init__(self, controller: ControllerClient, annotations: AnnotationStore):
        self.controller = controller
        self.annotations = annotations

    # === Reads ===

    async def get_status(self) -> ControllerStatus:
        return await self.controller.get_status()

    async def get_network(self, nwid: str) -> Network:
        return await self.controller.get_network(nwid)

    async def list_networks(self) -> List[Network]:
        """All networks on the controller, with details"""
        nwids = await self.controller.list_networks()
        networks = await asyncio.gather(*(self.controller.get_network(n) for n in nwids))
        return list(networks)

    async def get_network_with_members(self, nwid: str) -> NetworkWithMembers:
        """
        Network detail plus every enrolled member, enriched

        Network, peer list, member list and controller address are fetched
        concurrently. A member that cannot be loaded is returned with its
        error marker instead of failing the whole view; a network lookup
        failure always propagates.
        """
        network, peers, members, controller_address = await asyncio.gather(
            self.controller.get_network(nwid),
            self.controller.list_peers(),
            self._load_members(nwid),
            self.controller.get_controller_address(),
            return_exceptions=True,
        )

        # Precedence: network, then member enumeration
        for result in (network, members):
            if isinstance(result, BaseException):
                raise result

        if isinstance(peers, BaseException):
            if not isinstance(peers, Exception):
                raise peers
            logger.warning(f"Peer list unavailable for network {nwid}: {peers}")
            peers = []

        if isinstance(controller_address, BaseException):
            if not isinstance(controller_address, Exception):
                raise controller_address
            logger.warning(f"Controller address unavailable: {controller_address}")
            controller_address = None

        peers_by_address = {peer.address: peer for peer in peers}
        for member in members:
            # Offline members simply have no peer entry
            member.peer = peers_by_address.get(member.member_address)

        return NetworkWithMembers(
            network=network,
            members=members,
            controller_address=controller_address,
        )

    async def _load_members(self, nwid: str) -> List[Member]:
        member_ids = list(dict.fromkeys(await self.controller.list_members(nwid)))
        return list(await asyncio.gather(
            *(self._load_member(nwid, member_id) for member_id in member_ids)
        ))

    async def _load_member(self, nwid: str, member_id: str) -> Member:
        """Member detail joined with its name; failures become an error marker"""
        detail, name = await asyncio.gather(
            self.controller.get_member(nwid, member_id),
            self.annotations.get_name(member_id),
            return_exceptions=True,
        )

        if isinstance(detail, BaseException):
            if not isinstance(detail, Exception):
                raise detail
            logger.warning(f"Member {member_id} of network {nwid} could not be loaded: {detail}")
            return Member(id=member_id, address=member_id, nwid=nwid, error=str(detail))

        return self._with_name(detail, name)

    def _with_name(self, member: Member, name: Any) -> Member:
        """Join a member with its annotation lookup result"""
        if isinstance(name, BaseException):
            if not isinstance(name, Exception):
                raise name
            logger.warning(f"Name of member {member.id} could not be loaded: {name}")
            member.error = f"Member name unavailable: {name}"
            name = None
        member.name = name or ""
        return member

    def _peer_or_none(self, member_id: str, peer: Any) -> Optional[Peer]:
        """An offline member has no peer entry; other lookup failures are logged"""
        if isinstance(peer, BaseException):
            if not isinstance(peer, Exception):
                raise peer
            if not isinstance(peer, PeerNotFound):
                logger.warning(f"Peer lookup for member {member_id} failed: {peer}")
            return None
        return peer

    async def get_network_member(self, nwid: str, member_id: str) -> NetworkMember:
        """
        One member with its network, peer and name

        Fails with MemberNotFound when the member lookup fails. An offline
        member has no peer; that is not an error.
        """
        network, member, peer, name = await asyncio.gather(
            self.controller.get_network(nwid),
            self.controller.get_member(nwid, member_id),
            self.controller.get_peer(member_id),
            self.annotations.get_name(member_id),
            return_exceptions=True,
        )

        for result in (member, network):
            if isinstance(result, BaseException):
                raise result

        member = self._with_name(member, name)
        member.peer = self._peer_or_none(member_id, peer)
        return NetworkMember(network=network, member=member)

    # === Network lifecycle ===

    async def create_network(self, delta: NetworkNameDelta) -> Network:
        return await self.controller.create_network({"name": delta.name})

    async def delete_network(self, nwid: str) -> Network:
        return await self.controller.delete_network(nwid)

    async def rename_network(self, nwid: str, result: BuildResult[NetworkNameDelta]) -> OperationResult:
        """
        Rename a network without propagating failures

        Validation and controller failures are logged and returned; the
        caller decides whether to surface them.
        """
        if not result.ok:
            logger.error(f"Network name validation error for {nwid}: {[e.to_dict() for e in result.errors]}")
            return OperationResult.failure(errors=result.errors)

        try:
            await self.controller.patch_network(nwid, {"name": result.delta.name})
        except ControllerError as e:
            logger.error(f"Error renaming network {nwid}: {e}")
            return OperationResult.failure(cause=str(e))

        logger.info(f"Network {nwid} renamed to {result.delta.name!r}")
        return OperationResult.success()

    # === Network facets ===

    async def apply_ip_assignment_pool(self, nwid: str, pool: IpAssignmentPool, op: Op) -> Network:
        """
        Add or remove an IP assignment pool

        add appends without deduplication. delete removes the last pool
        equal by value, so an add followed by a delete of the same pool
        restores the original list.
        """
        operation = f"{op.value} IP assignment pool on network {nwid}"
        _raise_problems(
            validate_pool(pool.start, pool.end),
            pool.model_dump(by_alias=True),
            operation,
        )

        network = await self.controller.get_network(nwid)
        pools = list(network.ip_assignment_pools)

        if op == Op.ADD:
            pools.append(pool)
        else:
            matches = [i for i, p in enumerate(pools) if _same_pool(p, pool)]
            if not matches:
                raise PoolNotFound(
                    f"Network {nwid} has no IP assignment pool {pool.start}-{pool.end}",
                    operation,
                )
            del pools[matches[-1]]

        logger.info(f"Network {nwid}: {operation} {pool.start}-{pool.end}")
        return await self.controller.patch_network(nwid, network_patch(ipAssignmentPools=pools))

    async def apply_route(self, nwid: str, route: Route, op: Op) -> Network:
        """
        Add or remove a managed route

        Routes are deleted by target. With via=None every route for that
        target is removed; with a gateway only exact (target, via)
        matches are removed.
        """
        operation = f"{op.value} route on network {nwid}"
        submitted = route.model_dump(by_alias=True)
        if op == Op.ADD:
            _raise_problems(validate_route(route.target, route.via), submitted, operation)
        elif not is_valid_cidr(route.target):
            _raise_problems(validate_route(route.target), submitted, operation)

        network = await self.controller.get_network(nwid)
        routes = list(network.routes)

        if op == Op.ADD:
            routes.append(route)
        else:
            kept = [
                r for r in routes
                if not (_same_target(r.target, route.target)
                        and (route.via is None or _same_address(r.via, route.via)))
            ]
            if len(kept) == len(routes):
                raise RouteNotFound(f"Network {nwid} has no route to {route.target}", operation)
            routes = kept

        logger.info(f"Network {nwid}: {operation} {route.target} via {route.via}")
        return await self.controller.patch_network(nwid, network_patch(routes=routes))

    async def set_private(self, nwid: str, private: bool) -> Network:
        return await self.controller.patch_network(nwid, {"private": private})

    async def set_v4_assign_mode(self, nwid: str, mode: V4AssignMode) -> Network:
        return await self.controller.patch_network(nwid, network_patch(v4AssignMode=mode))

    async def set_v6_assign_mode(self, nwid: str, mode: V6AssignMode) -> Network:
        return await self.controller.patch_network(nwid, network_patch(v6AssignMode=mode))

    async def set_dns(self, nwid: str, dns: DnsConfig) -> Network:
        """Replace the whole dns object; the controller does not merge nested keys"""
        servers = [s for s in dns.servers if is_valid_address(s)]
        dns = DnsConfig(domain=dns.domain, servers=servers)
        return await self.controller.patch_network(nwid, network_patch(dns=dns))

    async def easy_network_setup(self, nwid: str, delta: EasySetupDelta) -> Network:
        """
        Configure a managed route, an assignment pool and v4 auto-assign

        All three fields go to the controller in one partial update, so
        the network is never left half configured.
        """
        operation = f"easy setup of network {nwid}"
        problems: List[Problem] = []
        if not is_valid_cidr(delta.network_cidr, family=4):
            problems.append(("networkCIDR", ErrorKind.INVALID_FORMAT,
                             "Network address must be an IPv4 network in CIDR notation"))
        for name, value in (("poolStart", delta.pool_start), ("poolEnd", delta.pool_end)):
            if not is_valid_address(value, family=4):
                problems.append((name, ErrorKind.INVALID_FORMAT, f"{name} must be a valid IPv4 address"))
        if not problems:
            problems = delta.problems()
        _raise_problems(problems, delta.model_dump(by_alias=True), operation)

        patch = network_patch(
            routes=[delta.to_route()],
            ipAssignmentPools=[delta.to_pool()],
            v4AssignMode=V4AssignMode(zt=True),
        )
        logger.info(f"Network {nwid}: {operation} ({delta.network_cidr}, "
                    f"{delta.pool_start}-{delta.pool_end})")
        return await self.controller.patch_network(nwid, patch)

    # === Members ===

    async def apply_member_delta(self, nwid: str, delta: MemberDelta) -> NetworkMember:
        """Apply one facet of the members form; failures propagate"""
        if isinstance(delta, MemberAuthorizationDelta):
            await self.controller.patch_member(nwid, delta.id, {"authorized": delta.authorized})
            logger.info(f"Member {delta.id} of network {nwid} authorized={delta.authorized}")
        elif isinstance(delta, MemberActiveBridgeDelta):
            await self.controller.patch_member(nwid, delta.id, {"activeBridge": delta.active_bridge})
            logger.info(f"Member {delta.id} of network {nwid} activeBridge={delta.active_bridge}")
        elif isinstance(delta, MemberNameDelta):
            await self._store_name(delta)
        else:
            raise TypeError(f"Unsupported member delta {type(delta).__name__}")

        return await self.get_network_member(nwid, delta.id)

    async def _store_name(self, delta: MemberNameDelta) -> None:
        if delta.name:
            await self.annotations.set_name(delta.id, delta.name)
        else:
            await self.annotations.remove_name(delta.id)

    async def rename_member(self, result: BuildResult[MemberNameDelta]) -> OperationResult:
        """
        Set or clear a member's display name without propagating failures
        An empty name removes the annotation.
        """
        if not result.ok:
            logger.error(f"Member name validation error: {[e.to_dict() for e in result.errors]}")
            return OperationResult.failure(errors=result.errors)

        try:
            await self._store_name(result.delta)
        except Exception as e:
            logger.error(f"Error renaming member {result.delta.id}: {e}")
            return OperationResult.failure(cause=str(e))
        return OperationResult.success()

    async def set_member_authorized(self, nwid: str, member_id: str, authorized: bool) -> NetworkMember:
        return await self.apply_member_delta(
            nwid, MemberAuthorizationDelta(id=member_id, authorized=authorized)
        )

    async def set_member_active_bridge(self, nwid: str, member_id: str, active_bridge: bool) -> NetworkMember:
        return await self.apply_member_delta(
            nwid, MemberActiveBridgeDelta(id=member_id, active_bridge=active_bridge)
        )

    async def preview_member_delete(self, nwid: str, member_id: str) -> NetworkMember:
        """The member a delete would remove, with its name"""
        return await self.get_network_member(nwid, member_id)

    async def delete_member(self, nwid: str, member_id: str) -> MemberDeleteResult:
        """
        Delete a member at the controller, then its annotation

        The annotation is only removed once the controller confirms the
        delete, so a failed delete never loses the name.
        """
        current = await self.get_network_member(nwid, member_id)
        result = await self.controller.delete_member(nwid, member_id)
        deleted = bool(result.get("deleted"))
        if deleted:
            await self.annotations.remove_name(member_id)
        return MemberDeleteResult(network=current.network, member=current.member, deleted=deleted)

    async def apply_ip_assignment(
        self,
        nwid: str,
        member_id: str,
        address: Optional[str],
        op: Op,
        index: Optional[int] = None
    ) -> NetworkMember:
        """
        Add or remove a member IP assignment

        add: the address must lie inside one of the network's current
        routes, checked against routes fetched by this call.

        delete: by value. The positional form (index) is accepted only
        together with the address the caller expects at that position;
        if the list changed in between, AmbiguousDelete is raised rather
        than removing a different address.
        """
        operation = f"{op.value} IP assignment for member {member_id} of network {nwid}"
        submitted = {"ipAddress": address, "index": index}

        if op == Op.ADD or index is None:
            if not is_valid_address(address):
                _raise_problems(
                    [("ipAddress", ErrorKind.INVALID_FORMAT,
                      "IP address must be a valid IPv4 or IPv6 address")],
                    submitted, operation,
                )

        network, member = await asyncio.gather(
            self.controller.get_network(nwid),
            self.controller.get_member(nwid, member_id),
        )
        assignments = list(member.ip_assignments)

        if op == Op.ADD:
            if not any(is_in_subnet(address, route.target) for route in network.routes):
                raise AddressNotInManagedRoute(address, operation)
            if any(_same_address(a, address) for a in assignments):
                logger.info(f"Member {member_id} already has {address}")
            else:
                assignments.append(address)
        else:
            position = self._assignment_position(assignments, address, index, operation)
            del assignments[position]

        member = await self.controller.patch_member(nwid, member_id, {"ipAssignments": assignments})
        logger.info(f"Member {member_id} of network {nwid}: {operation} {address}")
        # The controller already holds the change; enrichment failures only mark the member
        name, peer = await asyncio.gather(
            self.annotations.get_name(member_id),
            self.controller.get_peer(member_id),
            return_exceptions=True,
        )
        member = self._with_name(member, name)
        member.peer = self._peer_or_none(member_id, peer)
        return NetworkMember(network=network, member=member)

    @staticmethod
    def _assignment_position(
        assignments: List[str],
        address: Optional[str],
        index: Optional[int],
        operation: str
    ) -> int:
        if index is None:
            for i, assigned in enumerate(assignments):
                if _same_address(assigned, address):
                    return i
            raise NotFound(f"{address} is not assigned to this member", operation)

        if address is None:
            raise AmbiguousDelete(
                f"Deleting position {index} requires the expected address", operation
            )
        if not 0 <= index < len(assignments) or not _same_address(assignments[index], address):
            current: Tuple[str, ...] = tuple(assignments)
            raise AmbiguousDelete(
                f"Position {index} no longer holds {address} (current: {', '.join(current) or 'none'})",
                operation,
            )
        return index
