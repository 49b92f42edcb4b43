# controller-ui/core/controller_client.py
"""
Network Controller API Client
Typed asynchronous access to the controller's network, member and peer objects
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from config import settings
from schemas.network import Network, ControllerStatus
from schemas.member import Member, Peer
from .errors import (
    ControllerError,
    ControllerUnavailable,
    MemberNotFound,
    NetworkNotFound,
    PeerNotFound,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)


class ControllerClient:
    """
    HTTP Client for the network controller REST API

    Features:
    - Bearer token authentication
    - 404s mapped to typed NotFound errors
    - Transport failures and other error statuses mapped to ControllerUnavailable

    Writes are sent once; there is no retry logic here.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        token: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.base_url = (base_url or settings.CONTROLLER_URL).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.CONTROLLER_TIMEOUT

        headers = {
            "Content-Type": "application/json",
            "User-Agent": f"{settings.APP_NAME}/{settings.APP_VERSION}",
        }
        token = token if token is not None else settings.controller_token()
        if token:
            headers["Authorization"] = f"Bearer {token}"
        else:
            logger.warning("No controller token configured; requests will be unauthenticated")

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=self.timeout,
            transport=transport,
        )
        logger.info(f"Controller client initialized: {self.base_url}")

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        operation: str,
        data: Optional[Dict[str, Any]] = None,
        not_found: Optional[Callable[[], ControllerError]] = None,
        model: Optional[Type[M]] = None
    ) -> Any:
        """
        Make HTTP request to the controller and decode the JSON body

        With a model, the body is validated into it; a 2xx answer whose
        body does not fit is reported as ControllerUnavailable.
        """
        try:
            logger.debug(f"{method} {path}")
            response = await self._client.request(method, path, json=data)
        except httpx.HTTPError as e:
            logger.error(f"Connection error during {operation}: {e}")
            raise ControllerUnavailable(
                f"Cannot reach controller at {self.base_url}: {e}",
                operation=operation
            ) from e

        if response.status_code == 404 and not_found is not None:
            error = not_found()
            error.operation = operation
            raise error

        if response.is_error:
            logger.error(f"HTTP {response.status_code} during {operation}: {response.text}")
            raise ControllerUnavailable(
                f"Controller answered {response.status_code}: {response.text}",
                operation=operation,
                status_code=response.status_code
            )

        if not response.content:
            body = {}
        else:
            try:
                body = response.json()
            except ValueError as e:
                raise ControllerUnavailable(
                    f"Controller sent a malformed response: {e}",
                    operation=operation,
                    status_code=response.status_code
                ) from e

        if model is None:
            return body
        return self._decode(model, body, operation, response.status_code)

    @staticmethod
    def _decode(model: Type[M], body: Any, operation: str, status_code: Optional[int] = None) -> M:
        try:
            return model.model_validate(body)
        except ValidationError as e:
            logger.error(f"Malformed {model.__name__} during {operation}: {e}")
            raise ControllerUnavailable(
                f"Controller sent a malformed response: {e}",
                operation=operation,
                status_code=status_code
            ) from e

    # === Controller node ===

    async def get_status(self) -> ControllerStatus:
        """Status of the controller node itself"""
        return await self._request("GET", "/status", "get controller status", model=ControllerStatus)

    async def get_controller_address(self) -> str:
        """10 hex digit address of the controller node"""
        status = await self.get_status()
        return status.address

    # === Networks ===

    async def list_networks(self) -> List[str]:
        """Ids of all networks on this controller"""
        data = await self._request("GET", "/controller/network", "list networks")
        return list(data)

    async def get_network(self, nwid: str) -> Network:
        return await self._request(
            "GET", f"/controller/network/{nwid}",
            f"get network {nwid}",
            not_found=lambda: NetworkNotFound(nwid),
            model=Network
        )

    async def create_network(self, fields: Dict[str, Any]) -> Network:
        """
        Create a network; the controller assigns the id

        The controller derives the new id from its own address followed by
        a wildcard suffix.
        """
        address = await self.get_controller_address()
        network = await self._request(
            "POST", f"/controller/network/{address}______",
            "create network", data=fields, model=Network
        )
        logger.info(f"Network created: {network.nwid}")
        return network

    async def delete_network(self, nwid: str) -> Network:
        data = await self._request(
            "DELETE", f"/controller/network/{nwid}",
            f"delete network {nwid}",
            not_found=lambda: NetworkNotFound(nwid)
        )
        logger.info(f"Network deleted: {nwid}")
        if not data:
            return Network(nwid=nwid)
        return self._decode(Network, data, f"delete network {nwid}")

    async def patch_network(self, nwid: str, fields: Dict[str, Any]) -> Network:
        """
        Send a partial network update

        The controller merges top-level keys shallowly: nested objects
        (dns, v4AssignMode...) and lists must be sent whole.
        """
        return await self._request(
            "POST", f"/controller/network/{nwid}",
            f"update network {nwid} ({', '.join(fields)})",
            data=fields,
            not_found=lambda: NetworkNotFound(nwid),
            model=Network
        )

    # === Members ===

    async def list_members(self, nwid: str) -> List[str]:
        """Addresses of every member enrolled in the network"""
        data = await self._request(
            "GET", f"/controller/network/{nwid}/member",
            f"list members of network {nwid}",
            not_found=lambda: NetworkNotFound(nwid)
        )
        # {member_id: revision}
        return list(data)

    async def get_member(self, nwid: str, member_id: str) -> Member:
        return await self._request(
            "GET", f"/controller/network/{nwid}/member/{member_id}",
            f"get member {member_id} of network {nwid}",
            not_found=lambda: MemberNotFound(nwid, member_id),
            model=Member
        )

    async def patch_member(self, nwid: str, member_id: str, fields: Dict[str, Any]) -> Member:
        return await self._request(
            "POST", f"/controller/network/{nwid}/member/{member_id}",
            f"update member {member_id} of network {nwid} ({', '.join(fields)})",
            data=fields,
            not_found=lambda: MemberNotFound(nwid, member_id),
            model=Member
        )

    async def delete_member(self, nwid: str, member_id: str) -> Dict[str, Any]:
        await self._request(
            "DELETE", f"/controller/network/{nwid}/member/{member_id}",
            f"delete member {member_id} of network {nwid}",
            not_found=lambda: MemberNotFound(nwid, member_id)
        )
        logger.info(f"Member {member_id} deleted from network {nwid}")
        return {"deleted": True, "id": member_id}

    # === Peers ===

    async def list_peers(self) -> List[Peer]:
        data = await self._request("GET", "/peer", "list peers")
        if not isinstance(data, list):
            raise ControllerUnavailable("Controller sent a malformed peer list", operation="list peers")
        return [self._decode(Peer, p, "list peers") for p in data]

    async def get_peer(self, address: str) -> Peer:
        return await self._request(
            "GET", f"/peer/{address}",
            f"get peer {address}",
            not_found=lambda: PeerNotFound(address),
            model=Peer
        )
