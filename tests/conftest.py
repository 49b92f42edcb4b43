"""Shared fixtures: an in-memory controller behind httpx.MockTransport and
an annotation store on in-memory SQLite."""
import copy
import json
from typing import Any, Dict, List, Optional

import httpx
import pytest
from sqlalchemy.orm import sessionmaker

from core.annotation_store import AnnotationStore
from core.controller_client import ControllerClient
from core.reconciler import NetworkReconciler
from database.session import build_engine, init_db

CONTROLLER_ADDRESS = "abcdef0123"
NWID = "abcdef0123000001"
MEMBER_A = "a1b2c3d4e5"
MEMBER_B = "0f0f0f0f0f"


def network_defaults(nwid: str, name: str = "") -> Dict[str, Any]:
    return {
        "id": nwid,
        "nwid": nwid,
        "name": name,
        "private": True,
        "v4AssignMode": {"zt": False},
        "v6AssignMode": {"6plane": False, "rfc4193": False, "zt": False},
        "dns": {"domain": "", "servers": []},
        "ipAssignmentPools": [],
        "routes": [],
        "mtu": 2800,
    }


def member_defaults(nwid: str, member_id: str) -> Dict[str, Any]:
    return {
        "id": member_id,
        "address": member_id,
        "nwid": nwid,
        "authorized": False,
        "activeBridge": False,
        "ipAssignments": [],
        "revision": 1,
    }


class FakeController:
    """
    In-memory controller speaking the controller REST API

    Set `failures[path] = status` to make a path answer with an error
    status, `blank.add(path)` to make it answer 200 with an empty body, or
    `broken.add(path)` to make it fail at the transport level.
    """

    def __init__(self):
        self.address = CONTROLLER_ADDRESS
        self.networks: Dict[str, Dict[str, Any]] = {}
        self.members: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self.peers: Dict[str, Dict[str, Any]] = {}
        self.failures: Dict[str, int] = {}
        self.broken = set()
        self.blank = set()
        self.requests: List[tuple] = []
        self._counter = 0

    # === Seeding ===

    def add_network(self, nwid: str = NWID, **fields) -> Dict[str, Any]:
        network = network_defaults(nwid)
        network.update(fields)
        self.networks[nwid] = network
        self.members.setdefault(nwid, {})
        return network

    def add_member(self, nwid: str, member_id: str, **fields) -> Dict[str, Any]:
        member = member_defaults(nwid, member_id)
        member.update(fields)
        self.members.setdefault(nwid, {})[member_id] = member
        return member

    def add_peer(self, address: str, latency: int = 12) -> Dict[str, Any]:
        peer = {
            "address": address,
            "latency": latency,
            "role": "LEAF",
            "version": "1.12.2",
            "paths": [{"address": "192.0.2.10/9993", "active": True, "preferred": True}],
        }
        self.peers[address] = peer
        return peer

    def writes(self, method: str = "POST") -> List[tuple]:
        return [r for r in self.requests if r[0] == method]

    # === Transport ===

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        body = json.loads(request.content) if request.content else None
        self.requests.append((request.method, path, body))

        if path in self.broken:
            raise httpx.ConnectError("connection refused", request=request)
        if path in self.failures:
            return httpx.Response(self.failures[path], text="injected failure")
        if path in self.blank:
            return httpx.Response(200)

        parts = [p for p in path.split("/") if p]
        result = self._dispatch(request.method, parts, body)
        if result is None:
            return httpx.Response(404, json={})
        return httpx.Response(200, json=result)

    def _dispatch(self, method: str, parts: List[str], body: Optional[Dict[str, Any]]):
        if parts == ["status"]:
            return {"address": self.address, "online": True, "version": "1.12.2"}

        if parts == ["peer"]:
            return list(self.peers.values())
        if len(parts) == 2 and parts[0] == "peer":
            return self.peers.get(parts[1])

        if parts[:2] != ["controller", "network"]:
            return None
        rest = parts[2:]

        if not rest:
            return list(self.networks)

        nwid = rest[0]
        if len(rest) == 1:
            if method == "POST" and nwid.endswith("______"):
                self._counter += 1
                new_id = f"{nwid[:10]}{self._counter:06x}"
                network = self.add_network(new_id)
                network.update(body or {})
                return copy.deepcopy(network)
            network = self.networks.get(nwid)
            if network is None:
                return None
            if method == "POST":
                # Top-level keys replace whole values
                network.update(body or {})
            elif method == "DELETE":
                del self.networks[nwid]
                self.members.pop(nwid, None)
            return copy.deepcopy(network)

        if nwid not in self.networks or rest[1] != "member":
            return None
        members = self.members[nwid]

        if len(rest) == 2:
            return {member_id: m["revision"] for member_id, m in members.items()}

        member = members.get(rest[2])
        if member is None:
            return None
        if method == "POST":
            member.update(body or {})
            member["revision"] += 1
        elif method == "DELETE":
            del members[rest[2]]
        return copy.deepcopy(member)


@pytest.fixture
def controller() -> FakeController:
    return FakeController()


@pytest.fixture
def client(controller) -> ControllerClient:
    return ControllerClient(
        base_url="http://controller.test:9993",
        token="test-token",
        timeout=1.0,
        transport=httpx.MockTransport(controller.handler),
    )


@pytest.fixture
def annotations() -> AnnotationStore:
    engine = build_engine("sqlite://")
    init_db(bind=engine)
    return AnnotationStore(sessionmaker(autocommit=False, autoflush=False, bind=engine))


@pytest.fixture
def reconciler(client, annotations) -> NetworkReconciler:
    return NetworkReconciler(client, annotations)
