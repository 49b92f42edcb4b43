"""Tests for the HTTP API."""
import pytest
from fastapi.testclient import TestClient

from api.v1.deps import get_reconciler
from config import settings
from main import app
from tests.conftest import MEMBER_A, NWID

PREFIX = settings.API_PREFIX


@pytest.fixture
def api(reconciler):
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    client = TestClient(app, headers={"X-Admin-Token": settings.ADMIN_SECRET})
    yield client
    app.dependency_overrides.clear()


class TestAuth:
    """Tests for the admin token guard."""

    def test_wrong_token(self, api):
        response = api.get(f"{PREFIX}/status", headers={"X-Admin-Token": "wrong"})

        assert response.status_code == 401
        assert response.json()["detail"]["error_code"] == "UNAUTHORIZED"

    def test_root_is_open(self, api):
        response = api.get("/", headers={"X-Admin-Token": ""})

        assert response.status_code == 200
        assert response.json()["message"] == f"Welcome to {settings.APP_NAME}"


class TestNetworkEndpoints:
    """Tests for network endpoints."""

    def test_status(self, api, controller):
        response = api.get(f"{PREFIX}/status")

        assert response.status_code == 200
        assert response.json()["address"] == controller.address

    def test_create_and_list(self, api):
        response = api.post(f"{PREFIX}/networks", json={"name": "Test"})

        assert response.status_code == 201
        nwid = response.json()["data"]["nwid"]

        listing = api.get(f"{PREFIX}/networks").json()
        assert listing["total"] == 1
        assert listing["networks"][0]["nwid"] == nwid

    def test_create_without_name(self, api, controller):
        response = api.post(f"{PREFIX}/networks", json={"name": "  "})

        assert response.status_code == 422
        body = response.json()
        assert body["error_code"] == "VALIDATION_FAILED"
        assert body["details"]["errors"][0]["field"] == "name"
        assert body["details"]["submitted"] == {"name": "  "}
        assert controller.writes() == []

    def test_missing_network(self, api):
        response = api.get(f"{PREFIX}/networks/{NWID}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "NETWORK_NOT_FOUND"

    def test_malformed_network_id(self, api):
        response = api.get(f"{PREFIX}/networks/not-a-network")

        assert response.status_code == 422
        assert response.json()["error_code"] == "VALIDATION_ERROR"

    def test_detail_uses_wire_names(self, api, controller):
        controller.add_network(NWID, routes=[{"target": "10.0.0.0/24", "via": None}])
        controller.add_member(NWID, MEMBER_A, ipAssignments=["10.0.0.5"])

        body = api.get(f"{PREFIX}/networks/{NWID}").json()

        assert body["network"]["routes"] == [{"target": "10.0.0.0/24", "via": None}]
        assert body["members"][0]["ipAssignments"] == ["10.0.0.5"]
        assert body["members"][0]["name"] == ""

    def test_rename_redirects_even_on_failure(self, api, controller):
        controller.add_network(NWID, name="old")

        response = api.post(f"{PREFIX}/networks/{NWID}/name", json={"name": ""}, follow_redirects=False)

        assert response.status_code == 303
        assert response.headers["location"] == f"/api/v1/networks/{NWID}"
        assert response.headers["X-Operation-Status"] == "failed"
        assert controller.networks[NWID]["name"] == "old"

    def test_rename(self, api, controller):
        controller.add_network(NWID, name="old")

        response = api.post(f"{PREFIX}/networks/{NWID}/name", json={"name": "new"}, follow_redirects=False)

        assert response.headers["X-Operation-Status"] == "ok"
        assert controller.networks[NWID]["name"] == "new"

    def test_pool_add_and_delete(self, api, controller):
        controller.add_network(NWID)

        response = api.post(
            f"{PREFIX}/networks/{NWID}/ipAssignmentPools",
            json={"ipRangeStart": "10.0.0.1", "ipRangeEnd": "10.0.0.100"},
        )
        assert response.status_code == 200
        assert response.json()["data"]["ipAssignmentPools"] == [
            {"ipRangeStart": "10.0.0.1", "ipRangeEnd": "10.0.0.100"}
        ]

        response = api.delete(f"{PREFIX}/networks/{NWID}/ipAssignmentPools/10.0.0.1/10.0.0.100")
        assert response.status_code == 200
        assert controller.networks[NWID]["ipAssignmentPools"] == []

    def test_delete_missing_pool(self, api, controller):
        controller.add_network(NWID)

        response = api.delete(f"{PREFIX}/networks/{NWID}/ipAssignmentPools/10.0.0.1/10.0.0.9")

        assert response.status_code == 404
        assert response.json()["error_code"] == "POOL_NOT_FOUND"

    def test_route_add_and_delete(self, api, controller):
        controller.add_network(NWID)

        response = api.post(f"{PREFIX}/networks/{NWID}/routes", json={"target": "10.0.0.0/24", "via": ""})
        assert response.status_code == 200
        assert controller.networks[NWID]["routes"] == [{"target": "10.0.0.0/24", "via": None}]

        response = api.delete(f"{PREFIX}/networks/{NWID}/routes/10.0.0.0/24")
        assert response.status_code == 200
        assert controller.networks[NWID]["routes"] == []

    def test_invalid_route(self, api, controller):
        controller.add_network(NWID)

        response = api.post(f"{PREFIX}/networks/{NWID}/routes", json={"target": "10.0.0.0/024"})

        assert response.status_code == 422
        assert response.json()["details"]["errors"][0]["kind"] == "invalid_format"

    def test_dns(self, api, controller):
        controller.add_network(NWID)

        response = api.post(
            f"{PREFIX}/networks/{NWID}/dns",
            json={"domain": "lab.example", "servers": "10.0.0.53\nbogus"},
        )

        assert response.status_code == 200
        assert controller.networks[NWID]["dns"] == {"domain": "lab.example", "servers": ["10.0.0.53"]}

    def test_easy_setup(self, api, controller):
        controller.add_network(NWID)

        response = api.post(
            f"{PREFIX}/networks/{NWID}/easy",
            json={"networkCIDR": "10.1.0.0/16", "poolStart": "10.1.0.1", "poolEnd": "10.1.0.50"},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["routes"] == [{"target": "10.1.0.0/16", "via": None}]
        assert data["ipAssignmentPools"] == [{"ipRangeStart": "10.1.0.1", "ipRangeEnd": "10.1.0.50"}]
        assert data["v4AssignMode"]["zt"] is True

    def test_controller_down(self, api, controller):
        controller.broken.add("/controller/network")

        response = api.get(f"{PREFIX}/networks")

        assert response.status_code == 502
        assert response.json()["error_code"] == "CONTROLLER_UNAVAILABLE"


class TestMemberEndpoints:
    """Tests for member endpoints."""

    def test_authorize_from_form(self, api, controller):
        controller.add_network(NWID)
        controller.add_member(NWID, MEMBER_A)

        response = api.post(f"{PREFIX}/networks/{NWID}/members", json={"id": MEMBER_A, "auth": "true"})

        assert response.status_code == 200
        assert response.json()["data"]["member"]["authorized"] is True

    def test_empty_form(self, api, controller):
        controller.add_network(NWID)

        response = api.post(f"{PREFIX}/networks/{NWID}/members", json={"id": MEMBER_A})

        assert response.status_code == 422
        assert response.json()["details"]["errors"][0]["field"] == "auth"

    def test_rename_member(self, api, controller, annotations):
        controller.add_network(NWID)
        controller.add_member(NWID, MEMBER_A)

        response = api.post(
            f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/name",
            json={"name": "laptop"},
            follow_redirects=False,
        )

        assert response.status_code == 303
        assert api.get(f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}").json()["member"]["name"] == "laptop"

    def test_ip_assignment_outside_routes(self, api, controller):
        controller.add_network(NWID, routes=[{"target": "10.0.0.0/24", "via": None}])
        controller.add_member(NWID, MEMBER_A)

        ok = api.post(f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/ipAssignments", json={"ipAddress": "10.0.0.5"})
        rejected = api.post(
            f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/ipAssignments",
            json={"ipAddress": "192.168.1.5"},
        )

        assert ok.status_code == 200
        assert rejected.status_code == 422
        assert rejected.json()["error_code"] == "ADDRESS_NOT_IN_MANAGED_ROUTE"
        assert controller.members[NWID][MEMBER_A]["ipAssignments"] == ["10.0.0.5"]

    def test_stale_index_conflict(self, api, controller):
        controller.add_network(NWID)
        controller.add_member(NWID, MEMBER_A, ipAssignments=["10.0.0.5", "10.0.0.6"])

        response = api.delete(
            f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/ipAssignments",
            params={"address": "10.0.0.6", "index": 0},
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "AMBIGUOUS_DELETE"

    def test_delete_ip_assignment(self, api, controller):
        controller.add_network(NWID)
        controller.add_member(NWID, MEMBER_A, ipAssignments=["10.0.0.5", "10.0.0.6"])

        response = api.delete(
            f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/ipAssignments",
            params={"address": "10.0.0.5"},
        )

        assert response.status_code == 200
        assert controller.members[NWID][MEMBER_A]["ipAssignments"] == ["10.0.0.6"]

    def test_delete_member(self, api, controller, annotations):
        controller.add_network(NWID)
        controller.add_member(NWID, MEMBER_A)

        preview = api.get(f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}/delete")
        response = api.delete(f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}")

        assert preview.status_code == 200
        assert response.status_code == 200
        assert response.json()["data"]["deleted"] is True
        assert MEMBER_A not in controller.members[NWID]

    def test_missing_member(self, api, controller):
        controller.add_network(NWID)

        response = api.get(f"{PREFIX}/networks/{NWID}/members/{MEMBER_A}")

        assert response.status_code == 404
        assert response.json()["error_code"] == "MEMBER_NOT_FOUND"
