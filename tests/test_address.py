"""Tests for address and prefix validation."""
import pytest

from core.address import (
    CIDRInfo,
    address_family,
    is_in_subnet,
    is_member_id,
    is_network_id,
    is_valid_address,
    is_valid_cidr,
    is_valid_prefix,
    parse_cidr,
    validate_pool,
    validate_route,
)


class TestAddresses:
    """Tests for address literals."""

    @pytest.mark.parametrize("literal", ["10.0.0.1", "0.0.0.0", "fd00::1", "::", "2001:db8::ff00:42:8329"])
    def test_valid(self, literal):
        assert is_valid_address(literal)

    @pytest.mark.parametrize("literal", ["", "10.0.0", "10.0.0.256", "fd00:::1", "10.0.0.1/24", " 10.0.0.1", None, 10])
    def test_invalid(self, literal):
        assert not is_valid_address(literal)

    def test_family_restriction(self):
        assert is_valid_address("10.0.0.1", family=4)
        assert not is_valid_address("10.0.0.1", family=6)
        assert is_valid_address("fd00::1", family=6)
        assert not is_valid_address("fd00::1", family=4)

    def test_address_family(self):
        assert address_family("192.168.1.1") == 4
        assert address_family("fe80::1") == 6
        assert address_family("nope") is None


class TestPrefixes:
    """Tests for canonical prefix lengths."""

    @pytest.mark.parametrize("text", ["0", "8", "24", "32"])
    def test_valid_v4(self, text):
        assert is_valid_prefix(text, 32)

    @pytest.mark.parametrize("text", ["024", "00", "33", "-1", "+8", " 8", "8 ", "", "x", "٣"])
    def test_invalid_v4(self, text):
        assert not is_valid_prefix(text, 32)

    def test_v6_bounds(self):
        assert is_valid_prefix("128", 128)
        assert not is_valid_prefix("129", 128)


class TestCIDR:
    """Tests for CIDR parsing."""

    def test_parse_v4(self):
        assert parse_cidr("10.0.0.0/24") == CIDRInfo(valid=True, family=4, prefix_len=24)

    def test_parse_v6(self):
        assert parse_cidr("fd00::/8") == CIDRInfo(valid=True, family=6, prefix_len=8)

    def test_host_bits_allowed(self):
        """Targets may carry host bits."""
        assert is_valid_cidr("10.0.0.5/24")

    @pytest.mark.parametrize("literal", [
        "10.0.0.0/024",
        "10.0.0.0/33",
        "fd00::/129",
        "10.0.0.0",
        "10.0.0.0/",
        "/24",
        "10.0.0.0/24/8",
        "garbage/8",
    ])
    def test_invalid(self, literal):
        assert not is_valid_cidr(literal)

    def test_bad_prefix_keeps_family(self):
        info = parse_cidr("10.0.0.0/33")
        assert not info.valid
        assert info.family == 4

    def test_family_restriction(self):
        assert is_valid_cidr("10.0.0.0/8", family=4)
        assert not is_valid_cidr("fd00::/8", family=4)


class TestSubnet:
    """Tests for subnet membership."""

    def test_inside(self):
        assert is_in_subnet("10.0.0.5", "10.0.0.0/24")

    def test_outside(self):
        assert not is_in_subnet("10.0.1.5", "10.0.0.0/24")

    def test_range_edges(self):
        assert is_in_subnet("10.0.0.0", "10.0.0.0/24")
        assert is_in_subnet("10.0.0.255", "10.0.0.0/24")
        assert not is_in_subnet("10.0.1.0", "10.0.0.0/24")

    def test_host_bits_in_target(self):
        assert is_in_subnet("10.0.0.200", "10.0.0.5/24")

    def test_v6(self):
        assert is_in_subnet("fd00::1234", "fd00::/64")
        assert not is_in_subnet("fd01::1", "fd00::/64")

    def test_family_mismatch_is_false(self):
        assert not is_in_subnet("10.0.0.1", "fd00::/8")
        assert not is_in_subnet("fd00::1", "10.0.0.0/8")

    def test_garbage_is_false(self):
        assert not is_in_subnet("nope", "10.0.0.0/24")
        assert not is_in_subnet("10.0.0.1", "10.0.0.0/024")

    def test_zero_prefix_matches_everything(self):
        assert is_in_subnet("203.0.113.9", "0.0.0.0/0")


class TestIdentifiers:
    """Tests for network and member ids."""

    def test_network_id(self):
        assert is_network_id("8056c2e21c000001")
        assert not is_network_id("8056c2e21c00000")
        assert not is_network_id("8056c2e21c00000g")

    def test_member_id(self):
        assert is_member_id("a1b2c3d4e5")
        assert is_member_id("A1B2C3D4E5")
        assert not is_member_id("a1b2c3d4e")


class TestValidatePool:
    """Tests for pool invariants."""

    def test_valid(self):
        assert validate_pool("10.0.0.1", "10.0.0.100") == []

    def test_single_address(self):
        assert validate_pool("10.0.0.1", "10.0.0.1") == []

    def test_reversed(self):
        problems = validate_pool("10.0.0.100", "10.0.0.1")
        assert problems == [("ipRangeEnd", "out_of_range",
                             "IP range end must not be lower than IP range start")]

    def test_numeric_not_lexical_order(self):
        assert validate_pool("10.0.0.9", "10.0.0.10") == []

    def test_mixed_family(self):
        problems = validate_pool("10.0.0.1", "fd00::1")
        assert [p[:2] for p in problems] == [("ipRangeEnd", "failed_custom_rule")]

    def test_bad_endpoints(self):
        fields = [p[0] for p in validate_pool("x", "")]
        assert fields == ["ipRangeStart", "ipRangeEnd"]


class TestValidateRoute:
    """Tests for route invariants."""

    def test_valid_without_gateway(self):
        assert validate_route("10.0.0.0/24") == []

    def test_valid_with_gateway(self):
        assert validate_route("10.0.0.0/24", "10.0.0.1") == []

    def test_bad_target(self):
        assert [p[0] for p in validate_route("10.0.0.0/33")] == ["target"]

    def test_gateway_family_mismatch(self):
        problems = validate_route("10.0.0.0/24", "fd00::1")
        assert [p[:2] for p in problems] == [("via", "failed_custom_rule")]

    def test_bad_gateway(self):
        problems = validate_route("10.0.0.0/24", "gateway")
        assert [p[:2] for p in problems] == [("via", "invalid_format")]
