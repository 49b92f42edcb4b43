# controller-ui/core/address.py
"""
Address and prefix validation
Pure helpers for IPv4/IPv6 literals, CIDR notation and subnet membership
"""

import ipaddress
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

IPV4_MAX_PREFIX = 32
IPV6_MAX_PREFIX = 128

_NETWORK_ID_RE = re.compile(r'^[0-9a-fA-F]{16}$')
_MEMBER_ID_RE = re.compile(r'^[0-9a-fA-F]{10}$')

# (field, kind, message)
Problem = Tuple[str, str, str]


@dataclass(frozen=True)
class CIDRInfo:
    """Result of parsing a CIDR literal"""
    valid: bool
    family: Optional[int] = None
    prefix_len: Optional[int] = None


def _parse_address(literal) -> Optional[Union[ipaddress.IPv4Address, ipaddress.IPv6Address]]:
    if not isinstance(literal, str):
        return None
    try:
        return ipaddress.ip_address(literal)
    except ValueError:
        return None


def address_family(literal) -> Optional[int]:
    """Return 4 or 6 for a valid address literal, None otherwise"""
    addr = _parse_address(literal)
    return addr.version if addr is not None else None


def is_valid_address(literal, family: Optional[int] = None) -> bool:
    """
    Check an IPv4/IPv6 address literal

    Args:
        literal: Address text (no prefix)
        family: Restrict to 4 or 6; None accepts either
    """
    addr = _parse_address(literal)
    if addr is None:
        return False
    return family is None or addr.version == family


def is_valid_prefix(text, max_len: int) -> bool:
    """
    A prefix is valid only if its canonical decimal form equals the input
    Rejects leading zeros, signs, whitespace and non-numeric text.
    """
    if not isinstance(text, str) or not text.isascii() or not text.isdigit():
        return False
    num = int(text)
    return str(num) == text and 0 <= num <= max_len


def parse_cidr(literal) -> CIDRInfo:
    """
    Parse "address/prefix"

    The address part may carry host bits ("10.0.0.5/24" is accepted),
    the prefix must be canonical and within family bounds.
    """
    if not isinstance(literal, str) or literal.count('/') != 1:
        return CIDRInfo(valid=False)

    address, prefix = literal.split('/')
    family = address_family(address)
    if family is None:
        return CIDRInfo(valid=False)

    max_len = IPV4_MAX_PREFIX if family == 4 else IPV6_MAX_PREFIX
    if not is_valid_prefix(prefix, max_len):
        return CIDRInfo(valid=False, family=family)

    return CIDRInfo(valid=True, family=family, prefix_len=int(prefix))


def is_valid_cidr(literal, family: Optional[int] = None) -> bool:
    info = parse_cidr(literal)
    return info.valid and (family is None or info.family == family)


def is_in_subnet(address, cidr) -> bool:
    """
    Check whether address lies inside cidr's network range
    Family mismatch or malformed input yields False, never an error.
    """
    addr = _parse_address(address)
    if addr is None or not is_valid_cidr(cidr):
        return False

    try:
        network = ipaddress.ip_network(cidr, strict=False)
    except ValueError:
        return False
    if addr.version != network.version:
        return False
    return addr in network


def is_network_id(value) -> bool:
    """Network ids are 16 hex digits"""
    return isinstance(value, str) and bool(_NETWORK_ID_RE.match(value))


def is_member_id(value) -> bool:
    """Member addresses are 10 hex digits"""
    return isinstance(value, str) and bool(_MEMBER_ID_RE.match(value))


def validate_pool(start, end) -> List[Problem]:
    """
    Check an IP assignment pool

    Both endpoints must be valid addresses of the same family and
    start must not be greater than end.
    """
    problems: List[Problem] = []
    start_addr = _parse_address(start)
    end_addr = _parse_address(end)

    if start_addr is None:
        problems.append(("ipRangeStart", "invalid_format",
                         "IP range start must be a valid IPv4 or IPv6 address"))
    if end_addr is None:
        problems.append(("ipRangeEnd", "invalid_format",
                         "IP range end must be a valid IPv4 or IPv6 address"))
    if problems:
        return problems

    if start_addr.version != end_addr.version:
        problems.append(("ipRangeEnd", "failed_custom_rule",
                         "IP range start and end must be of the same address family"))
    elif int(start_addr) > int(end_addr):
        problems.append(("ipRangeEnd", "out_of_range",
                         "IP range end must not be lower than IP range start"))
    return problems


def validate_route(target, via=None) -> List[Problem]:
    """
    Check a managed route

    target must be a valid CIDR within family prefix bounds; via, when
    present, must be an address of the same family as target.
    """
    problems: List[Problem] = []
    info = parse_cidr(target)
    if not info.valid:
        problems.append(("target", "invalid_format",
                         "Target must be a valid network in CIDR notation"))

    if via is None:
        return problems

    via_family = address_family(via)
    if via_family is None:
        problems.append(("via", "invalid_format",
                         "Gateway must be a valid IPv4 or IPv6 address"))
    elif info.valid and via_family != info.family:
        problems.append(("via", "failed_custom_rule",
                         "Gateway must be of the same address family as the target"))
    return problems
