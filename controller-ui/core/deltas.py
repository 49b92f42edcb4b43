# controller-ui/core/deltas.py
"""
Delta Builders - turn raw operator input into typed, sanitized deltas

Builders are pure: they never talk to the controller or the annotation
store. Expected bad input produces a list of field errors, never an
exception; only misuse of a builder raises.
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, Optional, Type, TypeVar, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic_core import PydanticCustomError

from schemas.network import IpAssignmentPool, Route, V4AssignMode, V6AssignMode, DnsConfig
from .address import (
    Problem,
    is_member_id,
    is_valid_address,
    is_valid_cidr,
    validate_pool,
    validate_route,
)
from .errors import ErrorKind, FieldError, ValidationFailed

logger = logging.getLogger(__name__)

_TRUE = {"true", "1"}
_FALSE = {"false", "0"}

# pydantic error types that are not ours
_KIND_BY_TYPE = {
    "missing": ErrorKind.REQUIRED,
    ErrorKind.REQUIRED: ErrorKind.REQUIRED,
    ErrorKind.INVALID_FORMAT: ErrorKind.INVALID_FORMAT,
    ErrorKind.OUT_OF_RANGE: ErrorKind.OUT_OF_RANGE,
    ErrorKind.FAILED_CUSTOM_RULE: ErrorKind.FAILED_CUSTOM_RULE,
    "greater_than_equal": ErrorKind.OUT_OF_RANGE,
    "less_than_equal": ErrorKind.OUT_OF_RANGE,
}

# Labels for the v6 assign mode checkboxes
_V6_MODE_LABELS = {
    "sixplane": "6plane (/80 routable for each device)",
    "rfc4193": "RFC4193 (/128 for each device)",
    "zt": "Auto-assign from IPv6 pool",
}

# validate_pool reports ipRangeStart/ipRangeEnd; the easy setup form names them differently
_EASY_SETUP_FIELDS = {"ipRangeStart": "poolStart", "ipRangeEnd": "poolEnd"}


# === Sanitizers ===

def _text(value: Any, label: str, required: bool = True, escape: bool = False) -> str:
    """Trim (and optionally HTML-escape) a text field"""
    if value is None:
        value = ""
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        raise PydanticCustomError(ErrorKind.INVALID_FORMAT, "{label} must be text", {"label": label})

    value = value.strip()
    if required and not value:
        raise PydanticCustomError(ErrorKind.REQUIRED, "{label} is required", {"label": label})
    return html.escape(value) if escape else value


def _flag(value: Any, label: str, required: bool = False) -> bool:
    """
    Parse a boolean form value
    Accepts true/false/1/0; an absent optional flag is false (unchecked box).
    """
    if value is None or value == "":
        if required:
            raise PydanticCustomError(ErrorKind.REQUIRED, "{label} is required", {"label": label})
        return False
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise PydanticCustomError(ErrorKind.INVALID_FORMAT, "{label} must be a boolean", {"label": label})


def _address(value: Any, label: str, family: Optional[int] = None) -> str:
    value = _text(value, label)
    if not is_valid_address(value, family):
        kind = {4: "IPv4", 6: "IPv6"}.get(family, "IPv4 or IPv6")
        raise PydanticCustomError(
            ErrorKind.INVALID_FORMAT,
            "{label} must be a valid {kind} address",
            {"label": label, "kind": kind}
        )
    return value


def _member_id(value: Any) -> str:
    value = _text(value, "Member ID")
    if not is_member_id(value):
        raise PydanticCustomError(ErrorKind.INVALID_FORMAT, "Member ID must be 10 hex digits")
    return value.lower()


# === Rulesets ===

class Delta(BaseModel):
    """
    Base ruleset

    Field validators handle single values; problems() checks rules that
    span several fields once every field parsed.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    def problems(self) -> List[Problem]:
        return []


class NetworkNameDelta(Delta):
    name: str = Field("", validate_default=True)

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v):
        return _text(v, "Network name", escape=True)


class IpAssignmentPoolDelta(Delta):
    ip_range_start: str = Field("", alias="ipRangeStart", validate_default=True)
    ip_range_end: str = Field("", alias="ipRangeEnd", validate_default=True)

    @field_validator("ip_range_start", mode="before")
    @classmethod
    def clean_start(cls, v):
        return _address(v, "IP range start")

    @field_validator("ip_range_end", mode="before")
    @classmethod
    def clean_end(cls, v):
        return _address(v, "IP range end")

    def problems(self) -> List[Problem]:
        return validate_pool(self.ip_range_start, self.ip_range_end)

    def to_pool(self) -> IpAssignmentPool:
        return IpAssignmentPool(start=self.ip_range_start, end=self.ip_range_end)


class RouteDelta(Delta):
    target: str = Field("", validate_default=True)
    via: Optional[str] = None

    @field_validator("target", mode="before")
    @classmethod
    def clean_target(cls, v):
        v = _text(v, "Target network")
        if not is_valid_cidr(v):
            raise PydanticCustomError(
                ErrorKind.INVALID_FORMAT,
                "Target network must be in valid CIDR notation"
            )
        return v

    @field_validator("via", mode="before")
    @classmethod
    def clean_via(cls, v):
        v = _text(v, "Gateway", required=False)
        if not v:
            return None
        if not is_valid_address(v):
            raise PydanticCustomError(
                ErrorKind.INVALID_FORMAT,
                "Gateway must be a valid IPv4 or IPv6 address"
            )
        return v

    def problems(self) -> List[Problem]:
        return validate_route(self.target, self.via)

    def to_route(self) -> Route:
        return Route(target=self.target, via=self.via)


class PrivateDelta(Delta):
    private: bool = Field(False, validate_default=True)

    @field_validator("private", mode="before")
    @classmethod
    def clean_private(cls, v):
        return _flag(v, "Private")


class V4AssignModeDelta(Delta):
    zt: bool = Field(False, validate_default=True)

    @field_validator("zt", mode="before")
    @classmethod
    def clean_zt(cls, v):
        return _flag(v, "Auto-assign from pool")

    def to_mode(self) -> V4AssignMode:
        return V4AssignMode(zt=self.zt)


class V6AssignModeDelta(Delta):
    sixplane: bool = Field(False, alias="6plane", validate_default=True)
    rfc4193: bool = Field(False, validate_default=True)
    zt: bool = Field(False, validate_default=True)

    @field_validator("sixplane", "rfc4193", "zt", mode="before")
    @classmethod
    def clean_flags(cls, v, info):
        return _flag(v, _V6_MODE_LABELS[info.field_name])

    def to_mode(self) -> V6AssignMode:
        return V6AssignMode(sixplane=self.sixplane, rfc4193=self.rfc4193, zt=self.zt)


class DnsDelta(Delta):
    """Search domain plus server list; invalid server entries are dropped"""
    domain: str = Field("", validate_default=True)
    servers: List[str] = Field(default_factory=list)

    @field_validator("domain", mode="before")
    @classmethod
    def clean_domain(cls, v):
        return _text(v, "Search domain", required=False)

    @field_validator("servers", mode="before")
    @classmethod
    def clean_servers(cls, v):
        if v is None:
            return []
        if isinstance(v, str):
            v = v.split("\n")
        if not isinstance(v, (list, tuple)):
            raise PydanticCustomError(
                ErrorKind.INVALID_FORMAT,
                "Servers must be a list or one address per line"
            )
        entries = (str(x).strip() for x in v if x is not None)
        return [ip for ip in entries if is_valid_address(ip)]

    def to_dns(self) -> DnsConfig:
        return DnsConfig(domain=self.domain, servers=list(self.servers))


class MemberAuthorizationDelta(Delta):
    id: str = Field("", validate_default=True)
    authorized: bool = Field(False, alias="auth", validate_default=True)

    @field_validator("id", mode="before")
    @classmethod
    def clean_id(cls, v):
        return _member_id(v)

    @field_validator("authorized", mode="before")
    @classmethod
    def clean_auth(cls, v):
        return _flag(v, "Authorization status", required=True)


class MemberActiveBridgeDelta(Delta):
    id: str = Field("", validate_default=True)
    active_bridge: bool = Field(False, alias="activeBridge", validate_default=True)

    @field_validator("id", mode="before")
    @classmethod
    def clean_id(cls, v):
        return _member_id(v)

    @field_validator("active_bridge", mode="before")
    @classmethod
    def clean_bridge(cls, v):
        return _flag(v, "Active bridge status", required=True)


class MemberNameDelta(Delta):
    """An empty name clears the member's annotation"""
    id: str = Field("", validate_default=True)
    name: str = Field("", validate_default=True)

    @field_validator("id", mode="before")
    @classmethod
    def clean_id(cls, v):
        return _member_id(v)

    @field_validator("name", mode="before")
    @classmethod
    def clean_name(cls, v):
        return _text(v, "Member name", required=False, escape=True)


class IpAssignmentDelta(Delta):
    ip_address: str = Field("", alias="ipAddress", validate_default=True)

    @field_validator("ip_address", mode="before")
    @classmethod
    def clean_address(cls, v):
        return _address(v, "IP address")


class EasySetupDelta(Delta):
    """One-form network setup: managed route, pool and v4 auto-assign"""
    network_cidr: str = Field("", alias="networkCIDR", validate_default=True)
    pool_start: str = Field("", alias="poolStart", validate_default=True)
    pool_end: str = Field("", alias="poolEnd", validate_default=True)

    @field_validator("network_cidr", mode="before")
    @classmethod
    def clean_cidr(cls, v):
        v = _text(v, "Network address")
        if not is_valid_cidr(v, family=4):
            raise PydanticCustomError(
                ErrorKind.INVALID_FORMAT,
                "Network address must be an IPv4 network in CIDR notation"
            )
        return v

    @field_validator("pool_start", mode="before")
    @classmethod
    def clean_start(cls, v):
        return _address(v, "IP assignment pool start", family=4)

    @field_validator("pool_end", mode="before")
    @classmethod
    def clean_end(cls, v):
        return _address(v, "IP assignment pool end", family=4)

    def problems(self) -> List[Problem]:
        return [
            (_EASY_SETUP_FIELDS.get(f, f), kind, message)
            for f, kind, message in validate_pool(self.pool_start, self.pool_end)
        ]

    def to_route(self) -> Route:
        return Route(target=self.network_cidr, via=None)

    def to_pool(self) -> IpAssignmentPool:
        return IpAssignmentPool(start=self.pool_start, end=self.pool_end)


# === Builder ===

D = TypeVar("D", bound=Delta)


@dataclass
class BuildResult(Generic[D]):
    """Either a delta or the field errors that prevented building one"""
    delta: Optional[D] = None
    errors: List[FieldError] = field(default_factory=list)
    submitted: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.delta is not None and not self.errors

    def unwrap(self, operation: Optional[str] = None) -> D:
        """Return the delta or raise ValidationFailed with the field errors"""
        if not self.ok:
            raise ValidationFailed(self.errors, submitted=self.submitted, operation=operation)
        return self.delta


class DeltaBuilder(Generic[D]):
    """
    Applies a ruleset to raw operator input

    Usage:
        result = DeltaBuilder(RouteDelta).build({"target": "10.0.0.0/24"})
        if result.ok:
            route = result.delta.to_route()
    """

    def __init__(self, ruleset: Type[D]):
        if not (isinstance(ruleset, type) and issubclass(ruleset, Delta)):
            raise TypeError(f"DeltaBuilder needs a Delta ruleset, got {ruleset!r}")
        self.ruleset = ruleset

    def build(self, raw: Optional[Mapping[str, Any]]) -> BuildResult[D]:
        if raw is None:
            raw = {}
        if not isinstance(raw, Mapping):
            raise TypeError(f"Raw input must be a mapping, got {type(raw).__name__}")

        submitted = dict(raw)
        try:
            delta = self.ruleset.model_validate(submitted)
        except ValidationError as e:
            errors = [self._field_error(err) for err in e.errors()]
            logger.debug(f"{self.ruleset.__name__} rejected: {errors}")
            return BuildResult(errors=errors, submitted=submitted)

        problems = delta.problems()
        if problems:
            errors = [FieldError(field=f, kind=kind, message=message) for f, kind, message in problems]
            return BuildResult(errors=errors, submitted=submitted)

        return BuildResult(delta=delta, submitted=submitted)

    def _field_error(self, err: Dict[str, Any]) -> FieldError:
        loc = err.get("loc") or ()
        name = str(loc[0]) if loc else "__all__"
        # Report the wire name the operator submitted
        model_field = self.ruleset.model_fields.get(name)
        if model_field is not None and model_field.alias:
            name = model_field.alias
        kind = _KIND_BY_TYPE.get(err.get("type"), ErrorKind.INVALID_FORMAT)
        return FieldError(field=name, kind=kind, message=err.get("msg", "Invalid value"))


network_name_builder = DeltaBuilder(NetworkNameDelta)
ip_assignment_pool_builder = DeltaBuilder(IpAssignmentPoolDelta)
route_builder = DeltaBuilder(RouteDelta)
private_builder = DeltaBuilder(PrivateDelta)
v4_assign_mode_builder = DeltaBuilder(V4AssignModeDelta)
v6_assign_mode_builder = DeltaBuilder(V6AssignModeDelta)
dns_builder = DeltaBuilder(DnsDelta)
ip_assignment_builder = DeltaBuilder(IpAssignmentDelta)
easy_setup_builder = DeltaBuilder(EasySetupDelta)
member_name_builder = DeltaBuilder(MemberNameDelta)

MemberDelta = Union[MemberAuthorizationDelta, MemberActiveBridgeDelta, MemberNameDelta]


def build_member_delta(raw: Optional[Mapping[str, Any]]) -> BuildResult[MemberDelta]:
    """
    Pick the member facet a form submission carries

    Checked in order: auth, activeBridge, name. A form with none of
    them is rejected rather than silently ignored.
    """
    raw = raw or {}
    if raw.get("auth") not in (None, ""):
        return DeltaBuilder(MemberAuthorizationDelta).build(raw)
    if raw.get("activeBridge") not in (None, ""):
        return DeltaBuilder(MemberActiveBridgeDelta).build(raw)
    if "name" in raw:
        return DeltaBuilder(MemberNameDelta).build(raw)

    return BuildResult(
        errors=[FieldError(
            field="auth",
            kind=ErrorKind.REQUIRED,
            message="One of auth, activeBridge or name is required",
        )],
        submitted=dict(raw),
    )
