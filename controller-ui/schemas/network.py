# controller-ui/schemas/network.py
"""
Network-related Pydantic schemas
Mirror the controller's JSON objects; attributes are snake_case,
wire names are kept as aliases.
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List, Any, Dict


class IpAssignmentPool(BaseModel):
    """Contiguous address range reserved for automatic member allocation"""
    start: str = Field(..., alias="ipRangeStart", examples=["10.0.0.1"])
    end: str = Field(..., alias="ipRangeEnd", examples=["10.0.0.100"])

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Route(BaseModel):
    """Managed route; via=None means no gateway"""
    target: str = Field(..., examples=["10.0.0.0/24"])
    via: Optional[str] = Field(None, examples=["10.0.0.1"])

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class V4AssignMode(BaseModel):
    zt: bool = False

    model_config = ConfigDict(extra="allow")


class V6AssignMode(BaseModel):
    sixplane: bool = Field(False, alias="6plane")
    rfc4193: bool = False
    zt: bool = False

    model_config = ConfigDict(populate_by_name=True, extra="allow")


class DnsConfig(BaseModel):
    domain: str = ""
    servers: List[str] = Field(default_factory=list)


class Network(BaseModel):
    """
    Network as reported by the controller
    Fields the UI does not manage (rules, tags, mtu...) are preserved as extras.
    """
    nwid: str = Field(..., description="16 hex digit network id", examples=["8056c2e21c000001"])
    id: Optional[str] = None
    name: str = ""
    private: bool = True
    v4_assign_mode: V4AssignMode = Field(default_factory=V4AssignMode, alias="v4AssignMode")
    v6_assign_mode: V6AssignMode = Field(default_factory=V6AssignMode, alias="v6AssignMode")
    dns: DnsConfig = Field(default_factory=DnsConfig)
    ip_assignment_pools: List[IpAssignmentPool] = Field(default_factory=list, alias="ipAssignmentPools")
    routes: List[Route] = Field(default_factory=list)

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "nwid": "8056c2e21c000001",
                "name": "Test",
                "private": True,
                "v4AssignMode": {"zt": True},
                "v6AssignMode": {"6plane": False, "rfc4193": False, "zt": False},
                "dns": {"domain": "", "servers": []},
                "ipAssignmentPools": [{"ipRangeStart": "10.0.0.1", "ipRangeEnd": "10.0.0.100"}],
                "routes": [{"target": "10.0.0.0/24", "via": None}]
            }
        }
    )


class ControllerStatus(BaseModel):
    """Status of the controller node"""
    address: str
    online: bool = False
    version: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class NetworkListResponse(BaseModel):
    """Response for listing networks"""
    networks: List[Network]
    total: int


def network_patch(**fields: Any) -> Dict[str, Any]:
    """
    Build a partial network update with wire names

    Nested models are dumped by alias so the controller receives
    the same shape it reports.
    """
    patch: Dict[str, Any] = {}
    for key, value in fields.items():
        if isinstance(value, BaseModel):
            value = value.model_dump(by_alias=True)
        elif isinstance(value, list):
            value = [
                v.model_dump(by_alias=True) if isinstance(v, BaseModel) else v
                for v in value
            ]
        patch[key] = value
    return patch
