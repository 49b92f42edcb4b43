# controller-ui/schemas/member.py
"""
Member-related Pydantic schemas
"""

from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, List

from .network import Network


class PeerPath(BaseModel):
    address: Optional[str] = None
    active: bool = False
    preferred: bool = False

    model_config = ConfigDict(extra="allow")


class Peer(BaseModel):
    """
    Live connectivity info for a node, from the controller's peer list
    Transient: never persisted, absent when the member is offline.
    """
    address: str
    latency: Optional[int] = None
    role: Optional[str] = None
    version: Optional[str] = None
    paths: List[PeerPath] = Field(default_factory=list)

    model_config = ConfigDict(extra="allow")


class Member(BaseModel):
    """
    Network member as reported by the controller, joined with the
    locally stored display name and the live peer entry
    """
    id: str = Field(..., description="10 hex digit member address", examples=["a1b2c3d4e5"])
    address: Optional[str] = None
    nwid: Optional[str] = None
    authorized: bool = False
    active_bridge: bool = Field(False, alias="activeBridge")
    ip_assignments: List[str] = Field(default_factory=list, alias="ipAssignments")

    # Joined at read time, not owned by the controller
    name: str = ""
    peer: Optional[Peer] = None

    # Set when this member could not be loaded; the other fields are then defaults
    error: Optional[str] = None

    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
        json_schema_extra={
            "example": {
                "id": "a1b2c3d4e5",
                "address": "a1b2c3d4e5",
                "nwid": "8056c2e21c000001",
                "authorized": True,
                "activeBridge": False,
                "ipAssignments": ["10.0.0.5"],
                "name": "laptop",
                "peer": None,
                "error": None
            }
        }
    )

    @property
    def member_address(self) -> str:
        return self.address or self.id


class NetworkWithMembers(BaseModel):
    """Network with every enrolled member, enriched"""
    network: Network
    members: List[Member]
    controller_address: Optional[str] = None


class NetworkMember(BaseModel):
    """A single enriched member together with its network"""
    network: Network
    member: Member


class MemberDeleteResult(BaseModel):
    """Outcome of a member delete"""
    network: Network
    member: Member
    deleted: bool
