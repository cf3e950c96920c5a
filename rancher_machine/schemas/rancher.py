"""Schemas for the Rancher API resources the driver consumes.

Only the fields the driver reads or sends are modelled; everything else in a
response is ignored. Field aliases are the camelCase names used on the wire.
"""

from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from rancher_machine.models.state import MachineState, RemoteStatus

T = TypeVar("T")


class Resource(BaseModel):
    """Common envelope of every Rancher resource."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = ""
    type: str = ""
    links: Dict[str, str] = Field(default_factory=dict)
    actions: Dict[str, str] = Field(default_factory=dict)


class Project(Resource):
    """A Rancher environment."""

    name: Optional[str] = None
    state: Optional[str] = None


class VirtualMachine(Resource):
    """A Rancher virtual machine instance."""

    name: Optional[str] = None
    state: Optional[str] = None
    primary_ip_address: Optional[str] = Field(default=None, alias="primaryIpAddress")
    image_uuid: Optional[str] = Field(default=None, alias="imageUuid")
    memory_mb: Optional[int] = Field(default=None, alias="memoryMb")
    vcpu: Optional[int] = None
    userdata: Optional[str] = None

    @property
    def status(self) -> RemoteStatus:
        """Parsed Rancher status."""
        return RemoteStatus.parse(self.state)

    @property
    def machine_state(self) -> MachineState:
        """Canonical state of this instance."""
        return MachineState.from_remote(self.status)

    @property
    def ip_address(self) -> str:
        """Primary IP, empty until Rancher assigns one."""
        return self.primary_ip_address or ""


class VirtualMachineCreate(BaseModel):
    """Body of a create virtual machine request."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    image_uuid: str = Field(alias="imageUuid")
    memory_mb: int = Field(alias="memoryMb")
    vcpu: int
    userdata: str


class InstanceStop(BaseModel):
    """Options for the stop action; empty means a graceful stop."""

    model_config = ConfigDict(populate_by_name=True)

    remove: Optional[bool] = None
    timeout: Optional[int] = None


class Collection(BaseModel, Generic[T]):
    """A list response."""

    model_config = ConfigDict(extra="ignore")

    data: List[T] = Field(default_factory=list)
