"""Schemas for driver configuration and Rancher resources."""

from rancher_machine.schemas.driver import DriverConfig, DriverRecord
from rancher_machine.schemas.rancher import (
    Collection,
    InstanceStop,
    Project,
    Resource,
    VirtualMachine,
    VirtualMachineCreate,
)

__all__ = [
    "DriverConfig",
    "DriverRecord",
    "Collection",
    "InstanceStop",
    "Project",
    "Resource",
    "VirtualMachine",
    "VirtualMachineCreate",
]
