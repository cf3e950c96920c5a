"""Machine state models."""

from rancher_machine.models.state import MachineState, RemoteStatus

__all__ = ["MachineState", "RemoteStatus"]
