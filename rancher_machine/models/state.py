"""Machine state vocabulary.

Rancher reports instance status as free-form strings. They are parsed into
:class:`RemoteStatus` where a response is received and then folded into the
small :class:`MachineState` set docker-machine understands.
"""

from enum import Enum


class RemoteStatus(str, Enum):
    """Instance status literals reported by Rancher."""

    CREATING = "creating"
    MIGRATING = "migrating"
    REQUESTED = "requested"
    RESTARTING = "restarting"
    RESTORING = "restoring"
    STARTING = "starting"
    ERROR = "error"
    ERRORING = "erroring"
    PURGED = "purged"
    PURGING = "purging"
    REMOVED = "removed"
    REMOVING = "removing"
    RUNNING = "running"
    UPDATING_RUNNING = "updating-running"
    STOPPED = "stopped"
    UPDATING_STOPPED = "updating-stopped"
    STOPPING = "stopping"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "RemoteStatus":
        """Parse a raw status, returning UNKNOWN for anything unrecognized."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except (ValueError, TypeError):
            return cls.UNKNOWN


class MachineState(str, Enum):
    """Canonical machine state."""

    STARTING = "Starting"
    RUNNING = "Running"
    STOPPING = "Stopping"
    STOPPED = "Stopped"
    ERROR = "Error"
    UNKNOWN = "Unknown"

    @classmethod
    def from_remote(cls, status: object) -> "MachineState":
        """Map a Rancher status (raw string or RemoteStatus) to a state.

        Never raises: unrecognized values map to UNKNOWN.
        """
        return _STATE_BY_STATUS.get(RemoteStatus.parse(status), cls.UNKNOWN)

    def __str__(self) -> str:
        return self.value


_STATE_BY_STATUS = {
    RemoteStatus.CREATING: MachineState.STARTING,
    RemoteStatus.MIGRATING: MachineState.STARTING,
    RemoteStatus.REQUESTED: MachineState.STARTING,
    RemoteStatus.RESTARTING: MachineState.STARTING,
    RemoteStatus.RESTORING: MachineState.STARTING,
    RemoteStatus.STARTING: MachineState.STARTING,
    RemoteStatus.ERROR: MachineState.ERROR,
    RemoteStatus.ERRORING: MachineState.ERROR,
    RemoteStatus.PURGED: MachineState.ERROR,
    RemoteStatus.PURGING: MachineState.ERROR,
    RemoteStatus.REMOVED: MachineState.ERROR,
    RemoteStatus.REMOVING: MachineState.ERROR,
    RemoteStatus.RUNNING: MachineState.RUNNING,
    RemoteStatus.UPDATING_RUNNING: MachineState.RUNNING,
    RemoteStatus.STOPPED: MachineState.STOPPED,
    RemoteStatus.UPDATING_STOPPED: MachineState.STOPPED,
    RemoteStatus.STOPPING: MachineState.STOPPING,
}
