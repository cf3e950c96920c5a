"""Tests for the machine state vocabulary."""

import pytest

from rancher_machine.models.state import MachineState, RemoteStatus


@pytest.mark.parametrize(
    "status",
    ["creating", "migrating", "requested", "restarting", "restoring", "starting"],
)
def test_transitional_statuses_map_to_starting(status):
    """Test that every transitional status maps to Starting."""
    assert MachineState.from_remote(status) is MachineState.STARTING


@pytest.mark.parametrize(
    "status", ["error", "erroring", "purged", "purging", "removed", "removing"]
)
def test_failure_and_removal_statuses_map_to_error(status):
    """Test that failure and removal statuses map to Error."""
    assert MachineState.from_remote(status) is MachineState.ERROR


@pytest.mark.parametrize(
    "status,expected",
    [
        ("running", MachineState.RUNNING),
        ("updating-running", MachineState.RUNNING),
        ("stopped", MachineState.STOPPED),
        ("updating-stopped", MachineState.STOPPED),
        ("stopping", MachineState.STOPPING),
    ],
)
def test_steady_statuses(status, expected):
    """Test running, stopped and stopping statuses."""
    assert MachineState.from_remote(status) is expected


@pytest.mark.parametrize("status", ["", "hibernating", "RUNNING", None, 42])
def test_unrecognized_status_maps_to_unknown(status):
    """Test that anything unrecognized maps to Unknown without raising."""
    assert MachineState.from_remote(status) is MachineState.UNKNOWN


def test_every_remote_status_is_mapped():
    """Test that only the explicit unknown status falls through the table."""
    unmapped = [
        status
        for status in RemoteStatus
        if MachineState.from_remote(status) is MachineState.UNKNOWN
    ]
    assert unmapped == [RemoteStatus.UNKNOWN]


def test_remote_status_parse():
    """Test parsing raw status strings."""
    assert RemoteStatus.parse("running") is RemoteStatus.RUNNING
    assert RemoteStatus.parse("updating-stopped") is RemoteStatus.UPDATING_STOPPED
    assert RemoteStatus.parse(RemoteStatus.STOPPING) is RemoteStatus.STOPPING
    assert RemoteStatus.parse("bogus") is RemoteStatus.UNKNOWN
    assert RemoteStatus.parse(None) is RemoteStatus.UNKNOWN


def test_machine_state_string_form():
    """Test that states print as docker-machine spells them."""
    assert str(MachineState.RUNNING) == "Running"
    assert str(MachineState.UNKNOWN) == "Unknown"
    assert MachineState.STOPPED == "Stopped"
