import pytest
from pydantic import ValidationError

from nimbus.machine.data_types import Machine
from nimbus.machine.data_types import is_ready
from nimbus.machine.data_types import is_running
from nimbus.machine.data_types import is_terminated
from nimbus.primitives import MachineState
from nimbus.utils.testing import make_machine


@pytest.mark.parametrize("state", list(MachineState))
def test_predicates_depend_on_state_alone(state: MachineState) -> None:
    assert is_ready(state) == (state in {MachineState.READY, MachineState.RUNNING})
    assert is_running(state) == (state == MachineState.RUNNING)
    assert is_terminated(state) == (state in {MachineState.STOPPING, MachineState.TERMINATED})


@pytest.mark.parametrize("state", list(MachineState))
def test_ready_and_terminated_are_mutually_exclusive(state: MachineState) -> None:
    assert not (is_ready(state) and is_terminated(state))


def test_machine_properties_follow_state() -> None:
    machine = make_machine(state=MachineState.RUNNING)

    assert machine.is_running
    assert machine.is_ready
    assert not machine.is_terminated


def test_optional_fields_default_to_empty() -> None:
    machine = make_machine()

    assert machine.ip_address is None
    assert machine.ssh_public_key is None
    assert machine.image is None
    assert machine.labels == ()


def test_machine_requires_identity_fields() -> None:
    with pytest.raises(ValidationError):
        Machine(id="m-1", tenant_id="t-1", os="linux", arch="x86_64", state="ready")  # type: ignore[call-arg]


def test_labels_keep_order_and_drop_duplicates() -> None:
    machine = make_machine().with_updates(labels=["macos", "xcode-15", "macos"])

    assert machine.labels == ("macos", "xcode-15")


def test_machines_are_immutable() -> None:
    machine = make_machine()

    with pytest.raises(ValidationError):
        machine.state = MachineState.READY  # type: ignore[misc]


def test_with_updates_returns_a_copy() -> None:
    machine = make_machine(state=MachineState.PROVISIONING)

    updated = machine.with_updates(state=MachineState.READY)

    assert updated.state == MachineState.READY
    assert machine.state == MachineState.PROVISIONING
    assert updated.created_at == machine.created_at
    assert updated.id == machine.id


def test_with_updates_rejects_unknown_fields() -> None:
    with pytest.raises(ValueError, match="Unknown fields"):
        make_machine().with_updates(hostname="nope")
