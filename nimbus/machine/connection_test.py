from pathlib import Path

import pytest

from nimbus.config.data_types import NimbusContext
from nimbus.errors import CommandFailedError
from nimbus.errors import RemoteShellNotImplementedError
from nimbus.errors import UnsupportedConnectionError
from nimbus.machine.connection import TransportKind
from nimbus.machine.connection import build_exists_probe
from nimbus.machine.connection import connect
from nimbus.machine.connection import resolve_transport_kind
from nimbus.machine.connection import shell_quote
from nimbus.utils.testing import make_machine


def test_shell_quote_wraps_plain_values() -> None:
    assert shell_quote("/tmp/a b") == "'/tmp/a b'"


def test_shell_quote_escapes_embedded_single_quotes() -> None:
    assert shell_quote("it's") == "'it'\\''s'"


def test_exists_probe_uses_explicit_conditional() -> None:
    probe = build_exists_probe("-f", "/tmp/x")

    assert probe == "if [ -f '/tmp/x' ]; then echo yes; else echo no; fi"
    assert "&&" not in probe
    assert "||" not in probe


def test_local_type_routes_to_local_transport() -> None:
    assert resolve_transport_kind(make_machine(provider_metadata={"type": "local"})) == TransportKind.LOCAL


@pytest.mark.parametrize(
    "metadata",
    [
        {"type": "aws", "instance_id": "i-123"},
        {"type": "hetzner"},
        {"type": "gcp"},
        {"type": "azure"},
        {"type": "custom", "ssh": {"host": "10.0.0.1", "user": "runner"}},
    ],
)
def test_remote_backends_route_to_remote_shell(metadata: dict) -> None:
    assert resolve_transport_kind(make_machine(provider_metadata=metadata)) == TransportKind.REMOTE_SHELL


def test_unknown_metadata_is_unsupported() -> None:
    machine = make_machine(provider_metadata={"type": "carrier-pigeon"})

    with pytest.raises(UnsupportedConnectionError) as exc_info:
        resolve_transport_kind(machine)

    assert exc_info.value.connection_type == "carrier-pigeon"


def test_remote_shell_exec_is_explicitly_not_implemented(nimbus_ctx: NimbusContext) -> None:
    machine = make_machine(provider_metadata={"type": "aws", "ssh": {"host": "10.0.0.1"}})

    with pytest.raises(RemoteShellNotImplementedError) as exc_info:
        connect(machine, nimbus_ctx).exec("true")

    assert exc_info.value.machine_id == machine.id


def test_local_exec_returns_output(nimbus_ctx: NimbusContext, local_metadata: dict) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)

    assert connection.exec("echo hi") == "hi\n"


def test_local_exec_failure_propagates(nimbus_ctx: NimbusContext, local_metadata: dict) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)

    with pytest.raises(CommandFailedError) as exc_info:
        connection.exec("exit 7")

    assert exc_info.value.exit_code == 7


def test_file_and_dir_probes(nimbus_ctx: NimbusContext, local_metadata: dict, tmp_path: Path) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)
    file_path = tmp_path / "it's a file"
    file_path.write_text("x")

    assert connection.file_exists(str(file_path))
    assert not connection.file_exists(str(tmp_path))
    assert connection.dir_exists(str(tmp_path))
    assert not connection.dir_exists(str(file_path))
    assert not connection.file_exists(str(tmp_path / "missing"))


def test_mkdir_p_creates_nested_directories(nimbus_ctx: NimbusContext, local_metadata: dict, tmp_path: Path) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)
    target = tmp_path / "a" / "b c" / "d"

    connection.mkdir_p(str(target))

    assert target.is_dir()


def test_mkdir_p_failure_propagates(nimbus_ctx: NimbusContext, local_metadata: dict, tmp_path: Path) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)
    blocker = tmp_path / "file"
    blocker.write_text("x")

    with pytest.raises(CommandFailedError):
        connection.mkdir_p(str(blocker / "child"))


def test_xdg_homes_resolve_on_target_environment(
    nimbus_ctx: NimbusContext,
    local_metadata: dict,
    xdg_env: dict[str, str],
) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)

    assert connection.xdg_data_home() == f"{xdg_env['XDG_DATA_HOME']}/nimbus"
    assert connection.xdg_cache_home() == f"{xdg_env['XDG_CACHE_HOME']}/nimbus"
    assert connection.xdg_state_home() == f"{xdg_env['XDG_STATE_HOME']}/nimbus"


def test_xdg_home_joins_subpath(nimbus_ctx: NimbusContext, local_metadata: dict, xdg_env: dict[str, str]) -> None:
    connection = connect(make_machine(provider_metadata=local_metadata), nimbus_ctx)

    assert connection.xdg_data_home("curie") == f"{xdg_env['XDG_DATA_HOME']}/nimbus/curie"


def test_xdg_home_falls_back_to_home(nimbus_ctx: NimbusContext, tmp_path: Path) -> None:
    metadata = {"type": "local", "env": {"HOME": str(tmp_path), "XDG_DATA_HOME": ""}}
    connection = connect(make_machine(provider_metadata=metadata), nimbus_ctx)

    assert connection.xdg_data_home() == f"{tmp_path}/.local/share/nimbus"
