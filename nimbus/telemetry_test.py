import pluggy
import pytest

from nimbus import hookimpl
from nimbus.config.data_types import NimbusContext
from nimbus.errors import CommandFailedError
from nimbus.primitives import TelemetryCategory
from nimbus.telemetry import TelemetryEvent
from nimbus.telemetry import emit_event
from nimbus.telemetry import emit_machine_ready
from nimbus.telemetry import telemetry_span
from nimbus.utils.testing import TelemetryRecorder


def test_span_emits_start_and_success(nimbus_ctx: NimbusContext, telemetry_recorder: TelemetryRecorder) -> None:
    with telemetry_span(nimbus_ctx, TelemetryCategory.MACHINE, "setup", tenant_id="t-1", machine_id="m-1"):
        pass

    assert telemetry_recorder.names == ["setup_start", "setup_success"]
    start = telemetry_recorder.get("setup_start")
    success = telemetry_recorder.get("setup_success")
    assert "system_time" in start.measurements
    assert success.measurements["duration"] >= 0
    assert success.metadata == {"tenant_id": "t-1", "machine_id": "m-1"}
    assert start.path == ("nimbus", "machine", "setup_start")


def test_span_success_includes_metadata_added_by_the_work(
    nimbus_ctx: NimbusContext,
    telemetry_recorder: TelemetryRecorder,
) -> None:
    with telemetry_span(nimbus_ctx, TelemetryCategory.MACHINE, "install_curie", tenant_id="t-1") as metadata:
        metadata["install_path"] = "/opt/curie"

    assert telemetry_recorder.get("install_curie_success").metadata["install_path"] == "/opt/curie"
    assert "install_path" not in telemetry_recorder.get("install_curie_start").metadata


def test_span_records_failure_and_reraises(nimbus_ctx: NimbusContext, telemetry_recorder: TelemetryRecorder) -> None:
    error = RuntimeError("download broke")

    with pytest.raises(RuntimeError) as exc_info:
        with telemetry_span(nimbus_ctx, TelemetryCategory.PROVIDER, "provision", tenant_id="t-1"):
            raise error

    assert exc_info.value is error
    assert telemetry_recorder.names == ["provision_start", "provision_failure"]
    failure = telemetry_recorder.get("provision_failure")
    assert failure.error is error
    assert failure.metadata["error"] is error
    assert "duration" in failure.measurements


def test_emit_event_without_listeners_still_returns_event(nimbus_ctx: NimbusContext) -> None:
    event = emit_event(nimbus_ctx, TelemetryCategory.FORGE, "register_start", {"system_time": 1.0}, {"tenant_id": "t"})

    assert event.category == TelemetryCategory.FORGE
    assert event.name == "register_start"


def test_machine_ready_event(nimbus_ctx: NimbusContext, telemetry_recorder: TelemetryRecorder) -> None:
    emit_machine_ready(nimbus_ctx, tenant_id="t-1", machine_id="m-1")

    event = telemetry_recorder.get("machine_ready")
    assert event.category == TelemetryCategory.MACHINE
    assert event.metadata["machine_id"] == "m-1"


class _BrokenListener:
    """Listener whose metrics backend is down."""

    @hookimpl
    def on_telemetry_event(self, event: TelemetryEvent) -> None:
        raise RuntimeError("listener down")


def test_broken_listener_does_not_replace_operation_error(
    nimbus_ctx: NimbusContext,
    plugin_manager: pluggy.PluginManager,
    telemetry_recorder: TelemetryRecorder,
) -> None:
    plugin_manager.register(_BrokenListener(), name="broken-listener")
    error = CommandFailedError("tar -xzf a.tar.gz", 2, "gzip: stdin: unexpected end of file")

    with pytest.raises(CommandFailedError) as exc_info:
        with telemetry_span(nimbus_ctx, TelemetryCategory.MACHINE, "install_geranos", machine_id="m-1"):
            raise error

    assert exc_info.value is error
    assert telemetry_recorder.names == ["install_geranos_start", "install_geranos_failure"]


def test_broken_listener_does_not_fail_successful_work(
    nimbus_ctx: NimbusContext,
    plugin_manager: pluggy.PluginManager,
    telemetry_recorder: TelemetryRecorder,
) -> None:
    plugin_manager.register(_BrokenListener(), name="broken-listener")

    with telemetry_span(nimbus_ctx, TelemetryCategory.MACHINE, "setup", machine_id="m-1") as metadata:
        metadata["install_path"] = "/opt/nimbus"

    assert telemetry_recorder.get("setup_success").metadata["install_path"] == "/opt/nimbus"
