import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from loguru import logger
from pydantic import Field

from nimbus.common.frozen_model import FrozenModel
from nimbus.common.logging import truncate_for_log
from nimbus.config.data_types import NimbusContext
from nimbus.primitives import TelemetryCategory


class TelemetryEvent(FrozenModel):
    """One structured telemetry event.

    Names follow <operation>_<phase>, e.g. install_curie_start. Start events
    carry system_time in measurements; success and failure events carry
    duration (seconds). Failure events also carry the exception itself.
    """

    model_config = {"arbitrary_types_allowed": True}

    category: TelemetryCategory = Field(description="Top-level grouping (machine, forge, provider, ssh)")
    name: str = Field(description="Event name, <operation>_<phase>")
    measurements: dict[str, float] = Field(default_factory=dict, description="Numeric measurements")
    metadata: dict[str, Any] = Field(default_factory=dict, description="Context such as tenant_id and machine_id")
    error: BaseException | None = Field(default=None, description="The exception for failure events")

    @property
    def path(self) -> tuple[str, str, str]:
        """Hierarchical event name, e.g. ("nimbus", "machine", "setup_start")."""
        return ("nimbus", str(self.category), self.name)


def emit_event(
    nimbus_ctx: NimbusContext,
    category: TelemetryCategory,
    name: str,
    measurements: dict[str, float] | None = None,
    metadata: dict[str, Any] | None = None,
    error: BaseException | None = None,
) -> TelemetryEvent:
    """Build an event and hand it to every registered on_telemetry_event listener.

    A listener that raises is logged and skipped, so telemetry never replaces
    the outcome of the operation being observed.
    """
    event = TelemetryEvent(
        category=category,
        name=name,
        measurements=measurements or {},
        metadata=metadata or {},
        error=error,
    )
    logger.debug(
        "Telemetry {}.{} {} {}",
        category,
        name,
        truncate_for_log(event.measurements),
        truncate_for_log(event.metadata),
    )
    for listener in nimbus_ctx.pm.hook.on_telemetry_event.get_hookimpls():
        try:
            listener.function(event=event)
        except Exception:
            logger.exception("Telemetry listener {} failed on {}", listener.plugin_name, name)
    return event


@contextmanager
def telemetry_span(
    nimbus_ctx: NimbusContext,
    category: TelemetryCategory,
    operation: str,
    **metadata: Any,
) -> Iterator[dict[str, Any]]:
    """Wrap a unit of work in <operation>_start / _success / _failure events.

    Yields the metadata dict; values the work adds to it (install_path,
    machine_id, ...) appear on the success event. On failure the error is
    recorded and then re-raised unchanged.
    """
    emit_event(nimbus_ctx, category, f"{operation}_start", {"system_time": time.time()}, dict(metadata))
    start_time = time.monotonic()
    try:
        yield metadata
    except Exception as e:
        duration = time.monotonic() - start_time
        emit_event(
            nimbus_ctx,
            category,
            f"{operation}_failure",
            {"duration": duration},
            {**metadata, "error": e},
            error=e,
        )
        raise
    duration = time.monotonic() - start_time
    emit_event(nimbus_ctx, category, f"{operation}_success", {"duration": duration}, dict(metadata))


def emit_machine_ready(nimbus_ctx: NimbusContext, **metadata: Any) -> TelemetryEvent:
    return emit_event(nimbus_ctx, TelemetryCategory.MACHINE, "machine_ready", {"system_time": time.time()}, metadata)
