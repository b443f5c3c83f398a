import pluggy

from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.telemetry import TelemetryEvent

hookspec = pluggy.HookspecMarker("nimbus")


@hookspec
def register_provider_backend() -> type[ProviderBackendInterface] | None:
    """Register a provider backend with nimbus.

    Backend modules implement this hook to make themselves available to the
    registry. Return the backend class to register it, or None.
    """


@hookspec
def on_telemetry_event(event: TelemetryEvent) -> None:
    """Called for every telemetry event nimbus emits.

    Integrating applications implement this hook to forward events to their
    metrics or tracing system. Exceptions raised here are logged and
    dropped; they never change the outcome of the operation that emitted the
    event, and the remaining listeners still receive it.
    """
