import pluggy
from pydantic import Field
from pydantic import PositiveFloat

from nimbus.common.frozen_model import FrozenModel
from nimbus.primitives import LogLevel


class NimbusConfig(FrozenModel):
    """Process-wide settings for provisioning and setup.

    Every timeout here is enforced by the transport that performs the call
    (subprocess or httpx); nothing above the transport adds its own timer.
    """

    command_timeout_seconds: PositiveFloat = Field(
        default=60.0,
        description="Default timeout for a single command run on a machine",
    )
    download_timeout_seconds: PositiveFloat = Field(
        default=300.0,
        description="Timeout for downloading a release asset onto a machine",
    )
    extract_timeout_seconds: PositiveFloat = Field(
        default=120.0,
        description="Timeout for unpacking a downloaded archive on a machine",
    )
    release_fetch_timeout_seconds: PositiveFloat = Field(
        default=30.0,
        description="Timeout for fetching upstream release metadata",
    )
    log_level: LogLevel = Field(
        default=LogLevel.INFO,
        description="Level for the stderr log sink installed by setup_logging",
    )


class NimbusContext(FrozenModel):
    """Configuration plus plugin manager, passed explicitly through every operation.

    The plugin manager carries both the provider backend registrations and the
    telemetry listeners, so nothing in nimbus resolves a global at call time.
    """

    model_config = {"arbitrary_types_allowed": True}

    config: NimbusConfig = Field(
        default_factory=NimbusConfig,
        description="Configuration for nimbus",
    )
    pm: pluggy.PluginManager = Field(
        description="Plugin manager for provider backends and telemetry listeners",
    )
