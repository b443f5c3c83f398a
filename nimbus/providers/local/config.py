import socket
from typing import Any
from typing import Final
from typing import Literal

from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from nimbus.common.frozen_model import FrozenModel
from nimbus.errors import ConfigParseError

DEFAULT_LOCAL_NAME: Final[str] = "localhost"


class LocalProviderSettings(FrozenModel):
    """Typed view of a local provider configuration's config map."""

    # Unrecognized keys belong to the integrating application, not to us
    model_config = ConfigDict(extra="ignore")

    name: str = Field(default=DEFAULT_LOCAL_NAME, description="Display name recorded on provisioned machines")
    env: dict[str, str] = Field(
        default_factory=dict,
        description="Environment overlaid on every command run on machines from this provider",
    )

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> "LocalProviderSettings":
        try:
            return cls.model_validate(config)
        except ValidationError as e:
            raise ConfigParseError(f"Invalid local provider config: {e}") from e


class LocalMachineMetadata(FrozenModel):
    """Typed view of the provider_metadata the local backend writes onto its machines."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["local"] = Field(default="local", description="Transport discriminator")
    name: str = Field(default=DEFAULT_LOCAL_NAME, description="Display name of the local provider")
    hostname: str = Field(default_factory=socket.gethostname, description="Hostname of the machine")
    env: dict[str, str] = Field(default_factory=dict, description="Environment overlay for commands")
