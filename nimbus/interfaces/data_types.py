from typing import Any

from pydantic import Field

from nimbus.common.frozen_model import FrozenModel
from nimbus.primitives import Architecture
from nimbus.primitives import ForgeType
from nimbus.primitives import ImageType
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderId
from nimbus.primitives import ProviderType
from nimbus.primitives import TenantId


class Tenant(FrozenModel):
    """The ownership boundary for machines, provider configurations and forge configuration."""

    id: TenantId = Field(description="Tenant identifier")
    name: str = Field(description="Human-readable tenant name")


class ProviderConfig(FrozenModel):
    """A tenant's configuration for one provider backend.

    credentials and config are opaque at this level; the backend selected by
    type parses them into its own typed settings.
    """

    id: ProviderId = Field(description="Provider configuration identifier")
    tenant_id: TenantId = Field(description="Tenant that owns this configuration")
    type: ProviderType = Field(description="Which backend handles machines for this configuration")
    credentials: dict[str, Any] = Field(default_factory=dict, description="Backend-specific credentials")
    config: dict[str, Any] = Field(default_factory=dict, description="Backend-specific settings")


class ForgeConfig(FrozenModel):
    """A tenant's git forge settings, used when registering runners."""

    tenant_id: TenantId = Field(description="Tenant that owns this configuration")
    type: ForgeType = Field(description="Forge flavor")
    credentials: dict[str, Any] = Field(default_factory=dict, description="Forge API credentials")
    org: str | None = Field(default=None, description="Organization runners register under")


class ProvisionSpecs(FrozenModel):
    """What a caller asks for when provisioning a machine.

    os and arch are optional for the local backend, which uses the host's
    platform; remote backends require both.
    """

    os: OperatingSystem | None = Field(default=None, description="Requested operating system")
    arch: Architecture | None = Field(default=None, description="Requested CPU architecture")
    labels: tuple[str, ...] = Field(default=(), description="Scheduling tags for the new machine")
    ssh_public_key: str | None = Field(default=None, description="Public key to authorize on the machine")
    image_id: str | None = Field(default=None, description="Image to boot from")
    image_type: ImageType | None = Field(default=None, description="Kind of image named by image_id")
    setup_script: str | None = Field(default=None, description="Extra script for the backend to run at boot")
