from datetime import datetime
from datetime import timezone
from typing import Any

from pydantic import Field
from pydantic import field_validator

from nimbus.common.frozen_model import FrozenModel
from nimbus.common.pure import pure
from nimbus.primitives import Architecture
from nimbus.primitives import ImageState
from nimbus.primitives import ImageType
from nimbus.primitives import MachineId
from nimbus.primitives import MachineState
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderId
from nimbus.primitives import TenantId

_TERMINAL_BOUND_STATES = frozenset({MachineState.STOPPING, MachineState.TERMINATED})
_READY_STATES = frozenset({MachineState.READY, MachineState.RUNNING})


class MachineImage(FrozenModel):
    """Software image a machine boots from, tracked independently of the machine state."""

    id: str = Field(description="Backend-specific image identifier (AMI id, docker reference, ...)")
    type: ImageType = Field(description="Kind of image")
    state: ImageState = Field(default=ImageState.PROVISIONING, description="Readiness of the image")
    installed_at: datetime | None = Field(default=None, description="When the image became ready")


class Machine(FrozenModel):
    """One CI runner instance under management.

    Machines are values: every component that advances one returns an updated
    copy instead of mutating it. provider_metadata is an opaque bag owned by
    the backend that created the machine; consumers parse the slice they need
    into their own typed model.
    """

    id: MachineId = Field(description="Opaque unique machine identifier")
    tenant_id: TenantId = Field(description="Tenant that owns this machine")
    provider_id: ProviderId = Field(description="Provider configuration that created this machine")
    os: OperatingSystem = Field(description="Operating system, immutable once provisioned")
    arch: Architecture = Field(description="CPU architecture, immutable once provisioned")
    state: MachineState = Field(description="Lifecycle state")
    ip_address: str | None = Field(default=None, description="IP address, once known")
    ssh_public_key: str | None = Field(default=None, description="SSH public key installed on the machine")
    image: MachineImage | None = Field(default=None, description="Software image, if the backend tracks one")
    labels: tuple[str, ...] = Field(default=(), description="Ordered, de-duplicated scheduling tags")
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc),
        description="When the machine was provisioned",
    )
    provider_metadata: dict[str, Any] = Field(
        default_factory=dict,
        description="Backend-specific handles (instance id, connection parameters, ...)",
    )

    @field_validator("labels", mode="before")
    @classmethod
    def _deduplicate_labels(cls, value: Any) -> Any:
        if isinstance(value, (list, tuple)):
            return tuple(dict.fromkeys(value))
        return value

    @property
    def is_terminated(self) -> bool:
        return is_terminated(self.state)

    @property
    def is_running(self) -> bool:
        return is_running(self.state)

    @property
    def is_ready(self) -> bool:
        return is_ready(self.state)


@pure
def is_terminated(state: MachineState) -> bool:
    """Stopping and terminated machines are both on their way out and never reused."""
    return state in _TERMINAL_BOUND_STATES


@pure
def is_running(state: MachineState) -> bool:
    return state == MachineState.RUNNING


@pure
def is_ready(state: MachineState) -> bool:
    """A running machine is still ready: it has everything installed and can take jobs."""
    return state in _READY_STATES
