import math
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import ClassVar

from pydantic import ConfigDict
from pydantic import Field
from pydantic import ValidationError

from nimbus.common.frozen_model import FrozenModel
from nimbus.common.pure import pure
from nimbus.config.data_types import NimbusContext
from nimbus.errors import ConfigParseError
from nimbus.errors import MinimumAllocationPeriodError
from nimbus.errors import ProviderNotImplementedError
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import ProvisionSpecs
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.machine.data_types import Machine
from nimbus.primitives import MachineId
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderType
from nimbus.primitives import TenantId


class CloudMachineMetadata(FrozenModel):
    """Typed view of the provider_metadata a cloud backend writes onto its machines."""

    model_config = ConfigDict(extra="ignore")

    type: ProviderType = Field(description="Backend that owns the machine")
    instance_id: str | None = Field(default=None, description="Cloud instance identifier")
    host_id: str | None = Field(default=None, description="Dedicated host identifier, where one is allocated")
    minimum_allocation_hours: int | None = Field(
        default=None,
        ge=0,
        description="Billing minimum for the underlying allocation; backend default when absent",
    )


@pure
def compute_hours_remaining(created_at: datetime, minimum_hours: int, now: datetime) -> int:
    """Whole hours (rounded up) until a minimum allocation period ends, or 0 once it has."""
    remaining = created_at + timedelta(hours=minimum_hours) - now
    if remaining <= timedelta(0):
        return 0
    return math.ceil(remaining.total_seconds() / 3600)


class PlaceholderCloudBackend(ProviderBackendInterface):
    """Shared behavior for cloud backends whose drivers are not written yet.

    Every operation that would call the cloud API raises
    ProviderNotImplementedError. The termination gate is real: it only needs
    the machine's creation time and its billing minimum.
    """

    provider_type: ClassVar[ProviderType]

    @classmethod
    def get_name(cls) -> ProviderType:
        return cls.provider_type

    @classmethod
    def get_default_minimum_allocation_hours(cls, os: OperatingSystem) -> int:
        return 0

    @classmethod
    def provision(cls, config: ProviderConfig, specs: ProvisionSpecs, nimbus_ctx: NimbusContext) -> Machine:
        raise ProviderNotImplementedError(cls.provider_type, "provision")

    @classmethod
    def terminate(cls, config: ProviderConfig, machine: Machine, nimbus_ctx: NimbusContext) -> None:
        cls.can_terminate(machine)
        raise ProviderNotImplementedError(cls.provider_type, "terminate")

    @classmethod
    def can_terminate(cls, machine: Machine) -> bool:
        try:
            metadata = CloudMachineMetadata.model_validate(machine.provider_metadata)
        except ValidationError as e:
            raise ConfigParseError(f"Invalid {cls.provider_type} metadata on machine {machine.id}: {e}") from e
        minimum_hours = metadata.minimum_allocation_hours
        if minimum_hours is None:
            minimum_hours = cls.get_default_minimum_allocation_hours(machine.os)
        hours_remaining = compute_hours_remaining(machine.created_at, minimum_hours, datetime.now(timezone.utc))
        if hours_remaining > 0:
            raise MinimumAllocationPeriodError(machine.id, hours_remaining)
        return True

    @classmethod
    def list_machines(cls, config: ProviderConfig, tenant_id: TenantId, nimbus_ctx: NimbusContext) -> list[Machine]:
        raise ProviderNotImplementedError(cls.provider_type, "list_machines")

    @classmethod
    def get_machine(cls, config: ProviderConfig, machine_id: MachineId, nimbus_ctx: NimbusContext) -> Machine:
        raise ProviderNotImplementedError(cls.provider_type, "get_machine")
