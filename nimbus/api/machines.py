import deal
from loguru import logger

from nimbus.common.logging import log_call
from nimbus.config.data_types import NimbusContext
from nimbus.errors import MachineNotOwnedByTenantError
from nimbus.errors import NimbusError
from nimbus.errors import ProviderNotOwnedByTenantError
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import ProvisionSpecs
from nimbus.interfaces.storage import StorageInterface
from nimbus.machine.data_types import Machine
from nimbus.primitives import MachineId
from nimbus.primitives import ProviderId
from nimbus.primitives import TelemetryCategory
from nimbus.primitives import TenantId
from nimbus.providers.registry import get_backend
from nimbus.telemetry import telemetry_span


@deal.has()
def check_provider_ownership(provider_config: ProviderConfig, tenant_id: TenantId) -> None:
    if provider_config.tenant_id != tenant_id:
        raise ProviderNotOwnedByTenantError(provider_config.id, tenant_id)


@deal.has()
def check_machine_ownership(machine: Machine, tenant_id: TenantId) -> None:
    if machine.tenant_id != tenant_id:
        raise MachineNotOwnedByTenantError(machine.id, tenant_id)


def _load_owned_provider(storage: StorageInterface, tenant_id: TenantId, provider_id: ProviderId) -> ProviderConfig:
    storage.get_tenant(tenant_id)
    provider_config = storage.get_provider(provider_id)
    check_provider_ownership(provider_config, tenant_id)
    return provider_config


@log_call
def provision_machine(
    nimbus_ctx: NimbusContext,
    storage: StorageInterface,
    tenant_id: TenantId,
    provider_id: ProviderId,
    specs: ProvisionSpecs,
) -> Machine:
    """Provision a machine for a tenant through one of its provider configurations.

    Ownership of the provider configuration is checked before the backend is
    involved. For the local backend the returned machine is already ready.
    """
    provider_config = _load_owned_provider(storage, tenant_id, provider_id)
    backend = get_backend(provider_config.type, nimbus_ctx.pm)

    with telemetry_span(
        nimbus_ctx,
        TelemetryCategory.MACHINE,
        "provision",
        tenant_id=tenant_id,
        provider_id=provider_id,
        provider_type=provider_config.type,
    ) as span_metadata:
        machine = backend.provision(provider_config, specs, nimbus_ctx)
        span_metadata["machine_id"] = machine.id
    return machine


@log_call
def can_terminate_machine(
    nimbus_ctx: NimbusContext,
    storage: StorageInterface,
    tenant_id: TenantId,
    machine: Machine,
) -> bool:
    """Ask the machine's backend whether it may be terminated now.

    Raises MinimumAllocationPeriodError (with hours_remaining) when it may not.
    """
    check_machine_ownership(machine, tenant_id)
    provider_config = _load_owned_provider(storage, tenant_id, machine.provider_id)
    backend = get_backend(provider_config.type, nimbus_ctx.pm)
    return backend.can_terminate(machine)


@log_call
def terminate_machine(
    nimbus_ctx: NimbusContext,
    storage: StorageInterface,
    tenant_id: TenantId,
    machine: Machine,
) -> None:
    """Terminate a tenant's machine once its backend allows it.

    The machine's ownership is checked before any provider call, and
    terminate is only invoked after can_terminate succeeds.
    """
    check_machine_ownership(machine, tenant_id)
    provider_config = _load_owned_provider(storage, tenant_id, machine.provider_id)
    backend = get_backend(provider_config.type, nimbus_ctx.pm)
    backend.can_terminate(machine)

    with telemetry_span(
        nimbus_ctx,
        TelemetryCategory.MACHINE,
        "terminate",
        tenant_id=tenant_id,
        machine_id=machine.id,
        provider_id=provider_config.id,
        provider_type=provider_config.type,
    ):
        backend.terminate(provider_config, machine, nimbus_ctx)


@log_call
def get_machine(
    nimbus_ctx: NimbusContext,
    storage: StorageInterface,
    tenant_id: TenantId,
    provider_id: ProviderId,
    machine_id: MachineId,
) -> Machine:
    """Look up one of a tenant's machines through the provider that created it.

    Machine ids do not encode their provider, so callers pass the provider id
    alongside (it is recorded on every Machine as provider_id).
    """
    provider_config = _load_owned_provider(storage, tenant_id, provider_id)
    backend = get_backend(provider_config.type, nimbus_ctx.pm)
    machine = backend.get_machine(provider_config, machine_id, nimbus_ctx)
    check_machine_ownership(machine, tenant_id)
    return machine


@log_call
def list_machines(
    nimbus_ctx: NimbusContext,
    storage: StorageInterface,
    tenant_id: TenantId,
) -> list[Machine]:
    """List a tenant's machines across all of its provider configurations.

    A provider that fails to list is logged and skipped so one broken
    configuration does not hide the machines of the others.
    """
    storage.get_tenant(tenant_id)
    machines: list[Machine] = []
    for provider_config in storage.list_tenant_providers(tenant_id):
        backend = get_backend(provider_config.type, nimbus_ctx.pm)
        try:
            provider_machines = backend.list_machines(provider_config, tenant_id, nimbus_ctx)
        except NimbusError as e:
            logger.warning("Failed to list machines for provider {}: {}", provider_config.id, e)
            continue
        machines.extend(machine for machine in provider_machines if machine.tenant_id == tenant_id)
    return machines
