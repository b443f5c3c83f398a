import platform
import socket
from datetime import datetime
from datetime import timezone

from loguru import logger

from nimbus import hookimpl
from nimbus.common.pure import pure
from nimbus.config.data_types import NimbusContext
from nimbus.errors import MachineNotFoundError
from nimbus.errors import UnsupportedPlatformError
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import ProvisionSpecs
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.machine.data_types import Machine
from nimbus.primitives import Architecture
from nimbus.primitives import MachineId
from nimbus.primitives import MachineState
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderType
from nimbus.primitives import TenantId
from nimbus.providers.local.config import LocalMachineMetadata
from nimbus.providers.local.config import LocalProviderSettings
from nimbus.setup.orchestrator import setup_machine

LOCAL_IP_ADDRESS = "127.0.0.1"


@pure
def detect_os(system: str) -> OperatingSystem:
    """Map platform.system() to a machine OS."""
    match system.lower():
        case "darwin":
            return OperatingSystem.MACOS
        case "linux":
            return OperatingSystem.LINUX
        case _:
            raise UnsupportedPlatformError(system, "")


@pure
def detect_arch(machine: str) -> Architecture:
    """Map platform.machine() to a machine architecture."""
    match machine.lower():
        case "arm64" | "aarch64":
            return Architecture.ARM64
        case "x86_64" | "amd64":
            return Architecture.X86_64
        case _:
            raise UnsupportedPlatformError("", machine)


class LocalProviderBackend(ProviderBackendInterface):
    """Backend that uses the computer nimbus runs on as the machine.

    Provisioning records the host as a machine and runs setup on it
    synchronously, so the returned machine is already ready. Nothing is
    allocated, so termination is a no-op and there is nothing to discover.
    """

    @staticmethod
    def get_name() -> ProviderType:
        return ProviderType.LOCAL

    @staticmethod
    def get_description() -> str:
        return "Runs CI jobs directly on the local computer with no isolation"

    @staticmethod
    def provision(config: ProviderConfig, specs: ProvisionSpecs, nimbus_ctx: NimbusContext) -> Machine:
        settings = LocalProviderSettings.from_config(config.config)
        os = specs.os if specs.os is not None else detect_os(platform.system())
        arch = specs.arch if specs.arch is not None else detect_arch(platform.machine())
        metadata = LocalMachineMetadata(name=settings.name, hostname=socket.gethostname(), env=settings.env)

        machine = Machine(
            id=MachineId.generate("local"),
            tenant_id=config.tenant_id,
            provider_id=config.id,
            os=os,
            arch=arch,
            state=MachineState.PROVISIONING,
            ip_address=LOCAL_IP_ADDRESS,
            ssh_public_key=specs.ssh_public_key,
            labels=specs.labels,
            created_at=datetime.now(timezone.utc),
            provider_metadata=metadata.model_dump(mode="json"),
        )
        logger.debug("Provisioned local machine {} ({}/{})", machine.id, os, arch)

        if os == OperatingSystem.MACOS:
            machine = machine.with_updates(state=MachineState.IMAGE_INSTALLING)
        return setup_machine(machine, nimbus_ctx)

    @staticmethod
    def terminate(config: ProviderConfig, machine: Machine, nimbus_ctx: NimbusContext) -> None:
        logger.debug("Nothing to release for local machine {}", machine.id)

    @staticmethod
    def can_terminate(machine: Machine) -> bool:
        return True

    @staticmethod
    def list_machines(config: ProviderConfig, tenant_id: TenantId, nimbus_ctx: NimbusContext) -> list[Machine]:
        return []

    @staticmethod
    def get_machine(config: ProviderConfig, machine_id: MachineId, nimbus_ctx: NimbusContext) -> Machine:
        raise MachineNotFoundError(machine_id)


@hookimpl
def register_provider_backend() -> type[ProviderBackendInterface]:
    """Register the local provider backend."""
    return LocalProviderBackend
