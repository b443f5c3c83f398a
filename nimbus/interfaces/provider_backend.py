from abc import ABC
from abc import abstractmethod

from nimbus.common.mutable_model import MutableModel
from nimbus.config.data_types import NimbusContext
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import ProvisionSpecs
from nimbus.machine.data_types import Machine
from nimbus.primitives import MachineId
from nimbus.primitives import ProviderType
from nimbus.primitives import TenantId


class ProviderBackendInterface(MutableModel, ABC):
    """Interface for provider backends.

    Provider backends are stateless: all methods are static, and everything a
    call needs arrives as an argument. Each backend parses the opaque
    credentials/config maps of a ProviderConfig into its own typed settings.
    """

    @staticmethod
    @abstractmethod
    def get_name() -> ProviderType:
        """Return the discriminator this backend handles."""
        ...

    @staticmethod
    @abstractmethod
    def get_description() -> str:
        """Return a human-readable description of what this provider backend does."""
        ...

    @staticmethod
    @abstractmethod
    def provision(config: ProviderConfig, specs: ProvisionSpecs, nimbus_ctx: NimbusContext) -> Machine:
        """Allocate a machine for config's tenant.

        Returns a machine in the provisioning state (or ready, for backends that
        run setup synchronously), with its backend handles in provider_metadata.
        """
        ...

    @staticmethod
    @abstractmethod
    def terminate(config: ProviderConfig, machine: Machine, nimbus_ctx: NimbusContext) -> None:
        """Release a machine's resources.

        Callers must check can_terminate first; backends with a minimum
        allocation period check it again here.
        """
        ...

    @staticmethod
    @abstractmethod
    def can_terminate(machine: Machine) -> bool:
        """Return True when the machine may be terminated now.

        Raises MinimumAllocationPeriodError, with the hours remaining, when the
        machine is still inside its billing minimum.
        """
        ...

    @staticmethod
    @abstractmethod
    def list_machines(config: ProviderConfig, tenant_id: TenantId, nimbus_ctx: NimbusContext) -> list[Machine]:
        """Discover the tenant's machines through the backend's own API."""
        ...

    @staticmethod
    @abstractmethod
    def get_machine(config: ProviderConfig, machine_id: MachineId, nimbus_ctx: NimbusContext) -> Machine:
        """Look up one machine through the backend's own API, or raise MachineNotFoundError."""
        ...
