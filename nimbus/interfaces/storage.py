from abc import ABC
from abc import abstractmethod
from collections.abc import Sequence

from nimbus.interfaces.data_types import ForgeConfig
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import Tenant
from nimbus.primitives import ProviderId
from nimbus.primitives import TenantId


class StorageInterface(ABC):
    """Persistent tenant, provider and forge records, supplied by the integrating application.

    Lookups of a single record raise the matching NotFoundError subclass
    (TenantNotFoundError, ProviderConfigNotFoundError, ForgeConfigNotFoundError)
    when nothing is stored under the given id.
    """

    @abstractmethod
    def get_tenant(self, tenant_id: TenantId) -> Tenant: ...

    @abstractmethod
    def list_tenant_providers(self, tenant_id: TenantId) -> Sequence[ProviderConfig]: ...

    @abstractmethod
    def get_provider(self, provider_id: ProviderId) -> ProviderConfig: ...

    @abstractmethod
    def get_tenant_forge_config(self, tenant_id: TenantId) -> ForgeConfig: ...
