from collections.abc import Iterable
from collections.abc import Sequence

from nimbus.errors import ForgeConfigNotFoundError
from nimbus.errors import ProviderConfigNotFoundError
from nimbus.errors import TenantNotFoundError
from nimbus.interfaces.data_types import ForgeConfig
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import Tenant
from nimbus.interfaces.storage import StorageInterface
from nimbus.primitives import ProviderId
from nimbus.primitives import TenantId


class InMemoryStorage(StorageInterface):
    """Storage held in process memory.

    Suitable for tests and for embedding nimbus in tools whose tenants and
    providers come from a static file rather than a database.
    """

    def __init__(
        self,
        tenants: Iterable[Tenant] = (),
        providers: Iterable[ProviderConfig] = (),
        forge_configs: Iterable[ForgeConfig] = (),
    ) -> None:
        self._tenants: dict[TenantId, Tenant] = {tenant.id: tenant for tenant in tenants}
        self._providers: dict[ProviderId, ProviderConfig] = {provider.id: provider for provider in providers}
        self._forge_configs: dict[TenantId, ForgeConfig] = {config.tenant_id: config for config in forge_configs}

    def add_tenant(self, tenant: Tenant) -> None:
        self._tenants[tenant.id] = tenant

    def add_provider(self, provider: ProviderConfig) -> None:
        self._providers[provider.id] = provider

    def add_forge_config(self, forge_config: ForgeConfig) -> None:
        self._forge_configs[forge_config.tenant_id] = forge_config

    def get_tenant(self, tenant_id: TenantId) -> Tenant:
        try:
            return self._tenants[tenant_id]
        except KeyError as e:
            raise TenantNotFoundError(tenant_id) from e

    def list_tenant_providers(self, tenant_id: TenantId) -> Sequence[ProviderConfig]:
        return [provider for provider in self._providers.values() if provider.tenant_id == tenant_id]

    def get_provider(self, provider_id: ProviderId) -> ProviderConfig:
        try:
            return self._providers[provider_id]
        except KeyError as e:
            raise ProviderConfigNotFoundError(provider_id) from e

    def get_tenant_forge_config(self, tenant_id: TenantId) -> ForgeConfig:
        try:
            return self._forge_configs[tenant_id]
        except KeyError as e:
            raise ForgeConfigNotFoundError(tenant_id) from e
