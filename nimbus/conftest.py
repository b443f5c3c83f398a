"""Shared pytest fixtures for nimbus tests."""

from collections.abc import Generator
from pathlib import Path

import pluggy
import pytest

from nimbus.config.data_types import NimbusConfig
from nimbus.config.data_types import NimbusContext
from nimbus.interfaces.data_types import ProviderConfig
from nimbus.interfaces.data_types import Tenant
from nimbus.plugins import hookspecs
from nimbus.primitives import ProviderId
from nimbus.primitives import ProviderType
from nimbus.primitives import TenantId
from nimbus.providers.registry import load_all_backends
from nimbus.providers.registry import reset_backend_registry
from nimbus.storage import InMemoryStorage
from nimbus.utils.testing import TelemetryRecorder
from nimbus.utils.testing import make_xdg_env


@pytest.fixture(autouse=True)
def plugin_manager() -> Generator[pluggy.PluginManager, None, None]:
    """Create a plugin manager with nimbus hookspecs and the built-in backends.

    Entry point plugins are not loaded, so an installed telemetry listener
    cannot observe test events. The backend registry is reset around every test.
    """
    reset_backend_registry()

    pm = pluggy.PluginManager("nimbus")
    pm.add_hookspecs(hookspecs)
    load_all_backends(pm)

    yield pm

    reset_backend_registry()


@pytest.fixture
def telemetry_recorder(plugin_manager: pluggy.PluginManager) -> TelemetryRecorder:
    recorder = TelemetryRecorder()
    plugin_manager.register(recorder, name="telemetry-recorder")
    return recorder


@pytest.fixture
def nimbus_ctx(plugin_manager: pluggy.PluginManager) -> NimbusContext:
    return NimbusContext(config=NimbusConfig(command_timeout_seconds=30.0), pm=plugin_manager)


@pytest.fixture
def xdg_env(tmp_path: Path) -> dict[str, str]:
    """XDG variables for local machines, rooted in the test's temp directory."""
    return make_xdg_env(tmp_path / "home")


@pytest.fixture
def local_metadata(xdg_env: dict[str, str]) -> dict[str, object]:
    """provider_metadata for a local machine whose XDG homes live under tmp_path."""
    return {"type": "local", "name": "localhost", "hostname": "test-host", "env": xdg_env}


@pytest.fixture
def tenant() -> Tenant:
    return Tenant(id=TenantId("tenant-1"), name="Acme CI")


@pytest.fixture
def local_provider_config(tenant: Tenant, xdg_env: dict[str, str]) -> ProviderConfig:
    return ProviderConfig(
        id=ProviderId("provider-local"),
        tenant_id=tenant.id,
        type=ProviderType.LOCAL,
        config={"name": "test-local", "env": xdg_env},
    )


@pytest.fixture
def storage(tenant: Tenant, local_provider_config: ProviderConfig) -> InMemoryStorage:
    return InMemoryStorage(tenants=[tenant], providers=[local_provider_config])
