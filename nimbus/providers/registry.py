import importlib
from typing import Final
from typing import assert_never

import pluggy

from nimbus.common.pure import pure
from nimbus.errors import UnknownBackendError
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.primitives import ProviderType

# Cache for registered backends
backend_registry: dict[ProviderType, type[ProviderBackendInterface]] = {}

LOCAL_BACKEND_MODULE: Final[str] = "nimbus.providers.local.backend"


@pure
def get_backend_module(provider_type: ProviderType) -> str:
    """Module that implements the backend for a provider type.

    Exhaustive over ProviderType: adding a provider type without a backend
    module fails type checking here.
    """
    match provider_type:
        case ProviderType.LOCAL:
            return LOCAL_BACKEND_MODULE
        case ProviderType.AWS:
            return "nimbus.providers.cloud.aws"
        case ProviderType.HETZNER:
            return "nimbus.providers.cloud.hetzner"
        case ProviderType.GCP:
            return "nimbus.providers.cloud.gcp"
        case ProviderType.AZURE:
            return "nimbus.providers.cloud.azure"
        case _ as unreachable:
            assert_never(unreachable)


def _parse_provider_type(name: str | ProviderType) -> ProviderType:
    try:
        return ProviderType(name)
    except ValueError as e:
        raise UnknownBackendError(
            f"Unknown provider backend: {name}. Known backends: {', '.join(list_known_backends())}"
        ) from e


def _load_single_backend(pm: pluggy.PluginManager, provider_type: ProviderType) -> None:
    """Load a single backend module and register it via the plugin manager."""
    module = importlib.import_module(get_backend_module(provider_type))
    if not pm.is_registered(module):
        pm.register(module, name=f"nimbus-backend-{provider_type}")
    # Call hook and register only newly-discovered backends
    for backend_class in pm.hook.register_provider_backend():
        if backend_class is None:
            continue
        backend_name = backend_class.get_name()
        if backend_name not in backend_registry:
            backend_registry[backend_name] = backend_class


def load_all_backends(pm: pluggy.PluginManager) -> None:
    """Load every built-in backend implementation."""
    for provider_type in ProviderType:
        _load_single_backend(pm, provider_type)


def reset_backend_registry() -> None:
    """Reset the backend registry to its initial state.

    This is primarily used for test isolation to ensure a clean state between tests.
    """
    backend_registry.clear()


def get_backend(name: str | ProviderType, pm: pluggy.PluginManager) -> type[ProviderBackendInterface]:
    """Get a provider backend class by discriminator, loading it on demand.

    Raises UnknownBackendError for a discriminator with no registered backend.
    This is a configuration error and is not meant to be recovered from.
    """
    provider_type = _parse_provider_type(name)
    if provider_type not in backend_registry:
        _load_single_backend(pm, provider_type)
    if provider_type not in backend_registry:
        available = sorted(str(k) for k in backend_registry.keys())
        raise UnknownBackendError(
            f"Unknown provider backend: {provider_type}. Registered backends: {', '.join(available) or '(none)'}"
        )
    return backend_registry[provider_type]


def list_backends() -> list[str]:
    """List all loaded backend names."""
    return sorted(str(k) for k in backend_registry.keys())


def list_known_backends() -> list[str]:
    """List all backend names nimbus knows how to load."""
    return sorted(str(provider_type) for provider_type in ProviderType)
