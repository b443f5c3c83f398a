from nimbus import hookimpl
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.primitives import ProviderType
from nimbus.providers.cloud.base import PlaceholderCloudBackend


class HetznerProviderBackend(PlaceholderCloudBackend):
    provider_type = ProviderType.HETZNER

    @staticmethod
    def get_description() -> str:
        return "Runs CI jobs on Hetzner Cloud servers"


@hookimpl
def register_provider_backend() -> type[ProviderBackendInterface]:
    """Register the hetzner provider backend."""
    return HetznerProviderBackend
