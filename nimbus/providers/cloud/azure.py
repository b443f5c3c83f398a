from nimbus import hookimpl
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.primitives import ProviderType
from nimbus.providers.cloud.base import PlaceholderCloudBackend


class AzureProviderBackend(PlaceholderCloudBackend):
    provider_type = ProviderType.AZURE

    @staticmethod
    def get_description() -> str:
        return "Runs CI jobs on Azure virtual machines"


@hookimpl
def register_provider_backend() -> type[ProviderBackendInterface]:
    """Register the azure provider backend."""
    return AzureProviderBackend
