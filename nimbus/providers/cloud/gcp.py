from nimbus import hookimpl
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.primitives import ProviderType
from nimbus.providers.cloud.base import PlaceholderCloudBackend


class GcpProviderBackend(PlaceholderCloudBackend):
    provider_type = ProviderType.GCP

    @staticmethod
    def get_description() -> str:
        return "Runs CI jobs on Google Compute Engine instances"


@hookimpl
def register_provider_backend() -> type[ProviderBackendInterface]:
    """Register the gcp provider backend."""
    return GcpProviderBackend
