from typing import Final

from nimbus import hookimpl
from nimbus.interfaces.provider_backend import ProviderBackendInterface
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderType
from nimbus.providers.cloud.base import PlaceholderCloudBackend

# EC2 Mac dedicated hosts bill for at least 24 hours once allocated
MAC_DEDICATED_HOST_MINIMUM_HOURS: Final[int] = 24


class AwsProviderBackend(PlaceholderCloudBackend):
    """EC2 instances, with Mac dedicated hosts for macOS runners."""

    provider_type = ProviderType.AWS

    @staticmethod
    def get_description() -> str:
        return "Runs CI jobs on EC2 instances (macOS on Mac dedicated hosts)"

    @classmethod
    def get_default_minimum_allocation_hours(cls, os: OperatingSystem) -> int:
        if os == OperatingSystem.MACOS:
            return MAC_DEDICATED_HOST_MINIMUM_HOURS
        return 0


@hookimpl
def register_provider_backend() -> type[ProviderBackendInterface]:
    """Register the AWS provider backend."""
    return AwsProviderBackend
