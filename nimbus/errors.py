from nimbus.primitives import MachineId
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderId
from nimbus.primitives import TenantId


class BaseNimbusError(Exception):
    """Base exception for all nimbus errors."""


class NimbusError(BaseNimbusError):
    """Base exception for errors surfaced to integrating applications.

    Subclasses may set user_help_text with extra context for operators.
    """

    user_help_text: str | None = None


# === Configuration ===


class ConfigError(NimbusError):
    """Base class for configuration errors."""


class ConfigNotFoundError(ConfigError, FileNotFoundError):
    """Raised when an explicitly requested config file does not exist."""


class ConfigParseError(ConfigError, ValueError):
    """Raised when a config file or override cannot be parsed."""


class UnknownBackendError(ConfigError):
    """Raised when a provider type has no registered backend."""

    user_help_text = "Check the provider configuration's type field. Known types: local, aws, hetzner, gcp, azure."


# === Applicability ===


class NotApplicableError(NimbusError):
    """Raised when a tool does not apply to a machine's operating system.

    This is a branch, not a failure: callers skip the tool rather than alarm.
    """

    def __init__(self, tool: str, os: OperatingSystem) -> None:
        self.tool = tool
        self.os = os
        super().__init__(f"{tool} is not applicable to {os} machines")


# === Transport ===


class TransportError(NimbusError):
    """Base class for failures executing commands on a machine."""


class CommandFailedError(TransportError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, command: str, exit_code: int, output: str) -> None:
        self.command = command
        self.exit_code = exit_code
        self.output = output
        super().__init__(f"Command exited with status {exit_code}: {command}")


class CommandTimeoutError(TransportError):
    """Raised when a command does not finish within its timeout."""

    def __init__(self, command: str, timeout_seconds: float) -> None:
        self.command = command
        self.timeout_seconds = timeout_seconds
        super().__init__(f"Command timed out after {timeout_seconds} seconds: {command}")


class CommandExecutionError(TransportError):
    """Raised when a command could not be started at all."""

    def __init__(self, command: str, reason: str) -> None:
        self.command = command
        self.reason = reason
        super().__init__(f"Failed to execute command ({reason}): {command}")


class UnsupportedConnectionError(TransportError):
    """Raised when a machine's metadata names no known transport."""

    def __init__(self, machine_id: MachineId, connection_type: str | None) -> None:
        self.machine_id = machine_id
        self.connection_type = connection_type
        super().__init__(f"Unsupported connection type for machine {machine_id}: {connection_type!r}")


class TransportNotImplementedError(TransportError, NotImplementedError):
    """Raised when a transport exists in the model but has not been built yet."""


class RemoteShellNotImplementedError(TransportNotImplementedError):
    """Raised for every remote-shell operation: the SSH transport is reserved but unimplemented."""

    user_help_text = "Only machines provisioned by the local provider can be set up today."

    def __init__(self, machine_id: MachineId) -> None:
        self.machine_id = machine_id
        super().__init__(f"Remote shell transport is not implemented (machine {machine_id})")


# === Release metadata and assets ===


class ReleaseError(NimbusError):
    """Base class for failures fetching upstream release metadata."""


class ReleaseHTTPError(ReleaseError):
    """Raised when the release endpoint answers with a non-200 status."""

    def __init__(self, url: str, status_code: int) -> None:
        self.url = url
        self.status_code = status_code
        super().__init__(f"Release request to {url} failed with HTTP status {status_code}")


class ReleaseRequestError(ReleaseError):
    """Raised when the release request fails before a response arrives."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.reason = reason
        super().__init__(f"Release request to {url} failed: {reason}")


class ReleaseFormatError(ReleaseError):
    """Raised when the release body is not the expected JSON object."""


class NoAssetFoundError(NimbusError):
    """Raised when no release asset matches the requested platform/architecture token."""

    def __init__(self, tool: str, token: str) -> None:
        self.tool = tool
        self.token = token
        super().__init__(f"No {tool} release asset found for {token}")


# === Verification ===


class VerificationFailedError(NimbusError):
    """Raised when a tool is present on disk but does not run.

    Distinct from transport errors: the artifact arrived but is broken.
    """

    def __init__(self, tool: str, path: str) -> None:
        self.tool = tool
        self.path = path
        super().__init__(f"{tool} at {path} failed verification")


# === Tenancy and lookups ===


class OwnershipError(NimbusError):
    """Base class for tenant ownership violations."""


class MachineNotOwnedByTenantError(OwnershipError):
    """Raised when a machine belongs to a different tenant than the caller."""

    def __init__(self, machine_id: MachineId, tenant_id: TenantId) -> None:
        self.machine_id = machine_id
        self.tenant_id = tenant_id
        super().__init__(f"Machine {machine_id} is not owned by tenant {tenant_id}")


class ProviderNotOwnedByTenantError(OwnershipError):
    """Raised when a provider configuration belongs to a different tenant than the caller."""

    def __init__(self, provider_id: ProviderId, tenant_id: TenantId) -> None:
        self.provider_id = provider_id
        self.tenant_id = tenant_id
        super().__init__(f"Provider {provider_id} is not owned by tenant {tenant_id}")


class NotFoundError(NimbusError):
    """Base class for missing records."""


class TenantNotFoundError(NotFoundError):
    def __init__(self, tenant_id: TenantId) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Tenant not found: {tenant_id}")


class ProviderConfigNotFoundError(NotFoundError):
    def __init__(self, provider_id: ProviderId) -> None:
        self.provider_id = provider_id
        super().__init__(f"Provider configuration not found: {provider_id}")


class ForgeConfigNotFoundError(NotFoundError):
    def __init__(self, tenant_id: TenantId) -> None:
        self.tenant_id = tenant_id
        super().__init__(f"Forge configuration not found for tenant {tenant_id}")


class MachineNotFoundError(NotFoundError):
    def __init__(self, machine_id: MachineId) -> None:
        self.machine_id = machine_id
        super().__init__(f"Machine not found: {machine_id}")


# === Providers ===


class ProviderError(NimbusError):
    """Base class for provider backend errors."""


class ProviderNotImplementedError(ProviderError, NotImplementedError):
    """Raised by placeholder backends for operations that need a cloud driver."""

    def __init__(self, provider_type: str, operation: str) -> None:
        self.provider_type = provider_type
        self.operation = operation
        super().__init__(f"The {provider_type} provider does not implement {operation} yet")


class MinimumAllocationPeriodError(ProviderError):
    """Raised when a machine cannot be terminated before its billing minimum elapses."""

    def __init__(self, machine_id: MachineId, hours_remaining: int) -> None:
        self.machine_id = machine_id
        self.hours_remaining = hours_remaining
        super().__init__(
            f"Machine {machine_id} is within its minimum allocation period ({hours_remaining} hours remaining)"
        )


class UnsupportedPlatformError(ProviderError):
    """Raised when the host platform cannot be mapped to a supported os/arch."""

    def __init__(self, system: str, machine: str) -> None:
        self.system = system
        self.machine = machine
        super().__init__(f"Unsupported host platform: {system}/{machine}")
