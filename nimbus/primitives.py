from enum import StrEnum
from enum import auto
from typing import Any
from typing import Self
from typing import assert_never
from uuid import uuid4

from pydantic import GetCoreSchemaHandler
from pydantic_core import CoreSchema
from pydantic_core import core_schema

from nimbus.common.enums import LowerCaseStrEnum
from nimbus.common.pure import pure

# === Enums ===


class OperatingSystem(LowerCaseStrEnum):
    """Operating system of a machine."""

    MACOS = auto()
    LINUX = auto()


class Architecture(LowerCaseStrEnum):
    """CPU architecture of a machine."""

    ARM64 = auto()
    X86_64 = auto()


class MachineState(LowerCaseStrEnum):
    """Lifecycle state of a machine.

    The progression is linear: provisioning -> image_installing -> ready -> running
    -> stopping -> terminated. image_installing is skipped when no tool or image
    install phase is needed.
    """

    PROVISIONING = auto()
    IMAGE_INSTALLING = auto()
    READY = auto()
    RUNNING = auto()
    STOPPING = auto()
    TERMINATED = auto()


class ImageType(LowerCaseStrEnum):
    """Kind of software image a machine boots from."""

    AMI = auto()
    DOCKER = auto()
    NONE = auto()


class ImageState(LowerCaseStrEnum):
    """Readiness of a machine's software image, tracked independently of the machine state."""

    PROVISIONING = auto()
    READY = auto()


class ProviderType(LowerCaseStrEnum):
    """Discriminator selecting which provider backend handles a machine."""

    LOCAL = auto()
    AWS = auto()
    HETZNER = auto()
    GCP = auto()
    AZURE = auto()


class ForgeType(LowerCaseStrEnum):
    """Git forge hosting the repositories a tenant's runners serve."""

    GITHUB = auto()
    GITLAB = auto()
    FORGEJO = auto()


class TelemetryCategory(LowerCaseStrEnum):
    """Top-level grouping of telemetry events."""

    MACHINE = auto()
    FORGE = auto()
    PROVIDER = auto()
    SSH = auto()


class ToolStatus(LowerCaseStrEnum):
    """Install status of a tool on a machine, as reported by setup info."""

    INSTALLED = auto()
    NOT_INSTALLED = auto()
    NOT_APPLICABLE = auto()


class LogLevel(StrEnum):
    """Log verbosity level, using loguru's level names."""

    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


# === Identifiers ===


class InvalidIdentifierError(ValueError):
    """Raised when an identifier string is empty or contains whitespace."""


class _Identifier(str):
    """Opaque string identifier that must be non-empty and free of whitespace."""

    def __new__(cls, value: str) -> Self:
        if not value or any(character.isspace() for character in value):
            raise InvalidIdentifierError(f"{cls.__name__} must be non-empty and contain no whitespace, got {value!r}")
        return super().__new__(cls, value)

    @classmethod
    def __get_pydantic_core_schema__(
        cls,
        source_type: Any,
        handler: GetCoreSchemaHandler,
    ) -> CoreSchema:
        return core_schema.no_info_after_validator_function(
            cls,
            core_schema.str_schema(min_length=1),
            serialization=core_schema.to_string_ser_schema(),
        )


class TenantId(_Identifier):
    """Identifier of a tenant, the ownership boundary for machines and providers."""


class ProviderId(_Identifier):
    """Identifier of a provider configuration."""


class MachineId(_Identifier):
    """Identifier of a machine. Opaque: callers never parse it."""

    @classmethod
    def generate(cls, prefix: str) -> Self:
        """Create a new id of the form <prefix>-<16 hex chars>."""
        return cls(f"{prefix}-{uuid4().hex[:16]}")


@pure
def architecture_tokens(arch: Architecture) -> tuple[str, ...]:
    """Tokens that identify this architecture in upstream release asset names.

    The first token is the canonical one and is reported when no asset matches.
    """
    match arch:
        case Architecture.ARM64:
            return ("arm64",)
        case Architecture.X86_64:
            return ("x86_64", "amd64")
        case _ as unreachable:
            assert_never(unreachable)
