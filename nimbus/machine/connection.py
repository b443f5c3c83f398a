import posixpath
from enum import auto
from typing import Final
from typing import assert_never

from loguru import logger
from pydantic import Field
from pydantic import ValidationError

from nimbus.common.enums import LowerCaseStrEnum
from nimbus.common.frozen_model import FrozenModel
from nimbus.common.pure import pure
from nimbus.config.data_types import NimbusContext
from nimbus.errors import RemoteShellNotImplementedError
from nimbus.errors import UnsupportedConnectionError
from nimbus.machine.data_types import Machine
from nimbus.primitives import ProviderType
from nimbus.providers.local.config import LocalMachineMetadata
from nimbus.providers.local.process import run_local_shell_command

XDG_NAMESPACE: Final[str] = "nimbus"

_EXISTS_TOKEN: Final[str] = "yes"
_MISSING_TOKEN: Final[str] = "no"

_REMOTE_PROVIDER_TYPES: Final[frozenset[str]] = frozenset(
    {ProviderType.AWS, ProviderType.HETZNER, ProviderType.GCP, ProviderType.AZURE}
)

# Shell expressions that resolve XDG base directories on the target, with POSIX fallbacks
_XDG_DATA_EXPRESSION: Final[str] = '"${XDG_DATA_HOME:-$HOME/.local/share}"'
_XDG_CACHE_EXPRESSION: Final[str] = '"${XDG_CACHE_HOME:-$HOME/.cache}"'
_XDG_STATE_EXPRESSION: Final[str] = '"${XDG_STATE_HOME:-$HOME/.local/state}"'


class TransportKind(LowerCaseStrEnum):
    """How commands reach a machine."""

    LOCAL = auto()
    REMOTE_SHELL = auto()


@pure
def shell_quote(value: str) -> str:
    """Wrap value in single quotes so sh treats it as one literal word.

    Embedded single quotes close the quoting, emit an escaped quote, and reopen it.
    Every path that goes into a command passes through here.
    """
    return "'" + value.replace("'", "'\\''") + "'"


@pure
def resolve_transport_kind(machine: Machine) -> TransportKind:
    """Pick the transport from the machine's provider metadata.

    A `local` type routes to local process execution. An `ssh` sub-map, or
    any cloud backend type, routes to the remote shell.
    """
    metadata = machine.provider_metadata
    connection_type = metadata.get("type")
    if connection_type == ProviderType.LOCAL:
        return TransportKind.LOCAL
    if isinstance(metadata.get("ssh"), dict) or connection_type in _REMOTE_PROVIDER_TYPES:
        return TransportKind.REMOTE_SHELL
    raise UnsupportedConnectionError(machine.id, None if connection_type is None else str(connection_type))


@pure
def build_exists_probe(flag: str, path: str) -> str:
    """POSIX test probe that prints a sentinel token, without relying on && / || semantics."""
    return f"if [ {flag} {shell_quote(path)} ]; then echo {_EXISTS_TOKEN}; else echo {_MISSING_TOKEN}; fi"


class MachineConnection(FrozenModel):
    """Runs commands and resolves paths on one machine, whatever the transport.

    Paths resolved here are paths on the target machine, which may have a
    different home directory and environment than the calling process.
    """

    machine: Machine = Field(description="The machine commands run on")
    nimbus_ctx: NimbusContext = Field(description="Context supplying timeouts")

    def exec(self, command: str, timeout_seconds: float | None = None) -> str:
        """Run a shell command on the machine and return its merged stdout/stderr.

        Raises a TransportError subclass on non-zero exit, timeout, or when the
        machine's transport is unavailable. Never retries.
        """
        timeout = timeout_seconds if timeout_seconds is not None else self.nimbus_ctx.config.command_timeout_seconds
        match resolve_transport_kind(self.machine):
            case TransportKind.LOCAL:
                metadata = self._parse_local_metadata()
                return run_local_shell_command(command, timeout_seconds=timeout, env=metadata.env)
            case TransportKind.REMOTE_SHELL:
                raise RemoteShellNotImplementedError(self.machine.id)
            case _ as unreachable:
                assert_never(unreachable)

    def file_exists(self, path: str) -> bool:
        return self._probe("-f", path)

    def dir_exists(self, path: str) -> bool:
        return self._probe("-d", path)

    def mkdir_p(self, path: str) -> None:
        self.exec(f"mkdir -p {shell_quote(path)}")

    def xdg_data_home(self, subpath: str | None = None) -> str:
        return self._resolve_xdg_home(_XDG_DATA_EXPRESSION, subpath)

    def xdg_cache_home(self, subpath: str | None = None) -> str:
        return self._resolve_xdg_home(_XDG_CACHE_EXPRESSION, subpath)

    def xdg_state_home(self, subpath: str | None = None) -> str:
        return self._resolve_xdg_home(_XDG_STATE_EXPRESSION, subpath)

    def _probe(self, flag: str, path: str) -> bool:
        return self.exec(build_exists_probe(flag, path)).strip() == _EXISTS_TOKEN

    def _resolve_xdg_home(self, expression: str, subpath: str | None) -> str:
        base = self.exec(f"echo {expression}/{XDG_NAMESPACE}").strip()
        if subpath is None:
            return base
        return posixpath.join(base, subpath)

    def _parse_local_metadata(self) -> LocalMachineMetadata:
        try:
            return LocalMachineMetadata.model_validate(self.machine.provider_metadata)
        except ValidationError as e:
            logger.debug("Invalid local metadata on machine {}: {}", self.machine.id, e)
            raise UnsupportedConnectionError(self.machine.id, ProviderType.LOCAL) from e


def connect(machine: Machine, nimbus_ctx: NimbusContext) -> MachineConnection:
    return MachineConnection(machine=machine, nimbus_ctx=nimbus_ctx)
