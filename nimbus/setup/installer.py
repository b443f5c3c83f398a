import posixpath
from abc import ABC
from abc import abstractmethod
from collections.abc import Sequence
from typing import ClassVar
from typing import Final

from loguru import logger
from pydantic import Field

from nimbus.common.frozen_model import FrozenModel
from nimbus.common.logging import log_span
from nimbus.errors import NotApplicableError
from nimbus.errors import TransportError
from nimbus.errors import VerificationFailedError
from nimbus.machine.connection import MachineConnection
from nimbus.machine.connection import shell_quote
from nimbus.primitives import Architecture
from nimbus.primitives import OperatingSystem
from nimbus.primitives import TelemetryCategory
from nimbus.primitives import ToolStatus
from nimbus.setup.releases import GitHubReleaseClient
from nimbus.setup.releases import ReleaseAsset
from nimbus.setup.releases import url_basename
from nimbus.telemetry import telemetry_span

DOWNLOADS_SUBPATH: Final[str] = "downloads"
BIN_DIRNAME: Final[str] = "bin"


class ToolInfo(FrozenModel):
    """Install status of one tool on one machine."""

    status: ToolStatus = Field(description="Whether the tool is installed, missing, or not applicable")
    version: str | None = Field(default=None, description="Version reported by the installed tool")
    path: str | None = Field(default=None, description="Install directory on the machine")


class ToolInstaller(FrozenModel, ABC):
    """Idempotently installs one pinned version of an external tool onto a machine.

    The sequence is fixed: applicability gate, install directory, existence
    check, release asset lookup, download and unpack, then finalize (chmod and
    self-check). When the target already exists, the release lookup and the
    download are skipped entirely, so an installed tool survives a network outage.
    Subclasses supply the tool-specific pieces.
    """

    tool_name: ClassVar[str]
    version: ClassVar[str]
    release_url: ClassVar[str]
    install_subpath: ClassVar[str]
    supported_os: ClassVar[frozenset[OperatingSystem]]

    release_client: GitHubReleaseClient = Field(
        default_factory=GitHubReleaseClient,
        description="Client used to look up release assets",
    )

    def install(self, connection: MachineConnection) -> str:
        """Install the tool on the connection's machine and return its install directory.

        Raises NotApplicableError (before any I/O) when the machine's OS is not
        supported. All other errors propagate unchanged.
        """
        machine = connection.machine
        self.check_applicable(machine.os)

        with telemetry_span(
            connection.nimbus_ctx,
            TelemetryCategory.MACHINE,
            f"install_{self.tool_name}",
            tenant_id=machine.tenant_id,
            machine_id=machine.id,
            os=machine.os,
            arch=machine.arch,
        ) as span_metadata:
            with log_span("Installing {} {} on machine {}", self.tool_name, self.version, machine.id):
                install_path = connection.xdg_data_home(self.install_subpath)
                self.prepare_directories(connection, install_path)
                target_path = self.get_target_path(install_path)

                if connection.file_exists(target_path):
                    logger.debug("{} already present at {}, skipping download", self.tool_name, target_path)
                else:
                    release = self.release_client.fetch_release(self.release_url)
                    asset = self.select_asset(release.assets, machine.os, machine.arch)
                    logger.debug("Selected {} asset {}", self.tool_name, asset.name)
                    self.materialize(connection, asset, install_path)

                self.finalize(connection, install_path)
            span_metadata["install_path"] = install_path
        return install_path

    def check_applicable(self, os: OperatingSystem) -> None:
        if os not in self.supported_os:
            raise NotApplicableError(self.tool_name, os)

    def is_applicable(self, os: OperatingSystem) -> bool:
        return os in self.supported_os

    def prepare_directories(self, connection: MachineConnection, install_path: str) -> None:
        """Create the install directory and its bin directory."""
        connection.mkdir_p(posixpath.join(install_path, BIN_DIRNAME))

    def get_target_path(self, install_path: str) -> str:
        """Path whose existence means the tool is already installed."""
        return posixpath.join(install_path, BIN_DIRNAME, self.tool_name)

    @abstractmethod
    def select_asset(
        self,
        assets: Sequence[ReleaseAsset],
        os: OperatingSystem,
        arch: Architecture,
    ) -> ReleaseAsset:
        """Pick the release asset for this platform, or raise NoAssetFoundError."""

    @abstractmethod
    def materialize(self, connection: MachineConnection, asset: ReleaseAsset, install_path: str) -> None:
        """Download the asset and leave the tool at its target path."""

    def finalize(self, connection: MachineConnection, install_path: str) -> None:
        """Make the binary executable and check that it runs.

        Runs on every install, including when the download was skipped.
        """
        binary_path = self.get_target_path(install_path)
        connection.exec(f"chmod +x {shell_quote(binary_path)}")
        try:
            connection.exec(f"{shell_quote(binary_path)} --help")
        except TransportError as e:
            raise VerificationFailedError(self.tool_name, binary_path) from e

    def get_info(self, connection: MachineConnection) -> ToolInfo:
        """Report whether the tool is installed on the machine, without installing anything."""
        if not self.is_applicable(connection.machine.os):
            return ToolInfo(status=ToolStatus.NOT_APPLICABLE)
        install_path = connection.xdg_data_home(self.install_subpath)
        target_path = self.get_target_path(install_path)
        if not connection.file_exists(target_path):
            return ToolInfo(status=ToolStatus.NOT_INSTALLED)
        return ToolInfo(
            status=ToolStatus.INSTALLED,
            version=self.read_installed_version(connection, target_path),
            path=install_path,
        )

    def read_installed_version(self, connection: MachineConnection, target_path: str) -> str | None:
        """First line of `<target> --version`, or None when the tool cannot report it."""
        try:
            output = connection.exec(f"{shell_quote(target_path)} --version")
        except TransportError as e:
            logger.debug("Could not read {} version: {}", self.tool_name, e)
            return None
        first_line = output.strip().splitlines()[0] if output.strip() else ""
        return first_line or None

    # Helpers shared by the concrete installers

    def download_to_cache(self, connection: MachineConnection, url: str) -> str:
        """Download url into the machine's download cache and return the file path."""
        downloads_dir = connection.xdg_cache_home(DOWNLOADS_SUBPATH)
        connection.mkdir_p(downloads_dir)
        destination = posixpath.join(downloads_dir, url_basename(url))
        self.download(connection, url, destination)
        return destination

    def download(self, connection: MachineConnection, url: str, destination: str) -> None:
        """Download url to destination.

        A failed transfer removes whatever curl left at destination, so a
        truncated file is never mistaken for a finished install on the next run.
        """
        timeout = connection.nimbus_ctx.config.download_timeout_seconds
        with log_span("Downloading {} to {}", url, destination):
            try:
                connection.exec(f"curl -fsSL -o {shell_quote(destination)} {shell_quote(url)}", timeout_seconds=timeout)
            except TransportError:
                self.remove_path(connection, destination)
                raise

    def extract_tarball(
        self,
        connection: MachineConnection,
        archive_path: str,
        destination_dir: str,
        members: Sequence[str] = (),
    ) -> None:
        timeout = connection.nimbus_ctx.config.extract_timeout_seconds
        member_args = "".join(f" {shell_quote(member)}" for member in members)
        connection.exec(
            f"tar -xzf {shell_quote(archive_path)} -C {shell_quote(destination_dir)}{member_args}",
            timeout_seconds=timeout,
        )

    def remove_path(self, connection: MachineConnection, path: str) -> None:
        """Delete an intermediate file or directory.

        A failure here is logged rather than raised so it cannot replace the
        outcome of the step it cleans up after.
        """
        try:
            connection.exec(f"rm -rf {shell_quote(path)}")
        except TransportError as e:
            logger.warning("Failed to remove {} on machine {}: {}", path, connection.machine.id, e)
