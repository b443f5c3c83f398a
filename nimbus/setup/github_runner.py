import posixpath
from collections.abc import Sequence
from typing import Final
from typing import assert_never

from nimbus.common.pure import pure
from nimbus.errors import NoAssetFoundError
from nimbus.errors import VerificationFailedError
from nimbus.machine.connection import MachineConnection
from nimbus.primitives import Architecture
from nimbus.primitives import OperatingSystem
from nimbus.setup.installer import ToolInstaller
from nimbus.setup.releases import ReleaseAsset
from nimbus.setup.releases import find_asset

GITHUB_RUNNER_VERSION: Final[str] = "2.321.0"
RUN_SCRIPT_NAME: Final[str] = "run.sh"


@pure
def get_runner_platform(os: OperatingSystem, arch: Architecture) -> str:
    """Platform string the actions/runner project uses in its asset names."""
    match os:
        case OperatingSystem.MACOS:
            os_part = "osx"
        case OperatingSystem.LINUX:
            os_part = "linux"
        case _ as unreachable:
            assert_never(unreachable)
    match arch:
        case Architecture.ARM64:
            arch_part = "arm64"
        case Architecture.X86_64:
            arch_part = "x64"
        case _ as unreachable:
            assert_never(unreachable)
    return f"{os_part}-{arch_part}"


class GitHubRunnerInstaller(ToolInstaller):
    """Installs the GitHub Actions runner agent on macOS and Linux.

    The runner ships as a tarball of scripts and a bundled runtime. It is
    unpacked straight into the install directory; run.sh marks a complete install.
    """

    tool_name = "github_runner"
    version = GITHUB_RUNNER_VERSION
    release_url = f"https://api.github.com/repos/actions/runner/releases/tags/v{GITHUB_RUNNER_VERSION}"
    install_subpath = "github-runner"
    supported_os = frozenset({OperatingSystem.MACOS, OperatingSystem.LINUX})

    def prepare_directories(self, connection: MachineConnection, install_path: str) -> None:
        connection.mkdir_p(install_path)

    def get_target_path(self, install_path: str) -> str:
        return posixpath.join(install_path, RUN_SCRIPT_NAME)

    def select_asset(
        self,
        assets: Sequence[ReleaseAsset],
        os: OperatingSystem,
        arch: Architecture,
    ) -> ReleaseAsset:
        platform = get_runner_platform(os, arch)
        asset = find_asset(assets, lambda name: platform in name and name.endswith(".tar.gz"))
        if asset is None:
            raise NoAssetFoundError(self.tool_name, platform)
        return asset

    def materialize(self, connection: MachineConnection, asset: ReleaseAsset, install_path: str) -> None:
        tarball_path = self.download_to_cache(connection, asset.browser_download_url)
        try:
            self.extract_tarball(connection, tarball_path, install_path)
        finally:
            self.remove_path(connection, tarball_path)

    def finalize(self, connection: MachineConnection, install_path: str) -> None:
        run_script = self.get_target_path(install_path)
        if not connection.file_exists(run_script):
            raise VerificationFailedError(self.tool_name, run_script)
