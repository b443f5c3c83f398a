import posixpath
from collections.abc import Sequence
from typing import Final

from nimbus.errors import NoAssetFoundError
from nimbus.machine.connection import MachineConnection
from nimbus.primitives import Architecture
from nimbus.primitives import OperatingSystem
from nimbus.primitives import architecture_tokens
from nimbus.setup.installer import BIN_DIRNAME
from nimbus.setup.installer import ToolInstaller
from nimbus.setup.releases import ReleaseAsset
from nimbus.setup.releases import find_asset

GERANOS_VERSION: Final[str] = "0.7.5"
# Upstream has used both naming schemes across releases
GERANOS_ASSET_PREFIXES: Final[tuple[str, ...]] = ("geranos-darwin-", "geranos_Darwin_")
ARCHIVE_NAME: Final[str] = "geranos.tar.gz"


class GeranosInstaller(ToolInstaller):
    """Installs the Geranos VM image puller on macOS."""

    tool_name = "geranos"
    version = GERANOS_VERSION
    release_url = f"https://api.github.com/repos/macvmio/geranos/releases/tags/v{GERANOS_VERSION}"
    install_subpath = "geranos"
    supported_os = frozenset({OperatingSystem.MACOS})

    def select_asset(
        self,
        assets: Sequence[ReleaseAsset],
        os: OperatingSystem,
        arch: Architecture,
    ) -> ReleaseAsset:
        tokens = architecture_tokens(arch)
        asset = find_asset(
            assets,
            lambda name: name.startswith(GERANOS_ASSET_PREFIXES) and any(token in name for token in tokens),
        )
        if asset is None:
            raise NoAssetFoundError(self.tool_name, tokens[0])
        return asset

    def materialize(self, connection: MachineConnection, asset: ReleaseAsset, install_path: str) -> None:
        url = asset.browser_download_url
        if not url.endswith(".tar.gz"):
            self.download(connection, url, self.get_target_path(install_path))
            return

        bin_dir = posixpath.join(install_path, BIN_DIRNAME)
        archive_path = posixpath.join(bin_dir, ARCHIVE_NAME)
        try:
            self.download(connection, url, archive_path)
            self.extract_tarball(connection, archive_path, bin_dir, members=("geranos",))
        finally:
            self.remove_path(connection, archive_path)
