import posixpath
from collections.abc import Sequence
from typing import Final

from nimbus.errors import NoAssetFoundError
from nimbus.errors import VerificationFailedError
from nimbus.machine.connection import MachineConnection
from nimbus.machine.connection import shell_quote
from nimbus.primitives import Architecture
from nimbus.primitives import OperatingSystem
from nimbus.primitives import architecture_tokens
from nimbus.setup.installer import ToolInstaller
from nimbus.setup.releases import ReleaseAsset
from nimbus.setup.releases import find_asset

# Curie tags its releases without a "v" prefix
CURIE_VERSION: Final[str] = "0.4.0"
CURIE_BINARY_PREFIX: Final[str] = "curie-darwin-"
PKG_SCRATCH_DIRNAME: Final[str] = "tmp_extract"


class CurieInstaller(ToolInstaller):
    """Installs the Curie macOS VM manager.

    Releases ship either a per-architecture binary or a macOS installer
    package. Binaries are preferred; a .pkg is unpacked with xar/cpio and the
    curie binary is copied out of its payload.
    """

    tool_name = "curie"
    version = CURIE_VERSION
    release_url = f"https://api.github.com/repos/macvmio/curie/releases/tags/{CURIE_VERSION}"
    install_subpath = "curie"
    supported_os = frozenset({OperatingSystem.MACOS})

    def select_asset(
        self,
        assets: Sequence[ReleaseAsset],
        os: OperatingSystem,
        arch: Architecture,
    ) -> ReleaseAsset:
        tokens = architecture_tokens(arch)
        binary_asset = find_asset(
            assets,
            lambda name: name.startswith(CURIE_BINARY_PREFIX) and any(token in name for token in tokens),
        )
        if binary_asset is not None:
            return binary_asset
        pkg_asset = find_asset(assets, lambda name: name.endswith(".pkg"))
        if pkg_asset is not None:
            return pkg_asset
        raise NoAssetFoundError(self.tool_name, tokens[0])

    def materialize(self, connection: MachineConnection, asset: ReleaseAsset, install_path: str) -> None:
        binary_path = self.get_target_path(install_path)
        if asset.name.endswith(".pkg"):
            self._install_from_pkg(connection, asset, install_path, binary_path)
        else:
            self.download(connection, asset.browser_download_url, binary_path)

    def _install_from_pkg(
        self,
        connection: MachineConnection,
        asset: ReleaseAsset,
        install_path: str,
        binary_path: str,
    ) -> None:
        pkg_path = self.download_to_cache(connection, asset.browser_download_url)
        scratch_dir = posixpath.join(install_path, PKG_SCRATCH_DIRNAME)
        try:
            connection.mkdir_p(scratch_dir)
            connection.exec(
                f"cd {shell_quote(scratch_dir)}"
                f" && xar -xf {shell_quote(pkg_path)}"
                " && find . -name Payload -type f -exec sh -c 'gunzip -dc \"$1\" | cpio -i --quiet' _ {} \\;"
                f" && find . -name curie -type f -exec cp {{}} {shell_quote(binary_path)} \\;",
                timeout_seconds=connection.nimbus_ctx.config.extract_timeout_seconds,
            )
            # find exits 0 even when the payload has no curie binary
            if not connection.file_exists(binary_path):
                raise VerificationFailedError(self.tool_name, binary_path)
        finally:
            self.remove_path(connection, scratch_dir)
            self.remove_path(connection, pkg_path)
