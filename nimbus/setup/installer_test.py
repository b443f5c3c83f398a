import pytest

from nimbus.config.data_types import NimbusContext
from nimbus.errors import CommandFailedError
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ToolStatus
from nimbus.setup.curie import CurieInstaller
from nimbus.setup.github_runner import GitHubRunnerInstaller
from nimbus.setup.installer import ToolInstaller
from nimbus.utils.testing import FAKE_CACHE_HOME
from nimbus.utils.testing import FAKE_DATA_HOME
from nimbus.utils.testing import FakeConnection
from nimbus.utils.testing import make_machine

CURIE_BINARY = f"{FAKE_DATA_HOME}/curie/bin/curie"


class _VersionedConnection(FakeConnection):
    """Answers `--version` probes with a fixed banner."""

    def exec(self, command: str, timeout_seconds: float | None = None) -> str:
        output = super().exec(command, timeout_seconds)
        if command.endswith("--version"):
            return "curie 0.4.0\nbuild abc123\n"
        return output


def test_get_info_reports_not_applicable_without_io(nimbus_ctx: NimbusContext) -> None:
    connection = FakeConnection(machine=make_machine(os=OperatingSystem.LINUX), nimbus_ctx=nimbus_ctx)

    info = CurieInstaller().get_info(connection)

    assert info.status == ToolStatus.NOT_APPLICABLE
    assert connection.commands == []


def test_get_info_reports_missing_tool(nimbus_ctx: NimbusContext) -> None:
    connection = FakeConnection(machine=make_machine(os=OperatingSystem.MACOS), nimbus_ctx=nimbus_ctx)

    info = CurieInstaller().get_info(connection)

    assert info.status == ToolStatus.NOT_INSTALLED
    assert info.path is None


def test_get_info_reads_first_version_line(nimbus_ctx: NimbusContext) -> None:
    connection = _VersionedConnection(
        machine=make_machine(os=OperatingSystem.MACOS),
        nimbus_ctx=nimbus_ctx,
        existing_files={CURIE_BINARY},
    )

    info = CurieInstaller().get_info(connection)

    assert info.status == ToolStatus.INSTALLED
    assert info.version == "curie 0.4.0"
    assert info.path == f"{FAKE_DATA_HOME}/curie"


def test_get_info_tolerates_tool_without_version_flag(nimbus_ctx: NimbusContext) -> None:
    run_script = f"{FAKE_DATA_HOME}/github-runner/run.sh"
    connection = FakeConnection(
        machine=make_machine(os=OperatingSystem.LINUX),
        nimbus_ctx=nimbus_ctx,
        existing_files={run_script},
        failing_command_prefixes=(f"'{run_script}' --version",),
    )

    info = GitHubRunnerInstaller().get_info(connection)

    assert info.status == ToolStatus.INSTALLED
    assert info.version is None


def test_download_to_cache_uses_url_basename(nimbus_ctx: NimbusContext) -> None:
    connection = FakeConnection(machine=make_machine(), nimbus_ctx=nimbus_ctx)
    installer: ToolInstaller = GitHubRunnerInstaller()

    path = installer.download_to_cache(connection, "https://example.com/files/tool.tar.gz?sig=1")

    assert path == f"{FAKE_CACHE_HOME}/downloads/tool.tar.gz"
    assert f"mkdir -p '{FAKE_CACHE_HOME}/downloads'" in connection.commands


def test_remove_path_failure_is_not_raised(nimbus_ctx: NimbusContext) -> None:
    connection = FakeConnection(machine=make_machine(), nimbus_ctx=nimbus_ctx, failing_command_prefixes=("rm",))

    GitHubRunnerInstaller().remove_path(connection, "/tmp/leftover")

    assert connection.commands == ["rm -rf '/tmp/leftover'"]


def test_failed_download_removes_partial_destination(nimbus_ctx: NimbusContext) -> None:
    connection = FakeConnection(
        machine=make_machine(),
        nimbus_ctx=nimbus_ctx,
        failing_command_prefixes=("curl",),
        leave_partial_downloads=True,
    )

    with pytest.raises(CommandFailedError):
        GitHubRunnerInstaller().download(connection, "https://example.com/tool", "/opt/tool/bin/tool")

    assert connection.commands[-1] == "rm -rf '/opt/tool/bin/tool'"
    assert "/opt/tool/bin/tool" not in connection.existing_files
