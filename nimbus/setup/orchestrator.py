from collections.abc import Sequence

from loguru import logger
from pydantic import Field

from nimbus.common.frozen_model import FrozenModel
from nimbus.config.data_types import NimbusContext
from nimbus.machine.connection import MachineConnection
from nimbus.machine.connection import connect
from nimbus.machine.data_types import Machine
from nimbus.primitives import MachineState
from nimbus.primitives import TelemetryCategory
from nimbus.setup.curie import CurieInstaller
from nimbus.setup.geranos import GeranosInstaller
from nimbus.setup.github_runner import GitHubRunnerInstaller
from nimbus.setup.installer import ToolInfo
from nimbus.setup.installer import ToolInstaller
from nimbus.setup.releases import GitHubReleaseClient
from nimbus.telemetry import emit_machine_ready
from nimbus.telemetry import telemetry_span


class SetupInfo(FrozenModel):
    """Install status of every managed tool on a machine."""

    github_runner: ToolInfo = Field(description="GitHub Actions runner")
    curie: ToolInfo = Field(description="Curie VM manager")
    geranos: ToolInfo = Field(description="Geranos image puller")


def build_default_installers(release_client: GitHubReleaseClient) -> tuple[ToolInstaller, ...]:
    """Installers in the order setup runs them: runner, then VM manager, then image puller."""
    return (
        GitHubRunnerInstaller(release_client=release_client),
        CurieInstaller(release_client=release_client),
        GeranosInstaller(release_client=release_client),
    )


def ensure_directories(connection: MachineConnection) -> None:
    """Create the machine's nimbus data, cache and state homes, in that order."""
    data_home = connection.xdg_data_home()
    cache_home = connection.xdg_cache_home()
    state_home = connection.xdg_state_home()
    for path in (data_home, cache_home, state_home):
        connection.mkdir_p(path)


def setup_machine(
    machine: Machine,
    nimbus_ctx: NimbusContext,
    installers: Sequence[ToolInstaller] | None = None,
    connection: MachineConnection | None = None,
) -> Machine:
    """Prepare a machine to take CI jobs and return a copy of it in the ready state.

    Runs directory preparation and then each installer that applies to the
    machine's OS, strictly in order, stopping at the first error. Errors
    propagate unchanged so callers can match on their type.

    Setup assumes it is the only writer to the machine's nimbus directories;
    running it concurrently against one machine is not supported.
    """
    if installers is None:
        release_client = GitHubReleaseClient(timeout_seconds=nimbus_ctx.config.release_fetch_timeout_seconds)
        installers = build_default_installers(release_client)
    if connection is None:
        connection = connect(machine, nimbus_ctx)

    with telemetry_span(
        nimbus_ctx,
        TelemetryCategory.MACHINE,
        "setup",
        tenant_id=machine.tenant_id,
        machine_id=machine.id,
        os=machine.os,
    ):
        ensure_directories(connection)
        for installer in installers:
            if not installer.is_applicable(machine.os):
                logger.debug("Skipping {} on {} machine {}", installer.tool_name, machine.os, machine.id)
                continue
            installer.install(connection)

    ready_machine = machine.with_updates(state=MachineState.READY)
    emit_machine_ready(nimbus_ctx, tenant_id=machine.tenant_id, machine_id=machine.id, os=machine.os)
    logger.info("Machine {} is ready", machine.id)
    return ready_machine


def get_setup_info(
    machine: Machine,
    nimbus_ctx: NimbusContext,
    connection: MachineConnection | None = None,
) -> SetupInfo:
    """Report which tools are installed on a machine, without changing anything."""
    if connection is None:
        connection = connect(machine, nimbus_ctx)
    runner, curie, geranos = build_default_installers(GitHubReleaseClient())
    return SetupInfo(
        github_runner=runner.get_info(connection),
        curie=curie.get_info(connection),
        geranos=geranos.get_info(connection),
    )
