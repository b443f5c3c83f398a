import posixpath
import shlex
from datetime import datetime
from datetime import timezone
from pathlib import Path
from typing import Any

from pydantic import Field

from nimbus import hookimpl
from nimbus.errors import CommandFailedError
from nimbus.errors import ReleaseRequestError
from nimbus.machine.connection import MachineConnection
from nimbus.machine.data_types import Machine
from nimbus.primitives import Architecture
from nimbus.primitives import MachineId
from nimbus.primitives import MachineState
from nimbus.primitives import OperatingSystem
from nimbus.primitives import ProviderId
from nimbus.primitives import TenantId
from nimbus.setup.releases import GitHubReleaseClient
from nimbus.setup.releases import ReleaseAsset
from nimbus.setup.releases import ReleaseInfo
from nimbus.telemetry import TelemetryEvent

FAKE_DATA_HOME = "/home/runner/.local/share/nimbus"
FAKE_CACHE_HOME = "/home/runner/.cache/nimbus"
FAKE_STATE_HOME = "/home/runner/.local/state/nimbus"


def make_machine(
    os: OperatingSystem = OperatingSystem.LINUX,
    arch: Architecture = Architecture.X86_64,
    state: MachineState = MachineState.PROVISIONING,
    tenant_id: str = "tenant-1",
    provider_id: str = "provider-1",
    provider_metadata: dict[str, Any] | None = None,
    created_at: datetime | None = None,
) -> Machine:
    """Build a machine for tests. Defaults to a local linux/x86_64 machine."""
    return Machine(
        id=MachineId.generate("test"),
        tenant_id=TenantId(tenant_id),
        provider_id=ProviderId(provider_id),
        os=os,
        arch=arch,
        state=state,
        created_at=created_at or datetime.now(timezone.utc),
        provider_metadata=provider_metadata if provider_metadata is not None else {"type": "local"},
    )


def make_xdg_env(root: Path) -> dict[str, str]:
    """XDG variables pointing into root, so local commands never touch the real home directory."""
    return {
        "XDG_DATA_HOME": str(root / "data"),
        "XDG_CACHE_HOME": str(root / "cache"),
        "XDG_STATE_HOME": str(root / "state"),
    }


class TelemetryRecorder:
    """Plugin that records every telemetry event it receives."""

    def __init__(self) -> None:
        self.events: list[TelemetryEvent] = []

    @hookimpl
    def on_telemetry_event(self, event: TelemetryEvent) -> None:
        self.events.append(event)

    @property
    def names(self) -> list[str]:
        return [event.name for event in self.events]

    def get(self, name: str) -> TelemetryEvent:
        matching = [event for event in self.events if event.name == name]
        assert len(matching) == 1, f"Expected exactly one {name} event, got {len(matching)}"
        return matching[0]


class FakeReleaseClient(GitHubReleaseClient):
    """Release client that answers from a fixed table instead of the network.

    Unknown URLs fail the way an unreachable API would.
    """

    releases: dict[str, ReleaseInfo] = Field(default_factory=dict)
    requested_urls: list[str] = Field(default_factory=list)

    def fetch_release(self, url: str) -> ReleaseInfo:
        self.requested_urls.append(url)
        if url not in self.releases:
            raise ReleaseRequestError(url, "network unavailable")
        return self.releases[url]


def make_release(*asset_names: str, base_url: str = "https://example.com/download") -> ReleaseInfo:
    return ReleaseInfo(
        assets=tuple(
            ReleaseAsset(name=name, browser_download_url=f"{base_url}/{name}") for name in asset_names
        )
    )


class FakeConnection(MachineConnection):
    """Connection that simulates a target filesystem and records every command.

    Downloads create their destination, extraction creates tarball_contents
    in the destination directory, and rm removes the path. Commands starting
    with any of failing_command_prefixes fail with exit code 1.
    With leave_partial_downloads, a failing curl still leaves its destination
    behind the way an interrupted transfer does. files_created_by_prefix adds
    files for commands the fake does not otherwise understand.
    """

    existing_files: set[str] = Field(default_factory=set)
    failing_command_prefixes: tuple[str, ...] = Field(default=())
    tarball_contents: tuple[str, ...] = Field(default=("run.sh",))
    leave_partial_downloads: bool = Field(default=False)
    files_created_by_prefix: dict[str, tuple[str, ...]] = Field(default_factory=dict)
    commands: list[str] = Field(default_factory=list)

    def exec(self, command: str, timeout_seconds: float | None = None) -> str:
        self.commands.append(command)
        if command.startswith(self.failing_command_prefixes):
            if self.leave_partial_downloads and command.startswith("curl "):
                self.existing_files.add(shlex.split(command)[3])
            raise CommandFailedError(command, 1, "simulated failure")

        if "XDG_DATA_HOME" in command:
            return FAKE_DATA_HOME + "\n"
        if "XDG_CACHE_HOME" in command:
            return FAKE_CACHE_HOME + "\n"
        if "XDG_STATE_HOME" in command:
            return FAKE_STATE_HOME + "\n"

        for prefix, created_files in self.files_created_by_prefix.items():
            if command.startswith(prefix):
                self.existing_files.update(created_files)

        words = shlex.split(command)
        if words[:3] == ["if", "[", "-f"]:
            return "yes\n" if words[3] in self.existing_files else "no\n"
        if words[:3] == ["if", "[", "-d"]:
            return "yes\n" if any(path.startswith(words[3] + "/") for path in self.existing_files) else "no\n"
        if words[0] == "curl":
            self.existing_files.add(words[words.index("-o") + 1])
        elif words[0] == "tar":
            destination = words[words.index("-C") + 1]
            members = words[words.index("-C") + 2 :] or list(self.tarball_contents)
            self.existing_files.update(posixpath.join(destination, member) for member in members)
        elif words[0] == "rm":
            removed = words[-1]
            self.existing_files.difference_update(
                {path for path in self.existing_files if path == removed or path.startswith(removed + "/")}
            )
        return ""

    def commands_starting_with(self, prefix: str) -> list[str]:
        return [command for command in self.commands if command.startswith(prefix)]
