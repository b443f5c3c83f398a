import os
import subprocess
from collections.abc import Mapping

from loguru import logger

from nimbus.common.logging import truncate_for_log
from nimbus.errors import CommandExecutionError
from nimbus.errors import CommandFailedError
from nimbus.errors import CommandTimeoutError


def run_local_shell_command(
    command: str,
    timeout_seconds: float,
    env: Mapping[str, str] | None = None,
) -> str:
    """Run a command with `sh -c` on this host and return its merged stdout/stderr.

    env entries are overlaid on the current process environment. A non-zero
    exit raises CommandFailedError carrying the exit code and output.
    """
    process_env = {**os.environ, **env} if env else None
    logger.trace("Running local command: {}", truncate_for_log(command))
    try:
        result = subprocess.run(
            ["sh", "-c", command],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            encoding="utf-8",
            errors="replace",
            timeout=timeout_seconds,
            env=process_env,
        )
    except subprocess.TimeoutExpired as e:
        raise CommandTimeoutError(command, timeout_seconds) from e
    except OSError as e:
        raise CommandExecutionError(command, str(e)) from e

    if result.returncode != 0:
        logger.debug(
            "Local command exited with status {}: {} -> {}",
            result.returncode,
            truncate_for_log(command),
            truncate_for_log(result.stdout),
        )
        raise CommandFailedError(command, result.returncode, result.stdout)
    return result.stdout
