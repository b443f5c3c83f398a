import os
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any
from typing import Final

import pluggy
from loguru import logger
from pydantic import ValidationError

from nimbus.config.data_types import NimbusConfig
from nimbus.config.data_types import NimbusContext
from nimbus.errors import ConfigNotFoundError
from nimbus.errors import ConfigParseError

CONFIG_PATH_ENV_VAR: Final[str] = "NIMBUS_CONFIG_PATH"

# Maps NIMBUS_* environment variables to the NimbusConfig field they override
_ENV_OVERRIDES: Final[dict[str, str]] = {
    "NIMBUS_COMMAND_TIMEOUT_SECONDS": "command_timeout_seconds",
    "NIMBUS_DOWNLOAD_TIMEOUT_SECONDS": "download_timeout_seconds",
    "NIMBUS_EXTRACT_TIMEOUT_SECONDS": "extract_timeout_seconds",
    "NIMBUS_RELEASE_FETCH_TIMEOUT_SECONDS": "release_fetch_timeout_seconds",
    "NIMBUS_LOG_LEVEL": "log_level",
}


def load_config(
    config_path: Path | None = None,
    environ: Mapping[str, str] | None = None,
) -> NimbusConfig:
    """Load nimbus configuration.

    Precedence (lowest to highest):
    1. Defaults declared on NimbusConfig
    2. The TOML file at config_path, or at $NIMBUS_CONFIG_PATH when no path is given
    3. NIMBUS_* environment variables

    A path passed explicitly (or via NIMBUS_CONFIG_PATH) must exist.
    """
    environ = os.environ if environ is None else environ

    raw: dict[str, Any] = {}
    if config_path is None and environ.get(CONFIG_PATH_ENV_VAR):
        config_path = Path(environ[CONFIG_PATH_ENV_VAR])
    if config_path is not None:
        raw = _load_toml(config_path.expanduser())
        logger.debug("Loaded nimbus config from {}", config_path)

    raw.update(_parse_env_overrides(environ))
    return _parse_config(raw)


def build_context(pm: pluggy.PluginManager, config: NimbusConfig | None = None) -> NimbusContext:
    """Combine a config (loaded from the environment when omitted) with a plugin manager."""
    return NimbusContext(config=config if config is not None else load_config(), pm=pm)


def _load_toml(path: Path) -> dict[str, Any]:
    """Load and parse a TOML file."""
    if not path.exists():
        raise ConfigNotFoundError(f"Config file not found: {path}")

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigParseError(f"Failed to parse {path}: {e}") from e


def _parse_env_overrides(environ: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    for env_key, field_name in _ENV_OVERRIDES.items():
        value = environ.get(env_key)
        if value is None or value == "":
            continue
        overrides[field_name] = value.upper() if field_name == "log_level" else value
    return overrides


def _parse_config(raw: dict[str, Any]) -> NimbusConfig:
    # Nested [nimbus] table is accepted so the settings can live in a shared file
    if "nimbus" in raw and isinstance(raw["nimbus"], dict):
        raw = {**raw["nimbus"], **{k: v for k, v in raw.items() if k != "nimbus"}}
    if isinstance(raw.get("log_level"), str):
        raw["log_level"] = raw["log_level"].upper()
    try:
        return NimbusConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigParseError(f"Invalid nimbus configuration: {e}") from e
