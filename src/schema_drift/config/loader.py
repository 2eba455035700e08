"""Load drift.toml profiles and output settings."""

import os
import tomllib
from pathlib import Path

from pydantic import ValidationError

from schema_drift.config.models import DatabaseProfile, DriftConfig, OutputSettings

CONFIG_ENV_VAR = "SCHEMA_DRIFT_CONFIG"
DEFAULT_CONFIG_NAME = "drift.toml"


def default_config_path() -> Path:
    """``$SCHEMA_DRIFT_CONFIG`` if set, else ``drift.toml`` in the working directory."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path)
    return Path.cwd() / DEFAULT_CONFIG_NAME


def load_drift_config(config_path: Path | None = None) -> DriftConfig:
    """Load drift configuration from TOML file.

    Args:
        config_path: Path to drift.toml (default: ``default_config_path()``)

    Returns:
        DriftConfig with all profiles and output settings

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config format is invalid
    """
    if config_path is None:
        config_path = default_config_path()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Drift config not found: {config_path}\n"
            f"Create {DEFAULT_CONFIG_NAME} with [profiles.<name>] entries."
        )

    try:
        with open(config_path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ValueError(f"Invalid TOML in {config_path}: {e}") from e

    try:
        profiles = {
            name: DatabaseProfile(**profile_data)
            for name, profile_data in data.get("profiles", {}).items()
        }
        output = OutputSettings(**data.get("output", {}))
    except (TypeError, ValidationError) as e:
        raise ValueError(f"Invalid configuration in {config_path}: {e}") from e

    return DriftConfig(profiles=profiles, output=output)
