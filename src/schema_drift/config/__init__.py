"""Configuration management: profiles, TOML loading, and config models.

Usage:
    >>> from schema_drift.config import load_drift_config, DatabaseProfile, DriftConfig
"""

from schema_drift.config.loader import default_config_path, load_drift_config
from schema_drift.config.models import DatabaseProfile, DriftConfig, OutputSettings

__all__ = [
    "load_drift_config",
    "default_config_path",
    "DriftConfig",
    "DatabaseProfile",
    "OutputSettings",
]
