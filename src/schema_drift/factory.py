"""Snapshot source factory.

A source identifier names either:
1. A snapshot file (ends in ``.json`` or contains a path separator)
2. A profile from drift.toml, introspected live
"""

import logging
import os
from pathlib import Path
from urllib.parse import quote

from schema_drift.config.loader import load_drift_config
from schema_drift.config.models import DatabaseProfile, DriftConfig
from schema_drift.errors import ExtractionError, ProfileNotFoundError
from schema_drift.schema.introspector import SchemaIntrospector
from schema_drift.schema.models import SchemaSnapshot
from schema_drift.schema.snapshot import load_snapshot

_logger = logging.getLogger(__name__)


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Args:
        profile: Database profile from config

    Returns:
        Connection URL with password substituted
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


def is_snapshot_path(identifier: str) -> bool:
    """True when *identifier* names a snapshot file rather than a profile."""
    return identifier.endswith(".json") or os.sep in identifier or "/" in identifier


def get_profile(name: str, config: DriftConfig) -> DatabaseProfile:
    """Look up a profile by name.

    Raises:
        ProfileNotFoundError: If the profile is not configured
    """
    if name not in config.profiles:
        available = ", ".join(config.profiles.keys()) or "(none)"
        raise ProfileNotFoundError(
            f"Profile '{name}' not found in drift.toml. Available: {available}"
        )
    return config.profiles[name]


async def extract_profile(
    name: str,
    config: DriftConfig,
    logger: logging.Logger | None = None,
) -> SchemaSnapshot:
    """Introspect the live database behind profile *name*.

    Raises:
        ProfileNotFoundError: If the profile is not configured
        ExtractionError: If the database cannot be reached or queried
    """
    log = logger or _logger
    profile = get_profile(name, config)
    url = resolve_url(profile)

    log.info("Extracting schema from profile '%s'", name)
    try:
        async with SchemaIntrospector(url) as introspector:
            snapshot = await introspector.introspect(name, profile.schema_name)
    except ExtractionError:
        raise
    except Exception as e:
        raise ExtractionError(f"Failed to extract schema from profile '{name}': {e}") from e

    log.info("Extracted %d tables from profile '%s'", len(snapshot.tables), name)
    return snapshot


async def load_source(
    identifier: str,
    config: DriftConfig | None = None,
    config_path: Path | None = None,
    logger: logging.Logger | None = None,
) -> SchemaSnapshot:
    """Load a snapshot from a file or a live profile.

    Args:
        identifier: Snapshot file path or drift.toml profile name
        config: Preloaded config (loaded from *config_path* when None and
            a profile is needed)
        config_path: Path to drift.toml
        logger: Logger for progress messages (default: module logger)

    Returns:
        Immutable ``SchemaSnapshot``

    Raises:
        ExtractionError: If the source cannot be loaded, including a missing
            or invalid config when a profile is named
        ComparisonError: If a snapshot file is structurally malformed

    Example:
        >>> snapshot = await load_source("schema-exports/schema_dev.json")
        >>> snapshot = await load_source("production")
    """
    log = logger or _logger

    if is_snapshot_path(identifier):
        log.info("Loading snapshot file %s", identifier)
        return load_snapshot(identifier)

    if config is None:
        try:
            config = load_drift_config(config_path)
        except (FileNotFoundError, ValueError) as e:
            raise ExtractionError(str(e)) from e

    return await extract_profile(identifier, config, logger=log)
