"""schema-drift: detect schema drift between databases and generate migrations.

Compares two schema snapshots, classifies every difference by risk,
recommends convergence actions, and writes forward/rollback migrations
for what the target is missing.

Usage:
    from schema_drift import compare, load_snapshot, recommend, summarize
    from schema_drift import MigrationGenerator, build_report
"""

__version__ = "0.1.0"

# Errors
from schema_drift.errors import (
    ComparisonError,
    ExtractionError,
    GenerationError,
    ProfileNotFoundError,
    SchemaDriftError,
)

# Config
from schema_drift.config.loader import load_drift_config
from schema_drift.config.models import DatabaseProfile, DriftConfig

# Schema
from schema_drift.schema.comparator import compare, compatibility
from schema_drift.schema.models import DifferenceSet, SchemaSnapshot
from schema_drift.schema.risk import recommend, summarize
from schema_drift.schema.snapshot import dump_snapshot, load_snapshot, parse_snapshot

# Factory
from schema_drift.factory import load_source, resolve_url

# Migrations
from schema_drift.migrations.generator import GenerationResult, MigrationGenerator
from schema_drift.migrations.renderer import get_renderer

# Report
from schema_drift.report.exporter import build_report, export_html, export_json

__all__ = [
    # Errors
    "SchemaDriftError",
    "ExtractionError",
    "ProfileNotFoundError",
    "ComparisonError",
    "GenerationError",
    # Config
    "load_drift_config",
    "DriftConfig",
    "DatabaseProfile",
    # Schema
    "compare",
    "compatibility",
    "summarize",
    "recommend",
    "load_snapshot",
    "parse_snapshot",
    "dump_snapshot",
    "SchemaSnapshot",
    "DifferenceSet",
    # Factory
    "load_source",
    "resolve_url",
    # Migrations
    "MigrationGenerator",
    "GenerationResult",
    "get_renderer",
    # Report
    "build_report",
    "export_json",
    "export_html",
]
