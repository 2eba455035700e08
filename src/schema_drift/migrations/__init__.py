"""Migration generation: operations, type mapping, renderers, and writer.

Usage:
    from schema_drift.migrations import MigrationGenerator, get_renderer

    generator = MigrationGenerator("migrations", renderer=get_renderer("sequelize"))
    result = generator.generate(differences)
"""

from schema_drift.migrations.generator import GenerationResult, MigrationGenerator
from schema_drift.migrations.identifiers import is_safe_identifier, validate_identifier
from schema_drift.migrations.operations import (
    AddColumn,
    AddIndex,
    ColumnSpec,
    ColumnType,
    CreateTable,
    DefaultValue,
    DropColumn,
    DropTable,
    ForeignReference,
    MigrationArtifact,
    MigrationFile,
    Operation,
    RemoveIndex,
)
from schema_drift.migrations.renderer import (
    JsonRenderer,
    MigrationRenderer,
    SequelizeRenderer,
    get_renderer,
)
from schema_drift.migrations.type_mapping import map_column_type, translate_default

__all__ = [
    "MigrationGenerator",
    "GenerationResult",
    "MigrationArtifact",
    "MigrationFile",
    "Operation",
    "CreateTable",
    "DropTable",
    "AddColumn",
    "DropColumn",
    "AddIndex",
    "RemoveIndex",
    "ColumnSpec",
    "ColumnType",
    "DefaultValue",
    "ForeignReference",
    "MigrationRenderer",
    "JsonRenderer",
    "SequelizeRenderer",
    "get_renderer",
    "map_column_type",
    "translate_default",
    "validate_identifier",
    "is_safe_identifier",
]
