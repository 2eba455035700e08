"""Pydantic models for migration operations and artifacts.

Operations are a tagged union on ``op``:
- CreateTable / DropTable
- AddColumn / DropColumn
- AddIndex / RemoveIndex

Every table, column and index name is checked against the identifier
allow-list when the model is built, so an unsafe name never reaches a
renderer.

Example:
    >>> op = DropTable(table="users")
    >>> op.model_dump()
    {'op': 'drop_table', 'table': 'users'}
"""

import re
from pathlib import Path
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schema_drift.migrations.identifiers import validate_identifier


# ============================================================================
# Column Specification
# ============================================================================


class ColumnType(BaseModel):
    """Abstract column type, e.g. ``STRING`` with ``args=[255]``."""

    model_config = ConfigDict(frozen=True)

    name: str
    args: list[int] = Field(default_factory=list)
    note: str | None = None


class DefaultValue(BaseModel):
    """Portable column default.

    - ``literal``: a plain value (str, int, float, bool)
    - ``sentinel``: ``GENERATE_UUID`` or ``NOW``
    - ``raw``: an untranslated SQL expression that needs review
    """

    model_config = ConfigDict(frozen=True)

    kind: Literal["literal", "sentinel", "raw"]
    value: Any
    note: str | None = None


class ForeignReference(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str
    column: str

    @field_validator("table", "column")
    @classmethod
    def _safe_name(cls, value: str) -> str:
        return validate_identifier(value, "reference")


class ColumnSpec(BaseModel):
    """One column inside a CreateTable or AddColumn operation."""

    model_config = ConfigDict(frozen=True)

    name: str
    type: ColumnType
    allow_null: bool = True
    default: DefaultValue | None = None
    primary_key: bool = False
    auto_increment: bool = False
    references: ForeignReference | None = None

    @field_validator("name")
    @classmethod
    def _safe_name(cls, value: str) -> str:
        return validate_identifier(value, "column")


# ============================================================================
# Operations
# ============================================================================


class _TableOperation(BaseModel):
    model_config = ConfigDict(frozen=True)

    table: str

    @field_validator("table")
    @classmethod
    def _safe_table(cls, value: str) -> str:
        return validate_identifier(value, "table")


class CreateTable(_TableOperation):
    op: Literal["create_table"] = "create_table"
    columns: list[ColumnSpec]


class DropTable(_TableOperation):
    op: Literal["drop_table"] = "drop_table"


class AddColumn(_TableOperation):
    op: Literal["add_column"] = "add_column"
    column: ColumnSpec


class DropColumn(_TableOperation):
    op: Literal["drop_column"] = "drop_column"
    column: str

    @field_validator("column")
    @classmethod
    def _safe_column(cls, value: str) -> str:
        return validate_identifier(value, "column")


class AddIndex(_TableOperation):
    op: Literal["add_index"] = "add_index"
    name: str
    fields: list[str]
    unique: bool = False

    @field_validator("name")
    @classmethod
    def _safe_index(cls, value: str) -> str:
        return validate_identifier(value, "index")

    @field_validator("fields")
    @classmethod
    def _safe_fields(cls, value: list[str]) -> list[str]:
        return [validate_identifier(field, "column") for field in value]


class RemoveIndex(_TableOperation):
    op: Literal["remove_index"] = "remove_index"
    name: str

    @field_validator("name")
    @classmethod
    def _safe_index(cls, value: str) -> str:
        return validate_identifier(value, "index")


Operation = Annotated[
    Union[CreateTable, DropTable, AddColumn, DropColumn, AddIndex, RemoveIndex],
    Field(discriminator="op"),
]


# ============================================================================
# Artifacts
# ============================================================================


class MigrationArtifact(BaseModel):
    """Ordered forward and rollback operations for one migration file.

    ``sequence_number`` is None until the artifact is written.
    """

    sequence_number: int | None = None
    description: str
    forward_ops: list[Operation] = Field(default_factory=list)
    rollback_ops: list[Operation] = Field(default_factory=list)

    @field_validator("description")
    @classmethod
    def _safe_description(cls, value: str) -> str:
        return validate_identifier(value, "migration description")


# NNN_description_YYYYmmddHHMMSS.ext (timestamp optional for hand-written files)
_MIGRATION_FILENAME = re.compile(
    r"^(?P<number>\d{3})_(?P<rest>.+?)\.(?P<extension>[A-Za-z0-9]+)$"
)
_TIMESTAMP_SUFFIX = re.compile(r"^(?P<description>.*?)_?(?P<timestamp>\d{14})$")


class MigrationFile(BaseModel):
    """An existing migration file, described by its name only."""

    model_config = ConfigDict(frozen=True)

    path: Path
    sequence_number: int
    description: str
    timestamp: str | None = None
    extension: str

    @classmethod
    def from_path(cls, path: Path) -> "MigrationFile | None":
        """Parse *path*'s file name; None if it is not a numbered migration.

        Example:
            >>> MigrationFile.from_path(Path("007_add_missing_columns_20240101120000.js")).sequence_number
            7
        """
        match = _MIGRATION_FILENAME.match(path.name)
        if match is None:
            return None

        rest = match.group("rest")
        timestamp = None
        suffix = _TIMESTAMP_SUFFIX.match(rest)
        if suffix is not None:
            rest = suffix.group("description")
            timestamp = suffix.group("timestamp")

        return cls(
            path=path,
            sequence_number=int(match.group("number")),
            description=rest,
            timestamp=timestamp,
            extension=match.group("extension"),
        )
