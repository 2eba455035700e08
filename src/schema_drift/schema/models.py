"""Pydantic models for schema snapshots and schema differences.

This module contains schema-domain models:
- Snapshot models: ColumnSchema, IndexSchema, ConstraintSchema,
  SequenceSchema, TableSchema, SchemaSnapshot
- Difference models: FieldDiff, EntityDiff, KindDiff, DifferenceSet
- Risk models: Summary, Recommendation

Snapshot models are frozen -- a snapshot is immutable once extracted.
Difference, summary, and recommendation models are derived on every run.
"""

from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Enumerations
# ============================================================================


class Risk(str, Enum):
    """Risk attached to a single field-level difference."""

    LOW = "LOW"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"


class Compatibility(str, Enum):
    """Whether changing a column type from source to target can lose data."""

    IDENTICAL = "IDENTICAL"
    COMPATIBLE = "COMPATIBLE"
    LOSSY = "LOSSY"
    INCOMPATIBLE = "INCOMPATIBLE"


class Priority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class Safety(str, Enum):
    """SAFE: no data-loss risk.  REQUIRES_REVIEW: may fail on existing rows."""

    SAFE = "SAFE"
    REQUIRES_REVIEW = "REQUIRES_REVIEW"


class ConstraintType(str, Enum):
    PK = "PK"
    FK = "FK"
    CHECK = "CHECK"
    UNIQUE = "UNIQUE"


# information_schema spells constraint types out in full
_CONSTRAINT_TYPE_NAMES = {
    "PRIMARY KEY": "PK",
    "FOREIGN KEY": "FK",
}


# ============================================================================
# Snapshot Models
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a database column.

    Identity key is ``(table_name, column_name)``.  The extractor's native
    field names (``column_default``, ``character_maximum_length``) are
    accepted on input.

    Example:
        >>> col = ColumnSchema(table_name="users", column_name="id", data_type="uuid")
        >>> col.is_nullable
        'YES'
        >>> col.identity
        ('users', 'id')
    """

    model_config = ConfigDict(frozen=True)

    table_name: str
    column_name: str
    data_type: str
    char_max_length: int | None = Field(
        default=None,
        validation_alias=AliasChoices("char_max_length", "character_maximum_length"),
    )
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    is_nullable: Literal["YES", "NO"] = "YES"
    default_expr: str | None = Field(
        default=None,
        validation_alias=AliasChoices("default_expr", "column_default"),
    )
    is_primary_key: bool = False
    is_foreign_key: bool = False

    @field_validator("is_nullable", mode="before")
    @classmethod
    def _coerce_nullable(cls, value: Any) -> Any:
        if isinstance(value, bool):
            return "YES" if value else "NO"
        if isinstance(value, str):
            return value.upper()
        return value

    @property
    def identity(self) -> tuple[str, str]:
        return (self.table_name, self.column_name)

    @property
    def nullable(self) -> bool:
        return self.is_nullable == "YES"


class IndexSchema(BaseModel):
    """Schema for a database index.  Identity key is ``(table_name, index_name)``."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    index_name: str
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False

    @property
    def identity(self) -> tuple[str, str]:
        return (self.table_name, self.index_name)


class ConstraintSchema(BaseModel):
    """Schema for a database constraint.  Identity key is ``(table_name, constraint_name)``."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    constraint_name: str
    constraint_type: ConstraintType
    column_name: str | None = None
    foreign_table_name: str | None = None
    foreign_column_name: str | None = None

    @field_validator("constraint_type", mode="before")
    @classmethod
    def _short_constraint_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            upper = value.strip().upper()
            return _CONSTRAINT_TYPE_NAMES.get(upper, upper)
        return value

    @property
    def identity(self) -> tuple[str, str]:
        return (self.table_name, self.constraint_name)


class SequenceSchema(BaseModel):
    """Schema for a database sequence.  Identity key is ``sequence_name``."""

    model_config = ConfigDict(frozen=True)

    sequence_name: str
    start_value: int | None = None
    increment: int | None = None
    current_value: int | None = None

    @property
    def identity(self) -> tuple[str]:
        return (self.sequence_name,)


class TableSchema(BaseModel):
    """Schema for a database table.  ``columns`` keeps ordinal order."""

    model_config = ConfigDict(frozen=True)

    name: str
    comment: str | None = None
    columns: list[ColumnSchema]
    indexes: list[IndexSchema] = Field(default_factory=list)
    constraints: list[ConstraintSchema] = Field(default_factory=list)
    size_estimate: int | str | None = Field(
        default=None,
        validation_alias=AliasChoices("size_estimate", "size"),
    )

    @property
    def identity(self) -> tuple[str]:
        return (self.name,)

    def foreign_tables(self) -> set[str]:
        """Tables this table references through FK constraints (self excluded)."""
        return {
            c.foreign_table_name
            for c in self.constraints
            if c.constraint_type is ConstraintType.FK
            and c.foreign_table_name
            and c.foreign_table_name != self.name
        }


class SchemaSnapshot(BaseModel):
    """Complete structure of one database at a point in time.

    Table names are unique: ``tables`` is keyed by table name.
    """

    model_config = ConfigDict(frozen=True)

    database: str = ""
    environment: str = ""
    extracted_at: str | None = None
    tables: dict[str, TableSchema] = Field(default_factory=dict)
    sequences: list[SequenceSchema] = Field(default_factory=list)


# ============================================================================
# Difference Models
# ============================================================================


class FieldDiff(BaseModel):
    """A single field that differs between source and target."""

    type: str
    source_value: Any = None
    target_value: Any = None
    risk: Risk | None = None
    compatibility: Compatibility | None = None


class EntityDiff(BaseModel):
    """An entity present in both snapshots whose fields differ."""

    identity: tuple[str, ...]
    field_diffs: list[FieldDiff] = Field(default_factory=list)

    @property
    def label(self) -> str:
        """Dotted identity, e.g. ``users.email``."""
        return ".".join(self.identity)


EntityT = TypeVar("EntityT")


class KindDiff(BaseModel, Generic[EntityT]):
    """Differences for one entity kind."""

    missing_in_target: list[EntityT] = Field(default_factory=list)
    missing_in_source: list[EntityT] = Field(default_factory=list)
    modified: list[EntityDiff] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.missing_in_target) + len(self.missing_in_source) + len(self.modified)


class DifferenceSet(BaseModel):
    """Structured result of comparing two snapshots, grouped by entity kind."""

    tables: KindDiff[TableSchema] = Field(default_factory=KindDiff[TableSchema])
    columns: KindDiff[ColumnSchema] = Field(default_factory=KindDiff[ColumnSchema])
    indexes: KindDiff[IndexSchema] = Field(default_factory=KindDiff[IndexSchema])
    constraints: KindDiff[ConstraintSchema] = Field(
        default_factory=KindDiff[ConstraintSchema]
    )
    sequences: KindDiff[SequenceSchema] = Field(default_factory=KindDiff[SequenceSchema])

    def kinds(self) -> dict[str, KindDiff]:
        """Kind name to its ``KindDiff``, in report order."""
        return {
            "tables": self.tables,
            "columns": self.columns,
            "indexes": self.indexes,
            "constraints": self.constraints,
            "sequences": self.sequences,
        }

    @property
    def is_empty(self) -> bool:
        return all(kind.count == 0 for kind in self.kinds().values())


# ============================================================================
# Risk Models
# ============================================================================


class Summary(BaseModel):
    """Counts and safety verdict for a difference set.

    Example:
        >>> Summary().safe_to_sync
        True
    """

    total_differences: int = 0
    critical_differences: int = 0
    safe_to_sync: bool = True
    requires_manual_review: list[str] = Field(default_factory=list)


class Recommendation(BaseModel):
    """A prioritized action that moves the target toward the source."""

    priority: Priority
    category: str
    action: str
    affected: list[str] = Field(default_factory=list)
    safety: Safety
    description: str = ""
