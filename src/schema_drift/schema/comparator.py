"""Schema comparison using keyed set operations.

Compares a source snapshot against a target snapshot, entity kind by entity
kind.  Pure logic -- no I/O, no database connections, no logging.

Usage:
    from schema_drift.schema.comparator import compare
    from schema_drift.schema.snapshot import load_snapshot

    source = load_snapshot("schema-dev.json")
    target = load_snapshot("schema-prod.json")

    differences = compare(source, target)
    for table in differences.tables.missing_in_target:
        print(f"Missing in target: {table.name}")
"""

import re
from collections.abc import Callable, Iterable
from typing import TypeVar

from schema_drift.schema.models import (
    ColumnSchema,
    Compatibility,
    ConstraintSchema,
    DifferenceSet,
    EntityDiff,
    FieldDiff,
    IndexSchema,
    KindDiff,
    Risk,
    SchemaSnapshot,
    SequenceSchema,
    TableSchema,
)


# ============================================================================
# Type compatibility
# ============================================================================

# source type -> target types it can be widened to without data loss
WIDENINGS: dict[str, frozenset[str]] = {
    "integer": frozenset({"bigint", "numeric", "real", "double precision"}),
    "bigint": frozenset({"numeric", "real", "double precision"}),
    "smallint": frozenset({"integer", "bigint", "numeric", "real", "double precision"}),
    "numeric": frozenset({"real", "double precision"}),
    "real": frozenset({"double precision"}),
    "character varying": frozenset({"text"}),
    "character": frozenset({"character varying", "text"}),
}

_TYPE_ALIASES = {
    "double": "double precision",
    "float8": "double precision",
    "float4": "real",
    "decimal": "numeric",
    "int": "integer",
    "int4": "integer",
    "int8": "bigint",
    "int2": "smallint",
    "varchar": "character varying",
    "char": "character",
}

_FLOATING_TYPES = frozenset({"real", "double precision"})

_PARAMETERIZED = re.compile(r"^(?P<base>[a-z][a-z ]*?)\s*\((?P<params>[\d\s,]+)\)$")


def _split_type(type_name: str) -> tuple[str, tuple[int, ...]]:
    """Split ``numeric(12,2)`` into ``("numeric", (12, 2))``."""
    normalized = " ".join(type_name.strip().lower().split())
    match = _PARAMETERIZED.match(normalized)
    if match is None:
        return _TYPE_ALIASES.get(normalized, normalized), ()
    base = _TYPE_ALIASES.get(match.group("base"), match.group("base"))
    params = tuple(int(p) for p in match.group("params").split(",") if p.strip())
    return base, params


def compatibility(source_type: str, target_type: str) -> Compatibility:
    """Classify a column type change from *source_type* to *target_type*.

    - ``IDENTICAL`` if the types are equal.
    - ``COMPATIBLE`` if *target_type* is a documented widening of
      *source_type*.
    - ``LOSSY`` if *source_type* is a widening of *target_type* (the
      inverse direction of a known widening pair).
    - ``INCOMPATIBLE`` otherwise.

    The relation is not commutative.  Parameterized types compare on their
    base name, with two refinements: the same base with a smaller first
    parameter is ``LOSSY`` (larger or equal is ``COMPATIBLE``), and an
    exact numeric with explicit precision moving to a floating type is
    ``LOSSY``.

    Examples:
        >>> compatibility("integer", "bigint")
        <Compatibility.COMPATIBLE: 'COMPATIBLE'>
        >>> compatibility("bigint", "integer")
        <Compatibility.LOSSY: 'LOSSY'>
        >>> compatibility("numeric(12,2)", "real")
        <Compatibility.LOSSY: 'LOSSY'>
    """
    if source_type == target_type:
        return Compatibility.IDENTICAL

    source_base, source_params = _split_type(source_type)
    target_base, target_params = _split_type(target_type)

    if source_base == target_base:
        if source_params == target_params:
            return Compatibility.IDENTICAL
        if not target_params:
            return Compatibility.COMPATIBLE
        if not source_params or target_params[0] < source_params[0]:
            return Compatibility.LOSSY
        return Compatibility.COMPATIBLE

    if source_base == "numeric" and source_params and target_base in _FLOATING_TYPES:
        return Compatibility.LOSSY

    if target_base in WIDENINGS.get(source_base, frozenset()):
        return Compatibility.COMPATIBLE

    if source_base in WIDENINGS.get(target_base, frozenset()):
        return Compatibility.LOSSY

    return Compatibility.INCOMPATIBLE


def _effective_type(column: ColumnSchema) -> str:
    """Column type including numeric precision when the snapshot stores it apart."""
    base, params = _split_type(column.data_type)
    if base == "numeric" and not params and column.numeric_precision is not None:
        if column.numeric_scale is not None:
            return f"numeric({column.numeric_precision},{column.numeric_scale})"
        return f"numeric({column.numeric_precision})"
    return column.data_type


# ============================================================================
# Per-kind field comparators
# ============================================================================


def compare_tables(source: TableSchema, target: TableSchema) -> list[FieldDiff]:
    """Table-level properties only; columns, indexes and constraints are separate kinds."""
    diffs: list[FieldDiff] = []
    if source.comment != target.comment:
        diffs.append(
            FieldDiff(
                type="comment_change",
                source_value=source.comment,
                target_value=target.comment,
            )
        )
    return diffs


def compare_columns(source: ColumnSchema, target: ColumnSchema) -> list[FieldDiff]:
    """Compare two definitions of the same column.

    Risk rules:
    - ``nullable_change``: HIGH when the target tightens a nullable source
      column to NOT NULL, LOW otherwise.
    - ``primary_key_change``: always CRITICAL.
    - ``foreign_key_change``: always HIGH.
    - ``default_change``: informational, no risk.
    """
    diffs: list[FieldDiff] = []

    if _split_type(source.data_type) != _split_type(target.data_type):
        diffs.append(
            FieldDiff(
                type="data_type_change",
                source_value=source.data_type,
                target_value=target.data_type,
                compatibility=compatibility(_effective_type(source), _effective_type(target)),
            )
        )

    if source.is_nullable != target.is_nullable:
        tightened = source.is_nullable == "YES" and target.is_nullable == "NO"
        diffs.append(
            FieldDiff(
                type="nullable_change",
                source_value=source.is_nullable,
                target_value=target.is_nullable,
                risk=Risk.HIGH if tightened else Risk.LOW,
            )
        )

    if source.default_expr != target.default_expr:
        diffs.append(
            FieldDiff(
                type="default_change",
                source_value=source.default_expr,
                target_value=target.default_expr,
            )
        )

    if source.is_primary_key != target.is_primary_key:
        diffs.append(
            FieldDiff(
                type="primary_key_change",
                source_value=source.is_primary_key,
                target_value=target.is_primary_key,
                risk=Risk.CRITICAL,
            )
        )

    if source.is_foreign_key != target.is_foreign_key:
        diffs.append(
            FieldDiff(
                type="foreign_key_change",
                source_value=source.is_foreign_key,
                target_value=target.is_foreign_key,
                risk=Risk.HIGH,
            )
        )

    return diffs


def compare_indexes(source: IndexSchema, target: IndexSchema) -> list[FieldDiff]:
    """Ordered column list and uniqueness."""
    diffs: list[FieldDiff] = []

    if list(source.columns) != list(target.columns):
        diffs.append(
            FieldDiff(
                type="columns_change",
                source_value=list(source.columns),
                target_value=list(target.columns),
            )
        )

    if source.is_unique != target.is_unique:
        diffs.append(
            FieldDiff(
                type="uniqueness_change",
                source_value=source.is_unique,
                target_value=target.is_unique,
                risk=Risk.HIGH,
            )
        )

    return diffs


def _presence_only(source: object, target: object) -> list[FieldDiff]:
    # constraints and sequences are compared on presence/absence only
    return []


# ============================================================================
# Keyed set comparison
# ============================================================================

EntityT = TypeVar("EntityT", TableSchema, ColumnSchema, IndexSchema, ConstraintSchema, SequenceSchema)


def _index_by_identity(entities: Iterable[EntityT]) -> dict[tuple[str, ...], EntityT]:
    """Key entities by identity; the first occurrence of a duplicate key wins."""
    keyed: dict[tuple[str, ...], EntityT] = {}
    for entity in entities:
        keyed.setdefault(entity.identity, entity)
    return keyed


def _compare_kind(
    model: type[EntityT],
    source_entities: Iterable[EntityT],
    target_entities: Iterable[EntityT],
    field_comparator: Callable[[EntityT, EntityT], list[FieldDiff]],
) -> KindDiff[EntityT]:
    source_keyed = _index_by_identity(source_entities)
    target_keyed = _index_by_identity(target_entities)

    missing_in_target = [e for key, e in source_keyed.items() if key not in target_keyed]
    missing_in_source = [e for key, e in target_keyed.items() if key not in source_keyed]

    modified: list[EntityDiff] = []
    for key, source_entity in source_keyed.items():
        target_entity = target_keyed.get(key)
        if target_entity is None:
            continue
        field_diffs = field_comparator(source_entity, target_entity)
        if field_diffs:
            modified.append(EntityDiff(identity=key, field_diffs=field_diffs))

    return KindDiff[model](
        missing_in_target=missing_in_target,
        missing_in_source=missing_in_source,
        modified=modified,
    )


def _columns(snapshot: SchemaSnapshot) -> list[ColumnSchema]:
    return [column for table in snapshot.tables.values() for column in table.columns]


def _indexes(snapshot: SchemaSnapshot) -> list[IndexSchema]:
    return [index for table in snapshot.tables.values() for index in table.indexes]


def _constraints(snapshot: SchemaSnapshot) -> list[ConstraintSchema]:
    return [c for table in snapshot.tables.values() for c in table.constraints]


def compare(source: SchemaSnapshot, target: SchemaSnapshot) -> DifferenceSet:
    """Compare *source* against *target* and return every structural difference.

    For each entity kind (tables, columns, indexes, constraints, sequences):

    - ``missing_in_target``: identities in *source* but not in *target*
    - ``missing_in_source``: identities in *target* but not in *source*
    - ``modified``: identities in both whose field-level comparison is
      non-empty

    Columns, indexes and constraints of a missing table are reported as
    missing too, since their identities are absent from the other side.

    Pure, deterministic, and total for well-formed snapshots.

    Args:
        source: Snapshot the target should converge toward.
        target: Snapshot being checked for drift.

    Returns:
        ``DifferenceSet`` with one ``KindDiff`` per entity kind.

    Examples:
        >>> snap = SchemaSnapshot(tables={})
        >>> compare(snap, snap).is_empty
        True
    """
    return DifferenceSet(
        tables=_compare_kind(
            TableSchema, source.tables.values(), target.tables.values(), compare_tables
        ),
        columns=_compare_kind(
            ColumnSchema, _columns(source), _columns(target), compare_columns
        ),
        indexes=_compare_kind(
            IndexSchema, _indexes(source), _indexes(target), compare_indexes
        ),
        constraints=_compare_kind(
            ConstraintSchema, _constraints(source), _constraints(target), _presence_only
        ),
        sequences=_compare_kind(
            SequenceSchema, source.sequences, target.sequences, _presence_only
        ),
    )
