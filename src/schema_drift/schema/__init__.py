"""Schema snapshots, comparison, and risk classification.

Provides snapshot models and loading (``load_snapshot``, ``parse_snapshot``),
live database introspection (``SchemaIntrospector``), structural comparison
(``compare``, ``compatibility``), and risk analysis (``summarize``,
``recommend``).

Usage:
    from schema_drift.schema import compare, load_snapshot
    from schema_drift.schema import recommend, summarize
"""

from schema_drift.schema.comparator import compare, compatibility
from schema_drift.schema.introspector import SchemaIntrospector
from schema_drift.schema.models import (
    ColumnSchema,
    Compatibility,
    ConstraintSchema,
    ConstraintType,
    DifferenceSet,
    EntityDiff,
    FieldDiff,
    IndexSchema,
    KindDiff,
    Priority,
    Recommendation,
    Risk,
    Safety,
    SchemaSnapshot,
    SequenceSchema,
    Summary,
    TableSchema,
)
from schema_drift.schema.risk import recommend, summarize
from schema_drift.schema.snapshot import (
    dump_snapshot,
    load_snapshot,
    parse_snapshot,
    validate_snapshot,
)

__all__ = [
    "compare",
    "compatibility",
    "SchemaIntrospector",
    "summarize",
    "recommend",
    "load_snapshot",
    "parse_snapshot",
    "validate_snapshot",
    "dump_snapshot",
    "ColumnSchema",
    "IndexSchema",
    "ConstraintSchema",
    "ConstraintType",
    "SequenceSchema",
    "TableSchema",
    "SchemaSnapshot",
    "FieldDiff",
    "EntityDiff",
    "KindDiff",
    "DifferenceSet",
    "Summary",
    "Recommendation",
    "Risk",
    "Compatibility",
    "Priority",
    "Safety",
]
