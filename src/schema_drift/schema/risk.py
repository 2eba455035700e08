"""Risk classification and migration recommendations.

Turns a ``DifferenceSet`` into a ``Summary`` (counts and a safety verdict)
and an ordered list of ``Recommendation`` entries.  Pure logic.

Usage:
    from schema_drift.schema.comparator import compare
    from schema_drift.schema.risk import recommend, summarize

    differences = compare(source, target)
    summary = summarize(differences)
    if not summary.safe_to_sync:
        for line in summary.requires_manual_review:
            print(line)

    for rec in recommend(differences):
        print(f"{rec.action} ({rec.priority.value}, {rec.safety.value})")
"""

from schema_drift.schema.models import (
    ColumnSchema,
    Compatibility,
    DifferenceSet,
    Priority,
    Recommendation,
    Risk,
    Safety,
    Summary,
)


def summarize(differences: DifferenceSet) -> Summary:
    """Count differences and decide whether the target can be synced safely.

    ``total_differences`` is the sum of every list length across every
    entity kind.  Each of these column field diffs is critical -- it adds
    one to ``critical_differences`` and one line to
    ``requires_manual_review``:

    - a ``primary_key_change``
    - a ``data_type_change`` whose compatibility is ``INCOMPATIBLE``
    - a ``nullable_change`` with ``HIGH`` risk (NOT NULL added)

    Review lines are grouped by trigger in that order.

    Args:
        differences: Result of ``compare(source, target)``.

    Returns:
        ``Summary`` where ``safe_to_sync`` is ``critical_differences == 0``.

    Example:
        >>> summarize(DifferenceSet()).safe_to_sync
        True
    """
    total = sum(kind.count for kind in differences.kinds().values())

    primary_key_lines: list[str] = []
    incompatible_lines: list[str] = []
    not_null_lines: list[str] = []

    for column_diff in differences.columns.modified:
        label = column_diff.label
        for diff in column_diff.field_diffs:
            if diff.type == "primary_key_change":
                primary_key_lines.append(f"Critical change in {label}: {diff.type}")
            elif (
                diff.type == "data_type_change"
                and diff.compatibility is Compatibility.INCOMPATIBLE
            ):
                incompatible_lines.append(
                    f"Incompatible data type change in {label}: "
                    f"{diff.source_value} -> {diff.target_value}"
                )
            elif diff.type == "nullable_change" and diff.risk is Risk.HIGH:
                not_null_lines.append(
                    f"NOT NULL constraint added to {label} - may fail with existing data"
                )

    manual_review = primary_key_lines + incompatible_lines + not_null_lines

    return Summary(
        total_differences=total,
        critical_differences=len(manual_review),
        safe_to_sync=len(manual_review) == 0,
        requires_manual_review=manual_review,
    )


def _is_safe_column(column: ColumnSchema) -> bool:
    """Nullable columns and columns with a default can be added to populated tables."""
    return column.nullable or bool(column.default_expr)


def recommend(differences: DifferenceSet) -> list[Recommendation]:
    """Recommend actions that make the target converge toward the source.

    Only ``missing_in_target`` entries produce recommendations; extras in
    the target are reported but never recommended for removal.  Output
    order is fixed: tables, safe columns, columns requiring review,
    indexes, constraints, sequences.  Empty groups are skipped.

    Args:
        differences: Result of ``compare(source, target)``.

    Returns:
        Ordered list of ``Recommendation``.
    """
    recommendations: list[Recommendation] = []

    missing_tables = differences.tables.missing_in_target
    if missing_tables:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Schema Sync",
                action="Create missing tables",
                affected=[t.name for t in missing_tables],
                safety=Safety.SAFE,
                description="Create tables that exist in source but not in target",
            )
        )

    missing_columns = differences.columns.missing_in_target
    safe_columns = [c for c in missing_columns if _is_safe_column(c)]
    risky_columns = [c for c in missing_columns if not _is_safe_column(c)]

    if safe_columns:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Schema Sync",
                action="Add missing columns (safe)",
                affected=[f"{c.table_name}.{c.column_name}" for c in safe_columns],
                safety=Safety.SAFE,
                description="Add nullable columns or columns with default values",
            )
        )

    if risky_columns:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Schema Sync",
                action="Add missing columns (requires attention)",
                affected=[f"{c.table_name}.{c.column_name}" for c in risky_columns],
                safety=Safety.REQUIRES_REVIEW,
                description="Add NOT NULL columns without defaults - requires data migration",
            )
        )

    missing_indexes = differences.indexes.missing_in_target
    if missing_indexes:
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="Performance",
                action="Create missing indexes",
                affected=[f"{i.table_name}.{i.index_name}" for i in missing_indexes],
                safety=Safety.SAFE,
                description="Create indexes for better query performance",
            )
        )

    missing_constraints = differences.constraints.missing_in_target
    if missing_constraints:
        recommendations.append(
            Recommendation(
                priority=Priority.MEDIUM,
                category="Data Integrity",
                action="Add missing constraints",
                affected=[f"{c.table_name}.{c.constraint_name}" for c in missing_constraints],
                safety=Safety.REQUIRES_REVIEW,
                description="Add constraints - may fail if data violates constraints",
            )
        )

    missing_sequences = differences.sequences.missing_in_target
    if missing_sequences:
        recommendations.append(
            Recommendation(
                priority=Priority.HIGH,
                category="Schema Sync",
                action="Create missing sequences",
                affected=[s.sequence_name for s in missing_sequences],
                safety=Safety.SAFE,
                description="Create sequences for auto-increment columns",
            )
        )

    return recommendations
