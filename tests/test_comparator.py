"""Tests for the schema comparator.

Covers the type-compatibility lattice (including its asymmetry), per-kind
field comparison rules, and the structural properties of ``compare()``:
reflexivity, duality, and validity of modified entries.
"""

import pytest

from schema_drift.schema.comparator import (
    WIDENINGS,
    compare,
    compare_columns,
    compare_indexes,
    compare_tables,
    compatibility,
)
from schema_drift.schema.models import (
    Compatibility,
    ConstraintSchema,
    IndexSchema,
    Risk,
    SequenceSchema,
)


KNOWN_TYPES = sorted(set(WIDENINGS) | {t for targets in WIDENINGS.values() for t in targets})


# ============================================================================
# Type compatibility
# ============================================================================


class TestCompatibility:
    """compatibility() follows the widening lattice in one direction only."""

    def test_integer_to_bigint_compatible(self) -> None:
        assert compatibility("integer", "bigint") is Compatibility.COMPATIBLE

    def test_bigint_to_integer_lossy(self) -> None:
        assert compatibility("bigint", "integer") is Compatibility.LOSSY

    @pytest.mark.parametrize("type_name", KNOWN_TYPES)
    def test_identical(self, type_name) -> None:
        """Every known type is IDENTICAL to itself."""
        assert compatibility(type_name, type_name) is Compatibility.IDENTICAL

    @pytest.mark.parametrize("source,target", [
        (source, target) for source, targets in WIDENINGS.items() for target in sorted(targets)
    ])
    def test_every_widening_is_asymmetric(self, source, target) -> None:
        """A documented widening is COMPATIBLE forward and LOSSY backward."""
        assert compatibility(source, target) is Compatibility.COMPATIBLE
        assert compatibility(target, source) is Compatibility.LOSSY

    def test_varchar_to_text(self) -> None:
        assert compatibility("character varying", "text") is Compatibility.COMPATIBLE
        assert compatibility("text", "character varying") is Compatibility.LOSSY

    def test_text_has_no_widenings(self) -> None:
        """text widens to nothing, so text -> integer is INCOMPATIBLE."""
        assert compatibility("text", "integer") is Compatibility.INCOMPATIBLE

    def test_unrelated_types_incompatible(self) -> None:
        assert compatibility("uuid", "integer") is Compatibility.INCOMPATIBLE
        assert compatibility("boolean", "text") is Compatibility.INCOMPATIBLE

    def test_aliases(self) -> None:
        """Short spellings resolve to their canonical names."""
        assert compatibility("int4", "int8") is Compatibility.COMPATIBLE
        assert compatibility("double", "real") is Compatibility.LOSSY

    def test_parameterized_numeric_to_real_lossy(self) -> None:
        """Exact numerics with precision lose digits in floating types."""
        assert compatibility("numeric(12,2)", "real") is Compatibility.LOSSY
        assert compatibility("numeric(12,2)", "double precision") is Compatibility.LOSSY

    def test_same_base_length(self) -> None:
        """A longer varchar is COMPATIBLE, a shorter one LOSSY."""
        assert compatibility("varchar(50)", "varchar(100)") is Compatibility.COMPATIBLE
        assert compatibility("varchar(100)", "varchar(50)") is Compatibility.LOSSY
        assert compatibility("varchar(50)", "character varying(50)") is Compatibility.IDENTICAL

    def test_dropping_length_limit_compatible(self) -> None:
        assert compatibility("varchar(50)", "varchar") is Compatibility.COMPATIBLE
        assert compatibility("varchar", "varchar(50)") is Compatibility.LOSSY


# ============================================================================
# Field comparators
# ============================================================================


class TestCompareColumns:
    """Column field rules and their risk levels."""

    def test_identical_columns(self, make_column) -> None:
        col = make_column("users", "email", "text")
        assert compare_columns(col, col) == []

    def test_data_type_change(self, make_column) -> None:
        diffs = compare_columns(
            make_column("users", "age", "integer"), make_column("users", "age", "bigint")
        )
        assert len(diffs) == 1
        assert diffs[0].type == "data_type_change"
        assert diffs[0].source_value == "integer"
        assert diffs[0].target_value == "bigint"
        assert diffs[0].compatibility is Compatibility.COMPATIBLE
        assert diffs[0].risk is None

    def test_nullable_tightened_high(self, make_column) -> None:
        diffs = compare_columns(
            make_column("users", "bio", is_nullable="YES"),
            make_column("users", "bio", is_nullable="NO"),
        )
        assert diffs[0].type == "nullable_change"
        assert diffs[0].risk is Risk.HIGH

    def test_nullable_loosened_low(self, make_column) -> None:
        diffs = compare_columns(
            make_column("users", "bio", is_nullable="NO"),
            make_column("users", "bio", is_nullable="YES"),
        )
        assert diffs[0].risk is Risk.LOW

    def test_default_change_informational(self, make_column) -> None:
        diffs = compare_columns(
            make_column("users", "status", default_expr="'active'::text"),
            make_column("users", "status"),
        )
        assert [d.type for d in diffs] == ["default_change"]
        assert diffs[0].risk is None
        assert diffs[0].compatibility is None

    def test_primary_key_change_critical(self, make_column) -> None:
        diffs = compare_columns(
            make_column("users", "id", is_primary_key=True),
            make_column("users", "id"),
        )
        assert diffs[0].type == "primary_key_change"
        assert diffs[0].risk is Risk.CRITICAL

    def test_foreign_key_change_high(self, make_column) -> None:
        diffs = compare_columns(
            make_column("posts", "user_id"),
            make_column("posts", "user_id", is_foreign_key=True),
        )
        assert diffs[0].type == "foreign_key_change"
        assert diffs[0].risk is Risk.HIGH

    def test_multiple_fields_in_order(self, make_column) -> None:
        diffs = compare_columns(
            make_column("t", "c", "integer", is_nullable="YES", is_primary_key=True),
            make_column("t", "c", "text", is_nullable="NO"),
        )
        assert [d.type for d in diffs] == [
            "data_type_change", "nullable_change", "primary_key_change",
        ]

    @pytest.mark.parametrize("source, target", [
        ("INTEGER", "integer"),
        ("int4", "integer"),
        ("varchar(255)", "character varying(255)"),
        ("double  precision", "float8"),
    ])
    def test_spelling_differences_ignored(self, make_column, source, target) -> None:
        assert compare_columns(
            make_column("users", "age", source), make_column("users", "age", target)
        ) == []

    def test_precision_only_in_separate_fields(self, make_column) -> None:
        """numeric with precision stored apart still counts as parameterized."""
        diffs = compare_columns(
            make_column("t", "c", "numeric", numeric_precision=12, numeric_scale=2),
            make_column("t", "c", "real"),
        )
        assert diffs[0].compatibility is Compatibility.LOSSY


class TestCompareIndexesAndTables:
    """Index and table field rules."""

    def test_index_columns_change(self) -> None:
        diffs = compare_indexes(
            IndexSchema(table_name="t", index_name="i", columns=["a", "b"]),
            IndexSchema(table_name="t", index_name="i", columns=["b", "a"]),
        )
        assert [d.type for d in diffs] == ["columns_change"]

    def test_index_uniqueness_change_high(self) -> None:
        diffs = compare_indexes(
            IndexSchema(table_name="t", index_name="i", columns=["a"], is_unique=True),
            IndexSchema(table_name="t", index_name="i", columns=["a"]),
        )
        assert diffs[0].type == "uniqueness_change"
        assert diffs[0].risk is Risk.HIGH

    def test_table_comment_change(self, make_table) -> None:
        diffs = compare_tables(
            make_table("users", comment="People"), make_table("users", comment=None)
        )
        assert [d.type for d in diffs] == ["comment_change"]


# ============================================================================
# compare()
# ============================================================================


class TestCompare:
    """Structural properties of compare()."""

    def test_reflexive(self, rich_snapshot) -> None:
        """Comparing a snapshot with itself finds nothing."""
        assert compare(rich_snapshot, rich_snapshot).is_empty

    def test_duality(self, rich_snapshot, make_snapshot, make_table) -> None:
        """missing_in_target of A->B equals missing_in_source of B->A for every kind."""
        other = make_snapshot(make_table("audit_log"), environment="prod")
        forward = compare(rich_snapshot, other)
        backward = compare(other, rich_snapshot)
        for kind in forward.kinds():
            assert forward.kinds()[kind].missing_in_target == backward.kinds()[kind].missing_in_source
            assert forward.kinds()[kind].missing_in_source == backward.kinds()[kind].missing_in_target

    def test_missing_table_reports_its_children(self, rich_snapshot, make_snapshot) -> None:
        """Columns, indexes and constraints of a missing table are missing too."""
        diffs = compare(rich_snapshot, make_snapshot(environment="prod"))
        assert [t.name for t in diffs.tables.missing_in_target] == ["users", "donations"]
        assert len(diffs.columns.missing_in_target) == 6
        assert len(diffs.indexes.missing_in_target) == 3
        assert len(diffs.constraints.missing_in_target) == 2
        assert [s.sequence_name for s in diffs.sequences.missing_in_target] == ["donations_id_seq"]

    def test_modified_entries_exist_in_both(self, make_snapshot, make_table, make_column) -> None:
        """Every modified identity is present in source and target."""
        source = make_snapshot(
            make_table("users", [make_column("users", "id", "integer"),
                                 make_column("users", "gone", "text")])
        )
        target = make_snapshot(
            make_table("users", [make_column("users", "id", "bigint")]),
            make_table("extra"),
        )
        diffs = compare(source, target)
        source_columns = {c.identity for t in source.tables.values() for c in t.columns}
        target_columns = {c.identity for t in target.tables.values() for c in t.columns}
        assert [d.identity for d in diffs.columns.modified] == [("users", "id")]
        for entry in diffs.columns.modified:
            assert entry.identity in source_columns
            assert entry.identity in target_columns

    def test_constraints_presence_only(self, make_snapshot, make_table) -> None:
        """A constraint with the same name never appears as modified."""
        source = make_snapshot(make_table("t", constraints=[
            ConstraintSchema(table_name="t", constraint_name="c", constraint_type="CHECK"),
        ]))
        target = make_snapshot(make_table("t", constraints=[
            ConstraintSchema(table_name="t", constraint_name="c", constraint_type="UNIQUE"),
        ]))
        assert compare(source, target).constraints.count == 0

    def test_sequences_presence_only(self, make_snapshot) -> None:
        source = make_snapshot(sequences=[SequenceSchema(sequence_name="s", current_value=1)])
        target = make_snapshot(sequences=[SequenceSchema(sequence_name="s", current_value=99)])
        assert compare(source, target).is_empty

    def test_source_order_preserved(self, make_snapshot, make_table) -> None:
        source = make_snapshot(make_table("zeta"), make_table("alpha"), make_table("mid"))
        diffs = compare(source, make_snapshot())
        assert [t.name for t in diffs.tables.missing_in_target] == ["zeta", "alpha", "mid"]


class TestScenarios:
    """End-to-end comparison scenarios."""

    def test_numeric_to_real_is_lossy_not_critical(self, make_snapshot, make_table, make_column) -> None:
        """campaigns.target_amount numeric(12,2) -> real is a LOSSY type change."""
        source = make_snapshot(make_table(
            "campaigns", [make_column("campaigns", "target_amount", "numeric(12,2)")]
        ))
        target = make_snapshot(make_table(
            "campaigns", [make_column("campaigns", "target_amount", "real")]
        ))
        diffs = compare(source, target)
        assert len(diffs.columns.modified) == 1
        field = diffs.columns.modified[0].field_diffs[0]
        assert field.type == "data_type_change"
        assert field.compatibility is Compatibility.LOSSY

    def test_not_null_loosened(self, make_snapshot, make_table, make_column) -> None:
        source = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="NO")]))
        target = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="YES")]))
        field = compare(source, target).columns.modified[0].field_diffs[0]
        assert field.type == "nullable_change"
        assert field.risk is Risk.LOW

    def test_not_null_tightened(self, make_snapshot, make_table, make_column) -> None:
        source = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="YES")]))
        target = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="NO")]))
        field = compare(source, target).columns.modified[0].field_diffs[0]
        assert field.risk is Risk.HIGH
