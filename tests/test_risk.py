"""Tests for risk summary and recommendations."""

import pytest

from schema_drift.schema.comparator import compare
from schema_drift.schema.models import (
    DifferenceSet,
    IndexSchema,
    ConstraintSchema,
    Priority,
    Safety,
    SequenceSchema,
)
from schema_drift.schema.risk import recommend, summarize


@pytest.fixture
def drifted(make_snapshot, make_table, make_column):
    """Source/target pair with one of each critical trigger plus a LOSSY change."""
    source = make_snapshot(make_table("accounts", [
        make_column("accounts", "id", "integer", is_primary_key=True),
        make_column("accounts", "balance", "numeric(12,2)"),
        make_column("accounts", "code", "text"),
        make_column("accounts", "nickname", "text", is_nullable="YES"),
    ]))
    target = make_snapshot(make_table("accounts", [
        make_column("accounts", "id", "integer"),
        make_column("accounts", "balance", "real"),
        make_column("accounts", "code", "uuid"),
        make_column("accounts", "nickname", "text", is_nullable="NO"),
    ]), environment="prod")
    return source, target


class TestSummarize:
    """Counting and the safety verdict."""

    def test_empty(self) -> None:
        summary = summarize(DifferenceSet())
        assert summary.total_differences == 0
        assert summary.safe_to_sync is True
        assert summary.requires_manual_review == []

    def test_total_counts_every_entry(self, rich_snapshot, make_snapshot) -> None:
        """total is the sum of all list lengths across all kinds."""
        differences = compare(rich_snapshot, make_snapshot(environment="prod"))
        # 2 tables + 6 columns + 3 indexes + 2 constraints + 1 sequence
        assert summarize(differences).total_differences == 14

    def test_critical_triggers(self, drifted) -> None:
        """PK change, INCOMPATIBLE type and NOT NULL tightening are critical; LOSSY is not."""
        summary = summarize(compare(*drifted))
        assert summary.critical_differences == 3
        assert summary.safe_to_sync is False
        assert summary.requires_manual_review == [
            "Critical change in accounts.id: primary_key_change",
            "Incompatible data type change in accounts.code: text -> uuid",
            "NOT NULL constraint added to accounts.nickname - may fail with existing data",
        ]

    def test_review_lines_match_triggers(self, drifted) -> None:
        """One review line per triggering field diff."""
        differences = compare(*drifted)
        triggers = [
            d for entry in differences.columns.modified for d in entry.field_diffs
            if d.type == "primary_key_change"
            or (d.type == "data_type_change" and d.compatibility.value == "INCOMPATIBLE")
            or (d.type == "nullable_change" and d.risk.value == "HIGH")
        ]
        summary = summarize(differences)
        assert len(summary.requires_manual_review) == len(triggers)
        assert summary.critical_differences == len(triggers)

    def test_safe_iff_no_critical(self, drifted, rich_snapshot, make_snapshot) -> None:
        for differences in (
            compare(*drifted),
            compare(rich_snapshot, make_snapshot()),
            compare(rich_snapshot, rich_snapshot),
        ):
            summary = summarize(differences)
            assert summary.safe_to_sync == (summary.critical_differences == 0)

    def test_lossy_change_not_critical(self, make_snapshot, make_table, make_column) -> None:
        source = make_snapshot(make_table("campaigns", [
            make_column("campaigns", "target_amount", "numeric(12,2)"),
        ]))
        target = make_snapshot(make_table("campaigns", [
            make_column("campaigns", "target_amount", "real"),
        ]))
        summary = summarize(compare(source, target))
        assert summary.total_differences == 1
        assert summary.critical_differences == 0
        assert summary.safe_to_sync is True

    def test_not_null_tightened_is_critical(self, make_snapshot, make_table, make_column) -> None:
        source = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="YES")]))
        target = make_snapshot(make_table("t", [make_column("t", "c", is_nullable="NO")]))
        summary = summarize(compare(source, target))
        assert summary.critical_differences == 1
        assert summary.requires_manual_review == [
            "NOT NULL constraint added to t.c - may fail with existing data"
        ]


class TestRecommend:
    """Recommendation grouping, order, and safety."""

    def test_no_differences(self) -> None:
        assert recommend(DifferenceSet()) == []

    def test_missing_table(self, make_snapshot, make_table, make_column) -> None:
        """A missing users table yields a HIGH/SAFE create recommendation."""
        source = make_snapshot(make_table("users", [
            make_column("users", "email_verified", "boolean", is_nullable="NO",
                        default_expr="false"),
        ]))
        differences = compare(source, make_snapshot(environment="prod"))
        assert [t.name for t in differences.tables.missing_in_target] == ["users"]
        assert len(differences.tables.missing_in_target[0].columns) == 1

        recommendations = recommend(differences)
        first = recommendations[0]
        assert first.action == "Create missing tables"
        assert first.priority is Priority.HIGH
        assert first.safety is Safety.SAFE
        assert first.affected == ["users"]

    def test_full_order(self, make_snapshot, make_table, make_column) -> None:
        """Tables, safe columns, risky columns, indexes, constraints, sequences."""
        source = make_snapshot(
            make_table("new_table"),
            make_table(
                "users",
                [
                    make_column("users", "id", "uuid"),
                    make_column("users", "bio", "text"),
                    make_column("users", "status", "text", is_nullable="NO",
                                default_expr="'active'::text"),
                    make_column("users", "tenant_id", "uuid", is_nullable="NO"),
                ],
                indexes=[IndexSchema(table_name="users", index_name="idx_bio", columns=["bio"])],
                constraints=[ConstraintSchema(table_name="users", constraint_name="chk",
                                              constraint_type="CHECK")],
            ),
            sequences=[SequenceSchema(sequence_name="users_seq")],
        )
        target = make_snapshot(make_table("users", [make_column("users", "id", "uuid")]))

        recommendations = recommend(compare(source, target))
        assert [r.action for r in recommendations] == [
            "Create missing tables",
            "Add missing columns (safe)",
            "Add missing columns (requires attention)",
            "Create missing indexes",
            "Add missing constraints",
            "Create missing sequences",
        ]
        by_action = {r.action: r for r in recommendations}
        assert by_action["Add missing columns (safe)"].affected == ["users.bio", "users.status"]
        # new_table.id is NOT NULL with no default
        assert by_action["Add missing columns (requires attention)"].affected == [
            "new_table.id", "users.tenant_id",
        ]
        assert by_action["Add missing columns (requires attention)"].safety is Safety.REQUIRES_REVIEW
        assert by_action["Create missing indexes"].priority is Priority.MEDIUM
        assert by_action["Add missing constraints"].safety is Safety.REQUIRES_REVIEW
        assert by_action["Create missing sequences"].priority is Priority.HIGH

    def test_extras_in_target_not_recommended(self, rich_snapshot, make_snapshot) -> None:
        """Only convergence toward the source is recommended."""
        assert recommend(compare(make_snapshot(), rich_snapshot)) == []
