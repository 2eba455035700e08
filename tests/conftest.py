"""Shared snapshot builders for the test suite."""

from typing import Any

import pytest

from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    IndexSchema,
    SchemaSnapshot,
    SequenceSchema,
    TableSchema,
)


def column(table: str, name: str, data_type: str = "text", **fields: Any) -> ColumnSchema:
    return ColumnSchema(table_name=table, column_name=name, data_type=data_type, **fields)


def table(name: str, columns: list[ColumnSchema] | None = None, **fields: Any) -> TableSchema:
    if columns is None:
        columns = [column(name, "id", "uuid", is_nullable="NO", is_primary_key=True)]
    return TableSchema(name=name, columns=columns, **fields)


def snapshot(*tables: TableSchema, environment: str = "dev", **fields: Any) -> SchemaSnapshot:
    return SchemaSnapshot(
        database=f"app_{environment}",
        environment=environment,
        extracted_at="2024-01-01T00:00:00Z",
        tables={t.name: t for t in tables},
        **fields,
    )


@pytest.fixture
def make_column():
    return column


@pytest.fixture
def make_table():
    return table


@pytest.fixture
def make_snapshot():
    return snapshot


@pytest.fixture
def rich_snapshot() -> SchemaSnapshot:
    """Two related tables with every entity kind populated."""
    users = table(
        "users",
        [
            column("users", "id", "uuid", is_nullable="NO", is_primary_key=True,
                   default_expr="gen_random_uuid()"),
            column("users", "email", "character varying", char_max_length=255, is_nullable="NO"),
            column("users", "created_at", "timestamp with time zone", default_expr="now()"),
        ],
        indexes=[
            IndexSchema(table_name="users", index_name="users_pkey", columns=["id"],
                        is_unique=True, is_primary=True),
            IndexSchema(table_name="users", index_name="users_email_key", columns=["email"],
                        is_unique=True),
        ],
        constraints=[
            ConstraintSchema(table_name="users", constraint_name="users_pkey",
                             constraint_type="PRIMARY KEY", column_name="id"),
        ],
        comment="Registered users",
    )
    donations = table(
        "donations",
        [
            column("donations", "id", "integer", is_nullable="NO", is_primary_key=True,
                   default_expr="nextval('donations_id_seq'::regclass)"),
            column("donations", "user_id", "uuid", is_foreign_key=True),
            column("donations", "amount", "numeric", numeric_precision=12, numeric_scale=2,
                   is_nullable="NO", default_expr="0"),
        ],
        indexes=[
            IndexSchema(table_name="donations", index_name="idx_donations_user",
                        columns=["user_id"]),
        ],
        constraints=[
            ConstraintSchema(table_name="donations", constraint_name="donations_user_id_fkey",
                             constraint_type="FOREIGN KEY", column_name="user_id",
                             foreign_table_name="users", foreign_column_name="id"),
        ],
    )
    return snapshot(
        users,
        donations,
        sequences=[SequenceSchema(sequence_name="donations_id_seq", start_value=1,
                                  increment=1, current_value=42)],
    )
