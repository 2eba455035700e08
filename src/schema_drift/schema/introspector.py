"""PostgreSQL schema introspection via information_schema and pg_catalog.

This module queries a live database and builds a ``SchemaSnapshot``:
- Tables with comment and total size
- Columns in ordinal order, with primary/foreign key flags
- Indexes (name, ordered columns, uniqueness, primary flag)
- Constraints (primary key, foreign key, unique, check)
- Sequences

Uses psycopg (v3) async connections for PostgreSQL.
"""

from datetime import datetime, timezone
from typing import Any

from psycopg import AsyncConnection

from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    IndexSchema,
    SchemaSnapshot,
    SequenceSchema,
    TableSchema,
)


class SchemaIntrospector:
    """Introspects a PostgreSQL database schema into a ``SchemaSnapshot``.

    Usage:
        async with SchemaIntrospector(database_url) as introspector:
            snapshot = await introspector.introspect("production")
    """

    DEFAULT_EXCLUDED_TABLES: frozenset[str] = frozenset({
        "SequelizeMeta",
        "schema_migrations",
        "pg_stat_statements",
        "spatial_ref_sys",
    })

    def __init__(
        self,
        database_url: str,
        excluded_tables: set[str] | frozenset[str] | None = None,
    ):
        """Initialize with database connection URL.

        Args:
            database_url: PostgreSQL connection URL
            excluded_tables: Table names to skip (default: migration
                bookkeeping and extension tables)
        """
        self._database_url = database_url
        self._conn: AsyncConnection | None = None
        self.excluded_tables = (
            frozenset(excluded_tables)
            if excluded_tables is not None
            else self.DEFAULT_EXCLUDED_TABLES
        )

    async def __aenter__(self) -> "SchemaIntrospector":
        """Async context manager entry - opens connection."""
        url = self._database_url
        if "connect_timeout" not in url:
            separator = "&" if "?" in url else "?"
            url = f"{url}{separator}connect_timeout=10"

        self._conn = await AsyncConnection.connect(url)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit - closes connection."""
        if self._conn:
            await self._conn.close()
            self._conn = None

    async def test_connection(self) -> None:
        """Run ``SELECT 1`` to verify the connection works."""
        await self._fetch("SELECT 1", ())

    async def introspect(
        self, environment: str = "", schema_name: str = "public"
    ) -> SchemaSnapshot:
        """Introspect the full database schema.

        Args:
            environment: Environment label stored on the snapshot
            schema_name: PostgreSQL schema to introspect (default: public)

        Returns:
            Immutable ``SchemaSnapshot``
        """
        if not self._conn:
            raise RuntimeError("Introspector not connected. Use async with statement.")

        tables: dict[str, TableSchema] = {}
        for table_name, comment, size in await self._get_tables(schema_name):
            if table_name in self.excluded_tables:
                continue
            tables[table_name] = TableSchema(
                name=table_name,
                comment=comment,
                columns=await self._get_columns(schema_name, table_name),
                indexes=await self._get_indexes(schema_name, table_name),
                constraints=await self._get_constraints(schema_name, table_name),
                size_estimate=size,
            )

        return SchemaSnapshot(
            database=await self._get_database_name(),
            environment=environment,
            extracted_at=datetime.now(timezone.utc).isoformat(),
            tables=tables,
            sequences=await self._get_sequences(schema_name),
        )

    async def _fetch(self, query: str, params: tuple) -> list[tuple[Any, ...]]:
        async with self._conn.cursor() as cur:
            await cur.execute(query, params)
            return await cur.fetchall()

    async def _get_database_name(self) -> str:
        rows = await self._fetch("SELECT current_database()", ())
        return rows[0][0] if rows else ""

    async def _get_tables(self, schema_name: str) -> list[tuple[str, str | None, str | None]]:
        """Get (name, comment, pretty size) for every base table in schema."""
        query = """
            SELECT
                t.table_name,
                obj_description(c.oid) AS table_comment,
                pg_size_pretty(pg_total_relation_size(c.oid)) AS table_size
            FROM information_schema.tables t
            LEFT JOIN pg_namespace n ON n.nspname = t.table_schema
            LEFT JOIN pg_class c ON c.relname = t.table_name AND c.relnamespace = n.oid
            WHERE t.table_schema = %s
              AND t.table_type = 'BASE TABLE'
            ORDER BY t.table_name
        """
        return [tuple(row) for row in await self._fetch(query, (schema_name,))]

    async def _get_columns(self, schema_name: str, table_name: str) -> list[ColumnSchema]:
        """Get columns for a table in ordinal order."""
        query = """
            SELECT
                c.column_name,
                c.data_type,
                c.character_maximum_length,
                c.numeric_precision,
                c.numeric_scale,
                c.is_nullable,
                c.column_default,
                EXISTS (
                    SELECT 1
                    FROM information_schema.table_constraints tc
                    JOIN information_schema.key_column_usage kcu
                        ON tc.constraint_name = kcu.constraint_name
                        AND tc.table_schema = kcu.table_schema
                    WHERE tc.constraint_type = 'PRIMARY KEY'
                      AND tc.table_schema = c.table_schema
                      AND kcu.table_name = c.table_name
                      AND kcu.column_name = c.column_name
                ) AS is_primary_key,
                EXISTS (
                    SELECT 1
                    FROM information_schema.table_constraints tc
                    JOIN information_schema.key_column_usage kcu
                        ON tc.constraint_name = kcu.constraint_name
                        AND tc.table_schema = kcu.table_schema
                    WHERE tc.constraint_type = 'FOREIGN KEY'
                      AND tc.table_schema = c.table_schema
                      AND kcu.table_name = c.table_name
                      AND kcu.column_name = c.column_name
                ) AS is_foreign_key
            FROM information_schema.columns c
            WHERE c.table_schema = %s
              AND c.table_name = %s
            ORDER BY c.ordinal_position
        """
        columns = []
        for row in await self._fetch(query, (schema_name, table_name)):
            (
                col_name,
                data_type,
                max_length,
                precision,
                scale,
                is_nullable,
                default,
                is_pk,
                is_fk,
            ) = row
            columns.append(
                ColumnSchema(
                    table_name=table_name,
                    column_name=col_name,
                    data_type=data_type,
                    char_max_length=max_length,
                    numeric_precision=precision if data_type == "numeric" else None,
                    numeric_scale=scale if data_type == "numeric" else None,
                    is_nullable=is_nullable,
                    default_expr=default,
                    is_primary_key=bool(is_pk),
                    is_foreign_key=bool(is_fk),
                )
            )
        return columns

    async def _get_indexes(self, schema_name: str, table_name: str) -> list[IndexSchema]:
        """Get indexes for a table, primary key index included."""
        query = """
            SELECT
                i.relname AS index_name,
                array_agg(a.attname ORDER BY x.ordinality) AS columns,
                ix.indisunique AS is_unique,
                ix.indisprimary AS is_primary
            FROM pg_index ix
            JOIN pg_class t ON t.oid = ix.indrelid
            JOIN pg_class i ON i.oid = ix.indexrelid
            JOIN pg_namespace n ON n.oid = t.relnamespace
            JOIN LATERAL unnest(ix.indkey) WITH ORDINALITY AS x(attnum, ordinality) ON TRUE
            JOIN pg_attribute a ON a.attrelid = t.oid AND a.attnum = x.attnum
            WHERE n.nspname = %s
              AND t.relname = %s
            GROUP BY i.relname, ix.indisunique, ix.indisprimary
            ORDER BY i.relname
        """
        return [
            IndexSchema(
                table_name=table_name,
                index_name=name,
                columns=list(columns),
                is_unique=is_unique,
                is_primary=is_primary,
            )
            for name, columns, is_unique, is_primary in await self._fetch(
                query, (schema_name, table_name)
            )
        ]

    async def _get_constraints(
        self, schema_name: str, table_name: str
    ) -> list[ConstraintSchema]:
        """Get constraints for a table, one entry per constraint name."""
        query = """
            SELECT
                tc.constraint_name,
                tc.constraint_type,
                kcu.column_name,
                ccu.table_name AS foreign_table_name,
                ccu.column_name AS foreign_column_name
            FROM information_schema.table_constraints tc
            LEFT JOIN information_schema.key_column_usage kcu
                ON tc.constraint_name = kcu.constraint_name
                AND tc.table_schema = kcu.table_schema
            LEFT JOIN information_schema.constraint_column_usage ccu
                ON tc.constraint_name = ccu.constraint_name
                AND tc.constraint_type = 'FOREIGN KEY'
            WHERE tc.table_schema = %s
              AND tc.table_name = %s
              AND tc.constraint_type IN ('PRIMARY KEY', 'FOREIGN KEY', 'UNIQUE', 'CHECK')
            ORDER BY tc.constraint_type, tc.constraint_name
        """
        constraints: dict[str, ConstraintSchema] = {}
        for name, ctype, col_name, ref_table, ref_col in await self._fetch(
            query, (schema_name, table_name)
        ):
            # multi-column constraints repeat; keep the first column
            if name in constraints:
                continue
            is_fk = ctype == "FOREIGN KEY"
            constraints[name] = ConstraintSchema(
                table_name=table_name,
                constraint_name=name,
                constraint_type=ctype,
                column_name=col_name,
                foreign_table_name=ref_table if is_fk else None,
                foreign_column_name=ref_col if is_fk else None,
            )
        return list(constraints.values())

    async def _get_sequences(self, schema_name: str) -> list[SequenceSchema]:
        query = """
            SELECT
                s.sequence_name,
                s.start_value::bigint,
                s.increment::bigint,
                COALESCE(p.last_value, s.start_value::bigint) AS current_value
            FROM information_schema.sequences s
            LEFT JOIN pg_sequences p
                ON p.sequencename = s.sequence_name
                AND p.schemaname = s.sequence_schema
            WHERE s.sequence_schema = %s
            ORDER BY s.sequence_name
        """
        return [
            SequenceSchema(
                sequence_name=name,
                start_value=start,
                increment=increment,
                current_value=current,
            )
            for name, start, increment, current in await self._fetch(query, (schema_name,))
        ]
