"""Migration generator -- turn missing tables, columns and indexes into files.

Builds one ``MigrationArtifact`` per category (tables, columns, indexes),
each with symmetric forward and rollback operations, then writes it to the
migrations directory as ``<NNN>_<description>_<YYYYmmddHHMMSS>.<ext>``.

Sequence numbers are assigned under a directory lock file and each file is
created exclusively, so two generators pointed at the same directory never
produce the same number.

Usage:
    from schema_drift.migrations.generator import MigrationGenerator
    from schema_drift.schema.comparator import compare

    differences = compare(source, target)
    generator = MigrationGenerator("migrations")
    result = generator.generate(differences)
    for path in result.written:
        print(path.name)
"""

import logging
import os
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field, ValidationError

from schema_drift.errors import GenerationError
from schema_drift.migrations.operations import (
    AddColumn,
    AddIndex,
    ColumnSpec,
    CreateTable,
    DropColumn,
    DropTable,
    ForeignReference,
    MigrationArtifact,
    MigrationFile,
    RemoveIndex,
)
from schema_drift.migrations.renderer import JsonRenderer, MigrationRenderer
from schema_drift.migrations.type_mapping import (
    is_auto_increment,
    map_column_type,
    translate_default,
)
from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintType,
    DifferenceSet,
    IndexSchema,
    TableSchema,
)

_logger = logging.getLogger(__name__)

LOCK_FILE_NAME = ".schema-drift.lock"
MAX_SEQUENCE_NUMBER = 999
TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"


# ------------------------------------------------------------------
# Result model
# ------------------------------------------------------------------


class GenerationResult(BaseModel):
    """Result of ``MigrationGenerator.generate()``."""

    artifacts: list[MigrationArtifact] = Field(default_factory=list)
    written: list[Path] = Field(default_factory=list)
    rendered: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.errors


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------


def _topological_sort(dependencies: dict[str, set[str]], tables: list[str]) -> list[str]:
    """Topological sort of tables based on FK dependencies.

    Returns tables in forward order: parent tables first, child tables last.
    Tables without dependencies keep their given relative order.

    Args:
        dependencies: FK dependency graph (table -> set of referenced tables).
        tables: List of table names to sort.

    Returns:
        Tables sorted so that parent tables come before child tables.
    """
    relevant = {t: dependencies.get(t, set()) & set(tables) for t in tables}

    sorted_tables: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()

    def visit(table: str) -> None:
        if table in visited or table in visiting:
            # in visiting: cycle, broken by emitting the table where it stands
            return
        visiting.add(table)
        for dep in sorted(relevant.get(table, set()), key=tables.index):
            visit(dep)
        visiting.discard(table)
        visited.add(table)
        sorted_tables.append(table)

    for table in tables:
        visit(table)

    return sorted_tables


def column_spec(column: ColumnSchema, reference: ForeignReference | None = None) -> ColumnSpec:
    """Build the ``ColumnSpec`` for *column*.

    ``nextval(...)`` defaults become ``auto_increment`` instead of a default.
    """
    auto_increment = is_auto_increment(column.default_expr)
    return ColumnSpec(
        name=column.column_name,
        type=map_column_type(column),
        allow_null=column.nullable,
        default=None if auto_increment else translate_default(column.default_expr),
        primary_key=column.is_primary_key,
        auto_increment=auto_increment,
        references=reference,
    )


def _references(table: TableSchema) -> dict[str, ForeignReference]:
    """Column name -> referenced table/column, from the table's FK constraints."""
    references: dict[str, ForeignReference] = {}
    for constraint in table.constraints:
        if (
            constraint.constraint_type is ConstraintType.FK
            and constraint.column_name
            and constraint.foreign_table_name
            and constraint.foreign_column_name
        ):
            references.setdefault(
                constraint.column_name,
                ForeignReference(
                    table=constraint.foreign_table_name,
                    column=constraint.foreign_column_name,
                ),
            )
    return references


# ------------------------------------------------------------------
# Generator
# ------------------------------------------------------------------


class MigrationGenerator:
    """Builds and writes migration artifacts for one migrations directory.

    Args:
        migrations_dir: Directory holding numbered migration files
        renderer: File format (default: ``JsonRenderer``)
        logger: Logger for progress messages (default: module logger)
        clock: Returns the current time, used for filename timestamps
        lock_timeout: Seconds to wait for another writer's lock
    """

    def __init__(
        self,
        migrations_dir: str | Path,
        renderer: MigrationRenderer | None = None,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
        lock_timeout: float = 10.0,
    ):
        self.migrations_dir = Path(migrations_dir)
        self.renderer = renderer or JsonRenderer()
        self.logger = logger or _logger
        self.clock = clock or datetime.now
        self.lock_timeout = lock_timeout

    # -- directory scanning ------------------------------------------------

    def scan_migrations(self) -> list[MigrationFile]:
        """List numbered migration files, ordered by sequence number.

        Files are described by name only; nothing is read or executed.
        """
        if not self.migrations_dir.is_dir():
            return []
        files = [
            parsed
            for path in self.migrations_dir.iterdir()
            if path.is_file() and (parsed := MigrationFile.from_path(path)) is not None
        ]
        return sorted(files, key=lambda f: (f.sequence_number, f.path.name))

    def next_sequence_number(self) -> int:
        """Highest existing 3-digit prefix plus one (1 for an empty directory)."""
        files = self.scan_migrations()
        return max((f.sequence_number for f in files), default=0) + 1

    # -- artifact builders -------------------------------------------------

    def build_create_tables_artifact(
        self, tables: list[TableSchema]
    ) -> MigrationArtifact | None:
        """One ``CreateTable`` per table, parents before children.

        Rollback drops the same tables in exact reverse order.  Returns None
        when *tables* is empty.

        Raises:
            GenerationError: If a table or column name fails the identifier
                allow-list
        """
        if not tables:
            return None

        by_name = {table.name: table for table in tables}
        dependencies = {table.name: table.foreign_tables() for table in tables}
        order = _topological_sort(dependencies, list(by_name))

        try:
            forward = []
            for name in order:
                table = by_name[name]
                references = _references(table)
                forward.append(
                    CreateTable(
                        table=name,
                        columns=[
                            column_spec(column, references.get(column.column_name))
                            for column in table.columns
                        ],
                    )
                )
            rollback = [DropTable(table=name) for name in reversed(order)]
            return MigrationArtifact(
                description="create_missing_tables",
                forward_ops=forward,
                rollback_ops=rollback,
            )
        except ValidationError as e:
            raise GenerationError(f"Cannot build create_missing_tables: {e}") from e

    def build_add_columns_artifact(
        self, columns: list[ColumnSchema]
    ) -> MigrationArtifact | None:
        """One ``AddColumn`` per column, grouped by table in first-seen order.

        Rollback has one ``DropColumn`` per column in the same relative order.
        Returns None when *columns* is empty.

        Raises:
            GenerationError: If a table or column name fails the identifier
                allow-list
        """
        if not columns:
            return None

        grouped: dict[str, list[ColumnSchema]] = {}
        for column in columns:
            grouped.setdefault(column.table_name, []).append(column)

        try:
            forward = []
            rollback = []
            for table_name, table_columns in grouped.items():
                for column in table_columns:
                    forward.append(AddColumn(table=table_name, column=column_spec(column)))
                    rollback.append(DropColumn(table=table_name, column=column.column_name))
            return MigrationArtifact(
                description="add_missing_columns",
                forward_ops=forward,
                rollback_ops=rollback,
            )
        except ValidationError as e:
            raise GenerationError(f"Cannot build add_missing_columns: {e}") from e

    def build_add_indexes_artifact(
        self, indexes: list[IndexSchema]
    ) -> MigrationArtifact | None:
        """One ``AddIndex`` per non-primary index; rollback removes them in reverse.

        Primary key indexes come with their table or column and are skipped.
        Returns None when nothing is left to index.

        Raises:
            GenerationError: If an index, table or column name fails the
                identifier allow-list
        """
        indexes = [index for index in indexes if not index.is_primary]
        if not indexes:
            return None

        try:
            forward = [
                AddIndex(
                    table=index.table_name,
                    name=index.index_name,
                    fields=list(index.columns),
                    unique=index.is_unique,
                )
                for index in indexes
            ]
            rollback = [
                RemoveIndex(table=index.table_name, name=index.index_name)
                for index in reversed(indexes)
            ]
            return MigrationArtifact(
                description="add_missing_indexes",
                forward_ops=forward,
                rollback_ops=rollback,
            )
        except ValidationError as e:
            raise GenerationError(f"Cannot build add_missing_indexes: {e}") from e

    # -- writing -------------------------------------------------------------

    def _lock_is_stale(self, lock_path: Path) -> bool:
        """True when the lock file names a process that no longer exists."""
        try:
            pid = int(lock_path.read_text().strip())
        except (FileNotFoundError, ValueError):
            return False
        try:
            os.kill(pid, 0)
        except ProcessLookupError:
            return True
        except PermissionError:
            # owned by another user, still alive
            return False
        return False

    def _break_stale_lock(self, lock_path: Path) -> None:
        """Move a dead owner's lock aside so the next exclusive create can win."""
        aside = lock_path.with_name(f"{LOCK_FILE_NAME}.stale-{os.getpid()}")
        try:
            os.rename(lock_path, aside)
        except FileNotFoundError:
            return
        self.logger.warning("Removed stale migration lock %s", lock_path)
        aside.unlink(missing_ok=True)

    @contextmanager
    def _directory_lock(self) -> Iterator[None]:
        """Hold the migrations directory lock file for the duration of the block.

        A lock left behind by a process that has exited is broken and retaken.
        """
        lock_path = self.migrations_dir / LOCK_FILE_NAME
        deadline = time.monotonic() + self.lock_timeout
        while True:
            try:
                with open(lock_path, "x") as f:
                    f.write(str(os.getpid()))
                break
            except FileExistsError:
                if self._lock_is_stale(lock_path):
                    self._break_stale_lock(lock_path)
                    continue
                if time.monotonic() >= deadline:
                    raise GenerationError(
                        f"Timed out waiting for migration lock {lock_path}"
                    ) from None
                time.sleep(0.05)
        try:
            yield
        finally:
            lock_path.unlink(missing_ok=True)

    def write_artifact(
        self, artifact: MigrationArtifact, max_attempts: int = 5
    ) -> MigrationFile:
        """Assign the next sequence number to *artifact* and write it.

        The file is created exclusively; if the name is already taken the
        directory is rescanned and the write retried.

        Returns:
            Descriptor of the written file

        Raises:
            GenerationError: If the file cannot be written
        """
        try:
            self.migrations_dir.mkdir(parents=True, exist_ok=True)
            with self._directory_lock():
                for _ in range(max_attempts):
                    number = self.next_sequence_number()
                    if number > MAX_SEQUENCE_NUMBER:
                        raise GenerationError(
                            f"Migration sequence exhausted in {self.migrations_dir}"
                        )
                    numbered = artifact.model_copy(update={"sequence_number": number})
                    timestamp = self.clock().strftime(TIMESTAMP_FORMAT)
                    filename = (
                        f"{number:03d}_{artifact.description}_{timestamp}"
                        f".{self.renderer.extension}"
                    )
                    path = self.migrations_dir / filename
                    try:
                        with open(path, "x", encoding="utf-8") as f:
                            f.write(self.renderer.render(numbered))
                    except FileExistsError:
                        self.logger.warning("Migration file %s already exists, retrying", filename)
                        continue
                    self.logger.info("Migration file created: %s", filename)
                    return MigrationFile.from_path(path)
        except OSError as e:
            raise GenerationError(f"Failed to write {artifact.description}: {e}") from e

        raise GenerationError(
            f"Failed to write {artifact.description}: no free file name after "
            f"{max_attempts} attempts"
        )

    # -- orchestration -------------------------------------------------------

    def generate(
        self,
        differences: DifferenceSet | None = None,
        *,
        missing_tables: list[TableSchema] | None = None,
        missing_columns: list[ColumnSchema] | None = None,
        missing_indexes: list[IndexSchema] | None = None,
        include_indexes: bool = False,
        dry_run: bool = False,
    ) -> GenerationResult:
        """Build and write artifacts for missing tables, columns and indexes.

        Inputs come from ``differences.<kind>.missing_in_target`` unless given
        explicitly.  Columns belonging to a table that is itself missing are
        left to its ``CreateTable``.  Indexes are only generated when
        *include_indexes* is set or *missing_indexes* is passed.

        A failure building or writing one artifact is recorded in
        ``errors`` and does not stop the remaining artifacts.

        Args:
            differences: Result of ``compare(source, target)``
            missing_tables: Tables to create (overrides *differences*)
            missing_columns: Columns to add (overrides *differences*)
            missing_indexes: Indexes to add (overrides *differences*)
            include_indexes: Also generate the index artifact from *differences*
            dry_run: Build and render artifacts into ``rendered`` without
                writing; sequence numbers are provisional

        Returns:
            GenerationResult with artifacts, written paths, dry-run file
            contents and errors
        """
        if differences is not None:
            if missing_tables is None:
                missing_tables = differences.tables.missing_in_target
            if missing_columns is None:
                missing_columns = differences.columns.missing_in_target
            if missing_indexes is None and include_indexes:
                missing_indexes = differences.indexes.missing_in_target

        missing_tables = missing_tables or []
        new_tables = {table.name for table in missing_tables}
        missing_columns = [
            column for column in (missing_columns or []) if column.table_name not in new_tables
        ]

        builders = [
            ("create_missing_tables", self.build_create_tables_artifact, missing_tables),
            ("add_missing_columns", self.build_add_columns_artifact, missing_columns),
            ("add_missing_indexes", self.build_add_indexes_artifact, missing_indexes or []),
        ]

        result = GenerationResult()
        provisional = self.next_sequence_number() if dry_run else 0

        for description, build, items in builders:
            try:
                artifact = build(items)
                if artifact is None:
                    continue
                if dry_run:
                    artifact = artifact.model_copy(update={"sequence_number": provisional})
                    provisional += 1
                    result.artifacts.append(artifact)
                    result.rendered.append(self.renderer.render(artifact))
                    continue
                written = self.write_artifact(artifact)
            except GenerationError as e:
                self.logger.error("Migration %s failed: %s", description, e)
                result.errors.append(str(e))
                continue
            result.artifacts.append(
                artifact.model_copy(update={"sequence_number": written.sequence_number})
            )
            result.written.append(written.path)

        if not result.artifacts and not result.errors:
            self.logger.info("No migrations needed - schemas are synchronized")

        return result
