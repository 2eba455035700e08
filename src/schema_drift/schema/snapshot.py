"""Loading, validating and saving schema snapshot files.

Snapshot files are JSON.  Two layouts are accepted:

1. The canonical layout written by ``dump_snapshot()`` (fields of
   ``SchemaSnapshot`` at the top level).
2. The extractor export layout, with ``metadata.{database, environment,
   extracted_at}`` and raw ``information_schema`` rows (``column_default``,
   ``character_maximum_length``, ``constraint_type: "PRIMARY KEY"``) whose
   ``table_name`` may be omitted inside a table entry.

Usage:
    from schema_drift.schema.snapshot import dump_snapshot, load_snapshot

    snapshot = load_snapshot("schema-exports/schema_production.json")
    dump_snapshot(snapshot, "copy.json")
"""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from schema_drift.errors import ComparisonError, ExtractionError
from schema_drift.schema.models import SchemaSnapshot

_METADATA_FIELDS = ("database", "environment", "extracted_at")


def _with_table_name(rows: Any, table_name: str, kind: str) -> list[dict[str, Any]]:
    if not isinstance(rows, list):
        raise ComparisonError(f"Table '{table_name}' has a malformed {kind} list")
    filled = []
    for row in rows:
        if not isinstance(row, dict):
            raise ComparisonError(f"Table '{table_name}' has a malformed {kind} entry")
        filled.append({"table_name": table_name, **row})
    return filled


def _normalize_document(data: Any) -> dict[str, Any]:
    """Bring either accepted layout into the ``SchemaSnapshot`` field layout.

    Raises:
        ComparisonError: If the document structure is malformed.
    """
    if not isinstance(data, dict):
        raise ComparisonError("Schema snapshot must be a JSON object")

    document: dict[str, Any] = {}

    metadata = data.get("metadata")
    if isinstance(metadata, dict):
        for field in _METADATA_FIELDS:
            if field in metadata:
                document[field] = metadata[field]
    for field in _METADATA_FIELDS:
        if field in data:
            document[field] = data[field]

    tables = data.get("tables", {})
    if not isinstance(tables, dict):
        raise ComparisonError("Schema snapshot 'tables' must be an object keyed by table name")

    normalized_tables: dict[str, Any] = {}
    for key, table in tables.items():
        if not isinstance(table, dict):
            raise ComparisonError(f"Table '{key}' is not an object")
        if "columns" not in table or table["columns"] is None:
            raise ComparisonError(f"Table '{key}' is missing its column list")

        name = table.get("name", key)
        if name != key:
            raise ComparisonError(
                f"Table key '{key}' does not match table name '{name}'"
            )

        normalized = dict(table)
        normalized["name"] = name
        normalized["columns"] = _with_table_name(table["columns"], name, "column")
        normalized["indexes"] = _with_table_name(table.get("indexes") or [], name, "index")
        normalized["constraints"] = _with_table_name(
            table.get("constraints") or [], name, "constraint"
        )
        normalized_tables[key] = normalized

    document["tables"] = normalized_tables

    sequences = data.get("sequences") or []
    if not isinstance(sequences, list):
        raise ComparisonError("Schema snapshot 'sequences' must be a list")
    document["sequences"] = sequences

    return document


def validate_snapshot(snapshot: SchemaSnapshot) -> SchemaSnapshot:
    """Check the cross-entity invariants a well-formed snapshot must hold.

    - every ``tables`` key equals its table's ``name``
    - every column, index and constraint names its owning table

    Args:
        snapshot: Snapshot to check.

    Returns:
        The same snapshot, for chaining.

    Raises:
        ComparisonError: If an invariant does not hold.
    """
    for key, table in snapshot.tables.items():
        if key != table.name:
            raise ComparisonError(
                f"Table key '{key}' does not match table name '{table.name}'"
            )
        owned = [
            *(("column", c.column_name, c.table_name) for c in table.columns),
            *(("index", i.index_name, i.table_name) for i in table.indexes),
            *(("constraint", c.constraint_name, c.table_name) for c in table.constraints),
        ]
        for kind, name, owner in owned:
            if owner != table.name:
                raise ComparisonError(
                    f"{kind.capitalize()} '{name}' in table '{table.name}' "
                    f"claims table '{owner}'"
                )
    return snapshot


def parse_snapshot(data: Any) -> SchemaSnapshot:
    """Build a validated ``SchemaSnapshot`` from a decoded JSON document.

    Args:
        data: Decoded JSON (either accepted layout).

    Returns:
        Immutable ``SchemaSnapshot``.

    Raises:
        ComparisonError: If the document is structurally malformed.
    """
    document = _normalize_document(data)
    try:
        snapshot = SchemaSnapshot.model_validate(document)
    except ValidationError as e:
        raise ComparisonError(
            f"Malformed schema snapshot ({e.error_count()} problems):\n{e}"
        ) from e
    return validate_snapshot(snapshot)


def load_snapshot(path: str | Path) -> SchemaSnapshot:
    """Load a snapshot from a JSON file.

    Args:
        path: Path to the snapshot file.

    Returns:
        Immutable ``SchemaSnapshot``.

    Raises:
        ExtractionError: If the file cannot be read or is not valid JSON.
        ComparisonError: If the JSON is structurally malformed.

    Example:
        snapshot = load_snapshot("schema-dev.json")
        print(len(snapshot.tables))
    """
    snapshot_path = Path(path)
    try:
        content = snapshot_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ExtractionError(f"Failed to load schema file {snapshot_path}: {e}") from e

    try:
        data = json.loads(content)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Schema file {snapshot_path} is not valid JSON: {e}") from e

    return parse_snapshot(data)


def dump_snapshot(snapshot: SchemaSnapshot, path: str | Path) -> Path:
    """Write *snapshot* as canonical JSON and return the written path."""
    snapshot_path = Path(path)
    snapshot_path.parent.mkdir(parents=True, exist_ok=True)
    snapshot_path.write_text(snapshot.model_dump_json(indent=2), encoding="utf-8")
    return snapshot_path
