"""Comparison report building and export (JSON, HTML).

``build_report()`` assembles the difference report document consumed by
downstream tools; ``export_json()`` and ``export_html()`` write it to
``schema-comparison-<source_env>-vs-<target_env>-<timestamp>.<ext>``.
"""

import html
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from schema_drift import __version__
from schema_drift.schema.models import (
    ColumnSchema,
    ConstraintSchema,
    DifferenceSet,
    EntityDiff,
    IndexSchema,
    Recommendation,
    SchemaSnapshot,
    SequenceSchema,
    Summary,
    TableSchema,
)

COMPARED_BY = "schema-drift"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"


# ============================================================================
# Report document
# ============================================================================


def _table_entry(table: TableSchema, kind: str) -> dict[str, Any]:
    return {
        "name": table.name,
        "columns": len(table.columns),
        "size": table.size_estimate,
        "type": f"{kind}_table",
    }


def _column_entry(column: ColumnSchema, kind: str) -> dict[str, Any]:
    return {
        "table": column.table_name,
        "column": column.column_name,
        "data_type": column.data_type,
        "is_nullable": column.is_nullable,
        "default_value": column.default_expr,
        "is_primary_key": column.is_primary_key,
        "is_foreign_key": column.is_foreign_key,
        "type": f"{kind}_column",
    }


def _index_entry(index: IndexSchema, kind: str) -> dict[str, Any]:
    return {
        "table": index.table_name,
        "index": index.index_name,
        "columns": list(index.columns),
        "is_unique": index.is_unique,
        "is_primary": index.is_primary,
        "type": f"{kind}_index",
    }


def _constraint_entry(constraint: ConstraintSchema, kind: str) -> dict[str, Any]:
    return {
        "table": constraint.table_name,
        "constraint": constraint.constraint_name,
        "type": constraint.constraint_type.value,
        "column": constraint.column_name,
        "foreign_table": constraint.foreign_table_name,
        "foreign_column": constraint.foreign_column_name,
        "difference_type": f"{kind}_constraint",
    }


def _sequence_entry(sequence: SequenceSchema, kind: str) -> dict[str, Any]:
    return {
        "name": sequence.sequence_name,
        "start_value": sequence.start_value,
        "increment": sequence.increment,
        "current_value": sequence.current_value,
        "type": f"{kind}_sequence",
    }


# kind -> (entry builder, identity field names for modified entries)
_KIND_LAYOUT = {
    "tables": (_table_entry, ("name",)),
    "columns": (_column_entry, ("table", "column")),
    "indexes": (_index_entry, ("table", "index")),
    "constraints": (_constraint_entry, ("table", "constraint")),
    "sequences": (_sequence_entry, ("name",)),
}


def _modified_entry(diff: EntityDiff, identity_fields: tuple[str, ...]) -> dict[str, Any]:
    entry: dict[str, Any] = dict(zip(identity_fields, diff.identity))
    entry["differences"] = [
        field.model_dump(
            mode="json",
            exclude={key for key in ("risk", "compatibility") if getattr(field, key) is None},
        )
        for field in diff.field_diffs
    ]
    return entry


def _differences_document(differences: DifferenceSet) -> dict[str, Any]:
    document = {}
    for kind, kind_diff in differences.kinds().items():
        entry_builder, identity_fields = _KIND_LAYOUT[kind]
        document[kind] = {
            "missing_in_target": [
                entry_builder(entity, "missing") for entity in kind_diff.missing_in_target
            ],
            "missing_in_source": [
                entry_builder(entity, "extra") for entity in kind_diff.missing_in_source
            ],
            "modified": [_modified_entry(d, identity_fields) for d in kind_diff.modified],
        }
    return document


def _snapshot_metadata(snapshot: SchemaSnapshot) -> dict[str, Any]:
    return {
        "database": snapshot.database,
        "environment": snapshot.environment,
        "extracted_at": snapshot.extracted_at,
    }


def build_report(
    source: SchemaSnapshot,
    target: SchemaSnapshot,
    differences: DifferenceSet,
    summary: Summary,
    recommendations: list[Recommendation],
    compared_at: datetime | None = None,
) -> dict[str, Any]:
    """Assemble the difference report document.

    Recommendation ``affected`` lists are published as ``details``.

    Returns:
        JSON-serializable dict with ``metadata``, ``differences``,
        ``summary`` and ``recommendations``
    """
    compared_at = compared_at or datetime.now(timezone.utc)
    return {
        "metadata": {
            "source": _snapshot_metadata(source),
            "target": _snapshot_metadata(target),
            "compared_at": compared_at.isoformat(),
            "compared_by": COMPARED_BY,
            "version": __version__,
        },
        "differences": _differences_document(differences),
        "summary": summary.model_dump(mode="json"),
        "recommendations": [
            {
                "priority": rec.priority.value,
                "category": rec.category,
                "action": rec.action,
                "details": list(rec.affected),
                "safety": rec.safety.value,
                "description": rec.description,
            }
            for rec in recommendations
        ],
    }


# ============================================================================
# Export
# ============================================================================


def report_filename(report: dict[str, Any], extension: str, timestamp: datetime | None = None) -> str:
    """``schema-comparison-<source_env>-vs-<target_env>-<timestamp>.<ext>``."""
    stamp = (timestamp or datetime.now()).strftime(TIMESTAMP_FORMAT)
    source_env = report["metadata"]["source"]["environment"] or "source"
    target_env = report["metadata"]["target"]["environment"] or "target"
    return f"schema-comparison-{source_env}-vs-{target_env}-{stamp}.{extension}"


def export_json(
    report: dict[str, Any], output_dir: str | Path, timestamp: datetime | None = None
) -> Path:
    """Write *report* as indented JSON and return the file path."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report_filename(report, "json", timestamp)
    path.write_text(json.dumps(report, indent=2), encoding="utf-8")
    return path


_HTML_STYLE = """
        body { font-family: Arial, sans-serif; margin: 20px; }
        .header { background: #f5f5f5; padding: 15px; border-radius: 5px; }
        .summary { background: #e8f5e9; padding: 15px; border-radius: 5px; margin: 20px 0; }
        .critical { background: #ffebee; border-left: 4px solid #f44336; padding: 15px; margin: 10px 0; }
        .warning { background: #fff3e0; border-left: 4px solid #ff9800; padding: 15px; margin: 10px 0; }
        .safe { background: #e8f5e9; border-left: 4px solid #4caf50; padding: 15px; margin: 10px 0; }
        table { width: 100%; border-collapse: collapse; margin: 20px 0; }
        th, td { border: 1px solid #ddd; padding: 8px; text-align: left; }
        th { background-color: #f2f2f2; }
        .diff-section { margin: 30px 0; }
        .diff-count { font-weight: bold; color: #d32f2f; }
"""


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def _html_table(headers: list[str], rows: list[list[Any]], empty_message: str) -> str:
    if not rows:
        return f"<p>{_e(empty_message)}</p>"
    head = "".join(f"<th>{_e(h)}</th>" for h in headers)
    body = "".join(
        "<tr>" + "".join(f"<td>{_e(cell)}</td>" for cell in row) + "</tr>" for row in rows
    )
    return f"<table><tr>{head}</tr>{body}</table>"


def render_html(report: dict[str, Any]) -> str:
    """Render *report* as a standalone HTML page; every value is escaped."""
    metadata = report["metadata"]
    summary = report["summary"]
    differences = report["differences"]

    parts = [
        "<!DOCTYPE html>",
        "<html>",
        "<head>",
        "    <title>Schema Comparison Report</title>",
        f"    <style>{_HTML_STYLE}    </style>",
        "</head>",
        "<body>",
        '    <div class="header">',
        "        <h1>Database Schema Comparison Report</h1>",
        f"        <p><strong>Source:</strong> {_e(metadata['source']['database'])} "
        f"({_e(metadata['source']['environment'])})</p>",
        f"        <p><strong>Target:</strong> {_e(metadata['target']['database'])} "
        f"({_e(metadata['target']['environment'])})</p>",
        f"        <p><strong>Compared:</strong> {_e(metadata['compared_at'])}</p>",
        "    </div>",
        '    <div class="summary">',
        "        <h2>Summary</h2>",
        f'        <p><strong>Total Differences:</strong> <span class="diff-count">'
        f"{_e(summary['total_differences'])}</span></p>",
        f'        <p><strong>Critical Issues:</strong> <span class="diff-count">'
        f"{_e(summary['critical_differences'])}</span></p>",
        f"        <p><strong>Safe to Sync:</strong> "
        f"{'Yes' if summary['safe_to_sync'] else 'No'}</p>",
        "    </div>",
    ]

    if summary["requires_manual_review"]:
        items = "".join(f"<li>{_e(line)}</li>" for line in summary["requires_manual_review"])
        parts.append(
            f'    <div class="critical"><h3>Requires Manual Review</h3><ul>{items}</ul></div>'
        )

    parts.append('    <div class="diff-section">')
    parts.append("        <h2>Recommendations</h2>")
    for rec in report["recommendations"]:
        css = "safe" if rec["safety"] == "SAFE" else "warning"
        details = "".join(f"<li>{_e(d)}</li>" for d in rec["details"])
        parts.append(
            f'        <div class="{css}">'
            f"<h4>{_e(rec['action'])} ({_e(rec['priority'])})</h4>"
            f"<p><strong>Category:</strong> {_e(rec['category'])}</p>"
            f"<p><strong>Safety:</strong> {_e(rec['safety'])}</p>"
            f"<p>{_e(rec['description'])}</p>"
            f"<ul>{details}</ul></div>"
        )
    parts.append("    </div>")

    parts.append('    <div class="diff-section">')
    parts.append("        <h2>Missing Tables in Target</h2>")
    parts.append(
        "        "
        + _html_table(
            ["Table Name", "Columns", "Size"],
            [
                [t["name"], t["columns"], t["size"]]
                for t in differences["tables"]["missing_in_target"]
            ],
            "No missing tables found.",
        )
    )
    parts.append("    </div>")

    parts.append('    <div class="diff-section">')
    parts.append("        <h2>Missing Columns in Target</h2>")
    parts.append(
        "        "
        + _html_table(
            ["Table", "Column", "Data Type", "Nullable", "Default"],
            [
                [c["table"], c["column"], c["data_type"], c["is_nullable"], c["default_value"] or "None"]
                for c in differences["columns"]["missing_in_target"]
            ],
            "No missing columns found.",
        )
    )
    parts.append("    </div>")

    parts.append("</body>")
    parts.append("</html>")
    return "\n".join(parts) + "\n"


def export_html(
    report: dict[str, Any], output_dir: str | Path, timestamp: datetime | None = None
) -> Path:
    """Write *report* as an HTML page and return the file path."""
    directory = Path(output_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / report_filename(report, "html", timestamp)
    path.write_text(render_html(report), encoding="utf-8")
    return path
