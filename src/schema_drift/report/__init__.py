"""Comparison report building and JSON/HTML export.

Usage:
    from schema_drift.report import build_report, export_html, export_json
"""

from schema_drift.report.exporter import (
    build_report,
    export_html,
    export_json,
    render_html,
    report_filename,
)

__all__ = ["build_report", "export_json", "export_html", "render_html", "report_filename"]
