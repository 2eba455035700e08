"""CLI module for schema drift detection and migration generation.

Provides commands to compare two schema sources, generate migrations for
what the target is missing, snapshot a live profile, and list profiles.

A source is a snapshot file (``*.json`` or any path) or a profile name
from drift.toml.

Usage:
    schema-drift compare development schema-exports/schema_production.json --html
    schema-drift generate development production --format sequelize --dry-run
    schema-drift extract production --output schema-prod.json
    schema-drift profiles

Commands:
    compare   - Compare two sources and export a difference report
    generate  - Write migrations for tables/columns missing in the target
    extract   - Snapshot a live profile to a JSON file
    profiles  - List available profiles
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from schema_drift.config.loader import load_drift_config
from schema_drift.config.models import DriftConfig
from schema_drift.errors import SchemaDriftError
from schema_drift.factory import extract_profile, load_source
from schema_drift.migrations.generator import MigrationGenerator
from schema_drift.migrations.renderer import get_renderer
from schema_drift.report.exporter import build_report, export_html, export_json
from schema_drift.schema.comparator import compare
from schema_drift.schema.models import DifferenceSet, Safety, SchemaSnapshot, Summary
from schema_drift.schema.risk import recommend, summarize
from schema_drift.schema.snapshot import dump_snapshot

console = Console()

logger = logging.getLogger("schema_drift")


# ============================================================================
# Helpers
# ============================================================================


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
        force=True,
    )


def _config_path(args: argparse.Namespace) -> Path | None:
    return Path(args.config) if getattr(args, "config", None) else None


def _load_config_or_defaults(args: argparse.Namespace) -> DriftConfig:
    """drift.toml if present, else defaults (file sources need no config).

    Raises:
        ValueError: If the config file exists but is invalid
    """
    try:
        return load_drift_config(_config_path(args))
    except FileNotFoundError:
        return DriftConfig()


def _print_failure(error: Exception) -> None:
    stage = getattr(error, "stage", "pipeline")
    console.print(f"[bold red]x[/bold red] {stage.capitalize()} failed: {escape(str(error))}")


async def _load_pair(
    args: argparse.Namespace, config: DriftConfig
) -> tuple[SchemaSnapshot, SchemaSnapshot]:
    # profiles need the config; plain files load without it
    source_config = config if config.profiles else None
    source = await load_source(
        args.source, config=source_config, config_path=_config_path(args), logger=logger
    )
    target = await load_source(
        args.target, config=source_config, config_path=_config_path(args), logger=logger
    )
    return source, target


def _print_summary(differences: DifferenceSet, summary: Summary) -> None:
    table = Table(title="Schema Differences", show_header=True, header_style="bold")
    table.add_column("Kind")
    table.add_column("Missing in target", justify="right")
    table.add_column("Missing in source", justify="right")
    table.add_column("Modified", justify="right")

    for kind, kind_diff in differences.kinds().items():
        table.add_row(
            kind,
            str(len(kind_diff.missing_in_target)),
            str(len(kind_diff.missing_in_source)),
            str(len(kind_diff.modified)),
        )

    console.print(table)
    console.print(
        f"\nTotal differences: [bold]{summary.total_differences}[/bold]  "
        f"Critical: [bold]{summary.critical_differences}[/bold]"
    )

    if summary.safe_to_sync:
        console.print("[bold green]v[/bold green] Safe to sync")
    else:
        console.print("[bold red]x[/bold red] Not safe to sync -- requires manual review:")
        for line in summary.requires_manual_review:
            console.print(f"  - {line}", markup=False)


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_compare(args: argparse.Namespace) -> int:
    """Async implementation for compare command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = _load_config_or_defaults(args)
        source, target = await _load_pair(args, config)
        differences = compare(source, target)
    except (SchemaDriftError, ValueError) as e:
        _print_failure(e)
        return 1

    summary = summarize(differences)
    recommendations = recommend(differences)

    console.print(
        f"Compared [bold cyan]{source.environment or args.source}[/bold cyan] "
        f"-> [bold cyan]{target.environment or args.target}[/bold cyan]\n"
    )
    _print_summary(differences, summary)

    if recommendations:
        rec_table = Table(title="Recommendations", show_header=True, header_style="bold")
        rec_table.add_column("Priority")
        rec_table.add_column("Action")
        rec_table.add_column("Safety")
        rec_table.add_column("Affected", justify="right")
        for rec in recommendations:
            safety_style = "green" if rec.safety is Safety.SAFE else "yellow"
            rec_table.add_row(
                rec.priority.value,
                rec.action,
                f"[{safety_style}]{rec.safety.value}[/{safety_style}]",
                str(len(rec.affected)),
            )
        console.print(rec_table)

    report = build_report(source, target, differences, summary, recommendations)
    output_dir = Path(args.output_dir or config.output.reports_dir)

    formats = []
    if args.json:
        formats.append(export_json)
    if args.html:
        formats.append(export_html)
    if not formats:
        formats.append(export_json)

    try:
        for export in formats:
            path = export(report, output_dir)
            console.print(f"[bold green]v[/bold green] Report exported to: {path}")
    except OSError as e:
        console.print(f"[bold red]x[/bold red] Report export failed: {escape(str(e))}")
        return 1

    return 0


async def _async_generate(args: argparse.Namespace) -> int:
    """Async implementation for generate command.

    Returns:
        0 when every artifact was written, 1 on any failure.
    """
    try:
        config = _load_config_or_defaults(args)
        renderer = get_renderer(args.format or config.output.format)
        source, target = await _load_pair(args, config)
        differences = compare(source, target)
    except (SchemaDriftError, ValueError) as e:
        _print_failure(e)
        return 1

    generator = MigrationGenerator(
        args.migrations_dir or config.output.migrations_dir,
        renderer=renderer,
        logger=logger,
    )
    result = generator.generate(
        differences,
        include_indexes=args.include_indexes,
        dry_run=args.dry_run,
    )

    if args.dry_run:
        for artifact, content in zip(result.artifacts, result.rendered):
            console.print(
                f"[bold]# {artifact.sequence_number:03d}_{artifact.description}"
                f".{renderer.extension}[/bold] [dim](dry run)[/dim]"
            )
            console.print(content, markup=False, highlight=False)
    else:
        for path in result.written:
            console.print(f"[bold green]v[/bold green] Migration file created: {path}")

    for error in result.errors:
        console.print(f"[bold red]x[/bold red] Generation failed: {escape(error)}")

    if not result.artifacts and not result.errors:
        console.print("No migrations needed - schemas are synchronized")

    return 0 if result.success else 1


async def _async_extract(args: argparse.Namespace) -> int:
    """Async implementation for extract command.

    Returns:
        0 on success, 1 on failure.
    """
    try:
        config = load_drift_config(_config_path(args))
        snapshot = await extract_profile(args.profile, config, logger=logger)
        path = dump_snapshot(snapshot, args.output)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[bold red]x[/bold red] {escape(str(e))}")
        return 1
    except SchemaDriftError as e:
        _print_failure(e)
        return 1
    except OSError as e:
        console.print(f"[bold red]x[/bold red] Failed to write snapshot: {escape(str(e))}")
        return 1

    console.print(
        f"[bold green]v[/bold green] Extracted {len(snapshot.tables)} tables "
        f"from [bold cyan]{args.profile}[/bold cyan] to {path}"
    )
    return 0


# ============================================================================
# Command wrappers
# ============================================================================


def cmd_compare(args: argparse.Namespace) -> int:
    """Compare two schema sources.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_compare(args))


def cmd_generate(args: argparse.Namespace) -> int:
    """Generate migrations for what the target is missing.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_generate(args))


def cmd_extract(args: argparse.Namespace) -> int:
    """Snapshot a live profile to JSON.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_extract(args))


def cmd_profiles(args: argparse.Namespace) -> int:
    """List available profiles from drift.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if drift.toml is missing or invalid.
    """
    try:
        config = load_drift_config(_config_path(args))
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile")
    table.add_column("Schema")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        table.add_row(f"[bold cyan]{name}[/bold cyan]", profile.schema_name, profile.description)

    console.print(table)
    return 0


# ============================================================================
# Main entry point
# ============================================================================


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, 1 for any failure).
    """
    parser = argparse.ArgumentParser(
        prog="schema-drift",
        description="Detect schema drift between databases and generate migrations",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to drift.toml (default: $SCHEMA_DRIFT_CONFIG or ./drift.toml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Show progress logging",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # compare command
    p_compare = subparsers.add_parser(
        "compare",
        help="Compare two schema sources and export a report",
    )
    p_compare.add_argument("source", help="Source snapshot file or profile")
    p_compare.add_argument("target", help="Target snapshot file or profile")
    p_compare.add_argument("--json", action="store_true", help="Export JSON report (default)")
    p_compare.add_argument("--html", action="store_true", help="Export HTML report")
    p_compare.add_argument(
        "--output-dir",
        default=None,
        help="Report directory (default: [output].reports_dir)",
    )
    p_compare.set_defaults(func=cmd_compare)

    # generate command
    p_generate = subparsers.add_parser(
        "generate",
        help="Generate migrations for tables and columns missing in the target",
    )
    p_generate.add_argument("source", help="Source snapshot file or profile")
    p_generate.add_argument("target", help="Target snapshot file or profile")
    p_generate.add_argument(
        "--migrations-dir",
        default=None,
        help="Migrations directory (default: [output].migrations_dir)",
    )
    p_generate.add_argument(
        "--format",
        choices=["json", "sequelize"],
        default=None,
        help="Migration file format (default: [output].format)",
    )
    p_generate.add_argument(
        "--dry-run",
        action="store_true",
        help="Print migrations without writing files",
    )
    p_generate.add_argument(
        "--include-indexes",
        action="store_true",
        help="Also generate a migration for missing indexes",
    )
    p_generate.set_defaults(func=cmd_generate)

    # extract command
    p_extract = subparsers.add_parser(
        "extract",
        help="Snapshot a live profile to a JSON file",
    )
    p_extract.add_argument("profile", help="Profile name from drift.toml")
    p_extract.add_argument("--output", "-o", required=True, help="Snapshot file to write")
    p_extract.set_defaults(func=cmd_extract)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List available profiles",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
