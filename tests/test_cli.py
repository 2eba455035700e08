"""Tests for the schema-drift CLI.

Commands run against snapshot files in tmp_path; live profiles are
served by a mocked SchemaIntrospector.
"""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from schema_drift.cli import main
from schema_drift.config.loader import CONFIG_ENV_VAR


PROFILES_TOML = """
[profiles.production]
url = "postgresql://localhost/app"
description = "Primary database"
"""


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path: Path, monkeypatch) -> Path:
    """Run every command in an empty directory with no config env var."""
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture
def snapshot_files(tmp_path: Path, rich_snapshot, make_snapshot, make_table, make_column):
    """dev.json has users and donations; prod.json only a thinner users table."""
    dev = tmp_path / "dev.json"
    prod = tmp_path / "prod.json"
    dev.write_text(rich_snapshot.model_dump_json())
    prod.write_text(make_snapshot(
        make_table("users", [make_column("users", "id", "uuid", is_nullable="NO",
                                         is_primary_key=True,
                                         default_expr="gen_random_uuid()")]),
        environment="prod",
    ).model_dump_json())
    return dev, prod


# ============================================================================
# Test: compare
# ============================================================================


class TestCompareCommand:
    """compare exports a report and returns 0."""

    def test_default_json_report(self, tmp_path: Path, snapshot_files, capsys) -> None:
        dev, prod = snapshot_files
        result = main(["compare", str(dev), str(prod), "--output-dir", str(tmp_path / "out")])

        assert result == 0
        reports = list((tmp_path / "out").glob("schema-comparison-dev-vs-prod-*.json"))
        assert len(reports) == 1
        report = json.loads(reports[0].read_text())
        assert [t["name"] for t in report["differences"]["tables"]["missing_in_target"]] == [
            "donations",
        ]
        assert "Report exported to" in capsys.readouterr().out

    def test_json_and_html(self, tmp_path: Path, snapshot_files) -> None:
        dev, prod = snapshot_files
        result = main(["compare", str(dev), str(prod), "--json", "--html"])

        assert result == 0
        # default reports_dir, relative to the working directory
        out = tmp_path / "schema-comparisons"
        assert len(list(out.glob("*.json"))) == 1
        assert len(list(out.glob("*.html"))) == 1

    def test_malformed_snapshot(self, tmp_path: Path, snapshot_files, capsys) -> None:
        dev, _ = snapshot_files
        bad = tmp_path / "bad.json"
        bad.write_text(json.dumps({"tables": {"users": {"name": "users"}}}))

        assert main(["compare", str(dev), str(bad)]) == 1
        assert "Comparison failed" in capsys.readouterr().out
        assert not (tmp_path / "schema-comparisons").exists()

    def test_missing_snapshot(self, tmp_path: Path, snapshot_files, capsys) -> None:
        dev, _ = snapshot_files
        assert main(["compare", str(dev), str(tmp_path / "nope.json")]) == 1
        assert "Extraction failed" in capsys.readouterr().out

    def test_unknown_profile_without_config(self, snapshot_files, capsys) -> None:
        dev, _ = snapshot_files
        assert main(["compare", str(dev), "staging"]) == 1
        assert "Extraction failed" in capsys.readouterr().out


# ============================================================================
# Test: generate
# ============================================================================


class TestGenerateCommand:
    """generate writes migrations for what the target is missing."""

    def test_writes_sequelize_migrations(self, tmp_path: Path, snapshot_files) -> None:
        dev, prod = snapshot_files
        migrations = tmp_path / "migrations"
        result = main([
            "generate", str(dev), str(prod),
            "--migrations-dir", str(migrations),
            "--format", "sequelize",
        ])

        assert result == 0
        files = sorted(p.name for p in migrations.glob("*.js"))
        assert len(files) == 2
        assert files[0].startswith("001_create_missing_tables_")
        assert files[1].startswith("002_add_missing_columns_")
        assert not (migrations / ".schema-drift.lock").exists()

    def test_dry_run(self, tmp_path: Path, snapshot_files, capsys) -> None:
        dev, prod = snapshot_files
        result = main(["generate", str(dev), str(prod), "--dry-run"])

        assert result == 0
        assert not (tmp_path / "migrations").exists()
        out = capsys.readouterr().out
        assert "001_create_missing_tables.json" in out
        assert '"op": "create_table"' in out

    def test_no_differences(self, tmp_path: Path, snapshot_files, capsys) -> None:
        dev, _ = snapshot_files
        assert main(["generate", str(dev), str(dev)]) == 0
        assert "No migrations needed" in capsys.readouterr().out
        assert not (tmp_path / "migrations").exists()

    def test_format_from_config(self, tmp_path: Path, snapshot_files) -> None:
        (tmp_path / "drift.toml").write_text('[output]\nformat = "sequelize"\n')
        dev, prod = snapshot_files
        assert main(["generate", str(dev), str(prod)]) == 0
        assert len(list((tmp_path / "migrations").glob("*.js"))) == 2

    def test_invalid_format_rejected(self, snapshot_files) -> None:
        dev, prod = snapshot_files
        with pytest.raises(SystemExit):
            main(["generate", str(dev), str(prod), "--format", "alembic"])


# ============================================================================
# Test: extract and profiles
# ============================================================================


class TestExtractCommand:
    """extract snapshots a live profile to JSON."""

    def test_extract(self, tmp_path: Path, rich_snapshot) -> None:
        (tmp_path / "drift.toml").write_text(PROFILES_TOML)
        mock = AsyncMock()
        mock.__aenter__ = AsyncMock(return_value=mock)
        mock.__aexit__ = AsyncMock(return_value=None)
        mock.introspect.return_value = rich_snapshot

        output = tmp_path / "exports" / "prod.json"
        with patch("schema_drift.factory.SchemaIntrospector", return_value=mock):
            result = main(["extract", "production", "-o", str(output)])

        assert result == 0
        assert set(json.loads(output.read_text())["tables"]) == {"users", "donations"}

    def test_extract_without_config(self, tmp_path: Path, capsys) -> None:
        assert main(["extract", "production", "-o", str(tmp_path / "x.json")]) == 1
        assert "Drift config not found" in capsys.readouterr().out

    def test_extract_requires_output(self) -> None:
        with pytest.raises(SystemExit):
            main(["extract", "production"])


class TestProfilesCommand:
    """profiles lists drift.toml entries without touching a database."""

    def test_lists_profiles(self, tmp_path: Path, capsys) -> None:
        (tmp_path / "drift.toml").write_text(PROFILES_TOML)
        assert main(["profiles"]) == 0
        out = capsys.readouterr().out
        assert "production" in out
        assert "Primary database" in out

    def test_config_option(self, tmp_path: Path, capsys) -> None:
        custom = tmp_path / "elsewhere.toml"
        custom.write_text(PROFILES_TOML)
        assert main(["--config", str(custom), "profiles"]) == 0
        assert "production" in capsys.readouterr().out

    def test_missing_config(self, capsys) -> None:
        assert main(["profiles"]) == 1
        assert "Drift config not found" in capsys.readouterr().out
