"""Pydantic models for drift.toml configuration."""

from typing import Literal

from pydantic import BaseModel, Field


class DatabaseProfile(BaseModel):
    """Database connection profile from drift.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    schema_name: str = "public"


class OutputSettings(BaseModel):
    """Where reports and migrations are written."""

    reports_dir: str = "schema-comparisons"
    migrations_dir: str = "migrations"
    format: Literal["json", "sequelize"] = "json"


class DriftConfig(BaseModel):
    """Complete configuration from drift.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    output: OutputSettings = Field(default_factory=OutputSettings)
