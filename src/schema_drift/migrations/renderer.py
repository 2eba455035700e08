"""Serialize migration artifacts into file contents.

Defines the ``MigrationRenderer`` Protocol and two implementations:

- ``JsonRenderer`` (``.json``): a data document with ``up``/``down`` lists
- ``SequelizeRenderer`` (``.js``): a sequelize-cli migration module using
  the ``queryInterface`` vocabulary

Every string written into generated JavaScript goes through ``json.dumps``,
so names and values arrive escaped.

Usage:
    from schema_drift.migrations.renderer import get_renderer

    renderer = get_renderer("sequelize")
    content = renderer.render(artifact)
"""

import json
from typing import Protocol

from schema_drift.migrations.operations import (
    AddColumn,
    AddIndex,
    ColumnSpec,
    ColumnType,
    CreateTable,
    DefaultValue,
    DropColumn,
    DropTable,
    MigrationArtifact,
    Operation,
    RemoveIndex,
)


class MigrationRenderer(Protocol):
    """Renderer interface used by ``MigrationGenerator``."""

    extension: str

    def render(self, artifact: MigrationArtifact) -> str:
        """Return the full file content for *artifact*."""
        ...


class JsonRenderer:
    """Render artifacts as ``{sequence_number, description, up, down}`` JSON."""

    extension = "json"

    def render(self, artifact: MigrationArtifact) -> str:
        document = {
            "sequence_number": artifact.sequence_number,
            "description": artifact.description,
            "up": [op.model_dump(mode="json") for op in artifact.forward_ops],
            "down": [op.model_dump(mode="json") for op in artifact.rollback_ops],
        }
        return json.dumps(document, indent=2) + "\n"


# abstract type -> DataTypes member, where the names differ
_SEQUELIZE_TYPES = {
    "DATE_ONLY": "DATEONLY",
    "DATETIME": "DATE",
}

_SEQUELIZE_SENTINELS = {
    "GENERATE_UUID": "DataTypes.UUIDV4",
    "NOW": "DataTypes.NOW",
}


def _js_comment(text: str) -> str:
    return "/* " + text.replace("*/", "* /") + " */"


class SequelizeRenderer:
    """Render artifacts as sequelize-cli migration modules."""

    extension = "js"

    def render(self, artifact: MigrationArtifact) -> str:
        lines = [
            "'use strict';",
            "",
            "/** @type {import('sequelize-cli').Migration} */",
            "module.exports = {",
            "  async up(queryInterface, Sequelize) {",
            "    const { DataTypes } = Sequelize;",
            "",
        ]
        for op in artifact.forward_ops:
            lines.extend(self._render_op(op))
        lines.append("  },")
        lines.append("")
        lines.append("  async down(queryInterface, Sequelize) {")
        for op in artifact.rollback_ops:
            lines.extend(self._render_op(op))
        lines.append("  }")
        lines.append("};")
        return "\n".join(lines) + "\n"

    def _render_op(self, op: Operation) -> list[str]:
        table = json.dumps(op.table)

        if isinstance(op, CreateTable):
            lines = [f"    await queryInterface.createTable({table}, {{"]
            for column in op.columns:
                lines.append(f"      {json.dumps(column.name)}: {{")
                lines.extend(f"        {attr}" for attr in self._column_attributes(column))
                lines.append("      },")
            lines.append("    });")
            lines.append("")
            return lines

        if isinstance(op, DropTable):
            return [f"    await queryInterface.dropTable({table});"]

        if isinstance(op, AddColumn):
            column = json.dumps(op.column.name)
            lines = [f"    await queryInterface.addColumn({table}, {column}, {{"]
            lines.extend(f"      {attr}" for attr in self._column_attributes(op.column))
            lines.append("    });")
            return lines

        if isinstance(op, DropColumn):
            return [f"    await queryInterface.removeColumn({table}, {json.dumps(op.column)});"]

        if isinstance(op, AddIndex):
            return [
                f"    await queryInterface.addIndex({table}, {{",
                f"      fields: {json.dumps(op.fields)},",
                f"      unique: {json.dumps(op.unique)},",
                f"      name: {json.dumps(op.name)},",
                "    });",
            ]

        if isinstance(op, RemoveIndex):
            return [f"    await queryInterface.removeIndex({table}, {json.dumps(op.name)});"]

        raise TypeError(f"Unsupported operation: {type(op).__name__}")

    def _column_attributes(self, column: ColumnSpec) -> list[str]:
        attrs = [f"type: {self._type(column.type)},"]
        if not column.allow_null:
            attrs.append("allowNull: false,")
        if column.primary_key:
            attrs.append("primaryKey: true,")
        if column.auto_increment:
            attrs.append("autoIncrement: true,")
        if column.default is not None:
            attrs.append(f"defaultValue: {self._default(column.default)},")
        if column.references is not None:
            attrs.append(
                f"references: {{ model: {json.dumps(column.references.table)}, "
                f"key: {json.dumps(column.references.column)} }},"
            )
        return attrs

    def _type(self, column_type: ColumnType) -> str:
        name = _SEQUELIZE_TYPES.get(column_type.name, column_type.name)
        if column_type.name == "ENUM":
            return f"DataTypes.ENUM({_js_comment(column_type.note or 'define enum values')})"
        rendered = f"DataTypes.{name}"
        if column_type.args:
            rendered += "(" + ", ".join(str(arg) for arg in column_type.args) + ")"
        if column_type.note:
            rendered += " " + _js_comment(column_type.note)
        return rendered

    def _default(self, default: DefaultValue) -> str:
        if default.kind == "sentinel":
            return _SEQUELIZE_SENTINELS[default.value]
        if default.kind == "raw":
            rendered = f"Sequelize.literal({json.dumps(default.value)})"
            return rendered + " " + _js_comment(default.note or "review this default")
        return json.dumps(default.value)


RENDERERS: dict[str, type] = {
    "json": JsonRenderer,
    "sequelize": SequelizeRenderer,
}


def get_renderer(name: str = "json") -> MigrationRenderer:
    """Return a renderer by format name.

    Raises:
        ValueError: If *name* is not a known format
    """
    if name not in RENDERERS:
        raise ValueError(
            f"Unknown migration format '{name}'. Available: {', '.join(RENDERERS)}"
        )
    return RENDERERS[name]()
