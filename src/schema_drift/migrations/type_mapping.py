"""Map PostgreSQL column types and defaults to portable migration values.

Nothing in here raises: an unmapped type or an unrecognised default
degrades to a placeholder carrying a ``note`` for the reviewer.

Usage:
    from schema_drift.migrations.type_mapping import map_column_type, translate_default

    map_column_type(column)          # ColumnType(name="STRING", args=[255])
    translate_default("now()")       # DefaultValue(kind="sentinel", value="NOW")
"""

import re

from schema_drift.migrations.operations import ColumnType, DefaultValue
from schema_drift.schema.models import ColumnSchema

# raw engine type -> abstract type, for types without parameters
TYPE_MAP: dict[str, str] = {
    "uuid": "UUID",
    "text": "TEXT",
    "integer": "INTEGER",
    "bigint": "BIGINT",
    "smallint": "SMALLINT",
    "real": "FLOAT",
    "double precision": "DOUBLE",
    "boolean": "BOOLEAN",
    "date": "DATE_ONLY",
    "time": "TIME",
    "time without time zone": "TIME",
    "time with time zone": "TIME",
    "json": "JSON",
    "jsonb": "JSONB",
    "array": "ARRAY",
    "bytea": "BLOB",
}

_STRING_TYPES = frozenset({"character varying", "varchar"})
_DECIMAL_TYPES = frozenset({"numeric", "decimal"})

_PARAMETERIZED = re.compile(r"^(?P<base>[a-z][a-z ]*?)\s*\((?P<params>[\d\s,]+)\)$")

ENUM_NOTE = "define enum values"
UUID_SENTINEL = "GENERATE_UUID"
NOW_SENTINEL = "NOW"

_UUID_DEFAULTS = ("gen_random_uuid()", "uuid_generate_v4()")
_NOW_DEFAULTS = ("now()", "current_timestamp")
_QUOTED_LITERAL = re.compile(r"^'((?:[^']|'')*)'(?:::[\w\s\"\[\].]+)?$")
_INTEGER_LITERAL = re.compile(r"^-?\d+$")
_DECIMAL_LITERAL = re.compile(r"^-?\d+\.\d+$")
_CAST_SUFFIX = re.compile(r"^\((.+)\)::[\w\s]+$")


def _split(data_type: str) -> tuple[str, list[int]]:
    normalized = " ".join(data_type.strip().lower().split())
    match = _PARAMETERIZED.match(normalized)
    if match is None:
        return normalized, []
    params = [int(p) for p in match.group("params").split(",") if p.strip()]
    return match.group("base"), params


def _is_enum_like(data_type: str) -> bool:
    return "enum" in data_type.lower() or data_type.upper() == "USER-DEFINED"


def _is_array(data_type: str) -> bool:
    return data_type.lower() == "array" or data_type.endswith("[]") or data_type.startswith("_")


def map_column_type(column: ColumnSchema) -> ColumnType:
    """Map *column*'s engine type to an abstract ``ColumnType``.

    Lengths and precision come from the column's own fields first, then
    from parameters written into the type name (``varchar(50)``,
    ``numeric(12,2)``).
    """
    base, params = _split(column.data_type)

    if base in _STRING_TYPES:
        length = column.char_max_length or (params[0] if params else None)
        return ColumnType(name="STRING", args=[length] if length else [])

    if base in _DECIMAL_TYPES:
        precision = column.numeric_precision or (params[0] if params else None)
        scale = column.numeric_scale
        if scale is None and len(params) > 1:
            scale = params[1]
        if not precision:
            return ColumnType(name="DECIMAL")
        return ColumnType(name="DECIMAL", args=[precision, scale] if scale else [precision])

    if base.startswith("timestamp"):
        return ColumnType(name="DATETIME")

    if base in TYPE_MAP:
        return ColumnType(name=TYPE_MAP[base])

    if _is_array(column.data_type):
        return ColumnType(name="ARRAY")

    if _is_enum_like(column.data_type):
        return ColumnType(name="ENUM", note=ENUM_NOTE)

    return ColumnType(name="STRING", note=f"unknown type: {column.data_type}, review")


def is_auto_increment(default_expr: str | None) -> bool:
    """Serial columns default to ``nextval('..._seq'::regclass)``."""
    return bool(default_expr) and default_expr.strip().lower().startswith("nextval(")


def translate_default(default_expr: str | None) -> DefaultValue | None:
    """Translate a raw column default into a portable ``DefaultValue``.

    Returns None when the column has no default.

    Examples:
        >>> translate_default("gen_random_uuid()").value
        'GENERATE_UUID'
        >>> translate_default("'draft'::character varying").value
        'draft'
        >>> translate_default("false").value
        False
    """
    if default_expr is None:
        return None

    expr = default_expr.strip()
    lowered = expr.lower()

    if lowered in _UUID_DEFAULTS:
        return DefaultValue(kind="sentinel", value=UUID_SENTINEL)
    if lowered in _NOW_DEFAULTS:
        return DefaultValue(kind="sentinel", value=NOW_SENTINEL)

    quoted = _QUOTED_LITERAL.match(expr)
    if quoted:
        return DefaultValue(kind="literal", value=quoted.group(1).replace("''", "'"))

    # PostgreSQL wraps negative numbers: '(-1)::integer'
    cast = _CAST_SUFFIX.match(expr)
    bare = cast.group(1) if cast else expr

    if _INTEGER_LITERAL.match(bare):
        return DefaultValue(kind="literal", value=int(bare))
    if _DECIMAL_LITERAL.match(bare):
        return DefaultValue(kind="literal", value=float(bare))
    if lowered in ("true", "false"):
        return DefaultValue(kind="literal", value=lowered == "true")

    return DefaultValue(kind="raw", value=expr, note="review this default")
