"""SQL literal and identifier formatting (T-SQL bracket quoting).

Used by the pending-change ledger (UPDATE/DELETE) and by the INSERT
export format.
"""

import math
import re
from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

_NUMERIC_TYPES = frozenset(
    {
        "int", "integer", "bigint", "smallint", "tinyint", "decimal", "numeric",
        "float", "real", "double", "money", "smallmoney",
    }
)
_BOOLEAN_TYPES = frozenset({"bit", "bool", "boolean"})
_TEMPORAL_TYPES = frozenset(
    {"date", "datetime", "datetime2", "smalldatetime", "datetimeoffset", "time", "timestamp"}
)
_BINARY_TYPES = frozenset({"binary", "varbinary", "image"})


def quote_identifier(name: str) -> str:
    """Bracket-quote a table or column name (``]`` is doubled)."""
    return "[" + str(name).replace("]", "]]") + "]"


def quote_string(text: str, *, national: bool = False) -> str:
    """Single-quote *text*, doubling embedded quotes; ``N'...'`` when *national*."""
    escaped = text.replace("'", "''")
    return f"N'{escaped}'" if national else f"'{escaped}'"


def format_sql_literal(value: Any) -> str:
    """Format a Python value as a SQL literal.

    * ``None`` (and float ``nan``) -> ``NULL``
    * ``bool`` -> ``1`` / ``0``
    * numbers -> unquoted
    * dates/times -> quoted ISO-8601
    * ``bytes`` -> ``0x`` hex
    * anything else -> quoted string with embedded quotes doubled
    """
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "1" if value else "0"
    if isinstance(value, float):
        return "NULL" if math.isnan(value) else repr(value)
    if isinstance(value, (int, Decimal)):
        return str(value)
    if isinstance(value, (datetime, date, time)):
        return quote_string(value.isoformat())
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return quote_string(str(value))


def base_type(declared_type: str) -> str:
    """Lower-cased type name without its length/precision suffix.

    ``"NVARCHAR(50)"`` -> ``"nvarchar"``, ``"decimal(10, 2)"`` -> ``"decimal"``.
    """
    return re.sub(r"\s*\(.*\)\s*$", "", declared_type or "").strip().lower()


def format_typed_literal(value: Any, declared_type: str) -> str:
    """Format *value* for an INSERT using the column's declared SQL type.

    Known numeric types stay unquoted, ``bit`` becomes ``1``/``0``,
    temporal types are quoted, binary types become ``0x`` hex and
    ``n``-prefixed (nvarchar-family) types get an ``N'...'`` literal.
    Unknown or empty types fall back to :func:`format_sql_literal`.
    """
    if value is None:
        return "NULL"

    kind = base_type(declared_type)

    if kind in _NUMERIC_TYPES:
        if isinstance(value, bool):
            return "1" if value else "0"
        return format_sql_literal(value) if isinstance(value, (int, float, Decimal)) else str(value)
    if kind in _BOOLEAN_TYPES or isinstance(value, bool):
        return "1" if value else "0"
    if kind in _TEMPORAL_TYPES:
        text = value.isoformat() if isinstance(value, (datetime, date, time)) else str(value)
        return quote_string(text)
    if kind in _BINARY_TYPES:
        raw = bytes(value) if isinstance(value, (bytes, bytearray)) else str(value).encode("utf-8")
        return "0x" + raw.hex()
    if kind.startswith("n"):
        return quote_string(_text(value), national=True)
    if kind:
        return quote_string(_text(value))
    return format_sql_literal(value)


def _text(value: Any) -> str:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)
