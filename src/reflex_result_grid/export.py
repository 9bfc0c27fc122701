"""Export/serialization of grid rows into text formats.

Every exporter takes rows (cells addressed by *position* in the column
list) plus the column descriptors and returns a single string; nothing
here touches the filesystem or the clipboard.

Formats and their escaping rules:

* ``csv``: a field is quoted (with embedded quotes doubled) only when it
  contains a comma, quote, CR or LF.
* ``tsv`` / ``clipboard``: tabs inside values become spaces.
* ``json``: array of objects keyed by column name.
* ``insert``: one ``INSERT INTO [table] (...) VALUES (...);`` per row,
  literals typed by the column's declared SQL type.
* ``markdown``: pipes escaped, newlines turned into ``<br>``.
* ``xml`` / ``html``: the five standard entities escaped.
"""

import json
import math
import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any

from reflex_result_grid.exceptions import ExportFormatError
from reflex_result_grid.models import ColumnDescriptor
from reflex_result_grid.pipeline import to_text
from reflex_result_grid.sql import format_typed_literal, quote_identifier


class ExportFormat(str, Enum):
    CSV = "csv"
    TSV = "tsv"
    JSON = "json"
    INSERT = "insert"
    MARKDOWN = "markdown"
    XML = "xml"
    HTML = "html"
    CLIPBOARD = "clipboard"


# format -> (file extension, MIME type)
_FORMAT_INFO: dict[ExportFormat, tuple[str, str]] = {
    ExportFormat.CSV: ("csv", "text/csv"),
    ExportFormat.TSV: ("tsv", "text/tab-separated-values"),
    ExportFormat.JSON: ("json", "application/json"),
    ExportFormat.INSERT: ("sql", "text/plain"),
    ExportFormat.MARKDOWN: ("md", "text/markdown"),
    ExportFormat.XML: ("xml", "application/xml"),
    ExportFormat.HTML: ("html", "text/html"),
    ExportFormat.CLIPBOARD: ("txt", "text/plain"),
}


def parse_format(name: "str | ExportFormat") -> ExportFormat:
    """Resolve a format name (case-insensitive).

    Raises:
        ExportFormatError: If *name* is not a supported format.
    """
    if isinstance(name, ExportFormat):
        return name
    try:
        return ExportFormat(str(name).strip().lower())
    except ValueError:
        raise ExportFormatError(str(name)) from None


def format_info(fmt: "str | ExportFormat") -> tuple[str, str]:
    """Return ``(extension, mime_type)`` for a format."""
    return _FORMAT_INFO[parse_format(fmt)]


@dataclass(frozen=True)
class ExportOptions:
    format: ExportFormat = ExportFormat.CSV
    include_headers: bool = True
    table_name: str = "TableName"


# ---------------------------------------------------------------------------
# Escaping helpers
# ---------------------------------------------------------------------------

def escape_csv(text: str) -> str:
    if any(ch in text for ch in (",", '"', "\n", "\r")):
        return '"' + text.replace('"', '""') + '"'
    return text


def escape_markup(value: Any) -> str:
    """Five-entity escape shared by XML and HTML output."""
    return (
        to_text(value)
        .replace("&", "&amp;")
        .replace("<", "&lt;")
        .replace(">", "&gt;")
        .replace('"', "&quot;")
        .replace("'", "&#39;")
    )


def escape_markdown(value: Any) -> str:
    return to_text(value).replace("|", "\\|").replace("\n", "<br>")


def sanitize_element_name(name: str) -> str:
    """Turn a column name into a valid XML element name."""
    cleaned = re.sub(r"[^a-zA-Z0-9_-]", "_", str(name))
    if not re.match(r"[a-zA-Z_]", cleaned):
        cleaned = "_" + cleaned
    return cleaned


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    return str(value)


def _cell(row: Sequence[Any], i: int) -> Any:
    return row[i] if i < len(row) else None


def _json_cell(value: Any) -> Any:
    """NaN and infinities have no JSON spelling; they export as null."""
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, Decimal) and not value.is_finite():
        return None
    return value


# ---------------------------------------------------------------------------
# Serializers
# ---------------------------------------------------------------------------

def to_csv(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor], include_headers: bool = True) -> str:
    lines: list[str] = []
    if include_headers:
        lines.append(",".join(escape_csv(c.name) for c in columns))
    for row in rows:
        lines.append(",".join(escape_csv(to_text(_cell(row, i))) for i in range(len(columns))))
    return "\n".join(lines)


def to_tsv(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor], include_headers: bool = True) -> str:
    lines: list[str] = []
    if include_headers:
        lines.append("\t".join(c.name for c in columns))
    for row in rows:
        lines.append("\t".join(to_text(_cell(row, i)).replace("\t", " ") for i in range(len(columns))))
    return "\n".join(lines)


def to_json(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor]) -> str:
    objects = [{col.name: _json_cell(_cell(row, i)) for i, col in enumerate(columns)} for row in rows]
    return json.dumps(objects, indent=2, ensure_ascii=False, allow_nan=False, default=_json_default)


def to_insert_statements(
    rows: Sequence[Sequence[Any]],
    columns: Sequence[ColumnDescriptor],
    table_name: str = "TableName",
) -> str:
    column_list = ", ".join(quote_identifier(c.name) for c in columns)
    table = quote_identifier(table_name)
    statements = []
    for row in rows:
        values = ", ".join(format_typed_literal(_cell(row, i), col.declared_type) for i, col in enumerate(columns))
        statements.append(f"INSERT INTO {table} ({column_list}) VALUES ({values});")
    return "\n".join(statements)


def to_markdown(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor]) -> str:
    """Markdown table; a table always carries its header row."""
    header = "| " + " | ".join(c.name for c in columns) + " |"
    separator = "| " + " | ".join("---" for _ in columns) + " |"
    body = ["| " + " | ".join(escape_markdown(_cell(row, i)) for i in range(len(columns))) + " |" for row in rows]
    return "\n".join([header, separator, *body])


def to_xml(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor]) -> str:
    names = [sanitize_element_name(c.name) for c in columns]
    parts = ['<?xml version="1.0" encoding="UTF-8"?>\n<results>\n']
    for row in rows:
        parts.append("  <row>\n")
        for i, name in enumerate(names):
            parts.append(f"    <{name}>{escape_markup(_cell(row, i))}</{name}>\n")
        parts.append("  </row>\n")
    parts.append("</results>")
    return "".join(parts)


_HTML_HEAD = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>Query Results</title>
    <style>
        body {
            font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
            margin: 20px;
            background-color: #f5f5f5;
        }
        .container {
            background-color: white;
            padding: 20px;
            border-radius: 8px;
            box-shadow: 0 2px 10px rgba(0,0,0,0.1);
        }
        h1 {
            color: #333;
            margin-bottom: 20px;
            font-size: 24px;
        }
        table {
            width: 100%;
            border-collapse: collapse;
            margin-top: 10px;
        }
        th, td {
            border: 1px solid #ddd;
            padding: 12px 8px;
            text-align: left;
        }
        th {
            background-color: #f8f9fa;
            font-weight: 600;
            color: #495057;
        }
        tr:nth-child(even) {
            background-color: #f8f9fa;
        }
        tr:hover {
            background-color: #e9ecef;
        }
        .stats {
            margin-top: 15px;
            color: #6c757d;
            font-size: 14px;
        }
    </style>
</head>
<body>
    <div class="container">
        <h1>Query Results</h1>
        <table>
            <thead>
                <tr>
"""

_HTML_TAIL = """            </tbody>
        </table>
        <div class="stats">
            <strong>Total rows:</strong> {rows} | <strong>Columns:</strong> {columns}
        </div>
    </div>
</body>
</html>"""


def to_html(rows: Sequence[Sequence[Any]], columns: Sequence[ColumnDescriptor]) -> str:
    """Standalone styled HTML document with a row/column count footer."""
    parts = [_HTML_HEAD]
    for col in columns:
        parts.append(f"                    <th>{escape_markup(col.name)}</th>\n")
    parts.append("                </tr>\n            </thead>\n            <tbody>\n")
    for row in rows:
        parts.append("                <tr>\n")
        for i in range(len(columns)):
            parts.append(f"                    <td>{escape_markup(_cell(row, i))}</td>\n")
        parts.append("                </tr>\n")
    parts.append(_HTML_TAIL.format(rows=len(rows), columns=len(columns)))
    return "".join(parts)


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def export_data(
    rows: Sequence[Sequence[Any]],
    columns: Sequence[ColumnDescriptor],
    options: ExportOptions | None = None,
) -> str:
    """Serialize *rows* in the format named by *options*.

    Args:
        rows: Rows to export; cell ``i`` belongs to ``columns[i]``.
        columns: Column descriptors (names, declared types) in output order.
        options: Format, header flag and INSERT table name.  Headers only
            apply to CSV, TSV and clipboard output.

    Returns:
        The serialized text.
    """
    options = options or ExportOptions()
    fmt = parse_format(options.format)

    if fmt is ExportFormat.CSV:
        return to_csv(rows, columns, options.include_headers)
    if fmt in (ExportFormat.TSV, ExportFormat.CLIPBOARD):
        return to_tsv(rows, columns, options.include_headers)
    if fmt is ExportFormat.JSON:
        return to_json(rows, columns)
    if fmt is ExportFormat.INSERT:
        return to_insert_statements(rows, columns, options.table_name or "TableName")
    if fmt is ExportFormat.MARKDOWN:
        return to_markdown(rows, columns)
    if fmt is ExportFormat.XML:
        return to_xml(rows, columns)
    return to_html(rows, columns)


def extract_selected_data(
    rows: Sequence[Sequence[Any]],
    columns: Sequence[ColumnDescriptor],
    row_indices: Sequence[int],
    column_indices: Sequence[int] | None = None,
) -> tuple[list[tuple[Any, ...]], list[ColumnDescriptor]]:
    """Subset rows and columns by index lists.

    An empty ``row_indices`` keeps every row; an empty or missing
    ``column_indices`` keeps every column.  Out-of-range indices are
    dropped.  Rows follow ``row_indices`` order and columns follow
    ``column_indices`` order.
    """
    data = [tuple(rows[i]) for i in row_indices if 0 <= i < len(rows)] if row_indices else [tuple(r) for r in rows]

    if not column_indices:
        return data, list(columns)

    picked = [i for i in column_indices if 0 <= i < len(columns)]
    return (
        [tuple(_cell(row, i) for i in picked) for row in data],
        [columns[i] for i in picked],
    )


def export_filename(result_set_index: int, fmt: "str | ExportFormat", day: date | None = None) -> str:
    """``export_<resultSetIndex>_<YYYY-MM-DD>.<extension>``"""
    extension, _ = format_info(fmt)
    day = day or date.today()
    return f"export_{result_set_index}_{day.isoformat()}.{extension}"
