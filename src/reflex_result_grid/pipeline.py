"""Client-side filter -> sort pipeline for result rows.

Rows are filtered first and then sorted, so the sort only pays for the
reduced set.  The result is the *display-order row list* that
virtualization and selection address by position.

Filter map shape (conjunctive across columns)::

    {
        "name": FilterCondition("contains", "jo"),
        "age": FilterCondition("between", 18, value_to=65),
    }

Supported operators:

* ``isNull`` / ``isNotNull``: the cell is (not) ``None``
* ``equals``: loose equality (``1 == "1"``)
* ``contains`` / ``startsWith`` / ``endsWith``: case-insensitive
  substring tests on the text form of the cell
* ``greaterThan`` / ``lessThan`` / ``between``: numeric comparison;
  values that do not coerce to a number never match

Unknown operators and filters on unknown columns are no-ops (the row
passes).  Nothing in this module raises for bad data.
"""

import functools
import json
import locale
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from reflex_result_grid import log

SortDirection = Literal["asc", "desc"]

FILTER_OPERATORS: tuple[str, ...] = (
    "contains",
    "equals",
    "startsWith",
    "endsWith",
    "greaterThan",
    "lessThan",
    "between",
    "isNull",
    "isNotNull",
)


@dataclass(frozen=True)
class FilterCondition:
    """A single column filter: operator plus operand(s)."""

    operator: str
    value: Any = None
    value_to: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FilterCondition":
        """Build from the UI payload ``{"operator"|"type", "value", "valueTo"}``."""
        operator = data.get("operator", data.get("type", ""))
        return cls(
            operator=str(operator),
            value=data.get("value"),
            value_to=data.get("valueTo", data.get("value_to")),
        )


@dataclass(frozen=True)
class SortSpec:
    """Single-column sort.  There is no multi-column sort."""

    column: str
    direction: SortDirection = "asc"


FilterSpec = Mapping[str, FilterCondition]


# ---------------------------------------------------------------------------
# Value coercion
# ---------------------------------------------------------------------------

def is_number(value: Any) -> bool:
    """True for real numeric cells (``bool`` is deliberately excluded)."""
    if isinstance(value, bool):
        return False
    return isinstance(value, (int, float, Decimal))


def to_number(value: Any) -> float:
    """Coerce a cell or operand to a float, ``nan`` when not numeric.

    ``nan`` compares false against everything, so a non-numeric value
    simply never satisfies ``greaterThan``/``lessThan``/``between``.
    """
    if value is None:
        return math.nan
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    if isinstance(value, (int, float, Decimal)):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(Decimal(text))
        except (InvalidOperation, ValueError):
            return math.nan
    return math.nan


def to_text(value: Any) -> str:
    """Text form of a cell, as shown in the grid.

    ``None`` becomes an empty string, booleans ``true``/``false``,
    temporal values ISO-8601 and containers compact JSON.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"), default=str, ensure_ascii=False)
    if isinstance(value, bytes):
        return "0x" + value.hex()
    return str(value)


def loose_equals(value: Any, operand: Any) -> bool:
    """Equality that tolerates the UI sending every operand as text.

    ``None`` only equals ``None``.  When either side is numeric (or a
    boolean) both sides are compared as numbers; otherwise the text
    forms are compared.
    """
    if value is None or operand is None:
        return value is None and operand is None
    if value == operand and type(value) is type(operand):
        return True
    if is_number(value) or is_number(operand) or isinstance(value, bool) or isinstance(operand, bool):
        left, right = to_number(value), to_number(operand)
        return not math.isnan(left) and left == right
    return to_text(value) == to_text(operand)


# ---------------------------------------------------------------------------
# Filtering
# ---------------------------------------------------------------------------

def matches_filter(value: Any, condition: FilterCondition) -> bool:
    """Evaluate one filter condition against one cell value."""
    op = condition.operator

    if op == "isNull":
        return value is None
    if op == "isNotNull":
        return value is not None
    if op == "equals":
        return loose_equals(value, condition.value)
    if op in ("contains", "startsWith", "endsWith"):
        haystack = to_text(value).casefold()
        needle = to_text(condition.value).casefold()
        if op == "contains":
            return needle in haystack
        if op == "startsWith":
            return haystack.startswith(needle)
        return haystack.endswith(needle)
    if op == "greaterThan":
        return to_number(value) > to_number(condition.value)
    if op == "lessThan":
        return to_number(value) < to_number(condition.value)
    if op == "between":
        num = to_number(value)
        return to_number(condition.value) <= num <= to_number(condition.value_to)

    return True


def _active_filters(
    column_names: Sequence[str],
    filters: FilterSpec,
) -> list[tuple[int, FilterCondition]]:
    """Resolve filter column names to ordinals, dropping unusable filters."""
    active: list[tuple[int, FilterCondition]] = []
    for name, condition in filters.items():
        if name not in column_names:
            log.debug(f"Filter on unknown column {name!r} ignored")
            continue
        if condition.operator not in FILTER_OPERATORS:
            log.debug(f"Unknown filter operator {condition.operator!r} on {name!r} ignored")
            continue
        active.append((list(column_names).index(name), condition))
    return active


def filter_indices(
    rows: Sequence[Sequence[Any]],
    column_names: Sequence[str],
    filters: FilterSpec | None,
    indices: Sequence[int] | None = None,
) -> list[int]:
    """Return the positions of *rows* that pass every filter.

    Args:
        rows: Source rows.
        column_names: Column names in ordinal order.
        filters: ``{column: FilterCondition}``; ``None``/empty keeps all rows.
        indices: Optional subset of row positions to consider, in order.
    """
    positions = list(range(len(rows))) if indices is None else list(indices)
    if not filters:
        return positions

    active = _active_filters(column_names, filters)
    if not active:
        return positions

    return [
        i
        for i in positions
        if all(matches_filter(_cell(rows[i], ordinal), cond) for ordinal, cond in active)
    ]


def apply_filters(
    rows: Sequence[Sequence[Any]],
    column_names: Sequence[str],
    filters: FilterSpec | None,
) -> list[Sequence[Any]]:
    """Return the rows that pass every filter, in their original order."""
    return [rows[i] for i in filter_indices(rows, column_names, filters)]


# ---------------------------------------------------------------------------
# Sorting
# ---------------------------------------------------------------------------

def compare_values(a: Any, b: Any, direction: SortDirection = "asc") -> int:
    """Three-way comparison used by the sort.

    ``None`` sorts after every non-null value in *both* directions; the
    direction only flips the comparison between two non-null values.
    Two numbers compare numerically, anything else compares by its
    case-folded, locale-collated text form.
    """
    if a is None and b is None:
        return 0
    if a is None:
        return 1
    if b is None:
        return -1

    if is_number(a) and is_number(b):
        result = (a > b) - (a < b)
    else:
        result = locale.strcoll(to_text(a).casefold(), to_text(b).casefold())
        result = (result > 0) - (result < 0)

    return -result if direction == "desc" else result


def sort_indices(
    rows: Sequence[Sequence[Any]],
    column_names: Sequence[str],
    sort: SortSpec | None,
    indices: Sequence[int] | None = None,
) -> list[int]:
    """Return row positions in sorted order.  The sort is stable."""
    positions = list(range(len(rows))) if indices is None else list(indices)
    if sort is None:
        return positions
    if sort.column not in column_names:
        log.debug(f"Sort on unknown column {sort.column!r} ignored")
        return positions

    ordinal = list(column_names).index(sort.column)
    key = functools.cmp_to_key(
        lambda i, j: compare_values(_cell(rows[i], ordinal), _cell(rows[j], ordinal), sort.direction)
    )
    # ``sorted`` is stable, so equal keys keep their relative order.
    return sorted(positions, key=key)


def apply_sort(
    rows: Sequence[Sequence[Any]],
    column_names: Sequence[str],
    sort: SortSpec | None,
) -> list[Sequence[Any]]:
    """Return a sorted copy of *rows*; the input is never reordered in place."""
    return [rows[i] for i in sort_indices(rows, column_names, sort)]


# ---------------------------------------------------------------------------
# Display order
# ---------------------------------------------------------------------------

def display_indices(
    rows: Sequence[Sequence[Any]],
    column_names: Sequence[str],
    filters: FilterSpec | None = None,
    sort: SortSpec | None = None,
) -> list[int]:
    """Filter then sort, returning original row positions in display order.

    ``display_indices(...)[k]`` is the original (pre-filter/sort) index of
    the row shown at display position ``k``; the pending-change ledger is
    keyed by that original index.
    """
    kept = filter_indices(rows, column_names, filters)
    return sort_indices(rows, column_names, sort, kept)


def _cell(row: Sequence[Any], ordinal: int) -> Any:
    return row[ordinal] if ordinal < len(row) else None
