"""Tests for the filter/sort pipeline.

Tests cover:
- Every filter operator, including null handling
- Degradation for unknown operators, columns and non-numeric values
- Sort ordering, null placement and stability
- Display-order index list
"""

from datetime import date
from decimal import Decimal

import pytest

from reflex_result_grid.pipeline import (
    FilterCondition,
    SortSpec,
    apply_filters,
    apply_sort,
    compare_values,
    display_indices,
    loose_equals,
    matches_filter,
    to_number,
    to_text,
)

ROWS = [[1, "John"], [2, "Jane"], [3, "Bob"]]
COLS = ["id", "name"]


class TestCoercion:
    """Tests for value coercion helpers."""

    def test_to_number(self):
        """Numbers, numeric strings and booleans coerce; the rest is nan."""
        assert to_number(3) == 3.0
        assert to_number(" 4.5 ") == 4.5
        assert to_number(Decimal("2.25")) == 2.25
        assert to_number(True) == 1.0
        assert to_number("abc") != to_number("abc")  # nan
        assert to_number("") != to_number("")
        assert to_number(None) != to_number(None)

    def test_to_text(self):
        """Text forms match what the grid displays."""
        assert to_text(None) == ""
        assert to_text(False) == "false"
        assert to_text(date(2024, 1, 2)) == "2024-01-02"
        assert to_text({"a": 1}) == '{"a":1}'
        assert to_text(b"\x01\xff") == "0x01ff"

    def test_loose_equals(self):
        """Numeric text equals the number; null only equals null."""
        assert loose_equals(1, "1")
        assert loose_equals("abc", "abc")
        assert not loose_equals(None, "")
        assert loose_equals(None, None)
        assert not loose_equals("x", 1)


class TestMatchesFilter:
    """Tests for matches_filter()."""

    @pytest.mark.parametrize(
        ("value", "condition", "expected"),
        [
            ("Johnny", FilterCondition("contains", "OHN"), True),
            ("Jane", FilterCondition("contains", "x"), False),
            ("Jane", FilterCondition("startsWith", "ja"), True),
            ("Jane", FilterCondition("endsWith", "NE"), True),
            ("Jane", FilterCondition("endsWith", "ja"), False),
            (5, FilterCondition("equals", "5"), True),
            (5, FilterCondition("greaterThan", "4"), True),
            (5, FilterCondition("lessThan", 5), False),
            (5, FilterCondition("between", 1, 5), True),
            (6, FilterCondition("between", 1, 5), False),
            (None, FilterCondition("isNull"), True),
            ("", FilterCondition("isNull"), False),
            (0, FilterCondition("isNotNull"), True),
        ],
    )
    def test_operators(self, value, condition, expected):
        """Each operator evaluates as documented."""
        assert matches_filter(value, condition) is expected

    def test_non_numeric_never_matches_numeric_operators(self):
        """Text compared numerically is false, never an error."""
        assert not matches_filter("abc", FilterCondition("greaterThan", 1))
        assert not matches_filter("abc", FilterCondition("lessThan", 1))
        assert not matches_filter(None, FilterCondition("between", 0, 10))

    def test_unknown_operator_passes(self):
        """An unknown operator is a no-op."""
        assert matches_filter("anything", FilterCondition("regex", ".*"))

    def test_from_dict_accepts_ui_payload(self):
        """The UI sends camelCase keys."""
        cond = FilterCondition.from_dict({"type": "between", "value": 1, "valueTo": 9})
        assert cond == FilterCondition("between", 1, 9)


class TestApplyFilters:
    """Tests for apply_filters()."""

    def test_filters_are_conjunctive(self):
        """A row must pass every column filter."""
        filters = {"name": FilterCondition("contains", "j"), "id": FilterCondition("greaterThan", 1)}
        assert apply_filters(ROWS, COLS, filters) == [[2, "Jane"]]

    def test_unknown_column_is_skipped(self):
        """A filter on a missing column keeps every row."""
        assert apply_filters(ROWS, COLS, {"age": FilterCondition("equals", 3)}) == ROWS

    def test_empty_filters_keep_order(self):
        """No filters returns rows in original order."""
        assert apply_filters(ROWS, COLS, {}) == ROWS


class TestSort:
    """Tests for compare_values() and apply_sort()."""

    def test_name_ascending_then_descending(self):
        """Text sorts case-insensitively in both directions."""
        asc = apply_sort(ROWS, COLS, SortSpec("name", "asc"))
        desc = apply_sort(ROWS, COLS, SortSpec("name", "desc"))
        assert [r[1] for r in asc] == ["Bob", "Jane", "John"]
        assert [r[1] for r in desc] == ["John", "Jane", "Bob"]

    def test_nulls_last_in_both_directions(self):
        """Null cells sort after every value, ascending or descending."""
        rows = [[None], [2], [1]]
        assert apply_sort(rows, ["a"], SortSpec("a", "asc")) == [[1], [2], [None]]
        assert apply_sort(rows, ["a"], SortSpec("a", "desc")) == [[2], [1], [None]]

    def test_numbers_compare_numerically(self):
        """10 sorts after 9 for numeric cells."""
        rows = [[10], [9], [Decimal("9.5")]]
        assert apply_sort(rows, ["n"], SortSpec("n")) == [[9], [Decimal("9.5")], [10]]

    def test_sort_is_stable(self):
        """Equal keys keep their original relative order."""
        rows = [[1, "b"], [2, "a"], [3, "b"], [4, "a"]]
        result = apply_sort(rows, ["id", "k"], SortSpec("k"))
        assert [r[0] for r in result] == [2, 4, 1, 3]

    def test_input_is_not_mutated(self):
        """Sorting returns a copy."""
        rows = [list(r) for r in ROWS]
        apply_sort(rows, COLS, SortSpec("name"))
        assert rows == ROWS

    def test_unknown_sort_column_is_skipped(self):
        """Sorting on a missing column leaves the order alone."""
        assert apply_sort(ROWS, COLS, SortSpec("age")) == ROWS

    def test_compare_values(self):
        """Three-way comparison with nulls last."""
        assert compare_values(1, 2) == -1
        assert compare_values(1, 2, "desc") == 1
        assert compare_values(None, 1, "desc") == 1
        assert compare_values(None, None) == 0


class TestDisplayIndices:
    """Tests for display_indices()."""

    def test_filter_then_sort_returns_original_positions(self):
        """Positions refer to the unfiltered, unsorted rows."""
        filters = {"name": FilterCondition("contains", "j")}
        assert display_indices(ROWS, COLS, filters, SortSpec("name")) == [1, 0]

    def test_no_filter_no_sort_is_identity(self):
        """Without a view config the order is the original order."""
        assert display_indices(ROWS, COLS) == [0, 1, 2]
