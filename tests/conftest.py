"""Shared fixtures for reflex-result-grid tests."""

import pytest

from reflex_result_grid.config import GridSettings, clear_settings
from reflex_result_grid.models import ResultSet


@pytest.fixture(autouse=True)
def _fresh_settings():
    """Drop cached settings so env overrides never leak between tests."""
    clear_settings()
    yield
    clear_settings()


@pytest.fixture
def settings() -> GridSettings:
    return GridSettings()


@pytest.fixture
def users() -> ResultSet:
    """The three-row ``Users`` result set used throughout the grid docs."""
    return ResultSet.from_rows(
        [[1, "John"], [2, "Jane"], [3, "Bob"]],
        ["id", "name"],
        declared_types={"id": "int", "name": "nvarchar(50)"},
        primary_keys=["id"],
    )


@pytest.fixture
def orders() -> ResultSet:
    return ResultSet.from_rows(
        [
            [10, "widget", 2, 4.5, None],
            [11, "gadget", 1, 12.0, "rush"],
            [12, "Widget pro", 5, 30.25, None],
            [13, "doohickey", None, 1.0, "gift"],
        ],
        ["order_id", "product", "qty", "price", "note"],
        index=1,
        declared_types={"order_id": "bigint", "product": "nvarchar", "qty": "int", "price": "decimal(10,2)"},
        primary_keys=["order_id"],
    )
