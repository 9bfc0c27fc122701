"""Summary statistics for the aggregation bar under the grid."""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

from reflex_result_grid.pipeline import to_number


@dataclass(frozen=True)
class Aggregation:
    count: int = 0
    numeric_count: int = 0
    sum: float | None = None
    average: float | None = None
    min: float | None = None
    max: float | None = None
    null_count: int = 0

    @property
    def has_numeric(self) -> bool:
        return self.numeric_count > 0


def aggregate_values(values: Iterable[Any]) -> Aggregation:
    """Aggregate selected cell values.

    Every value is counted.  ``None`` values are counted as nulls; values
    that coerce to a number (numeric strings included, booleans excluded)
    feed sum, average, min and max.
    """
    values = list(values)
    numbers: list[float] = []
    null_count = 0

    for value in values:
        if value is None:
            null_count += 1
            continue
        if isinstance(value, bool):
            continue
        num = to_number(value)
        if not math.isnan(num):
            numbers.append(num)

    if not numbers:
        return Aggregation(count=len(values), null_count=null_count)

    total = math.fsum(numbers)
    return Aggregation(
        count=len(values),
        numeric_count=len(numbers),
        sum=total,
        average=total / len(numbers),
        min=min(numbers),
        max=max(numbers),
        null_count=null_count,
    )


def format_number(value: float | None) -> str:
    """Render a statistic: ``-`` for missing, grouped thousands, at most 4 decimals."""
    if value is None:
        return "-"
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.4f}".rstrip("0").rstrip(".")
