"""View configuration store: filters, sort, column widths and pinning.

This is the third of the grid's reducer stores (next to selection and
the pending-change ledger).  State values are never mutated; every
action produces a new :class:`ViewConfig`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from reflex_result_grid.pipeline import FilterCondition, SortSpec


@dataclass(frozen=True)
class ViewConfig:
    """Filter map, single-column sort and per-column layout overrides."""

    filters: Mapping[str, FilterCondition] = field(default_factory=dict)
    sort: SortSpec | None = None
    column_widths: Mapping[str, int] = field(default_factory=dict)
    pinned: frozenset[str] = frozenset()

    def width_of(self, column: str, default: int) -> int:
        return self.column_widths.get(column, default)


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SetFilter:
    """Set or replace a column filter; ``condition=None`` removes it."""

    column: str
    condition: FilterCondition | None


@dataclass(frozen=True)
class ClearFilters:
    pass


@dataclass(frozen=True)
class ToggleSort:
    """Header click: cycles ``asc -> desc -> unsorted`` for one column."""

    column: str


@dataclass(frozen=True)
class SetSort:
    sort: SortSpec | None


@dataclass(frozen=True)
class ResizeColumn:
    column: str
    width: int


@dataclass(frozen=True)
class TogglePin:
    column: str


ViewAction = SetFilter | ClearFilters | ToggleSort | SetSort | ResizeColumn | TogglePin


def next_sort(current: SortSpec | None, column: str) -> SortSpec | None:
    """Sort after clicking the header of *column*.

    A different column always starts ascending; the same column goes
    ascending -> descending -> unsorted.
    """
    if current is None or current.column != column:
        return SortSpec(column, "asc")
    if current.direction == "asc":
        return SortSpec(column, "desc")
    return None


def reduce_view(state: ViewConfig, action: ViewAction) -> ViewConfig:
    """Apply *action* to *state* and return the new view configuration."""
    if isinstance(action, SetFilter):
        filters = dict(state.filters)
        if action.condition is None:
            if action.column not in filters:
                return state
            del filters[action.column]
        else:
            filters[action.column] = action.condition
        return replace(state, filters=filters)

    if isinstance(action, ClearFilters):
        if not state.filters:
            return state
        return replace(state, filters={})

    if isinstance(action, ToggleSort):
        return replace(state, sort=next_sort(state.sort, action.column))

    if isinstance(action, SetSort):
        return replace(state, sort=action.sort)

    if isinstance(action, ResizeColumn):
        widths = dict(state.column_widths)
        widths[action.column] = max(1, int(action.width))
        return replace(state, column_widths=widths)

    if isinstance(action, TogglePin):
        pinned = set(state.pinned)
        pinned.symmetric_difference_update({action.column})
        return replace(state, pinned=frozenset(pinned))

    return state
