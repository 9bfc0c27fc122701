"""Selection state machine for rows, columns and cells.

The state is a tagged value: ``kind`` is ``None`` (nothing selected),
``"row"``, ``"column"`` or ``"cell"``, and ``members`` only ever holds
items of that kind.  :func:`reduce_selection` is a pure reducer;
:class:`GridSelection` is a small store wrapping it with the
click-with-modifiers API the rendering layer calls.

Click modes:

* **single** (no modifier): replace the selection with the target.
* **multi** (Ctrl/Meta): toggle the target within a same-kind selection.
* **range** (Shift): replace the selection with the span between the
  anchor and the target (a rectangle for cells).

Clicking a different kind (e.g. a column header while rows are
selected) always behaves as a single click.

Indices are display-order positions and are treated as opaque integers;
only :class:`SelectAllRows` is bounded by a row count.
"""

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from typing import Any, Literal

SelectionKind = Literal["row", "column", "cell"]
SelectionMode = Literal["single", "multi", "range"]


class _Unset:
    """Marker for a cell item whose value was not captured at click time."""

    def __repr__(self) -> str:
        return "<unset>"


UNSET: Any = _Unset()


@dataclass(frozen=True)
class SelectionPoint:
    """An anchor or last-interacted position."""

    row_index: int | None = None
    column_index: int | None = None


@dataclass(frozen=True)
class SelectionItem:
    """One selection member.

    Row items only set ``row_index``, column items only ``column_index``
    and cell items set both (plus the value captured when clicked).
    """

    row_index: int | None = None
    column_index: int | None = None
    cell_value: Any = field(default=UNSET, compare=False)

    @property
    def key(self) -> tuple[int | None, int | None]:
        return (self.row_index, self.column_index)

    @property
    def has_value(self) -> bool:
        return self.cell_value is not UNSET


@dataclass(frozen=True)
class SelectionState:
    kind: SelectionKind | None = None
    members: tuple[SelectionItem, ...] = ()
    anchor: SelectionPoint | None = None
    last_interacted: SelectionPoint | None = None
    _keys: frozenset[tuple[int | None, int | None]] = field(
        default=frozenset(), init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_keys", frozenset(m.key for m in self.members))

    def contains(self, row_index: int | None, column_index: int | None) -> bool:
        return (row_index, column_index) in self._keys

    @property
    def is_empty(self) -> bool:
        return self.kind is None


EMPTY_SELECTION = SelectionState()


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SelectRow:
    row_index: int
    mode: SelectionMode = "single"


@dataclass(frozen=True)
class SelectColumn:
    column_index: int
    mode: SelectionMode = "single"


@dataclass(frozen=True)
class SelectCell:
    row_index: int
    column_index: int
    value: Any = UNSET
    mode: SelectionMode = "single"


@dataclass(frozen=True)
class SelectAllRows:
    row_count: int


@dataclass(frozen=True)
class ClearSelection:
    pass


SelectionAction = SelectRow | SelectColumn | SelectCell | SelectAllRows | ClearSelection


def resolve_mode(ctrl_key: bool = False, shift_key: bool = False, meta_key: bool = False) -> SelectionMode:
    """Shift wins over Ctrl/Meta; no modifier means a single selection."""
    if shift_key:
        return "range"
    if ctrl_key or meta_key:
        return "multi"
    return "single"


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _single(kind: SelectionKind, item: SelectionItem) -> SelectionState:
    point = SelectionPoint(item.row_index, item.column_index)
    return SelectionState(kind=kind, members=(item,), anchor=point, last_interacted=point)


def _toggle(state: SelectionState, kind: SelectionKind, item: SelectionItem) -> SelectionState:
    point = SelectionPoint(item.row_index, item.column_index)
    if state.contains(*item.key):
        remaining = tuple(m for m in state.members if m.key != item.key)
        if not remaining:
            return EMPTY_SELECTION
        return replace(state, members=remaining, last_interacted=point)
    return SelectionState(
        kind=kind,
        members=state.members + (item,),
        anchor=state.anchor or point,
        last_interacted=point,
    )


def _span(a: int, b: int) -> range:
    return range(min(a, b), max(a, b) + 1)


def _range(state: SelectionState, kind: SelectionKind, item: SelectionItem) -> SelectionState | None:
    """Recompute the whole member set from anchor to target, or ``None``.

    ``None`` means there is no usable anchor and the caller falls back
    to a single selection.
    """
    anchor = state.anchor
    if anchor is None:
        return None
    point = SelectionPoint(item.row_index, item.column_index)

    if kind == "row":
        if anchor.row_index is None:
            return None
        members = tuple(SelectionItem(row_index=r) for r in _span(anchor.row_index, item.row_index))
    elif kind == "column":
        if anchor.column_index is None:
            return None
        members = tuple(
            SelectionItem(column_index=c) for c in _span(anchor.column_index, item.column_index)
        )
    else:
        if anchor.row_index is None or anchor.column_index is None:
            return None
        known = {m.key: m.cell_value for m in state.members}
        known[item.key] = item.cell_value
        members = tuple(
            SelectionItem(row_index=r, column_index=c, cell_value=known.get((r, c), UNSET))
            for r in _span(anchor.row_index, item.row_index)
            for c in _span(anchor.column_index, item.column_index)
        )

    return SelectionState(kind=kind, members=members, anchor=anchor, last_interacted=point)


def _select(
    state: SelectionState,
    kind: SelectionKind,
    item: SelectionItem,
    mode: SelectionMode,
) -> SelectionState:
    if state.kind != kind or mode == "single":
        return _single(kind, item)
    if mode == "multi":
        return _toggle(state, kind, item)
    return _range(state, kind, item) or _single(kind, item)


def reduce_selection(state: SelectionState, action: SelectionAction) -> SelectionState:
    """Apply *action* to *state* and return the new selection."""
    if isinstance(action, SelectRow):
        return _select(state, "row", SelectionItem(row_index=action.row_index), action.mode)

    if isinstance(action, SelectColumn):
        return _select(state, "column", SelectionItem(column_index=action.column_index), action.mode)

    if isinstance(action, SelectCell):
        item = SelectionItem(
            row_index=action.row_index,
            column_index=action.column_index,
            cell_value=action.value,
        )
        return _select(state, "cell", item, action.mode)

    if isinstance(action, SelectAllRows):
        if action.row_count <= 0:
            return EMPTY_SELECTION
        return SelectionState(
            kind="row",
            members=tuple(SelectionItem(row_index=i) for i in range(action.row_count)),
        )

    if isinstance(action, ClearSelection):
        return EMPTY_SELECTION

    return state


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def is_row_selected(state: SelectionState, row_index: int) -> bool:
    return state.kind == "row" and state.contains(row_index, None)


def is_column_selected(state: SelectionState, column_index: int) -> bool:
    return state.kind == "column" and state.contains(None, column_index)


def is_cell_selected(state: SelectionState, row_index: int, column_index: int) -> bool:
    """A cell is selected explicitly or through its whole row/column."""
    if state.kind == "cell":
        return state.contains(row_index, column_index)
    if state.kind == "row":
        return state.contains(row_index, None)
    if state.kind == "column":
        return state.contains(None, column_index)
    return False


def _unique(values: Iterable[int | None]) -> list[int]:
    seen: dict[int, None] = {}
    for v in values:
        if v is not None:
            seen.setdefault(v, None)
    return list(seen)


def selected_row_indices(state: SelectionState) -> list[int]:
    """Rows touched by a row or cell selection, in first-selected order."""
    if state.kind in ("row", "cell"):
        return _unique(m.row_index for m in state.members)
    return []


def selected_column_indices(state: SelectionState) -> list[int]:
    """Columns touched by a column or cell selection, in first-selected order."""
    if state.kind in ("column", "cell"):
        return _unique(m.column_index for m in state.members)
    return []


def selected_values(state: SelectionState) -> list[Any]:
    """Cell values captured at click time, in selection order."""
    return [m.cell_value for m in state.members if m.has_value]


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class GridSelection:
    """Selection store: holds the current state and dispatches actions.

    Example::

        selection = GridSelection()
        selection.select_row(2)
        selection.select_row(5, shift_key=True)   # rows 2..5
        selection.is_cell_selected(3, 0)          # True
    """

    def __init__(self, state: SelectionState = EMPTY_SELECTION) -> None:
        self.state = state

    def dispatch(self, action: SelectionAction) -> SelectionState:
        self.state = reduce_selection(self.state, action)
        return self.state

    def select_row(
        self, row_index: int, ctrl_key: bool = False, shift_key: bool = False, meta_key: bool = False
    ) -> SelectionState:
        return self.dispatch(SelectRow(row_index, resolve_mode(ctrl_key, shift_key, meta_key)))

    def select_column(
        self, column_index: int, ctrl_key: bool = False, shift_key: bool = False, meta_key: bool = False
    ) -> SelectionState:
        return self.dispatch(SelectColumn(column_index, resolve_mode(ctrl_key, shift_key, meta_key)))

    def select_cell(
        self,
        row_index: int,
        column_index: int,
        value: Any = UNSET,
        ctrl_key: bool = False,
        shift_key: bool = False,
        meta_key: bool = False,
    ) -> SelectionState:
        mode = resolve_mode(ctrl_key, shift_key, meta_key)
        return self.dispatch(SelectCell(row_index, column_index, value, mode))

    def select_all_rows(self, row_count: int) -> SelectionState:
        return self.dispatch(SelectAllRows(row_count))

    def clear_selection(self) -> SelectionState:
        return self.dispatch(ClearSelection())

    def is_row_selected(self, row_index: int) -> bool:
        return is_row_selected(self.state, row_index)

    def is_column_selected(self, column_index: int) -> bool:
        return is_column_selected(self.state, column_index)

    def is_cell_selected(self, row_index: int, column_index: int) -> bool:
        return is_cell_selected(self.state, row_index, column_index)

    def selected_row_indices(self) -> list[int]:
        return selected_row_indices(self.state)

    def selected_column_indices(self) -> list[int]:
        return selected_column_indices(self.state)

    def selected_values(self) -> list[Any]:
        return selected_values(self.state)
