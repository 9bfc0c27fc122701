"""Pending-change ledger: uncommitted cell edits and row deletions.

The ledger maps ``result_set_index -> row_index -> RowChange``, where
``row_index`` is the row's position in the *original* (unfiltered,
unsorted) result set.  It spans every result set of a query batch.

Invariants kept by :func:`reduce_ledger`:

* A :class:`RowChange` with no cell diffs that is not deleted never
  stays in the ledger; it is dropped as soon as its last diff goes away.
  Empty per-result-set maps are dropped too.
* ``total_changed_rows`` / ``total_deleted_rows`` are recounted from the
  map after every mutation, never incremented.
* State values are never mutated in place; each action copies the maps
  it touches and returns a new :class:`PendingChangesState`.

SQL generation derives ``UPDATE``/``DELETE`` statements on demand.  A
deleted row never also produces an ``UPDATE``.  The ``WHERE`` clause
uses the primary-key values from the row's original snapshot.
"""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import Any

from reflex_result_grid import log
from reflex_result_grid.pipeline import is_number
from reflex_result_grid.sql import format_sql_literal, quote_identifier


@dataclass(frozen=True)
class CellDiff:
    original: Any
    new: Any


@dataclass(frozen=True)
class RowChange:
    """Per-row diff record: original snapshot, column diffs, deletion flag."""

    row_index: int
    original_row: tuple[Any, ...]
    cell_diffs: Mapping[str, CellDiff] = field(default_factory=dict)
    is_deleted: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.cell_diffs and not self.is_deleted


LedgerMap = Mapping[int, Mapping[int, RowChange]]


@dataclass(frozen=True)
class PendingChangesState:
    changes_by_result_set: LedgerMap = field(default_factory=dict)
    total_changed_rows: int = 0
    total_deleted_rows: int = 0

    @property
    def has_pending_changes(self) -> bool:
        return self.total_changed_rows > 0 or self.total_deleted_rows > 0


EMPTY_LEDGER = PendingChangesState()


def count_totals(changes_by_result_set: LedgerMap) -> tuple[int, int]:
    """Return ``(changed, deleted)`` by scanning the whole ledger.

    A deleted row counts as deleted only, even when it also has diffs.
    """
    changed = 0
    deleted = 0
    for rows in changes_by_result_set.values():
        for change in rows.values():
            if change.is_deleted:
                deleted += 1
            elif change.cell_diffs:
                changed += 1
    return changed, deleted


def _rebuild(changes_by_result_set: dict[int, dict[int, RowChange]]) -> PendingChangesState:
    cleaned = {rs: rows for rs, rows in changes_by_result_set.items() if rows}
    changed, deleted = count_totals(cleaned)
    return PendingChangesState(
        changes_by_result_set=cleaned,
        total_changed_rows=changed,
        total_deleted_rows=deleted,
    )


def same_value(a: Any, b: Any) -> bool:
    """Strict equality: same type (numbers compare across int/float), same value."""
    if a is None or b is None:
        return a is None and b is None
    if is_number(a) and is_number(b):
        return a == b
    return type(a) is type(b) and a == b


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class EditCell:
    result_set_index: int
    row_index: int
    column_name: str
    original_row: Sequence[Any]
    original_value: Any
    new_value: Any


@dataclass(frozen=True)
class DeleteRow:
    result_set_index: int
    row_index: int
    original_row: Sequence[Any]


@dataclass(frozen=True)
class RestoreRow:
    result_set_index: int
    row_index: int


@dataclass(frozen=True)
class RevertCell:
    result_set_index: int
    row_index: int
    column_name: str


@dataclass(frozen=True)
class RevertRow:
    result_set_index: int
    row_index: int


@dataclass(frozen=True)
class RevertAll:
    """Drop every pending change, or only one result set's."""

    result_set_index: int | None = None


@dataclass(frozen=True)
class CommitSuccess:
    """Changes were applied on the server; forget them locally."""

    result_set_index: int | None = None


LedgerAction = EditCell | DeleteRow | RestoreRow | RevertCell | RevertRow | RevertAll | CommitSuccess


# ---------------------------------------------------------------------------
# Reducer
# ---------------------------------------------------------------------------

def _put(
    state: PendingChangesState,
    result_set_index: int,
    row_index: int,
    change: RowChange | None,
) -> PendingChangesState:
    """Copy-on-write upsert/removal of a single row entry."""
    outer = {rs: dict(rows) for rs, rows in state.changes_by_result_set.items()}
    rows = outer.setdefault(result_set_index, {})
    if change is None or change.is_empty:
        rows.pop(row_index, None)
    else:
        rows[row_index] = change
    return _rebuild(outer)


def _get(state: PendingChangesState, result_set_index: int, row_index: int) -> RowChange | None:
    return state.changes_by_result_set.get(result_set_index, {}).get(row_index)


def reduce_ledger(state: PendingChangesState, action: LedgerAction) -> PendingChangesState:
    """Apply *action* to *state* and return the new ledger state."""
    if isinstance(action, EditCell):
        rs, row = action.result_set_index, action.row_index
        change = _get(state, rs, row) or RowChange(row_index=row, original_row=tuple(action.original_row))
        diffs = dict(change.cell_diffs)
        if same_value(action.new_value, action.original_value):
            diffs.pop(action.column_name, None)
        else:
            diffs[action.column_name] = CellDiff(action.original_value, action.new_value)
        return _put(state, rs, row, replace(change, cell_diffs=diffs))

    if isinstance(action, DeleteRow):
        rs, row = action.result_set_index, action.row_index
        change = _get(state, rs, row) or RowChange(row_index=row, original_row=tuple(action.original_row))
        return _put(state, rs, row, replace(change, is_deleted=True))

    if isinstance(action, RestoreRow):
        change = _get(state, action.result_set_index, action.row_index)
        if change is None:
            return state
        return _put(state, action.result_set_index, action.row_index, replace(change, is_deleted=False))

    if isinstance(action, RevertCell):
        change = _get(state, action.result_set_index, action.row_index)
        if change is None or action.column_name not in change.cell_diffs:
            return state
        diffs = {k: v for k, v in change.cell_diffs.items() if k != action.column_name}
        return _put(state, action.result_set_index, action.row_index, replace(change, cell_diffs=diffs))

    if isinstance(action, RevertRow):
        if _get(state, action.result_set_index, action.row_index) is None:
            return state
        return _put(state, action.result_set_index, action.row_index, None)

    if isinstance(action, (RevertAll, CommitSuccess)):
        if action.result_set_index is None:
            return EMPTY_LEDGER
        outer = {
            rs: dict(rows)
            for rs, rows in state.changes_by_result_set.items()
            if rs != action.result_set_index
        }
        return _rebuild(outer)

    return state


# ---------------------------------------------------------------------------
# SQL generation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MutationScript:
    """Generated statements plus the rows that could not be addressed."""

    statements: list[str]
    skipped_rows: list[int] = field(default_factory=list)

    def render(self) -> str:
        return "\n".join(self.statements) or "-- No changes to commit"


def _where_clause(
    change: RowChange,
    columns: Sequence[str],
    pk_columns: Sequence[str],
) -> str | None:
    """``WHERE`` body from the original PK values, or ``None`` if unaddressable."""
    parts: list[str] = []
    for pk in pk_columns:
        if pk not in columns:
            continue
        ordinal = list(columns).index(pk)
        if ordinal >= len(change.original_row):
            continue
        value = change.original_row[ordinal]
        if value is None:
            parts.append(f"{quote_identifier(pk)} IS NULL")
        else:
            parts.append(f"{quote_identifier(pk)} = {format_sql_literal(value)}")
    return " AND ".join(parts) if parts else None


def _compile(
    state: PendingChangesState,
    result_set_index: int,
    table_name: str,
    columns: Sequence[str],
    pk_columns: Sequence[str],
    *,
    deletes: bool,
) -> MutationScript:
    statements: list[str] = []
    skipped: list[int] = []
    table = quote_identifier(table_name)

    for change in state.changes_by_result_set.get(result_set_index, {}).values():
        if deletes != change.is_deleted:
            continue
        if not deletes and not change.cell_diffs:
            continue

        where = _where_clause(change, columns, pk_columns)
        if where is None:
            skipped.append(change.row_index)
            log.warn(
                f"Row {change.row_index} of result set {result_set_index} has no usable "
                f"primary key column; no statement generated for {table_name!r}"
            )
            continue

        if deletes:
            statements.append(f"DELETE FROM {table} WHERE {where};")
        else:
            sets = ", ".join(
                f"{quote_identifier(col)} = {format_sql_literal(diff.new)}"
                for col, diff in change.cell_diffs.items()
            )
            statements.append(f"UPDATE {table} SET {sets} WHERE {where};")

    return MutationScript(statements=statements, skipped_rows=skipped)


def generate_update_statements(
    state: PendingChangesState,
    result_set_index: int,
    table_name: str,
    columns: Sequence[str],
    pk_columns: Sequence[str],
) -> list[str]:
    """One ``UPDATE`` per edited, non-deleted row of *result_set_index*."""
    return _compile(state, result_set_index, table_name, columns, pk_columns, deletes=False).statements


def generate_delete_statements(
    state: PendingChangesState,
    result_set_index: int,
    table_name: str,
    columns: Sequence[str],
    pk_columns: Sequence[str],
) -> list[str]:
    """One ``DELETE`` per row of *result_set_index* marked deleted."""
    return _compile(state, result_set_index, table_name, columns, pk_columns, deletes=True).statements


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class PendingChangeLedger:
    """Ledger store shared by every result set of a query batch.

    Example::

        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", row, "John", "Jon")
        ledger.delete_row(0, 1, other_row)
        ledger.compile_statements(0, "Users", ["id", "name"], ["id"]).render()
    """

    def __init__(self, state: PendingChangesState = EMPTY_LEDGER) -> None:
        self.state = state

    def dispatch(self, action: LedgerAction) -> PendingChangesState:
        self.state = reduce_ledger(self.state, action)
        return self.state

    # -- actions --

    def edit_cell(
        self,
        result_set_index: int,
        row_index: int,
        column_name: str,
        original_row: Sequence[Any],
        original_value: Any,
        new_value: Any,
    ) -> PendingChangesState:
        return self.dispatch(
            EditCell(result_set_index, row_index, column_name, original_row, original_value, new_value)
        )

    def delete_row(self, result_set_index: int, row_index: int, original_row: Sequence[Any]) -> PendingChangesState:
        return self.dispatch(DeleteRow(result_set_index, row_index, original_row))

    def restore_row(self, result_set_index: int, row_index: int) -> PendingChangesState:
        return self.dispatch(RestoreRow(result_set_index, row_index))

    def revert_cell(self, result_set_index: int, row_index: int, column_name: str) -> PendingChangesState:
        return self.dispatch(RevertCell(result_set_index, row_index, column_name))

    def revert_row(self, result_set_index: int, row_index: int) -> PendingChangesState:
        return self.dispatch(RevertRow(result_set_index, row_index))

    def revert_all(self, result_set_index: int | None = None) -> PendingChangesState:
        return self.dispatch(RevertAll(result_set_index))

    def commit_success(self, result_set_index: int | None = None) -> PendingChangesState:
        return self.dispatch(CommitSuccess(result_set_index))

    # -- queries --

    @property
    def total_changed_rows(self) -> int:
        return self.state.total_changed_rows

    @property
    def total_deleted_rows(self) -> int:
        return self.state.total_deleted_rows

    @property
    def has_pending_changes(self) -> bool:
        return self.state.has_pending_changes

    def get_row_change(self, result_set_index: int, row_index: int) -> RowChange | None:
        return _get(self.state, result_set_index, row_index)

    def get_cell_change(self, result_set_index: int, row_index: int, column_name: str) -> CellDiff | None:
        change = self.get_row_change(result_set_index, row_index)
        return change.cell_diffs.get(column_name) if change else None

    def is_row_modified(self, result_set_index: int, row_index: int) -> bool:
        return self.get_row_change(result_set_index, row_index) is not None

    def is_row_deleted(self, result_set_index: int, row_index: int) -> bool:
        change = self.get_row_change(result_set_index, row_index)
        return change is not None and change.is_deleted

    def is_cell_modified(self, result_set_index: int, row_index: int, column_name: str) -> bool:
        return self.get_cell_change(result_set_index, row_index, column_name) is not None

    def changes_for_result_set(self, result_set_index: int) -> list[RowChange]:
        return list(self.state.changes_by_result_set.get(result_set_index, {}).values())

    # -- SQL --

    def generate_update_statements(
        self, result_set_index: int, table_name: str, columns: Sequence[str], pk_columns: Sequence[str]
    ) -> list[str]:
        return generate_update_statements(self.state, result_set_index, table_name, columns, pk_columns)

    def generate_delete_statements(
        self, result_set_index: int, table_name: str, columns: Sequence[str], pk_columns: Sequence[str]
    ) -> list[str]:
        return generate_delete_statements(self.state, result_set_index, table_name, columns, pk_columns)

    def compile_statements(
        self, result_set_index: int, table_name: str, columns: Sequence[str], pk_columns: Sequence[str]
    ) -> MutationScript:
        """UPDATEs followed by DELETEs, with every skipped row reported."""
        updates = _compile(self.state, result_set_index, table_name, columns, pk_columns, deletes=False)
        deletes = _compile(self.state, result_set_index, table_name, columns, pk_columns, deletes=True)
        return MutationScript(
            statements=updates.statements + deletes.statements,
            skipped_rows=updates.skipped_rows + deletes.skipped_rows,
        )
