"""One result set's grid: pipeline, virtual window, selection, edits, export.

:class:`GridSession` wires the pure pieces together the way the
rendering layer uses them.  It owns a view store and a selection store.
The pending-change ledger is usually shared by every session of a query
batch, so it can be passed in.

Index spaces:

* *display index*: position in the filtered and sorted row list.
  Virtualization and selection use it.
* *original index*: position in ``result_set.rows``.  The ledger is keyed
  by it.  :meth:`GridSession.original_index` converts between the two.
"""

from collections.abc import Mapping
from dataclasses import replace
from datetime import date
from typing import Any

from reflex_result_grid import log
from reflex_result_grid.aggregate import Aggregation, aggregate_values
from reflex_result_grid.config import GridSettings, get_settings
from reflex_result_grid.export import (
    ExportFormat,
    ExportOptions,
    export_data,
    export_filename,
    extract_selected_data,
    format_info,
    parse_format,
)
from reflex_result_grid.ledger import MutationScript, PendingChangeLedger
from reflex_result_grid.models import ColumnDescriptor, ExportResult, ResultSet, VirtualItem
from reflex_result_grid.pipeline import FilterCondition, SortSpec, display_indices
from reflex_result_grid.selection import UNSET, GridSelection, SelectionState
from reflex_result_grid.view import (
    ClearFilters,
    ResizeColumn,
    SetFilter,
    SetSort,
    TogglePin,
    ToggleSort,
    ViewAction,
    ViewConfig,
    reduce_view,
)
from reflex_result_grid.virtual import compute_virtual_items, scroll_offset_for_index, total_height


class GridSession:
    """Interactive state of one result set.

    Example::

        rs = ResultSet.from_rows([[1, "John"], [2, "Jane"]], ["id", "name"], primary_keys=["id"])
        grid = GridSession(rs)
        grid.toggle_sort("name")
        grid.edit_cell(0, "name", "Janet")
        grid.pending_sql("Users").statements
    """

    def __init__(
        self,
        result_set: ResultSet,
        ledger: PendingChangeLedger | None = None,
        settings: GridSettings | None = None,
    ) -> None:
        self.result_set = result_set
        self.ledger = ledger if ledger is not None else PendingChangeLedger()
        self.settings = settings or get_settings()
        self.view = ViewConfig()
        self.selection = GridSelection()
        self._display: list[int] = list(range(len(result_set.rows)))

    # -------------------------------------------------------------------
    # Display order
    # -------------------------------------------------------------------

    @property
    def columns(self) -> tuple[ColumnDescriptor, ...]:
        return self.result_set.columns

    @property
    def column_names(self) -> list[str]:
        return self.result_set.column_names

    @property
    def display_indices(self) -> list[int]:
        return list(self._display)

    @property
    def row_count(self) -> int:
        return len(self._display)

    @property
    def display_rows(self) -> list[tuple[Any, ...]]:
        """Original row snapshots in display order."""
        rows = self.result_set.rows
        return [rows[i] for i in self._display]

    def original_index(self, display_index: int) -> int | None:
        """Map a display index to its row in ``result_set.rows``.

        Returns ``None`` for an index outside the current display order,
        such as a stale one sent before a filter shrank the view.
        """
        if not 0 <= display_index < len(self._display):
            return None
        return self._display[display_index]

    def _refresh(self) -> None:
        self._display = display_indices(
            self.result_set.rows, self.column_names, self.view.filters, self.view.sort
        )

    # -------------------------------------------------------------------
    # Virtualization
    # -------------------------------------------------------------------

    def visible_items(self, scroll_offset: float, viewport_height: float) -> list[VirtualItem]:
        return compute_virtual_items(
            self.row_count,
            self.settings.row_height,
            scroll_offset,
            viewport_height,
            self.settings.overscan,
        )

    @property
    def total_height(self) -> int:
        return total_height(self.row_count, self.settings.row_height)

    def scroll_offset_for(self, display_index: int) -> int:
        return scroll_offset_for_index(display_index, self.settings.row_height)

    # -------------------------------------------------------------------
    # View configuration
    # -------------------------------------------------------------------

    def dispatch_view(self, action: ViewAction) -> ViewConfig:
        """Apply a view action.

        A change to the filters or the sort re-derives the display order
        and clears the selection, since selection indices are display
        positions.  Width and pin changes leave both untouched.
        """
        previous = self.view
        self.view = reduce_view(previous, action)
        if self.view.filters != previous.filters or self.view.sort != previous.sort:
            self._refresh()
            if not self.selection.state.is_empty:
                log.debug("View order changed; clearing selection")
                self.selection.clear_selection()
        return self.view

    def set_filter(self, column: str, condition: FilterCondition | Mapping[str, Any] | None) -> ViewConfig:
        if isinstance(condition, Mapping):
            condition = FilterCondition.from_dict(condition)
        return self.dispatch_view(SetFilter(column, condition))

    def remove_filter(self, column: str) -> ViewConfig:
        return self.dispatch_view(SetFilter(column, None))

    def clear_filters(self) -> ViewConfig:
        return self.dispatch_view(ClearFilters())

    def toggle_sort(self, column: str) -> ViewConfig:
        """Header click: ``asc -> desc -> unsorted``."""
        return self.dispatch_view(ToggleSort(column))

    def set_sort(self, sort: SortSpec | None) -> ViewConfig:
        return self.dispatch_view(SetSort(sort))

    def resize_column(self, column: str, width: int) -> ViewConfig:
        return self.dispatch_view(ResizeColumn(column, width))

    def toggle_pin(self, column: str) -> ViewConfig:
        return self.dispatch_view(TogglePin(column))

    def column_layout(self) -> list[ColumnDescriptor]:
        """Columns with width and pinning from the view config; pinned first."""
        default = self.settings.default_column_width
        laid_out = [
            replace(col, display_width=self.view.width_of(col.name, default), pinned=col.name in self.view.pinned)
            for col in self.columns
        ]
        return sorted(laid_out, key=lambda c: not c.pinned)

    # -------------------------------------------------------------------
    # Cell values
    # -------------------------------------------------------------------

    def _ordinal(self, column_name: str) -> int | None:
        for col in self.columns:
            if col.name == column_name:
                return col.ordinal
        return None

    def cell_value(self, display_index: int, column_name: str) -> Any:
        """Current value of a cell, pending edit included."""
        original = self.original_index(display_index)
        if original is None:
            return None
        diff = self.ledger.get_cell_change(self.result_set.index, original, column_name)
        if diff is not None:
            return diff.new
        ordinal = self._ordinal(column_name)
        row = self.result_set.rows[original]
        return row[ordinal] if ordinal is not None and ordinal < len(row) else None

    # -------------------------------------------------------------------
    # Selection
    # -------------------------------------------------------------------

    def click_row(
        self, display_index: int, ctrl_key: bool = False, shift_key: bool = False, meta_key: bool = False
    ) -> SelectionState:
        return self.selection.select_row(display_index, ctrl_key, shift_key, meta_key)

    def click_column(
        self, column_index: int, ctrl_key: bool = False, shift_key: bool = False, meta_key: bool = False
    ) -> SelectionState:
        return self.selection.select_column(column_index, ctrl_key, shift_key, meta_key)

    def click_cell(
        self,
        display_index: int,
        column_index: int,
        ctrl_key: bool = False,
        shift_key: bool = False,
        meta_key: bool = False,
    ) -> SelectionState:
        """Select a cell, capturing its current value for the aggregation bar."""
        value = UNSET
        if 0 <= display_index < self.row_count and 0 <= column_index < len(self.columns):
            value = self.cell_value(display_index, self.columns[column_index].name)
        return self.selection.select_cell(display_index, column_index, value, ctrl_key, shift_key, meta_key)

    def select_all(self) -> SelectionState:
        return self.selection.select_all_rows(self.row_count)

    def clear_selection(self) -> SelectionState:
        return self.selection.clear_selection()

    def handle_key(
        self, key: str, ctrl_key: bool = False, meta_key: bool = False, shift_key: bool = False
    ) -> str | None:
        """Grid keyboard shortcuts.

        ``Ctrl/Meta+A`` selects every display row, ``Ctrl/Meta+C`` copies
        the selection and ``Escape`` clears it.

        Returns:
            The copied text for ``Ctrl/Meta+C``, otherwise ``None``.
        """
        command = ctrl_key or meta_key
        if command and key.lower() == "a":
            self.select_all()
        elif command and key.lower() == "c":
            return self.copy_selection()
        elif key == "Escape":
            self.clear_selection()
        return None

    def selected_cell_values(self) -> list[Any]:
        """Values of every selected cell.

        Cell selections keep selection order and use the values captured
        at click time, reading the grid for cells filled in by a range.
        Row and column selections read every covered cell in display order.
        """
        state = self.selection.state
        if state.kind == "cell":
            values = []
            for m in state.members:
                if m.has_value:
                    values.append(m.cell_value)
                elif 0 <= m.row_index < self.row_count and 0 <= m.column_index < len(self.columns):
                    values.append(self.cell_value(m.row_index, self.columns[m.column_index].name))
            return values
        if state.kind == "row":
            rows = sorted(i for i in self.selection.selected_row_indices() if 0 <= i < self.row_count)
            return [self.cell_value(r, col.name) for r in rows for col in self.columns]
        if state.kind == "column":
            cols = sorted(i for i in self.selection.selected_column_indices() if 0 <= i < len(self.columns))
            return [self.cell_value(r, self.columns[c].name) for r in range(self.row_count) for c in cols]
        return []

    def aggregation(self) -> Aggregation:
        return aggregate_values(self.selected_cell_values())

    # -------------------------------------------------------------------
    # Edits
    # -------------------------------------------------------------------

    def _resolve_row(self, display_index: int, action: str) -> int | None:
        original = self.original_index(display_index)
        if original is None:
            log.warn(f"{action} on display row {display_index} ignored; {self.row_count} rows shown")
        return original

    def edit_cell(self, display_index: int, column_name: str, new_value: Any) -> None:
        """Record an edit against the row's original snapshot."""
        original = self._resolve_row(display_index, "Edit")
        if original is None:
            return
        row = self.result_set.rows[original]
        ordinal = self._ordinal(column_name)
        if ordinal is None:
            log.warn(f"Edit on unknown column {column_name!r} ignored")
            return
        original_value = row[ordinal] if ordinal < len(row) else None
        self.ledger.edit_cell(self.result_set.index, original, column_name, row, original_value, new_value)

    def delete_row(self, display_index: int) -> None:
        original = self._resolve_row(display_index, "Delete")
        if original is None:
            return
        self.ledger.delete_row(self.result_set.index, original, self.result_set.rows[original])

    def delete_selected_rows(self) -> int:
        """Mark every selected row deleted; returns how many were marked."""
        rows = [i for i in self.selection.selected_row_indices() if 0 <= i < self.row_count]
        for display_index in rows:
            self.delete_row(display_index)
        return len(rows)

    def restore_row(self, display_index: int) -> None:
        original = self._resolve_row(display_index, "Restore")
        if original is not None:
            self.ledger.restore_row(self.result_set.index, original)

    def revert_cell(self, display_index: int, column_name: str) -> None:
        original = self._resolve_row(display_index, "Revert")
        if original is not None:
            self.ledger.revert_cell(self.result_set.index, original, column_name)

    def revert_row(self, display_index: int) -> None:
        original = self._resolve_row(display_index, "Revert")
        if original is not None:
            self.ledger.revert_row(self.result_set.index, original)

    def revert_all(self) -> None:
        self.ledger.revert_all(self.result_set.index)

    def commit_success(self) -> None:
        """Drop this result set's changes once :meth:`pending_sql` has run."""
        self.ledger.commit_success(self.result_set.index)

    def pending_sql(self, table_name: str | None = None) -> MutationScript:
        """UPDATE then DELETE statements for this result set's pending changes."""
        return self.ledger.compile_statements(
            self.result_set.index,
            table_name or self.settings.default_table_name,
            self.column_names,
            self.result_set.primary_key_columns,
        )

    # -------------------------------------------------------------------
    # Export
    # -------------------------------------------------------------------

    def _export_slice(self, selected_only: bool) -> tuple[list[tuple[Any, ...]], list[ColumnDescriptor]]:
        rows = self.display_rows
        columns = list(self.columns)
        if not selected_only:
            return rows, columns

        row_indices = sorted(i for i in self.selection.selected_row_indices() if 0 <= i < len(rows))
        column_indices = sorted(self.selection.selected_column_indices())
        return extract_selected_data(rows, columns, row_indices, column_indices)

    def export(
        self,
        fmt: "str | ExportFormat",
        include_headers: bool | None = None,
        selected_only: bool = True,
        table_name: str | None = None,
        day: date | None = None,
    ) -> ExportResult:
        """Export the selection, or every display row when nothing is selected.

        Args:
            fmt: Export format or its name.
            include_headers: Header row for CSV/TSV/clipboard; defaults to settings.
            selected_only: Restrict to the selection when one exists.
            table_name: Target table for INSERT output; defaults to settings.
            day: Date used in the file name (today by default).

        Raises:
            ExportFormatError: If *fmt* names no supported format.
        """
        fmt = parse_format(fmt)
        if include_headers is None:
            include_headers = self.settings.export_include_headers
        rows, columns = self._export_slice(selected_only)
        options = ExportOptions(
            format=fmt,
            include_headers=include_headers,
            table_name=table_name or self.settings.default_table_name,
        )
        text = export_data(rows, columns, options)
        extension, mime_type = format_info(fmt)
        log.debug(f"Exported {len(rows)} rows x {len(columns)} columns as {fmt.value}")
        return ExportResult(
            text=text,
            extension=extension,
            mime_type=mime_type,
            filename=export_filename(self.result_set.index, fmt, day),
        )

    def copy_selection(self) -> str:
        """Clipboard text (tab-separated with headers) for the selection."""
        return self.export(ExportFormat.CLIPBOARD, include_headers=True).text
