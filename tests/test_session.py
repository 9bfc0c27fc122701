"""Tests for GridSession, the composed grid of one result set.

Tests cover:
- Header-click sorting and filtering through the view store
- Selection clearing on view-order changes
- Keyboard shortcuts and clipboard copy
- Edits addressed by display position, SQL preview
- Export of selections and file naming
"""

import logging
from datetime import date

from reflex_result_grid.config import GridSettings
from reflex_result_grid.ledger import PendingChangeLedger
from reflex_result_grid.pipeline import FilterCondition
from reflex_result_grid.session import GridSession


def names(session):
    return [row[1] for row in session.display_rows]


class TestSortingAndFiltering:
    """Tests for view changes."""

    def test_header_clicks(self, users):
        """Sort by name asc, then desc, then back to original order."""
        grid = GridSession(users)
        grid.toggle_sort("name")
        assert names(grid) == ["Bob", "Jane", "John"]
        grid.toggle_sort("name")
        assert names(grid) == ["John", "Jane", "Bob"]
        grid.toggle_sort("name")
        assert names(grid) == ["John", "Jane", "Bob"]
        assert grid.view.sort is None

    def test_filter_from_ui_payload(self, users):
        """A dict payload is accepted as a filter condition."""
        grid = GridSession(users)
        grid.set_filter("name", {"operator": "startsWith", "value": "j"})
        assert grid.row_count == 2
        grid.remove_filter("name")
        assert grid.row_count == 3

    def test_view_change_clears_selection(self, users):
        """Filtering or sorting drops the selection; resizing does not."""
        grid = GridSession(users)
        grid.click_row(1)
        grid.resize_column("name", 300)
        assert grid.selection.is_row_selected(1)
        grid.toggle_sort("id")
        assert grid.selection.state.is_empty
        grid.click_row(0)
        grid.set_filter("id", FilterCondition("greaterThan", 0))
        assert grid.selection.state.is_empty

    def test_column_layout(self, users, settings):
        """Widths default from settings and pinned columns come first."""
        grid = GridSession(users, settings=settings)
        grid.resize_column("id", 80)
        grid.toggle_pin("name")
        layout = grid.column_layout()
        assert [c.name for c in layout] == ["name", "id"]
        assert layout[0].display_width == settings.default_column_width
        assert layout[1].display_width == 80


class TestVirtualWindow:
    """Tests for windowing through settings."""

    def test_visible_items_use_settings(self, users):
        """Row height and overscan come from settings."""
        grid = GridSession(users, settings=GridSettings(row_height=20, overscan=0))
        items = grid.visible_items(0, 40)
        assert [i.index for i in items] == [0, 1, 2]
        assert grid.total_height == 60
        assert grid.scroll_offset_for(2) == 40


class TestKeyboard:
    """Tests for keyboard shortcuts."""

    def test_select_all_copy_escape(self, users):
        """Ctrl+A selects all, Ctrl+C copies TSV, Escape clears."""
        grid = GridSession(users)
        assert grid.handle_key("a", ctrl_key=True) is None
        assert grid.selection.selected_row_indices() == [0, 1, 2]
        copied = grid.handle_key("c", meta_key=True)
        assert copied == "id\tname\n1\tJohn\n2\tJane\n3\tBob"
        grid.handle_key("Escape")
        assert grid.selection.state.is_empty

    def test_plain_letters_do_nothing(self, users):
        """Keys without a modifier are not shortcuts."""
        grid = GridSession(users)
        grid.handle_key("a")
        assert grid.selection.state.is_empty


class TestEdits:
    """Tests for edits addressed by display index."""

    def test_edit_maps_to_original_row(self, users):
        """Editing a sorted view records the original row index."""
        grid = GridSession(users)
        grid.toggle_sort("name")
        grid.edit_cell(0, "name", "Robert")
        assert grid.ledger.is_cell_modified(0, 2, "name")
        assert grid.cell_value(0, "name") == "Robert"
        assert grid.pending_sql("Users").statements == ["UPDATE [Users] SET [name] = 'Robert' WHERE [id] = 3;"]

    def test_delete_selected_rows(self, users):
        """Every selected row is marked deleted."""
        grid = GridSession(users)
        grid.click_row(0)
        grid.click_row(1, shift_key=True)
        assert grid.delete_selected_rows() == 2
        assert grid.ledger.total_deleted_rows == 2
        grid.restore_row(0)
        assert grid.ledger.total_deleted_rows == 1

    def test_unknown_column_edit_ignored(self, users):
        """Edits on a missing column record nothing."""
        grid = GridSession(users)
        grid.edit_cell(0, "age", 3)
        assert not grid.ledger.has_pending_changes

    def test_negative_display_index_ignored(self, users):
        """A negative index never wraps around to the last row."""
        grid = GridSession(users)
        assert grid.original_index(-1) is None
        grid.edit_cell(-1, "name", "X")
        grid.delete_row(-1)
        assert not grid.ledger.has_pending_changes

    def test_stale_display_index_after_filter(self, users, caplog):
        """Indices past a filtered view degrade to a logged no-op."""
        grid = GridSession(users)
        grid.delete_row(2)
        grid.set_filter("name", FilterCondition("equals", "John"))
        assert grid.row_count == 1
        with caplog.at_level(logging.WARNING, logger="reflex_result_grid"):
            grid.edit_cell(5, "name", "X")
            grid.delete_row(5)
            grid.restore_row(2)
            grid.revert_cell(2, "name")
            grid.revert_row(2)
        assert grid.cell_value(5, "name") is None
        assert grid.ledger.total_changed_rows == 0
        assert grid.ledger.total_deleted_rows == 1
        assert "display row 5 ignored" in caplog.text

    def test_shared_ledger_across_result_sets(self, users, orders):
        """Two grids of one batch share counters."""
        ledger = PendingChangeLedger()
        a = GridSession(users, ledger=ledger)
        b = GridSession(orders, ledger=ledger)
        a.delete_row(0)
        b.edit_cell(1, "qty", 9)
        assert (ledger.total_changed_rows, ledger.total_deleted_rows) == (1, 1)
        b.revert_all()
        assert (ledger.total_changed_rows, ledger.total_deleted_rows) == (0, 1)

    def test_commit_success_is_scoped_to_result_set(self, users, orders):
        """Committing one grid leaves its siblings' changes pending."""
        ledger = PendingChangeLedger()
        a = GridSession(users, ledger=ledger)
        b = GridSession(orders, ledger=ledger)
        a.edit_cell(0, "name", "Jon")
        b.delete_row(0)
        a.commit_success()
        assert a.pending_sql("Users").render() == "-- No changes to commit"
        assert ledger.total_deleted_rows == 1
        assert b.pending_sql("Orders").statements == ["DELETE FROM [Orders] WHERE [order_id] = 10;"]


class TestExport:
    """Tests for session export."""

    def test_export_all_when_nothing_selected(self, users):
        """No selection exports every display row."""
        grid = GridSession(users)
        result = grid.export("csv", day=date(2024, 1, 31))
        assert result.text == "id,name\n1,John\n2,Jane\n3,Bob"
        assert result.filename == "export_0_2024-01-31.csv"
        assert result.mime_type == "text/csv"

    def test_export_selected_rows_in_display_order(self, users):
        """Selected rows export in display order."""
        grid = GridSession(users)
        grid.toggle_sort("name")
        grid.click_row(2)
        grid.click_row(0, ctrl_key=True)
        assert grid.export("tsv", include_headers=False).text == "3\tBob\n1\tJohn"

    def test_column_selection_narrows_columns(self, users):
        """A column selection exports only those columns."""
        grid = GridSession(users)
        grid.click_column(1)
        assert grid.export("csv").text == "name\nJohn\nJane\nBob"

    def test_insert_uses_default_table(self, users, monkeypatch):
        """The INSERT table name falls back to settings."""
        monkeypatch.setenv("RESULT_GRID_DEFAULT_TABLE_NAME", "People")
        grid = GridSession(users, settings=GridSettings())
        grid.click_row(0)
        assert grid.export("insert").text == "INSERT INTO [People] ([id], [name]) VALUES (1, N'John');"


class TestAggregation:
    """Tests for aggregation over the selection."""

    def test_cell_selection(self, orders):
        """Cell clicks capture values for the aggregation bar."""
        grid = GridSession(orders)
        grid.click_cell(0, 3)
        grid.click_cell(2, 3, shift_key=True)
        agg = grid.aggregation()
        assert agg.numeric_count == 3
        assert agg.sum == 4.5 + 12.0 + 30.25

    def test_column_selection(self, orders):
        """A column selection aggregates every cell of the column."""
        grid = GridSession(orders)
        grid.click_column(2)
        agg = grid.aggregation()
        assert agg.count == 4
        assert agg.null_count == 1
        assert agg.sum == 8
