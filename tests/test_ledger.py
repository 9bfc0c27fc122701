"""Tests for the pending-change ledger.

Tests cover:
- Edit, delete, restore and revert actions
- Garbage collection of empty row changes and derived counters
- UPDATE/DELETE generation keyed by original primary-key values
- Rows without a usable primary key
"""

import logging

from reflex_result_grid.ledger import (
    EMPTY_LEDGER,
    CellDiff,
    EditCell,
    PendingChangeLedger,
    count_totals,
    reduce_ledger,
    same_value,
)

ROWS = [(1, "John"), (2, "Jane"), (3, "Bob")]
COLS = ["id", "name"]


class TestSameValue:
    """Tests for strict value equality."""

    def test_strict_types(self):
        """Text never equals a number; int equals float."""
        assert same_value(1, 1.0)
        assert not same_value(1, "1")
        assert not same_value(None, "")
        assert same_value(None, None)
        assert same_value("a", "a")


class TestEditCell:
    """Tests for cell edits."""

    def test_edit_then_revert_by_value_removes_row(self):
        """Editing back to the original value drops the row entry."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        assert ledger.total_changed_rows == 1
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "John")
        assert ledger.get_row_change(0, 0) is None
        assert ledger.state.changes_by_result_set == {}
        assert ledger.total_changed_rows == 0

    def test_no_op_edit_never_counts(self):
        """An edit to the original value records nothing."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 2, "name", ROWS[2], "Bob", "Bob")
        assert ledger.total_changed_rows == 0
        assert not ledger.has_pending_changes

    def test_diff_keeps_first_original(self):
        """Repeated edits keep the original value and update the new one."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 1, "name", ROWS[1], "Jane", "Janet")
        ledger.edit_cell(0, 1, "name", ROWS[1], "Jane", "Janey")
        assert ledger.get_cell_change(0, 1, "name") == CellDiff("Jane", "Janey")
        assert ledger.is_cell_modified(0, 1, "name")
        assert not ledger.is_cell_modified(0, 1, "id")

    def test_reducer_is_pure(self):
        """The previous state is left untouched."""
        after = reduce_ledger(EMPTY_LEDGER, EditCell(0, 0, "name", ROWS[0], "John", "Jon"))
        assert EMPTY_LEDGER.changes_by_result_set == {}
        assert after.total_changed_rows == 1


class TestDeleteRestore:
    """Tests for row deletion and restore."""

    def test_delete_keeps_diffs(self):
        """Deleting an edited row keeps its diffs alongside the flag."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(0, 0, ROWS[0])
        change = ledger.get_row_change(0, 0)
        assert change.is_deleted
        assert "name" in change.cell_diffs
        assert ledger.total_deleted_rows == 1
        assert ledger.total_changed_rows == 0

    def test_restore_without_diffs_drops_row(self):
        """Restoring a plain deletion removes the entry."""
        ledger = PendingChangeLedger()
        ledger.delete_row(0, 1, ROWS[1])
        ledger.restore_row(0, 1)
        assert not ledger.is_row_modified(0, 1)
        assert ledger.total_deleted_rows == 0

    def test_restore_with_diffs_keeps_row(self):
        """Restoring an edited row keeps its diffs."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 1, "name", ROWS[1], "Jane", "Janet")
        ledger.delete_row(0, 1, ROWS[1])
        ledger.restore_row(0, 1)
        assert ledger.is_row_modified(0, 1)
        assert not ledger.is_row_deleted(0, 1)
        assert ledger.total_changed_rows == 1

    def test_restore_unknown_row_is_no_op(self):
        """Restoring a row that has no change leaves the state as is."""
        ledger = PendingChangeLedger()
        before = ledger.state
        ledger.restore_row(0, 7)
        assert ledger.state is before


class TestRevert:
    """Tests for revert and commit actions."""

    def test_revert_cell_and_row(self):
        """Reverting the last diff or the whole row removes the entry."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.revert_cell(0, 0, "name")
        assert not ledger.is_row_modified(0, 0)
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(0, 0, ROWS[0])
        ledger.revert_row(0, 0)
        assert not ledger.has_pending_changes

    def test_revert_all_scoped_to_result_set(self):
        """revert_all with an index clears only that result set."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(1, 4, (4, "x"))
        ledger.revert_all(0)
        assert ledger.changes_for_result_set(0) == []
        assert ledger.is_row_deleted(1, 4)
        assert ledger.total_deleted_rows == 1

    def test_commit_success_clears_everything(self):
        """commit_success without an index empties the ledger."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(1, 4, (4, "x"))
        ledger.commit_success()
        assert ledger.state == EMPTY_LEDGER

    def test_counters_match_scan(self):
        """Counters always equal a full recount."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.edit_cell(0, 1, "name", ROWS[1], "Jane", "J")
        ledger.delete_row(0, 1, ROWS[1])
        ledger.delete_row(0, 2, ROWS[2])
        assert count_totals(ledger.state.changes_by_result_set) == (1, 2)
        assert (ledger.total_changed_rows, ledger.total_deleted_rows) == (1, 2)


class TestStatementGeneration:
    """Tests for UPDATE/DELETE generation."""

    def test_delete_statement_uses_original_id(self):
        """A deleted row becomes a DELETE keyed by its id."""
        ledger = PendingChangeLedger()
        ledger.delete_row(0, 1, ROWS[1])
        assert ledger.generate_delete_statements(0, "Users", COLS, ["id"]) == [
            "DELETE FROM [Users] WHERE [id] = 2;"
        ]

    def test_update_statement(self):
        """Edited columns go into SET, quotes are doubled."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "O'Brien")
        assert ledger.generate_update_statements(0, "Users", COLS, ["id"]) == [
            "UPDATE [Users] SET [name] = 'O''Brien' WHERE [id] = 1;"
        ]

    def test_where_uses_original_pk_even_when_pk_edited(self):
        """An edited key column still matches on its original value."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 2, "id", ROWS[2], 3, 30)
        assert ledger.generate_update_statements(0, "Users", COLS, ["id"]) == [
            "UPDATE [Users] SET [id] = 30 WHERE [id] = 3;"
        ]

    def test_deleted_row_never_updates(self):
        """A row with diffs that is deleted only produces a DELETE."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(0, 0, ROWS[0])
        assert ledger.generate_update_statements(0, "Users", COLS, ["id"]) == []
        assert ledger.generate_delete_statements(0, "Users", COLS, ["id"]) == [
            "DELETE FROM [Users] WHERE [id] = 1;"
        ]

    def test_composite_key_and_literals(self):
        """Every key column joins the WHERE with AND; values are typed."""
        ledger = PendingChangeLedger()
        row = ("eu", 7, True, None)
        ledger.edit_cell(2, 0, "active", row, True, False)
        ledger.edit_cell(2, 0, "note", row, None, "x")
        assert ledger.generate_update_statements(2, "T", ["region", "n", "active", "note"], ["region", "n"]) == [
            "UPDATE [T] SET [active] = 0, [note] = 'x' WHERE [region] = 'eu' AND [n] = 7;"
        ]

    def test_null_key_uses_is_null(self):
        """A NULL key value is matched with IS NULL."""
        ledger = PendingChangeLedger()
        ledger.delete_row(0, 0, (None, "ghost"))
        assert ledger.generate_delete_statements(0, "Users", COLS, ["id"]) == [
            "DELETE FROM [Users] WHERE [id] IS NULL;"
        ]

    def test_rows_without_key_are_skipped(self, caplog):
        """No usable key column means no statement, plus a warning."""
        ledger = PendingChangeLedger()
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        ledger.delete_row(0, 1, ROWS[1])
        with caplog.at_level(logging.WARNING, logger="reflex_result_grid"):
            script = ledger.compile_statements(0, "Users", COLS, ["missing"])
        assert script.statements == []
        assert script.skipped_rows == [0, 1]
        assert "no usable primary key" in caplog.text
        assert script.render() == "-- No changes to commit"

    def test_compile_orders_updates_before_deletes(self):
        """The combined script lists UPDATEs first."""
        ledger = PendingChangeLedger()
        ledger.delete_row(0, 2, ROWS[2])
        ledger.edit_cell(0, 0, "name", ROWS[0], "John", "Jon")
        script = ledger.compile_statements(0, "Users", COLS, ["id"])
        assert script.statements == [
            "UPDATE [Users] SET [name] = 'Jon' WHERE [id] = 1;",
            "DELETE FROM [Users] WHERE [id] = 3;",
        ]
        assert script.skipped_rows == []
