"""Reflex state mixin: the subscription boundary around :class:`GridSession`.

Users inherit from :class:`ResultGridMixin` **and** ``rx.State``, call
:meth:`ResultGridMixin.set_result_set` (or :meth:`set_frame`) from an
event handler and bind the ``grid_*`` vars in their components.

The session itself (rows, stores, ledger) is not JSON-serialisable, so
it lives in a module-level registry keyed by the state class name.  Only
the rendered window and the badge counters are pushed to the frontend.

Typical usage::

    class QueryState(ResultGridMixin, rx.State):
        def load(self):
            yield from self.set_frame(pl.read_parquet("orders.parquet"), table_name="Orders")
"""

from datetime import date, datetime, time
from decimal import Decimal
from typing import Any

import polars as pl
import reflex as rx

from reflex_result_grid import log
from reflex_result_grid.aggregate import format_number
from reflex_result_grid.frames import result_set_from_frame
from reflex_result_grid.ledger import PendingChangeLedger
from reflex_result_grid.models import ResultSet
from reflex_result_grid.session import GridSession

# ---------------------------------------------------------------------------
# Module-level session registry
# ---------------------------------------------------------------------------

_session_registry: dict[str, GridSession] = {}
_ledger_registry: dict[str, PendingChangeLedger] = {}


def get_session(cache_id: str) -> GridSession | None:
    return _session_registry.get(cache_id)


def shared_ledger(batch_id: str) -> PendingChangeLedger:
    """Return (or create) the ledger shared by every grid of a query batch."""
    if batch_id not in _ledger_registry:
        _ledger_registry[batch_id] = PendingChangeLedger()
    return _ledger_registry[batch_id]


def _jsonable(value: Any) -> Any:
    """Make a cell value safe for JSON transport to the frontend."""
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray)):
        return "0x" + bytes(value).hex()
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    return value


def row_payload(session: GridSession, display_index: int) -> dict[str, Any]:
    """One rendered row: current cell values plus change markers."""
    rs_index = session.result_set.index
    original = session.original_index(display_index)
    payload: dict[str, Any] = {
        col.name: _jsonable(session.cell_value(display_index, col.name)) for col in session.columns
    }
    change = session.ledger.get_row_change(rs_index, original)
    payload["__display_index__"] = display_index
    payload["__deleted__"] = bool(change and change.is_deleted)
    payload["__modified__"] = sorted(change.cell_diffs) if change else []
    return payload


def _modifiers(params: dict[str, Any] | None) -> dict[str, bool]:
    params = params or {}
    return {
        "ctrl_key": bool(params.get("ctrlKey", False)),
        "shift_key": bool(params.get("shiftKey", False)),
        "meta_key": bool(params.get("metaKey", False)),
    }


class ResultGridMixin(rx.State, mixin=True):
    """Reflex State mixin for one virtualized, editable result grid.

    This is a Reflex **mixin** (``mixin=True``): each subclass gets its
    own independent set of ``grid_*`` vars, so several result grids on
    one page do not interfere.  Grids of the same query batch share one
    pending-change ledger through ``_grid_batch_id``.
    """

    # -- Frontend state vars --
    grid_rows: list[dict[str, Any]] = []
    grid_columns: list[dict[str, Any]] = []
    grid_row_count: int = 0
    grid_total_height: int = 0
    grid_offset_top: int = 0
    grid_loaded: bool = False
    grid_sort: dict[str, str] = {}
    grid_filters: dict[str, dict[str, Any]] = {}
    grid_total_changed_rows: int = 0
    grid_total_deleted_rows: int = 0
    grid_aggregation: dict[str, str] = {}
    grid_sql_preview: str = ""
    grid_status: str = ""

    # -- Backend-only vars (not sent to frontend) --
    _grid_cache_id: str = ""
    _grid_batch_id: str = ""
    _grid_table_name: str = ""
    _grid_scroll_offset: float = 0.0
    _grid_viewport_height: float = 0.0

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def set_result_set(self, result_set: ResultSet, table_name: str = "", batch_id: str = "default"):
        """Install a result set and push the first window.

        This is a **generator**: use ``yield from self.set_result_set(...)``
        so the loading status reaches the frontend first.
        """
        self.grid_status = "Loading..."  # type: ignore[assignment]
        yield

        cache_id = type(self).__name__
        self._grid_cache_id = cache_id  # type: ignore[assignment]
        self._grid_batch_id = batch_id  # type: ignore[assignment]
        self._grid_table_name = table_name  # type: ignore[assignment]
        _session_registry[cache_id] = GridSession(result_set, ledger=shared_ledger(batch_id))

        self._grid_scroll_offset = 0.0  # type: ignore[assignment]
        self.grid_loaded = True  # type: ignore[assignment]
        self._sync_grid()
        self.grid_status = f"{len(result_set.rows):,} rows"  # type: ignore[assignment]

    def set_frame(self, frame: pl.DataFrame | pl.LazyFrame, table_name: str = "", index: int = 0, **kwargs: Any):
        """Like :meth:`set_result_set`, from a polars frame."""
        yield from self.set_result_set(result_set_from_frame(frame, index=index, **kwargs), table_name)

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    def handle_grid_scroll(self, scroll_offset: float, viewport_height: float) -> None:
        self._grid_scroll_offset = scroll_offset  # type: ignore[assignment]
        self._grid_viewport_height = viewport_height  # type: ignore[assignment]
        self._sync_window()

    def handle_grid_header_click(self, column: str) -> None:
        session = self._session()
        if session is None:
            return
        session.toggle_sort(column)
        self._sync_grid()

    def handle_grid_filter(self, column: str, condition: dict[str, Any] | None) -> None:
        session = self._session()
        if session is None:
            return
        session.set_filter(column, condition or None)
        self._sync_grid()

    def handle_grid_clear_filters(self) -> None:
        session = self._session()
        if session is None:
            return
        session.clear_filters()
        self._sync_grid()

    def handle_grid_column_resize(self, column: str, width: int) -> None:
        session = self._session()
        if session is None:
            return
        session.resize_column(column, width)
        self._sync_columns()

    def handle_grid_row_click(self, display_index: int, params: dict[str, Any] | None = None) -> None:
        session = self._session()
        if session is None:
            return
        session.click_row(display_index, **_modifiers(params))
        self._sync_aggregation()

    def handle_grid_column_click(self, column_index: int, params: dict[str, Any] | None = None) -> None:
        session = self._session()
        if session is None:
            return
        session.click_column(column_index, **_modifiers(params))
        self._sync_aggregation()

    def handle_grid_cell_click(
        self, display_index: int, column_index: int, params: dict[str, Any] | None = None
    ) -> None:
        session = self._session()
        if session is None:
            return
        session.click_cell(display_index, column_index, **_modifiers(params))
        self._sync_aggregation()

    def handle_grid_key(self, key: str, params: dict[str, Any] | None = None):
        session = self._session()
        if session is None:
            return None
        mods = _modifiers(params)
        copied = session.handle_key(key, mods["ctrl_key"], mods["meta_key"], mods["shift_key"])
        self._sync_aggregation()
        if copied is not None:
            return rx.set_clipboard(copied)
        return None

    def handle_grid_cell_edit(self, display_index: int, column: str, value: Any) -> None:
        session = self._session()
        if session is None:
            return
        session.edit_cell(display_index, column, value)
        self._sync_changes()

    def handle_grid_delete_row(self, display_index: int) -> None:
        session = self._session()
        if session is None:
            return
        session.delete_row(display_index)
        self._sync_changes()

    def handle_grid_restore_row(self, display_index: int) -> None:
        session = self._session()
        if session is None:
            return
        session.restore_row(display_index)
        self._sync_changes()

    def handle_grid_revert_all(self) -> None:
        """Discard this grid's pending changes.

        Other grids of the batch keep theirs.  Their ``grid_total_*``
        badges are batch-wide and refresh on their next event.
        """
        session = self._session()
        if session is None:
            return
        session.revert_all()
        self._sync_changes()

    def handle_grid_commit_success(self) -> None:
        """Clear this grid's changes after its ``grid_sql_preview`` ran."""
        session = self._session()
        if session is None:
            return
        session.commit_success()
        self._sync_changes()

    def handle_grid_export(self, fmt: str):
        session = self._session()
        if session is None:
            return None
        result = session.export(fmt, table_name=self._grid_table_name or None)
        return rx.download(data=result.text, filename=result.filename)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _session(self) -> GridSession | None:
        session = get_session(self._grid_cache_id) if self._grid_cache_id else None
        if session is None:
            log.debug(f"{type(self).__name__}: grid event before a result set was loaded")
        return session

    def _sync_grid(self) -> None:
        session = self._session()
        if session is None:
            return
        self.grid_row_count = session.row_count  # type: ignore[assignment]
        self.grid_total_height = session.total_height  # type: ignore[assignment]
        sort = session.view.sort
        sort_payload = {"column": sort.column, "direction": sort.direction} if sort else {}
        self.grid_sort = sort_payload  # type: ignore[assignment]
        self.grid_filters = {  # type: ignore[assignment]
            name: {"operator": c.operator, "value": _jsonable(c.value), "valueTo": _jsonable(c.value_to)}
            for name, c in session.view.filters.items()
        }
        self._sync_columns()
        self._sync_aggregation()
        self._sync_changes()

    def _sync_columns(self) -> None:
        session = self._session()
        if session is None:
            return
        self.grid_columns = [c.to_dict() for c in session.column_layout()]  # type: ignore[assignment]

    def _sync_window(self) -> None:
        session = self._session()
        if session is None:
            return
        items = session.visible_items(self._grid_scroll_offset, self._grid_viewport_height)
        self.grid_offset_top = items[0].start if items else 0  # type: ignore[assignment]
        self.grid_rows = [row_payload(session, item.index) for item in items]  # type: ignore[assignment]

    def _sync_aggregation(self) -> None:
        session = self._session()
        if session is None:
            return
        agg = session.aggregation()
        if agg.count == 0:
            self.grid_aggregation = {}  # type: ignore[assignment]
            return
        self.grid_aggregation = {  # type: ignore[assignment]
            "count": str(agg.count),
            "nulls": str(agg.null_count),
            "sum": format_number(agg.sum),
            "average": format_number(agg.average),
            "min": format_number(agg.min),
            "max": format_number(agg.max),
        }

    def _sync_changes(self) -> None:
        session = self._session()
        if session is None:
            return
        self.grid_total_changed_rows = session.ledger.total_changed_rows  # type: ignore[assignment]
        self.grid_total_deleted_rows = session.ledger.total_deleted_rows  # type: ignore[assignment]
        self.grid_sql_preview = session.pending_sql(self._grid_table_name or None).render()  # type: ignore[assignment]
        self._sync_window()
