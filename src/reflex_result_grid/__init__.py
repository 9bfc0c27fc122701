"""reflex-result-grid – virtualized, editable SQL result grid engine for Reflex.

Install the package::

    pip install reflex-result-grid

The engine (pipeline, selection, pending-change ledger, export) is plain
Python; :class:`ResultGridMixin` binds it to Reflex state and
:func:`result_set_from_frame` loads polars frames.
"""

from reflex_result_grid.aggregate import Aggregation, aggregate_values
from reflex_result_grid.config import GridSettings, clear_settings, get_settings
from reflex_result_grid.exceptions import ExportFormatError, ResultGridError, UnsupportedFileError
from reflex_result_grid.export import (
    ExportFormat,
    ExportOptions,
    export_data,
    extract_selected_data,
    format_info,
    parse_format,
)
from reflex_result_grid.frames import polars_dtype_to_sql_type, result_set_from_frame, scan_file
from reflex_result_grid.ledger import (
    CellDiff,
    MutationScript,
    PendingChangeLedger,
    PendingChangesState,
    RowChange,
    generate_delete_statements,
    generate_update_statements,
    reduce_ledger,
)
from reflex_result_grid.models import ColumnDescriptor, ExportResult, ResultSet, VirtualItem
from reflex_result_grid.pipeline import (
    FilterCondition,
    SortSpec,
    apply_filters,
    apply_sort,
    display_indices,
)
from reflex_result_grid.selection import GridSelection, SelectionState, reduce_selection
from reflex_result_grid.session import GridSession
from reflex_result_grid.state import ResultGridMixin
from reflex_result_grid.view import ViewConfig, reduce_view
from reflex_result_grid.virtual import compute_virtual_items, scroll_offset_for_index, visible_range
