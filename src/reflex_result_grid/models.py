"""Data model for the result grid: columns, result sets and render items.

All models are frozen dataclasses.  Rows are stored as tuples so a
result set is an immutable snapshot; edits never touch them and are
recorded as diffs in the pending-change ledger instead.

``to_dict()`` converts snake_case attributes to the camelCase keys the
rendering layer expects (``declaredType``, ``isPrimaryKey``, ...).
"""

from collections.abc import Sequence
from dataclasses import dataclass, field, fields
from typing import Any

Row = tuple[Any, ...]


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class ColumnDescriptor:
    """Metadata for one result-set column.

    ``name`` is unique within a result set and is the join key used by
    filters, sorts, the pending-change ledger and SQL generation.
    ``ordinal`` is the cell position inside every row and never changes.
    """

    name: str
    ordinal: int
    declared_type: str = ""
    is_primary_key: bool = False
    is_foreign_key: bool = False
    display_width: int = 150
    pinned: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialise with camelCase keys for the rendering layer."""
        return {_camel(f.name): getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class ResultSet:
    """One query result: ordered columns plus immutable row snapshots."""

    index: int
    columns: tuple[ColumnDescriptor, ...]
    rows: tuple[Row, ...] = field(default_factory=tuple)

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[Any]],
        column_names: Sequence[str],
        *,
        index: int = 0,
        declared_types: dict[str, str] | None = None,
        primary_keys: Sequence[str] = (),
        foreign_keys: Sequence[str] = (),
    ) -> "ResultSet":
        """Build a result set from raw rows and column names.

        Args:
            rows: Raw row data, one sequence of cell values per row.
            column_names: Column names in ordinal order.
            index: The ``resultSetIndex`` this result set is addressed by.
            declared_types: Optional ``{column: declared SQL type}`` mapping.
            primary_keys: Names of the primary-key columns.
            foreign_keys: Names of the foreign-key columns.
        """
        declared_types = declared_types or {}
        columns = tuple(
            ColumnDescriptor(
                name=name,
                ordinal=i,
                declared_type=declared_types.get(name, ""),
                is_primary_key=name in primary_keys,
                is_foreign_key=name in foreign_keys,
            )
            for i, name in enumerate(column_names)
        )
        return cls(index=index, columns=columns, rows=tuple(tuple(r) for r in rows))

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    @property
    def primary_key_columns(self) -> list[str]:
        return [c.name for c in self.columns if c.is_primary_key]


@dataclass(frozen=True)
class VirtualItem:
    """A row index to materialise, with its pixel offset and height."""

    index: int
    start: int
    size: int


@dataclass(frozen=True)
class ExportResult:
    """Serialised export text plus the metadata needed to name a file."""

    text: str
    extension: str
    mime_type: str
    filename: str
