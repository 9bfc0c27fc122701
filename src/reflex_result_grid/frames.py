"""polars adapter: turn DataFrames, LazyFrames and data files into result sets."""

from collections.abc import Sequence
from pathlib import Path

import polars as pl

from reflex_result_grid import log
from reflex_result_grid.exceptions import UnsupportedFileError
from reflex_result_grid.models import ResultSet

SUPPORTED_SUFFIXES: tuple[str, ...] = (
    ".parquet", ".pq", ".csv", ".tsv", ".json", ".ndjson", ".jsonl", ".ipc", ".arrow", ".feather",
)


def polars_dtype_to_sql_type(dtype: pl.DataType) -> str:
    """Map a polars DataType to the closest SQL Server column type.

    The declared type drives literal formatting for INSERT export
    (``bit`` -> ``1``/``0``, ``n``-types -> ``N'...'``, ...).

    Args:
        dtype: A polars data type.

    Returns:
        A declared type such as ``"bigint"``, ``"nvarchar"``, ``"bit"``
        or ``"datetime2"``; ``""`` for the untyped ``Null`` dtype.
    """
    if isinstance(dtype, pl.Boolean):
        return "bit"
    if isinstance(dtype, pl.UInt8):
        return "tinyint"
    if isinstance(dtype, (pl.Int8, pl.Int16)):
        return "smallint"
    if isinstance(dtype, (pl.Int32, pl.UInt16)):
        return "int"
    if isinstance(dtype, (pl.Int64, pl.UInt32)):
        return "bigint"
    if isinstance(dtype, pl.UInt64):
        return "decimal(20, 0)"
    if isinstance(dtype, pl.Float32):
        return "real"
    if isinstance(dtype, pl.Float64):
        return "float"
    if isinstance(dtype, pl.Decimal):
        precision = dtype.precision if dtype.precision is not None else 38
        return f"decimal({precision}, {dtype.scale or 0})"
    if isinstance(dtype, pl.Date):
        return "date"
    if isinstance(dtype, pl.Datetime):
        return "datetime2"
    if isinstance(dtype, pl.Time):
        return "time"
    if isinstance(dtype, pl.Binary):
        return "varbinary"
    if isinstance(dtype, pl.Null):
        return ""
    # String, Categorical, Enum, List, Struct, Duration, ...
    return "nvarchar"


def detect_primary_key(df: pl.DataFrame) -> list[str]:
    """Use an ``id`` column as the primary key when its values are unique.

    Files often carry an ``id`` column full of placeholders, so uniqueness
    is checked before trusting it.
    """
    if "id" in df.columns and df.height > 0 and df["id"].null_count() == 0 and df["id"].n_unique() == df.height:
        return ["id"]
    return []


def result_set_from_frame(
    frame: pl.DataFrame | pl.LazyFrame,
    *,
    index: int = 0,
    primary_keys: Sequence[str] | None = None,
    limit: int | None = None,
) -> ResultSet:
    """Convert a polars frame into a :class:`ResultSet`.

    Args:
        frame: A DataFrame, or a LazyFrame that is collected here.
        index: The result-set index used to key pending changes.
        primary_keys: Primary-key column names.  ``None`` falls back to
            :func:`detect_primary_key`; pass ``()`` for no key at all.
        limit: Optional maximum number of rows to collect.

    Returns:
        A result set whose rows are Python-native tuples and whose
        declared types are mapped from the frame's schema.
    """
    if isinstance(frame, pl.LazyFrame):
        if limit is not None:
            frame = frame.head(limit)
        df = frame.collect()
    else:
        df = frame.head(limit) if limit is not None else frame

    if primary_keys is None:
        primary_keys = detect_primary_key(df)

    declared_types = {name: polars_dtype_to_sql_type(dtype) for name, dtype in df.schema.items()}
    log.debug(f"Loaded {df.height} rows x {df.width} columns into result set {index}")
    return ResultSet.from_rows(
        df.rows(),
        df.columns,
        index=index,
        declared_types=declared_types,
        primary_keys=list(primary_keys),
    )


def scan_file(path: Path) -> pl.LazyFrame:
    """Scan a data file into a LazyFrame.

    Auto-detects the file format from the extension:

    * ``.parquet`` / ``.pq`` -- uses ``pl.scan_parquet()``.
    * ``.csv`` -- uses ``pl.scan_csv()``.
    * ``.tsv`` -- uses ``pl.scan_csv(separator="\\t")``.
    * ``.json`` -- uses ``pl.read_json().lazy()`` (no streaming scan).
    * ``.ndjson`` / ``.jsonl`` -- uses ``pl.scan_ndjson()``.
    * ``.ipc`` / ``.arrow`` / ``.feather`` -- uses ``pl.scan_ipc()``.

    Args:
        path: Path to the data file.

    Raises:
        FileNotFoundError: If *path* does not exist.
        UnsupportedFileError: If the file extension is not recognised.
    """
    path = Path(path).resolve()
    if not path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    suffix = path.suffix.lower()

    if suffix in (".parquet", ".pq"):
        return pl.scan_parquet(path)
    if suffix == ".csv":
        return pl.scan_csv(path)
    if suffix == ".tsv":
        return pl.scan_csv(path, separator="\t")
    # JSON (no streaming scan -- read then convert to lazy)
    if suffix == ".json":
        return pl.read_json(path).lazy()
    if suffix in (".ndjson", ".jsonl"):
        return pl.scan_ndjson(path)
    if suffix in (".ipc", ".arrow", ".feather"):
        return pl.scan_ipc(path)

    raise UnsupportedFileError(
        f"Unsupported file extension '{suffix}'. Supported: {', '.join(SUPPORTED_SUFFIXES)}",
        path=str(path),
    )
