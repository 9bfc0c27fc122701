"""CLI for reflex-result-grid -- filter, sort and export tabular files.

Usage::

    # Export a Parquet file as SQL INSERT statements
    reflex-result-grid export orders.parquet --format insert --table Orders

    # Filter and sort a CSV file, write Markdown to a file
    reflex-result-grid export people.csv -f markdown \\
        --filter "age:greaterThan:30" --sort name:desc -o people.md

    # List the supported export formats
    reflex-result-grid formats

The command runs the same filter -> sort pipeline and serializers the
interactive grid uses, so its output matches what the grid exports.
"""

from pathlib import Path
from typing import Annotated, Optional

import typer

from reflex_result_grid import log
from reflex_result_grid.config import get_settings
from reflex_result_grid.exceptions import ResultGridError
from reflex_result_grid.export import ExportFormat, format_info
from reflex_result_grid.frames import result_set_from_frame, scan_file
from reflex_result_grid.pipeline import FILTER_OPERATORS, FilterCondition, SortSpec
from reflex_result_grid.session import GridSession

app = typer.Typer(
    name="reflex-result-grid",
    help="Filter, sort and export tabular data files the way the result grid does.",
    no_args_is_help=True,
)


def _parse_filter(text: str) -> tuple[str, FilterCondition]:
    """Parse ``column:operator[:value]``.

    The value keeps any further colons, so times and URLs survive.  For
    ``between`` the value is ``low:high``, split on its last colon.
    """
    parts = text.split(":", 2)
    if len(parts) < 2 or not parts[0]:
        raise typer.BadParameter(f"expected column:operator[:value], got {text!r}")
    column, operator = parts[0], parts[1]
    if operator not in FILTER_OPERATORS:
        raise typer.BadParameter(f"unknown operator {operator!r}; choose from {', '.join(FILTER_OPERATORS)}")
    value = parts[2] if len(parts) > 2 else None
    value_to = None
    if operator == "between" and value is not None:
        low, sep, high = value.rpartition(":")
        if not sep:
            raise typer.BadParameter(f"between expects column:between:low:high, got {text!r}")
        value, value_to = low, high
    return column, FilterCondition(operator, value, value_to)


def _parse_sort(text: str) -> SortSpec:
    """Parse ``column`` or ``column:asc|desc``."""
    column, _, direction = text.partition(":")
    direction = direction.lower() or "asc"
    if direction not in ("asc", "desc"):
        raise typer.BadParameter(f"sort direction must be asc or desc, got {direction!r}")
    return SortSpec(column, direction)  # type: ignore[arg-type]


@app.command()
def export(
    file: Annotated[Path, typer.Argument(help="Path to the data file (CSV, TSV, Parquet, JSON, NDJSON, IPC)")],
    fmt: Annotated[str, typer.Option("--format", "-f", help="Export format (see `formats`)")] = "csv",
    filters: Annotated[
        Optional[list[str]],
        typer.Option(
            "--filter",
            help="Column filter column:operator[:value]; between takes column:between:low:high (repeatable)",
        ),
    ] = None,
    sort: Annotated[Optional[str], typer.Option("--sort", "-s", help="Sort column[:asc|desc]")] = None,
    output: Annotated[
        Optional[Path], typer.Option("--output", "-o", help="Write to this file instead of stdout")
    ] = None,
    table: Annotated[Optional[str], typer.Option("--table", "-t", help="Table name for INSERT output")] = None,
    limit: Annotated[Optional[int], typer.Option("--limit", "-n", help="Maximum number of rows to load")] = None,
    no_headers: Annotated[bool, typer.Option("--no-headers", help="Omit the header row (CSV/TSV/clipboard)")] = False,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Log pipeline decisions to stderr")] = False,
) -> None:
    """Export a data file through the grid's filter/sort pipeline."""
    settings = get_settings()
    log.set_level("DEBUG" if verbose else settings.log_level)

    file = file.resolve()
    if not file.exists():
        typer.echo(f"Error: file not found: {file}", err=True)
        raise typer.Exit(code=1)

    try:
        result_set = result_set_from_frame(scan_file(file), limit=limit)
        session = GridSession(result_set, settings=settings)
        for item in filters or []:
            column, condition = _parse_filter(item)
            session.set_filter(column, condition)
        if sort:
            session.set_sort(_parse_sort(sort))
        result = session.export(
            fmt,
            include_headers=not no_headers,
            selected_only=False,
            table_name=table or file.stem,
        )
    except ResultGridError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    if output is None:
        typer.echo(result.text)
        return

    output.write_text(result.text + "\n", encoding="utf-8")
    typer.echo(f"Wrote {session.row_count} rows to {output} ({result.mime_type})", err=True)


@app.command()
def formats() -> None:
    """List the supported export formats with extension and MIME type."""
    for fmt in ExportFormat:
        extension, mime_type = format_info(fmt)
        typer.echo(f"{fmt.value:<10} .{extension:<5} {mime_type}")


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
