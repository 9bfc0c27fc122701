"""Exception hierarchy for reflex-result-grid.

The grid engine itself never raises for UI-state degradation.  These
exceptions cover the hard failures at the package edges: parsing a
user-supplied export format name and scanning input files in the CLI.
"""

from typing import Any


class ResultGridError(Exception):
    """Base exception for all reflex-result-grid errors."""

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class ExportFormatError(ResultGridError, ValueError):
    """Raised when an export format name is not recognised."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unsupported export format: {name!r}", format=name)
        self.name = name


class UnsupportedFileError(ResultGridError):
    """Raised when an input file cannot be scanned into a result set."""

    def __init__(self, message: str, path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.path = path
