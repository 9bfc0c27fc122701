"""Logging helpers for reflex-result-grid.

The engine degrades silently instead of raising for UI-state problems
(unknown filter operators, missing columns, stale row indices, rows
without a primary key).  Those degradations are reported here at
debug/warning level on the ``reflex_result_grid`` logger.
"""

import logging
import sys

LOGGER_NAME = "reflex_result_grid"

_logger = logging.getLogger(LOGGER_NAME)


def get_logger() -> logging.Logger:
    """Return the package logger, attaching a stderr handler on first use."""
    if not _logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(name)s - %(levelname)s - %(message)s"))
        _logger.addHandler(handler)
        if _logger.level == logging.NOTSET:
            _logger.setLevel(logging.WARNING)
    return _logger


def debug(msg: str) -> None:
    get_logger().debug(msg)


def warn(msg: str) -> None:
    """Log a degradation the caller recovered from."""
    get_logger().warning(msg)


def set_level(level: int | str) -> None:
    """Set the package logging level.

    Args:
        level: A ``logging`` level constant or its name (``"DEBUG"``).
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper())
    get_logger().setLevel(level)
