"""Windowed row virtualization.

Only the rows inside the viewport (plus ``overscan`` rows on each side)
are materialised by the rendering layer.  The scroll container itself is
always sized to the full content height so the native scrollbar stays
proportional.

Everything here is a pure computation.  The caller subscribes to scroll
and resize events and calls :func:`compute_virtual_items` again.
"""

import math

from reflex_result_grid.models import VirtualItem

DEFAULT_OVERSCAN: int = 5


def visible_range(
    item_count: int,
    item_height: int,
    scroll_offset: float,
    viewport_height: float,
    overscan: int = DEFAULT_OVERSCAN,
) -> tuple[int, int] | None:
    """Return the inclusive ``(start_index, end_index)`` window, or ``None``.

    ``None`` means there is nothing to render: either the result is empty
    or the viewport has not been laid out yet (zero height).
    """
    if item_count <= 0 or viewport_height <= 0:
        return None

    start_index = max(0, math.floor(scroll_offset / item_height) - overscan)
    visible_count = math.ceil(viewport_height / item_height)
    end_index = min(item_count - 1, start_index + visible_count + 2 * overscan)
    if end_index < start_index:
        # Scrolled past the end (stale offset after the row count shrank).
        return None
    return start_index, end_index


def compute_virtual_items(
    item_count: int,
    item_height: int,
    scroll_offset: float,
    viewport_height: float,
    overscan: int = DEFAULT_OVERSCAN,
) -> list[VirtualItem]:
    """Map scroll state to the list of rows to materialise.

    Args:
        item_count: Number of rows in the display-order list.
        item_height: Fixed row height in pixels.
        scroll_offset: Current ``scrollTop`` of the container.
        viewport_height: Current client height of the container.
        overscan: Extra rows rendered above and below the viewport.

    Returns:
        Contiguous :class:`VirtualItem` entries, each with
        ``start = index * item_height`` and ``size = item_height``.
    """
    window = visible_range(item_count, item_height, scroll_offset, viewport_height, overscan)
    if window is None:
        return []
    start_index, end_index = window
    return [
        VirtualItem(index=i, start=i * item_height, size=item_height)
        for i in range(start_index, end_index + 1)
    ]


def total_height(item_count: int, item_height: int) -> int:
    """Full scroll height, independent of the current window."""
    return max(0, item_count) * item_height


def scroll_offset_for_index(index: int, item_height: int) -> int:
    """Scroll offset that puts row *index* at the top of the viewport."""
    return index * item_height
