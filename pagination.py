"""
Page-marker pagination for the flashcard carousel.

``paginate`` collapses long decks into a bounded run of page numbers with
ellipsis markers, e.g. ``[1, "...", 9, 10, 11, "...", 20]``.
"""

from __future__ import annotations

ELLIPSIS = "..."

# Decks this size or smaller are always shown in full.
_FULL_RANGE_MAX = 7


def _page_range(start: int, end: int) -> list[int]:
    return list(range(start, end + 1))


def paginate(total_count: int, current_page: int, sibling_count: int = 1) -> list[int | str]:
    """Return the page markers to display for a 1-based ``current_page``.

    Pure function of its arguments. The result holds at most
    ``5 + 2 * sibling_count`` markers regardless of ``total_count``.
    """
    if total_count <= _FULL_RANGE_MAX or sibling_count + 5 >= total_count:
        return _page_range(1, total_count)

    left_sibling = max(current_page - sibling_count, 1)
    right_sibling = min(current_page + sibling_count, total_count)

    show_left = left_sibling > 2
    show_right = right_sibling < total_count - 2

    edge_count = 3 + 2 * sibling_count

    if show_right and not show_left:
        return _page_range(1, edge_count) + [ELLIPSIS, total_count]

    if show_left and not show_right:
        return [1, ELLIPSIS] + _page_range(total_count - edge_count + 1, total_count)

    if show_left and show_right:
        return [1, ELLIPSIS] + _page_range(left_sibling, right_sibling) + [ELLIPSIS, total_count]

    return _page_range(1, total_count)
