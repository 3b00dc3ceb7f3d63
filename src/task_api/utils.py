from __future__ import annotations

import math
from typing import Any, Dict, Iterable, List, Sequence, Union


# PUBLIC_INTERFACE
def total_pages(total: int, page_size: int) -> int:
    """Number of pages needed for `total` items: ceil(total / page_size)."""
    if page_size <= 0:
        raise ValueError("page_size must be positive")
    return math.ceil(max(total, 0) / page_size)


# PUBLIC_INTERFACE
def page_offset(page: int, page_size: int) -> int:
    """Index of the first item on a 1-indexed page."""
    return (max(page, 1) - 1) * page_size


# PUBLIC_INTERFACE
def pagination_envelope(
    items: Union[Sequence[Any], Iterable[Any]],
    total: int,
    page: int,
    page_size: int,
) -> Dict[str, Any]:
    """
    Build a standard pagination envelope for list endpoints.

    Args:
        items: The list/iterable of items for the current page.
        total: Total number of items that match the query (ignoring pagination).
        page: The 1-indexed page that was requested.
        page_size: The page size used for pagination.

    Returns:
        Dict with keys: items, total, page, page_size, total_pages.
    """
    # Ensure items is materialized as a list (in case an iterator is passed)
    materialized: List[Any] = list(items) if not isinstance(items, list) else items
    return {
        "items": materialized,
        "total": int(total),
        "page": int(page),
        "page_size": int(page_size),
        "total_pages": total_pages(total, page_size),
    }
