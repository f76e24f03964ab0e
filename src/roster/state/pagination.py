"""Page arithmetic for server-side pagination.

The server is the authority on totals: a :class:`PageDescriptor` is built from
each successful list response and never derived from the local cache size.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Tuple

from roster.config import PAGE_SIZE, PAGINATION_WINDOW_RADIUS


def total_pages_for(total: int, limit: int) -> int:
    """Return ``ceil(total / limit)``; zero records means zero pages."""
    if limit <= 0:
        raise ValueError("Page size must be positive")
    if total <= 0:
        return 0
    return math.ceil(total / limit)


def record_range(page: int, limit: int, total: int) -> Optional[Tuple[int, int]]:
    """Return the 1-based ``(first, last)`` record numbers shown on *page*.

    ``None`` means the page holds no records, either because the result set
    is empty or because *page* lies beyond the last page.
    """
    if page < 1 or total <= 0:
        return None
    first = (page - 1) * limit + 1
    if first > total:
        return None
    return first, min(page * limit, total)


def page_window(
    page: int,
    total_pages: int,
    radius: int = PAGINATION_WINDOW_RADIUS,
) -> List[Optional[int]]:
    """Page numbers to offer as buttons; ``None`` marks an ellipsis.

    The first and last pages are always listed, as is every page within
    *radius* of the current one.  A page exactly one step outside the window
    collapses into a single ellipsis.
    """
    window: List[Optional[int]] = []
    for number in range(1, total_pages + 1):
        if number in (1, total_pages) or page - radius <= number <= page + radius:
            window.append(number)
        elif number in (page - radius - 1, page + radius + 1):
            window.append(None)
    return window


@dataclass(frozen=True)
class PageDescriptor:
    page: int = 1
    limit: int = PAGE_SIZE
    total: int = 0
    total_pages: int = 0

    @classmethod
    def from_payload(
        cls,
        payload: Mapping[str, Any],
        *,
        requested_page: int,
        requested_limit: int,
    ) -> "PageDescriptor":
        """Build a descriptor from a ``pagination`` object.

        ``total_pages`` is recomputed from ``total`` and ``limit`` so that a
        float coming from the server (``ceil`` in PHP returns one) never
        leaks into page arithmetic.
        """
        limit = int(payload.get("limit") or requested_limit)
        total = int(payload.get("total") or 0)
        page = int(payload.get("page") or requested_page)
        return cls(page=page, limit=limit, total=total, total_pages=total_pages_for(total, limit))

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def has_previous(self) -> bool:
        return self.page > 1

    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages

    @property
    def is_beyond_range(self) -> bool:
        """True when the current page lies past the last page.

        The page number is deliberately not clamped after a filter change
        shrinks the result set; the view shows an empty page instead.
        """
        return self.page > max(self.total_pages, 1)

    def visible_range(self) -> Optional[Tuple[int, int]]:
        return record_range(self.page, self.limit, self.total)

    def window(self) -> List[Optional[int]]:
        return page_window(self.page, self.total_pages)

    def with_page(self, page: int) -> "PageDescriptor":
        if page < 1:
            raise ValueError(f"Page numbers start at 1, got {page}")
        return PageDescriptor(page=page, limit=self.limit, total=self.total, total_pages=self.total_pages)
