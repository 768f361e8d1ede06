"""Pagination state and subset math."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Optional, Sequence, TypeVar

from nicetable.table_controller.config import SortOrder

T = TypeVar("T")


def page_count(total: int, per_page: int) -> int:
    """Number of pages needed to show *total* objects, *per_page* at a time (at least 1)."""
    if total > per_page:
        if total % per_page == 0:
            return total // per_page
        return math.ceil(total / per_page)
    return 1


@dataclass
class PaginationState:
    """Mutable pagination state owned by a single controller.

    ``total_page_count`` and the 1-based ``first_object_number`` /
    ``last_object_number`` display bounds are derived; keep them current
    through :meth:`update_totals`, :meth:`set_results_per_page` and
    :meth:`recompute_bounds` rather than assigning them directly.
    """

    page: int = 1
    results_per_page: int = 30
    total_rows_count: int = 0
    total_page_count: int = 1
    order_by: str = ""
    sort_order: Optional[SortOrder] = None
    search: str = ""
    first_object_number: int = 1
    last_object_number: int = 30

    def __post_init__(self) -> None:
        self.total_page_count = page_count(self.total_rows_count, self.results_per_page)
        self.recompute_bounds()

    def recompute_bounds(self) -> None:
        self.first_object_number = (self.page - 1) * self.results_per_page + 1
        self.last_object_number = self.page * self.results_per_page

    def update_totals(self, total: int) -> bool:
        """Apply a new total row count.

        Returns True when the current page fell out of range and was reset
        to 1 (the caller owns the page-change notification).
        """
        if not isinstance(total, int) or isinstance(total, bool):
            raise TypeError(f"total rows count must be an int, got {type(total).__name__}")
        page_reset = False
        if total != self.total_rows_count:
            self.total_rows_count = total
            self.total_page_count = page_count(total, self.results_per_page)
        # also settles a page left out of range by URL/storage loading
        if self.page > self.total_page_count:
            self.page = 1
            page_reset = True
        self.recompute_bounds()
        return page_reset

    def set_results_per_page(self, size: int) -> bool:
        """Change the page size; returns True when the page had to be reset to 1."""
        self.results_per_page = size
        self.total_page_count = page_count(self.total_rows_count, size)
        page_reset = False
        if self.page > self.total_page_count:
            self.page = 1
            page_reset = True
        self.recompute_bounds()
        return page_reset

    def is_valid_page(self, value: Any) -> bool:
        """True if *value* is a page we can move to (in range and not the current one)."""
        if not isinstance(value, int) or isinstance(value, bool):
            return False
        return 1 <= value <= self.total_page_count and value != self.page

    def subset(self, rows: Sequence[T]) -> list[T]:
        """Rows of the current page.

        Also applied to server-paginated data: a server may return coarser
        pages than displayed, the client slices further.
        """
        start = (self.page - 1) * self.results_per_page
        return list(rows[start:start + self.results_per_page])
