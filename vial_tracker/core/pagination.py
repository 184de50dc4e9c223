"""
Paged view over the ledger.
"""

import math
from dataclasses import dataclass
from typing import Sequence, Tuple

from vial_tracker.storage.models import UsageRecord


@dataclass(frozen=True)
class Page:
    """One window of the ledger."""
    items: Tuple[UsageRecord, ...]
    number: int
    total_pages: int
    total_items: int

    @property
    def has_next(self) -> bool:
        return self.number < self.total_pages

    @property
    def has_previous(self) -> bool:
        return self.number > 1


class PaginationView:
    """Tracks the current page and slices snapshots into windows.

    Pages are 1-based. There is always at least one page, even for an
    empty ledger. Requests for a page outside ``[1, total_pages]`` are
    clamped, so stepping past either end leaves the page unchanged.
    """

    def __init__(self, page_size: int = 10, current_page: int = 1):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.page_size = page_size
        self.current_page = max(current_page, 1)

    def total_pages(self, total_items: int) -> int:
        return max(1, math.ceil(total_items / self.page_size))

    def clamp(self, total_items: int) -> int:
        """Pull the current page back into range after the ledger shrinks."""
        self.current_page = min(max(self.current_page, 1), self.total_pages(total_items))
        return self.current_page

    def go_to(self, page: int, total_items: int) -> bool:
        """Move to ``page``, clamped into ``[1, total_pages]``.

        Returns:
            True if the current page changed
        """
        target = min(max(page, 1), self.total_pages(total_items))
        if target == self.current_page:
            return False
        self.current_page = target
        return True

    def next_page(self, total_items: int) -> bool:
        return self.go_to(self.current_page + 1, total_items)

    def previous_page(self, total_items: int) -> bool:
        return self.go_to(self.current_page - 1, total_items)

    def window(self, records: Sequence[UsageRecord]) -> Page:
        """Return the current page of ``records``."""
        total = len(records)
        number = self.clamp(total)
        start = (number - 1) * self.page_size
        return Page(
            items=tuple(records[start:start + self.page_size]),
            number=number,
            total_pages=self.total_pages(total),
            total_items=total
        )
