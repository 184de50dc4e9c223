"""
Unit tests for the pagination view.
"""

import pytest

from vial_tracker.core.pagination import PaginationView
from vial_tracker.storage.models import UsageRecord


def _ledger(count):
    return tuple(
        UsageRecord(id=f"r{i}", date=f"2024-01-{(count - i):02d}", amount_ml="0.11")
        for i in range(count)
    )


class TestPaginationView:
    """Test paging over ledger snapshots."""

    def test_page_count(self):
        view = PaginationView(page_size=10)

        assert view.total_pages(25) == 3
        assert view.total_pages(30) == 3
        assert view.total_pages(31) == 4

    def test_empty_ledger_has_one_page(self):
        view = PaginationView(page_size=10)
        page = view.window(())

        assert view.total_pages(0) == 1
        assert page.number == 1
        assert page.total_pages == 1
        assert page.items == ()
        assert not page.has_next
        assert not page.has_previous

    def test_first_page_window(self):
        records = _ledger(25)
        page = PaginationView(page_size=10).window(records)

        assert page.items == records[:10]
        assert page.has_next
        assert not page.has_previous

    def test_last_page_is_partial(self):
        records = _ledger(25)
        view = PaginationView(page_size=10)

        assert view.go_to(3, len(records))
        page = view.window(records)

        assert page.number == 3
        assert len(page.items) == 5
        assert page.items == records[20:]
        assert not page.has_next
        assert page.has_previous

    def test_request_beyond_last_page_is_clamped(self):
        records = _ledger(25)
        view = PaginationView(page_size=10)

        view.go_to(4, len(records))

        assert view.current_page == 3
        assert len(view.window(records).items) == 5

    def test_next_past_last_page_is_a_no_op(self):
        view = PaginationView(page_size=10, current_page=3)

        assert not view.next_page(25)
        assert view.current_page == 3

    def test_previous_before_first_page_is_a_no_op(self):
        view = PaginationView(page_size=10)

        assert not view.previous_page(25)
        assert view.current_page == 1

    def test_next_and_previous(self):
        view = PaginationView(page_size=10)

        assert view.next_page(25)
        assert view.current_page == 2
        assert view.previous_page(25)
        assert view.current_page == 1

    def test_window_follows_shrinking_ledger(self):
        """Deleting records from the last page moves the view back."""
        view = PaginationView(page_size=10, current_page=3)

        page = view.window(_ledger(18))

        assert page.number == 2
        assert view.current_page == 2
        assert len(page.items) == 8

    @pytest.mark.parametrize("size", [0, -5])
    def test_rejects_invalid_page_size(self, size):
        with pytest.raises(ValueError):
            PaginationView(page_size=size)
