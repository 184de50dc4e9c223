"""
Tracker facade.

Wires the ledger, calculator, pagination view and edit session around a
single event store. Every snapshot recomputes the vial state and
re-validates the current page before the tracker's own listeners run.
"""

from contextlib import asynccontextmanager
from datetime import date
from typing import AsyncIterator, Callable, List, Optional, Sequence

import structlog

from vial_tracker.config.loader import TrackerConfig
from vial_tracker.storage.base import EventStore
from vial_tracker.storage.models import UsageRecord

from .calculator import VialState, compute_vial_state
from .ledger import UsageLedger
from .pagination import Page, PaginationView
from .session import EditSession

logger = structlog.get_logger(__name__)

TrackerListener = Callable[["VialTracker"], None]


class VialTracker:
    """Live view of one vial backed by an event store."""

    def __init__(
        self,
        store: EventStore,
        config: Optional[TrackerConfig] = None,
        today: Callable[[], date] = date.today
    ):
        self.config = config or TrackerConfig()
        self.store = store
        self.ledger = UsageLedger()
        self.pagination = PaginationView(self.config.display.page_size)
        self.session = EditSession(
            store,
            self.ledger,
            vial=self.config.vial,
            defaults=self.config.draft_defaults,
            today=today
        )
        self._listeners: List[TrackerListener] = []
        self.state = self._compute(())
        self.page = self.pagination.window(())
        self.ledger.add_listener(self._on_snapshot)
        self.ledger.add_error_listener(self._on_store_error)

    def _compute(self, records: Sequence[UsageRecord]) -> VialState:
        vial = self.config.vial
        return compute_vial_state(records, vial.capacity_ml, vial.shot_size_ml, vial.shots_per_day)

    def _on_snapshot(self, records: Sequence[UsageRecord]) -> None:
        self.state = self._compute(records)
        self.page = self.pagination.window(records)
        self.session.handle_snapshot(records)
        self._notify()

    def _on_store_error(self, error: Exception) -> None:
        # state and page keep describing the last good snapshot
        logger.warning("tracker_snapshot_stale", error=str(error))
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)

    def add_listener(self, listener: TrackerListener) -> None:
        """Call ``listener`` after each recomputation or stream failure.

        Listeners check ``available`` to tell the two apart.
        """
        self._listeners.append(listener)

    @property
    def available(self) -> bool:
        return self.ledger.available

    @property
    def last_error(self) -> Optional[Exception]:
        return self.ledger.last_error

    @property
    def records(self) -> Sequence[UsageRecord]:
        return self.ledger.records

    def go_to_page(self, number: int) -> Page:
        self.pagination.go_to(number, len(self.ledger))
        self.page = self.pagination.window(self.ledger.records)
        return self.page

    def next_page(self) -> Page:
        return self.go_to_page(self.pagination.current_page + 1)

    def previous_page(self) -> Page:
        return self.go_to_page(self.pagination.current_page - 1)

    @asynccontextmanager
    async def open(self) -> AsyncIterator["VialTracker"]:
        """Subscribe to the store for the lifetime of the block.

        Raises:
            StoreUnavailable: If the initial snapshot cannot be loaded
        """
        async with self.ledger.attach(self.store):
            logger.debug("tracker_opened", records=len(self.ledger))
            yield self
        logger.debug("tracker_closed")
