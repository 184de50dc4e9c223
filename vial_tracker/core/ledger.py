"""
Usage ledger.

Holds the current snapshot of usage records delivered by the event store.
Each snapshot replaces the previous one wholesale; consumers only ever see
complete, sorted, immutable tuples.
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, List, Optional, Sequence, Tuple

import structlog

from vial_tracker.errors import StoreError, StoreUnavailable
from vial_tracker.storage.base import EventStore, Subscription
from vial_tracker.storage.models import UsageRecord

logger = structlog.get_logger(__name__)

SnapshotListener = Callable[[Tuple[UsageRecord, ...]], None]
ErrorListener = Callable[[Exception], None]


def sort_records(records: Sequence[UsageRecord]) -> Tuple[UsageRecord, ...]:
    """Order records by date descending, keeping the given order for ties."""
    return tuple(sorted(records, key=lambda r: r.date, reverse=True))


class UsageLedger:
    """In-memory mirror of the store's record set."""

    def __init__(self) -> None:
        self._records: Tuple[UsageRecord, ...] = ()
        self._listeners: List[SnapshotListener] = []
        self._error_listeners: List[ErrorListener] = []
        self.available = True
        self.last_error: Optional[Exception] = None
        self.snapshot_count = 0

    @property
    def records(self) -> Tuple[UsageRecord, ...]:
        return self._records

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> Optional[UsageRecord]:
        for record in self._records:
            if record.id == record_id:
                return record
        return None

    def add_listener(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register a callback for every new snapshot.

        Returns:
            A function removing the listener again
        """
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def add_error_listener(self, listener: ErrorListener) -> Callable[[], None]:
        """Register a callback for snapshot stream failures.

        Returns:
            A function removing the listener again
        """
        self._error_listeners.append(listener)

        def remove() -> None:
            if listener in self._error_listeners:
                self._error_listeners.remove(listener)

        return remove

    def apply_snapshot(self, records: Sequence[UsageRecord]) -> None:
        """Replace the whole record set and notify listeners."""
        # stable sort: store order decides between equal dates
        self._records = sort_records(records)
        self.available = True
        self.last_error = None
        self.snapshot_count += 1
        logger.debug("ledger_snapshot", records=len(self._records))
        for listener in list(self._listeners):
            listener(self._records)

    def mark_unavailable(self, error: Exception) -> None:
        """Record a stream failure without touching the current snapshot.

        Error listeners are called with the failure.
        """
        self.available = False
        self.last_error = error
        logger.warning("ledger_store_unavailable", error=str(error), kept_records=len(self._records))
        for listener in list(self._error_listeners):
            listener(error)

    def ensure_available(self) -> None:
        """Raise StoreUnavailable if the last snapshot delivery failed."""
        if not self.available:
            raise StoreUnavailable(f"Event store unavailable: {self.last_error}")

    async def subscribe(self, store: EventStore) -> Subscription:
        """Subscribe to the store's snapshots.

        Raises:
            StoreUnavailable: If the store cannot deliver an initial snapshot
        """
        try:
            return await store.subscribe(self.apply_snapshot, self.mark_unavailable)
        except StoreError as e:
            self.mark_unavailable(e)
            raise StoreUnavailable(f"Event store unavailable: {e}") from e

    @asynccontextmanager
    async def attach(self, store: EventStore) -> AsyncIterator["UsageLedger"]:
        """Keep the ledger subscribed to ``store`` for the duration of the block."""
        subscription = await self.subscribe(store)
        try:
            yield self
        finally:
            subscription.close()
