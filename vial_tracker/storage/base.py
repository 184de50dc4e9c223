"""
Event store contract.

The core only talks to persistence through this interface: a single
snapshot callback per subscription, explicit unsubscribe, and async
create/update/delete calls whose effect is observed through the next
snapshot.
"""

from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional, Sequence

import structlog

from .models import UsageRecord

logger = structlog.get_logger(__name__)

SnapshotCallback = Callable[[Sequence[UsageRecord]], None]
ErrorCallback = Callable[[Exception], None]


class Subscription:
    """Handle returned by ``EventStore.subscribe``.

    Calling ``close()`` (or the handle itself) releases the subscription.
    Closing more than once is a no-op.
    """

    def __init__(self, release: Callable[[], None]):
        self._release = release
        self.closed = False

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        self._release()

    __call__ = close

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class EventStore(ABC):
    """Abstract persistence for usage records."""

    def __init__(self) -> None:
        self._subscribers: List[tuple] = []

    @abstractmethod
    async def load(self) -> List[UsageRecord]:
        """Return every live record ordered by date descending.

        Raises:
            StoreError: If the records cannot be read
        """

    @abstractmethod
    async def create(self, fields: Dict[str, str]) -> str:
        """Persist a new record and return its assigned id."""

    @abstractmethod
    async def update(self, record_id: str, fields: Dict[str, str]) -> None:
        """Replace the fields of an existing record."""

    @abstractmethod
    async def delete(self, record_id: str) -> None:
        """Remove a record from the live set."""

    async def subscribe(
        self,
        on_snapshot: SnapshotCallback,
        on_error: Optional[ErrorCallback] = None,
    ) -> Subscription:
        """Register for snapshots and deliver the current one immediately.

        Args:
            on_snapshot: Called with the full ordered record list on every change
            on_error: Called when a later snapshot cannot be produced

        Returns:
            Subscription handle; close it to stop delivery

        Raises:
            StoreError: If the initial snapshot cannot be loaded
        """
        records = await self.load()
        entry = (on_snapshot, on_error)
        on_snapshot(list(records))
        self._subscribers.append(entry)

        def release() -> None:
            if entry in self._subscribers:
                self._subscribers.remove(entry)

        return Subscription(release)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    async def publish(self) -> None:
        """Push a fresh snapshot to every subscriber.

        A load failure goes to each subscriber's error callback; the
        mutation that triggered the publish has already been committed.
        """
        if not self._subscribers:
            return
        try:
            records = await self.load()
        except Exception as e:
            logger.warning("snapshot_publish_failed", error=str(e))
            for _, on_error in list(self._subscribers):
                if on_error is not None:
                    on_error(e)
            return
        for on_snapshot, _ in list(self._subscribers):
            on_snapshot(list(records))
