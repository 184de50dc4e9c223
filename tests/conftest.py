"""
Shared fixtures for Vial Tracker tests.
"""

import logging
from datetime import date
from typing import Dict, List

import pytest

from vial_tracker.errors import StoreError
from vial_tracker.storage.base import EventStore
from vial_tracker.storage.models import UsageRecord

TODAY = date(2024, 6, 15)


class MemoryEventStore(EventStore):
    """In-memory event store with failure injection for tests."""

    def __init__(self, records: List[Dict[str, str]] = ()):
        super().__init__()
        self._rows: List[UsageRecord] = []
        self._next_id = 1
        self.fail_on = set()
        self.calls = []
        for fields in records:
            self._insert(fields)

    def _insert(self, fields: Dict[str, str]) -> str:
        record_id = f"rec-{self._next_id}"
        self._next_id += 1
        self._rows.append(UsageRecord(id=record_id, **fields))
        return record_id

    def _check(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StoreError(f"{operation} rejected", operation=operation)

    async def load(self) -> List[UsageRecord]:
        self._check("load")
        return sorted(self._rows, key=lambda r: r.date, reverse=True)

    async def create(self, fields: Dict[str, str]) -> str:
        self.calls.append(("create", dict(fields)))
        self._check("create")
        record_id = self._insert(fields)
        await self.publish()
        return record_id

    async def update(self, record_id: str, fields: Dict[str, str]) -> None:
        self.calls.append(("update", record_id, dict(fields)))
        self._check("update")
        for i, row in enumerate(self._rows):
            if row.id == record_id:
                self._rows[i] = UsageRecord(id=record_id, **fields)
                break
        else:
            raise StoreError(f"No record with id {record_id}", operation="update")
        await self.publish()

    async def delete(self, record_id: str) -> None:
        self.calls.append(("delete", record_id))
        self._check("delete")
        before = len(self._rows)
        self._rows = [row for row in self._rows if row.id != record_id]
        if len(self._rows) == before:
            raise StoreError(f"No record with id {record_id}", operation="delete")
        await self.publish()


def shot(day: str, amount_ml: str = "0.11", **extra: str) -> Dict[str, str]:
    fields = {
        "date": day,
        "brand": "Humalog",
        "type": "rapid",
        "amount_ml": amount_ml,
        "amount_mg": "",
        "location": "abdomen",
    }
    fields.update(extra)
    return fields


@pytest.fixture
def memory_store():
    return MemoryEventStore()


@pytest.fixture(autouse=True)
def reset_logging_handlers():
    """Drop handlers pointing at streams closed by CliRunner."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
