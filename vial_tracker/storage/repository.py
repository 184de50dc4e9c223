"""
SQLite-backed event store.

Records live in the ``usage_record`` table. Deletes set a ``deleted_at``
tombstone instead of removing the row; snapshots only contain live rows.
"""

import asyncio
import sqlite3
import uuid
from datetime import date, datetime
from typing import Dict, List

import structlog

from ..errors import StoreError
from .base import EventStore
from .db import DEFAULT_DB_PATH, get_connection
from .models import RECORD_FIELDS, UsageRecord

logger = structlog.get_logger(__name__)


def initialize_schema(db_path: str = DEFAULT_DB_PATH) -> None:
    """Create the usage_record table if it doesn't exist.

    ``seq`` preserves insertion order, which breaks ties between
    records sharing a date.

    Args:
        db_path: Path to SQLite database file
    """
    conn = get_connection(db_path)
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS usage_record (
                seq INTEGER PRIMARY KEY AUTOINCREMENT,
                id TEXT NOT NULL UNIQUE,
                date TEXT NOT NULL,
                brand TEXT NOT NULL DEFAULT '',
                type TEXT NOT NULL DEFAULT '',
                amount_ml TEXT NOT NULL DEFAULT '',
                amount_mg TEXT NOT NULL DEFAULT '',
                location TEXT NOT NULL DEFAULT '',
                deleted_at TEXT
            )
        """)
        conn.commit()
    finally:
        conn.close()


def fetch_usage_records(db_path: str = DEFAULT_DB_PATH) -> List[UsageRecord]:
    """Fetch all live records, newest date first.

    Records with the same date keep their insertion order.

    Args:
        db_path: Path to SQLite database file

    Returns:
        List of usage records ordered by date descending
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            SELECT id, date, brand, type, amount_ml, amount_mg, location
            FROM usage_record
            WHERE deleted_at IS NULL
            ORDER BY date DESC, seq ASC
        """)
        return [
            UsageRecord(
                id=row[0],
                date=row[1],
                brand=row[2],
                type=row[3],
                amount_ml=row[4],
                amount_mg=row[5],
                location=row[6]
            )
            for row in cursor.fetchall()
        ]
    finally:
        conn.close()


def insert_usage_record(fields: Dict[str, str], db_path: str = DEFAULT_DB_PATH) -> str:
    """Insert a new record and return its generated id.

    Args:
        fields: Persisted field values; missing fields are stored blank
        db_path: Path to SQLite database file

    Returns:
        The new record id
    """
    record_id = uuid.uuid4().hex
    values = _field_values(fields)
    conn = get_connection(db_path)
    try:
        conn.execute("""
            INSERT INTO usage_record
            (id, date, brand, type, amount_ml, amount_mg, location)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (record_id, *values))
        conn.commit()
    finally:
        conn.close()
    return record_id


def update_usage_record(record_id: str, fields: Dict[str, str], db_path: str = DEFAULT_DB_PATH) -> bool:
    """Overwrite the fields of a live record (last write wins).

    Returns:
        True if a live record was updated, False if the id is unknown or deleted
    """
    values = _field_values(fields)
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            UPDATE usage_record
            SET date = ?, brand = ?, type = ?, amount_ml = ?, amount_mg = ?, location = ?
            WHERE id = ? AND deleted_at IS NULL
        """, (*values, record_id))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def delete_usage_record(record_id: str, db_path: str = DEFAULT_DB_PATH) -> bool:
    """Tombstone a live record.

    Returns:
        True if a live record was tombstoned, False otherwise
    """
    conn = get_connection(db_path)
    try:
        cursor = conn.execute("""
            UPDATE usage_record SET deleted_at = ?
            WHERE id = ? AND deleted_at IS NULL
        """, (datetime.now().isoformat(), record_id))
        conn.commit()
        return cursor.rowcount > 0
    finally:
        conn.close()


def _field_values(fields: Dict[str, str]) -> tuple:
    unknown = set(fields) - set(RECORD_FIELDS)
    if unknown:
        raise ValueError(f"Unknown record fields: {sorted(unknown)}")
    value = fields.get("date")
    if not value:
        raise ValueError("date is required")
    # dates sort as text, so only canonical YYYY-MM-DD is stored
    try:
        canonical = date.fromisoformat(str(value)).isoformat() == str(value)
    except ValueError:
        canonical = False
    if not canonical:
        raise ValueError(f"date must be YYYY-MM-DD, got {value!r}")
    return tuple(str(fields.get(name) or "") for name in RECORD_FIELDS)


class SqliteEventStore(EventStore):
    """Event store persisting usage records in a local SQLite file.

    Blocking database work runs in a worker thread; snapshots are
    published from the event loop after each committed mutation.
    """

    def __init__(self, db_path: str = DEFAULT_DB_PATH):
        """Initialize the store with a database path.

        Args:
            db_path: Path to SQLite database file
        """
        super().__init__()
        self.db_path = db_path

    def initialize(self) -> None:
        initialize_schema(self.db_path)

    async def load(self) -> List[UsageRecord]:
        try:
            return await asyncio.to_thread(fetch_usage_records, self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to load records: {e}", operation="load") from e

    async def create(self, fields: Dict[str, str]) -> str:
        try:
            record_id = await asyncio.to_thread(insert_usage_record, fields, self.db_path)
        except (sqlite3.Error, OSError, ValueError) as e:
            raise StoreError(f"Failed to create record: {e}", operation="create") from e
        logger.info("record_created", record_id=record_id, date=fields.get("date"))
        await self.publish()
        return record_id

    async def update(self, record_id: str, fields: Dict[str, str]) -> None:
        try:
            updated = await asyncio.to_thread(update_usage_record, record_id, fields, self.db_path)
        except (sqlite3.Error, OSError, ValueError) as e:
            raise StoreError(f"Failed to update record {record_id}: {e}", operation="update") from e
        if not updated:
            raise StoreError(f"No record with id {record_id}", operation="update")
        logger.info("record_updated", record_id=record_id)
        await self.publish()

    async def delete(self, record_id: str) -> None:
        try:
            deleted = await asyncio.to_thread(delete_usage_record, record_id, self.db_path)
        except (sqlite3.Error, OSError) as e:
            raise StoreError(f"Failed to delete record {record_id}: {e}", operation="delete") from e
        if not deleted:
            raise StoreError(f"No record with id {record_id}", operation="delete")
        logger.info("record_deleted", record_id=record_id)
        await self.publish()
