"""
Persistence for usage records.
"""

from .base import EventStore, Subscription
from .models import UsageRecord
from .repository import SqliteEventStore

__all__ = ["EventStore", "Subscription", "SqliteEventStore", "UsageRecord"]
