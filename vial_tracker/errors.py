"""
Exception hierarchy for the vial tracker.
"""


class VialTrackerError(Exception):
    """Base class for all vial tracker errors."""


class StoreError(VialTrackerError):
    """Raised when the event store rejects a subscribe, create, update or delete."""

    def __init__(self, message: str, operation: str = ""):
        super().__init__(message)
        self.operation = operation


class StoreUnavailable(VialTrackerError):
    """Raised when the ledger cannot obtain a snapshot from the store.

    The ledger keeps its last good snapshot when this is raised.
    """
