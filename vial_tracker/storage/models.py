"""
Data models for storage layer.

Defines the usage record persisted by the event store.
"""

from dataclasses import dataclass
from typing import Dict, Optional


# Persisted field names, in column order
RECORD_FIELDS = ("date", "brand", "type", "amount_ml", "amount_mg", "location")


@dataclass(frozen=True)
class UsageRecord:
    """One recorded shot drawn from the vial.

    Amounts are kept as the strings the user entered; the calculator
    decides how to interpret them.
    """
    date: str
    brand: str = ""
    type: str = ""
    amount_ml: str = ""
    amount_mg: str = ""
    location: str = ""
    id: Optional[str] = None

    def fields(self) -> Dict[str, str]:
        """Return the persisted fields without the identifier."""
        return {name: getattr(self, name) for name in RECORD_FIELDS}
