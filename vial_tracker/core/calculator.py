"""
Vial supply calculations.

Derives remaining volume and projected depletion from a ledger snapshot.
All functions here are pure: the same snapshot always yields the same state.
"""

import math
from dataclasses import dataclass
from typing import Optional, Sequence, Union

import structlog

from vial_tracker.storage.models import UsageRecord

logger = structlog.get_logger(__name__)

# Absorbs binary rounding so that e.g. 0.33 / 0.11 counts as 3 whole shots
_FLOOR_EPSILON = 1e-9


@dataclass(frozen=True)
class VialState:
    """Derived state of the vial for one ledger snapshot."""
    capacity_ml: float
    shot_size_ml: float
    total_used_ml: float
    remaining_ml: float
    shots_taken: int
    shots_remaining: int
    days_remaining: int
    malformed_count: int = 0

    @property
    def can_register(self) -> bool:
        """Whether enough volume remains for one more standard shot."""
        return self.remaining_ml >= self.shot_size_ml


def parse_amount(value: Union[str, float, int, None]) -> Optional[float]:
    """Parse an entered amount.

    Returns:
        The amount as a float, or None when it is empty or not a finite number
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if not math.isfinite(number):
        return None
    return number


def compute_vial_state(
    records: Sequence[UsageRecord],
    capacity_ml: float,
    shot_size_ml: float,
    shots_per_day: float = 1.0
) -> VialState:
    """Compute remaining volume and projections from usage records.

    Amounts that do not parse contribute nothing to the total and are
    counted in ``malformed_count``. Usage beyond capacity clamps the
    remaining volume at zero.

    Days remaining is shots remaining divided by ``shots_per_day``; with the
    default of one shot per day both projections are equal.

    Args:
        records: Ledger snapshot
        capacity_ml: Vial capacity in ml
        shot_size_ml: Volume of one standard shot in ml
        shots_per_day: Expected shots per day

    Returns:
        VialState for the snapshot

    Raises:
        ValueError: If capacity, shot size or shots per day is not positive
    """
    if capacity_ml <= 0:
        raise ValueError("capacity_ml must be > 0")
    if shot_size_ml <= 0:
        raise ValueError("shot_size_ml must be > 0")
    if shots_per_day <= 0:
        raise ValueError("shots_per_day must be > 0")

    total_used = 0.0
    malformed = 0
    for record in records:
        amount = parse_amount(record.amount_ml)
        if amount is None:
            malformed += 1
            continue
        total_used += amount

    if malformed:
        logger.warning("malformed_amounts", count=malformed, treated_as=0)

    remaining = min(max(capacity_ml - total_used, 0.0), capacity_ml)
    shots_remaining = _whole(remaining / shot_size_ml)

    return VialState(
        capacity_ml=capacity_ml,
        shot_size_ml=shot_size_ml,
        total_used_ml=total_used,
        remaining_ml=remaining,
        shots_taken=len(records),
        shots_remaining=shots_remaining,
        days_remaining=_whole(shots_remaining / shots_per_day),
        malformed_count=malformed
    )


def _whole(value: float) -> int:
    return max(int(math.floor(value + _FLOOR_EPSILON)), 0)
