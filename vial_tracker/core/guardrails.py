"""
Capacity guard for registering shots.

A new shot is admitted only while the vial still holds at least one
standard shot. Edits of existing shots are never blocked: the guard is an
admission rule, not a data constraint, and the ledger tolerates records
that exceed capacity.
"""

from dataclasses import dataclass
from enum import Enum, auto

from .calculator import VialState


class GuardAction(Enum):
    """Outcome of the capacity check."""
    ALLOW = auto()  # Proceed with the store call
    SKIP = auto()   # Keep the draft, make no store call


@dataclass(frozen=True)
class GuardDecision:
    action: GuardAction
    message: str = ""

    @property
    def allowed(self) -> bool:
        return self.action == GuardAction.ALLOW


def check_capacity(state: VialState, is_new: bool) -> GuardDecision:
    """
    Decide whether a save may go ahead.

    Args:
        state: Vial state of the ledger snapshot before the save
        is_new: True when the save creates a record, False for an edit

    Returns:
        GuardDecision allowing or skipping the save
    """
    if not is_new:
        return GuardDecision(GuardAction.ALLOW)
    if state.can_register:
        return GuardDecision(GuardAction.ALLOW)
    return GuardDecision(
        GuardAction.SKIP,
        f"Not enough insulin left: {state.remaining_ml:.2f} ml remaining, "
        f"{state.shot_size_ml:.2f} ml needed per shot"
    )
