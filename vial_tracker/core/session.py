"""
Edit session for creating and modifying shots.

The session holds one draft. In the IDLE state the draft describes a new
shot; in the EDITING state it is a copy of an existing record whose id is
kept in ``editing_id``. The ledger stays authoritative for that record
until the update is saved.

Every store call is wrapped here: callers always get a ``SaveOutcome``
back and never a store exception.
"""

from dataclasses import dataclass, fields as dataclass_fields
from datetime import date
from enum import Enum
from typing import Callable, Dict, Optional, Sequence

import structlog

from vial_tracker.config.loader import DraftDefaults, VialConfig
from vial_tracker.errors import StoreError
from vial_tracker.storage.base import EventStore
from vial_tracker.storage.models import UsageRecord

from .calculator import VialState, compute_vial_state
from .guardrails import check_capacity
from .ledger import UsageLedger

logger = structlog.get_logger(__name__)


class SessionState(Enum):
    IDLE = "idle"
    EDITING = "editing"


class OutcomeStatus(Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"  # capacity guard, no store call made
    FAILED = "failed"    # store rejected the call


@dataclass(frozen=True)
class SaveOutcome:
    """Result reported to the caller for every session operation."""
    status: OutcomeStatus
    message: str
    record_id: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS


@dataclass
class Draft:
    """Unsaved field values for a shot."""
    date: str
    brand: str = ""
    type: str = ""
    amount_ml: str = ""
    amount_mg: str = ""
    location: str = ""

    @classmethod
    def from_record(cls, record: UsageRecord) -> "Draft":
        return cls(**record.fields())

    @classmethod
    def fresh(cls, today: date, defaults: DraftDefaults) -> "Draft":
        return cls(
            date=today.isoformat(),
            brand=defaults.brand,
            type=defaults.type,
            amount_ml=defaults.amount_ml,
            amount_mg=defaults.amount_mg,
            location=defaults.location
        )

    def to_fields(self) -> Dict[str, str]:
        return {f.name: getattr(self, f.name) for f in dataclass_fields(self)}


DRAFT_FIELDS = tuple(f.name for f in dataclass_fields(Draft))


class EditSession:
    """Create/edit state machine over an event store and a ledger."""

    def __init__(
        self,
        store: EventStore,
        ledger: UsageLedger,
        vial: Optional[VialConfig] = None,
        defaults: Optional[DraftDefaults] = None,
        today: Callable[[], date] = date.today
    ):
        self.store = store
        self.ledger = ledger
        self.vial = vial or VialConfig()
        self.defaults = defaults or DraftDefaults()
        self._today = today
        self.editing_id: Optional[str] = None
        self.draft = Draft.fresh(self._today(), self.defaults)

    @property
    def state(self) -> SessionState:
        return SessionState.EDITING if self.editing_id is not None else SessionState.IDLE

    def vial_state(self) -> VialState:
        return compute_vial_state(
            self.ledger.records,
            self.vial.capacity_ml,
            self.vial.shot_size_ml,
            self.vial.shots_per_day
        )

    def reset(self) -> None:
        """Return to IDLE with a fresh draft."""
        self.editing_id = None
        self.draft = Draft.fresh(self._today(), self.defaults)

    def cancel(self) -> None:
        if self.editing_id is not None:
            logger.info("edit_cancelled", record_id=self.editing_id)
        self.reset()

    def update_draft(self, **values: str) -> None:
        """Set draft fields by name.

        Raises:
            ValueError: If a name is not a draft field
        """
        unknown = set(values) - set(DRAFT_FIELDS)
        if unknown:
            raise ValueError(f"Unknown draft fields: {sorted(unknown)}")
        for name, value in values.items():
            setattr(self.draft, name, "" if value is None else str(value))

    def start_edit(self, record: UsageRecord) -> None:
        """Copy ``record`` into the draft and target it for the next save."""
        if record.id is None:
            raise ValueError("Cannot edit a record that was never saved")
        self.draft = Draft.from_record(record)
        self.editing_id = record.id
        logger.debug("edit_started", record_id=record.id)

    def handle_snapshot(self, records: Sequence[UsageRecord]) -> None:
        """Drop an edit whose target vanished from the ledger."""
        if self.editing_id is None:
            return
        if not any(r.id == self.editing_id for r in records):
            logger.info("edit_target_removed", record_id=self.editing_id)
            self.reset()

    async def save(self) -> SaveOutcome:
        """Create or update a record from the draft.

        New shots must pass the capacity guard, checked against the ledger
        as it stands before the shot is added. On a store failure the state
        and draft are kept as they were.
        """
        is_new = self.editing_id is None
        decision = check_capacity(self.vial_state(), is_new)
        if not decision.allowed:
            logger.info("save_skipped", reason=decision.message)
            return SaveOutcome(OutcomeStatus.SKIPPED, decision.message)

        fields = self.draft.to_fields()
        try:
            if is_new:
                record_id = await self.store.create(fields)
            else:
                record_id = self.editing_id
                await self.store.update(record_id, fields)
        except StoreError as e:
            logger.error("save_failed", record_id=self.editing_id, error=str(e))
            return SaveOutcome(
                OutcomeStatus.FAILED, "Failed to save entry", record_id=self.editing_id, error=str(e)
            )

        self.reset()
        message = "Shot registered" if is_new else "Shot updated"
        return SaveOutcome(OutcomeStatus.SUCCESS, message, record_id=record_id)

    async def duplicate(self, record: UsageRecord) -> SaveOutcome:
        """Create a copy of ``record`` dated today, leaving the session untouched."""
        fields = record.fields()
        fields["date"] = self._today().isoformat()
        try:
            record_id = await self.store.create(fields)
        except StoreError as e:
            logger.error("duplicate_failed", source_id=record.id, error=str(e))
            return SaveOutcome(OutcomeStatus.FAILED, "Failed to save entry", error=str(e))
        return SaveOutcome(OutcomeStatus.SUCCESS, "Shot duplicated", record_id=record_id)

    async def delete(self, record_id: str) -> SaveOutcome:
        """Delete a record; an edit targeting it is abandoned."""
        try:
            await self.store.delete(record_id)
        except StoreError as e:
            logger.error("delete_failed", record_id=record_id, error=str(e))
            return SaveOutcome(
                OutcomeStatus.FAILED, "Failed to delete entry", record_id=record_id, error=str(e)
            )
        if self.editing_id == record_id:
            self.reset()
        return SaveOutcome(OutcomeStatus.SUCCESS, "Shot deleted", record_id=record_id)
