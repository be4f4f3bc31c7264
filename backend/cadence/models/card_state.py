"""Card progress record: one per (learner, card) pair."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from cadence.srs.errors import InvalidStateError
from cadence.srs.time import normalize_utc, utc_datetime_to_iso_z, utc_now


class CardPhase(str, Enum):
    """Known scheduling phases of a card."""

    NEW = "new"
    LEARNING = "learning"
    RELEARNING = "relearning"
    REVIEW = "review"


DUE_PHASES = frozenset({CardPhase.LEARNING, CardPhase.RELEARNING, CardPhase.REVIEW})


def card_state_id(learner_id: str, card_id: str) -> str:
    """Build the document id for a (learner, card) pair."""
    return f"{learner_id}:{card_id}"


class CardState(BaseModel):
    """Scheduling state of one card for one learner, as stored in the database.

    The record is immutable; the interval calculator returns new instances via
    evolve(). `state` is kept as a plain string so that a corrupted value
    survives loading and can be rejected explicitly (see `phase`).
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Document id: '{learnerId}:{cardId}'")
    learnerId: str = Field(..., min_length=1, description="Learner ID (partition key)")
    cardId: str = Field(..., min_length=1, description="Card ID")

    repetitions: int = Field(0, ge=0, description="Responses recorded, Again included")
    easeFactor: int = Field(2500, description="Ease factor in permille (2500 = 2.5x)")
    interval: float = Field(0.0, ge=0, description="Interval in days, fractional while stepping")
    dueDate: datetime = Field(default_factory=utc_now, description="Next due timestamp (UTC)")
    state: str = Field(CardPhase.NEW.value, description="Scheduling phase")
    learningStep: int = Field(0, ge=0, description="Index into the active step sequence")
    lastReviewDate: datetime | None = Field(None, description="Last review timestamp (UTC)")
    pendingGraduationInterval: float | None = Field(
        None,
        ge=0,
        description="Review interval restored when relearning graduates",
    )
    createdAt: datetime = Field(default_factory=utc_now, description="Creation timestamp (UTC)")

    @model_validator(mode="before")
    @classmethod
    def _fill_id(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("id"):
            learner_id = data.get("learnerId")
            card_id = data.get("cardId")
            if learner_id and card_id:
                data = {**data, "id": card_state_id(learner_id, card_id)}
        return data

    @field_validator("state", mode="before")
    @classmethod
    def _unwrap_phase(cls, value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        return value

    @field_validator("dueDate", "lastReviewDate", "createdAt")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        if value is None:
            return None
        return normalize_utc(value)

    @field_serializer("dueDate", "lastReviewDate", "createdAt", when_used="json")
    def _serialize_timestamp(self, value: datetime | None) -> str | None:
        if value is None:
            return None
        return utc_datetime_to_iso_z(value)

    @property
    def phase(self) -> CardPhase:
        """The parsed scheduling phase.

        Raises:
            InvalidStateError: If `state` is not a known phase.
        """
        try:
            return CardPhase(self.state)
        except ValueError:
            raise InvalidStateError(self.state, card_id=self.cardId) from None

    def evolve(self, **changes: Any) -> "CardState":
        """Return a validated copy with the given fields replaced."""
        return CardState(**{**self.model_dump(), **changes})

    def to_document(self) -> dict[str, Any]:
        """Encode for persistence: permille ease, float days, ISO 'Z' timestamps."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "CardState":
        """Decode a stored document, ignoring storage system properties."""
        return cls(**{key: value for key, value in document.items() if not key.startswith("_")})


def new_card_state(learner_id: str, card_id: str, initial_ease_factor: int, now: datetime | None = None) -> CardState:
    """Create the initial New record for a card."""
    created = normalize_utc(now) if now is not None else utc_now()
    return CardState(
        learnerId=learner_id,
        cardId=card_id,
        repetitions=0,
        easeFactor=initial_ease_factor,
        interval=0.0,
        dueDate=created,
        state=CardPhase.NEW.value,
        learningStep=0,
        createdAt=created,
    )
