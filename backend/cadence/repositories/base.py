"""Storage contract consumed by the scheduler."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime

from cadence.models.card_state import CardState
from cadence.srs.selector import DueSet


def is_same_version(current: CardState, expected: CardState) -> bool:
    """Whether a stored record is still the one an update was computed from."""
    return current.repetitions == expected.repetitions and current.dueDate == expected.dueDate


class CardStateRepository(ABC):
    """Persistence for card states, keyed by (learnerId, cardId).

    Implementations must make save_card_state() an atomic upsert and must
    reject a save whose `expected` record is no longer the stored one.
    """

    @abstractmethod
    def load_card_state(self, learner_id: str, card_id: str) -> CardState:
        """Load one record.

        Raises:
            CardStateNotFoundError: If no record exists
            StorageError: If the backend fails
        """

    @abstractmethod
    def query_due(self, learner_id: str, now: datetime, new_limit: int, review_limit: int) -> DueSet:
        """Return the due and new cards of a learner (see select_due)."""

    @abstractmethod
    def save_card_state(self, state: CardState, expected: CardState | None = None) -> CardState:
        """Upsert a record.

        Args:
            state: Record to store
            expected: The record `state` was computed from; when given, the
                write only succeeds if the stored record still matches it on
                repetitions and dueDate

        Raises:
            StaleCardStateError: If `expected` no longer matches
            StorageError: If the backend fails
        """

    @abstractmethod
    def create_card_state(self, state: CardState) -> CardState:
        """Insert a new record unless one exists; return the stored record."""
