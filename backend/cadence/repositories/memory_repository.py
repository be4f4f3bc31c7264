"""In-process card state storage for development and tests."""

from __future__ import annotations

import threading
from datetime import datetime

from cadence.models.card_state import CardState
from cadence.repositories.base import CardStateRepository, is_same_version
from cadence.srs.errors import CardStateNotFoundError, StaleCardStateError
from cadence.srs.selector import DueSet, select_due


class InMemoryCardStateRepository(CardStateRepository):
    """Thread-safe dict-backed repository.

    Each instance owns its own records; create one per application (or per
    test) and pass it to the services that need it.
    """

    def __init__(self, states: list[CardState] | None = None):
        self._lock = threading.Lock()
        self._states: dict[tuple[str, str], CardState] = {}
        for state in states or []:
            self._states[(state.learnerId, state.cardId)] = state

    def __len__(self) -> int:
        with self._lock:
            return len(self._states)

    def load_card_state(self, learner_id: str, card_id: str) -> CardState:
        with self._lock:
            state = self._states.get((learner_id, card_id))
        if state is None:
            raise CardStateNotFoundError(f"No card state for learner {learner_id}, card {card_id}")
        return state

    def list_by_learner(self, learner_id: str) -> list[CardState]:
        with self._lock:
            return [state for (owner, _), state in self._states.items() if owner == learner_id]

    def query_due(self, learner_id: str, now: datetime, new_limit: int, review_limit: int) -> DueSet:
        return select_due(self.list_by_learner(learner_id), now, new_limit, review_limit)

    def save_card_state(self, state: CardState, expected: CardState | None = None) -> CardState:
        key = (state.learnerId, state.cardId)
        with self._lock:
            if expected is not None:
                current = self._states.get(key)
                if current is None or not is_same_version(current, expected):
                    raise StaleCardStateError(
                        f"Card state for learner {state.learnerId}, card {state.cardId} changed concurrently"
                    )
            self._states[key] = state
        return state

    def create_card_state(self, state: CardState) -> CardState:
        key = (state.learnerId, state.cardId)
        with self._lock:
            return self._states.setdefault(key, state)
