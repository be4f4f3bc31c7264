"""Due-set selection over a learner's card states.

select_due() is a read-only query: it partitions card states by phase,
orders and truncates each part, and never modifies a record.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime

from cadence.models.card_state import DUE_PHASES, CardPhase, CardState
from cadence.srs.errors import InvalidStateError
from cadence.srs.time import normalize_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionCounts:
    """Number of selected cards per phase."""

    new: int = 0
    learning: int = 0
    relearning: int = 0
    review: int = 0

    @property
    def total(self) -> int:
        return self.new + self.learning + self.relearning + self.review

    def as_dict(self) -> dict[str, int]:
        return {
            "new": self.new,
            "learning": self.learning,
            "relearning": self.relearning,
            "review": self.review,
            "total": self.total,
        }

    @classmethod
    def from_cards(cls, cards: Iterable[CardState]) -> "SessionCounts":
        tally = {phase: 0 for phase in CardPhase}
        for card in cards:
            tally[card.phase] += 1
        return cls(
            new=tally[CardPhase.NEW],
            learning=tally[CardPhase.LEARNING],
            relearning=tally[CardPhase.RELEARNING],
            review=tally[CardPhase.REVIEW],
        )


@dataclass(frozen=True)
class DueSet:
    """Cards selected for a session.

    Attributes:
        due_cards: Learning/relearning/review cards due now, earliest first
        new_cards: Unseen cards in creation order
        counts: Per-phase breakdown of both lists
    """

    due_cards: list[CardState] = field(default_factory=list)
    new_cards: list[CardState] = field(default_factory=list)

    @property
    def counts(self) -> SessionCounts:
        return SessionCounts.from_cards([*self.due_cards, *self.new_cards])


def _check_limit(name: str, value: int) -> None:
    if value < 0:
        raise ValueError(f"{name} must be >= 0, got {value}")


def select_due(cards: Iterable[CardState], now: datetime, new_limit: int, review_limit: int) -> DueSet:
    """Select the due and new cards for a session.

    Args:
        cards: Card states of one learner
        now: Query time; cards with dueDate <= now are due
        new_limit: Maximum number of new cards
        review_limit: Maximum number of due (learning, relearning, review) cards

    Returns:
        A DueSet. The two lists are disjoint because they partition by phase.

    Raises:
        ValueError: If a limit is negative
    """
    _check_limit("new_limit", new_limit)
    _check_limit("review_limit", review_limit)
    now = normalize_utc(now)

    due: list[CardState] = []
    new: list[CardState] = []
    for card in cards:
        try:
            phase = card.phase
        except InvalidStateError as e:
            logger.warning("Excluding card from scheduling: %s", e)
            continue
        if phase is CardPhase.NEW:
            new.append(card)
        elif phase in DUE_PHASES and card.dueDate <= now:
            due.append(card)

    due.sort(key=lambda c: (c.dueDate, c.cardId))
    new.sort(key=lambda c: (c.createdAt, c.cardId))
    return DueSet(due_cards=due[:review_limit], new_cards=new[:new_limit])
