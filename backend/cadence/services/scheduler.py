"""Scheduler service: the operations exposed to request handlers."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime

from cadence.models.card_state import CardState, new_card_state
from cadence.repositories.base import CardStateRepository
from cadence.srs.calculator import Response, apply_response
from cadence.srs.errors import InvalidStateError
from cadence.srs.ordering import OrderStrategy, order_session
from cadence.srs.policy import SchedulingPolicy
from cadence.srs.selector import SessionCounts
from cadence.srs.time import normalize_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_NEW_LIMIT = 20
DEFAULT_REVIEW_LIMIT = 100


@dataclass(frozen=True)
class Session:
    """Cards to present, in order, with their per-phase counts."""

    cards: list[CardState]
    counts: SessionCounts


class SchedulerService:
    """Applies learner responses and builds review sessions.

    All collaborators are injected: the repository, the validated policy and
    the random source used for fuzz and ordering.
    """

    def __init__(
        self,
        repository: CardStateRepository,
        policy: SchedulingPolicy,
        rng: random.Random | None = None,
        ordering: OrderStrategy = "shuffle",
        new_every: int | None = None,
    ):
        self.repository = repository
        self.policy = policy
        self.rng = rng if rng is not None else random.Random()
        self.ordering = ordering
        self.new_every = new_every

    def _now(self, now: datetime | None) -> datetime:
        return normalize_utc(now) if now is not None else utc_now()

    def register_card(self, learner_id: str, card_id: str, now: datetime | None = None) -> CardState:
        """Create the New record for a card (no-op if it already exists)."""
        state = new_card_state(learner_id, card_id, self.policy.initialEaseFactor, self._now(now))
        return self.repository.create_card_state(state)

    def submit_response(
        self,
        learner_id: str,
        card_id: str,
        response: Response | str | int,
        now: datetime | None = None,
    ) -> CardState:
        """Load a card state, apply the response and persist the result.

        All-or-nothing: if loading, calculating or saving fails, the stored
        record is left as it was and the error propagates.

        Raises:
            CardStateNotFoundError: If the card has no state for this learner
            InvalidResponseError: If the response is not recognized
            InvalidStateError: If the stored state is corrupted
            StorageError: If the repository fails or the record changed concurrently
        """
        current = self.repository.load_card_state(learner_id, card_id)
        try:
            updated = apply_response(current, response, self.policy, now=self._now(now), rng=self.rng)
        except InvalidStateError:
            logger.error(
                "Card state is corrupted and needs repair: learner=%s, card=%s, state=%r",
                learner_id,
                card_id,
                current.state,
            )
            raise

        saved = self.repository.save_card_state(updated, expected=current)
        logger.info(
            "Response applied: learner=%s, card=%s, response=%s, %s -> %s, interval=%.4f, due=%s",
            learner_id,
            card_id,
            response,
            current.state,
            saved.state,
            saved.interval,
            saved.dueDate.isoformat(),
        )
        return saved

    def get_session(
        self,
        learner_id: str,
        new_limit: int = DEFAULT_NEW_LIMIT,
        review_limit: int = DEFAULT_REVIEW_LIMIT,
        now: datetime | None = None,
    ) -> Session:
        """Select the due and new cards for a learner and order them."""
        due_set = self.repository.query_due(learner_id, self._now(now), new_limit, review_limit)
        cards = order_session(due_set, self.rng, strategy=self.ordering, new_every=self.new_every)
        counts = due_set.counts
        logger.info(
            "Session built: learner=%s, new=%d, learning=%d, relearning=%d, review=%d",
            learner_id,
            counts.new,
            counts.learning,
            counts.relearning,
            counts.review,
        )
        return Session(cards=cards, counts=counts)
