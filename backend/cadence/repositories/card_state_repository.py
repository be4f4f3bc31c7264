"""Cosmos DB repository for card states."""

from __future__ import annotations

import logging
from datetime import datetime

from azure.core import MatchConditions
from azure.cosmos import ContainerProxy
from azure.cosmos.exceptions import (
    CosmosAccessConditionFailedError,
    CosmosHttpResponseError,
    CosmosResourceExistsError,
    CosmosResourceNotFoundError,
)

from cadence.db import get_card_states_container
from cadence.models.card_state import DUE_PHASES, CardPhase, CardState, card_state_id
from cadence.repositories.base import CardStateRepository, is_same_version
from cadence.srs.errors import CardStateNotFoundError, StaleCardStateError, StorageError
from cadence.srs.selector import DueSet, select_due
from cadence.srs.time import utc_datetime_to_iso_z

logger = logging.getLogger(__name__)


class CosmosCardStateRepository(CardStateRepository):
    """Repository for card states stored in Cosmos DB (partition key: learnerId).

    Timestamps are stored as fixed-width ISO 'Z' strings, so string comparison
    and ORDER BY on them follow chronological order. Both session queries sort
    by (timestamp, cardId) so TOP keeps the same cards as select_due; the
    container needs composite indexes on (dueDate, cardId) and
    (createdAt, cardId).
    """

    def __init__(self, container: ContainerProxy | None = None):
        """Initialize the repository with an optional container."""
        self._container = container

    @property
    def container(self) -> ContainerProxy:
        """Get the container, lazily initializing if needed."""
        if self._container is None:
            self._container = get_card_states_container()
        return self._container

    def _read(self, learner_id: str, card_id: str) -> dict:
        try:
            return self.container.read_item(item=card_state_id(learner_id, card_id), partition_key=learner_id)
        except CosmosResourceNotFoundError:
            raise CardStateNotFoundError(f"No card state for learner {learner_id}, card {card_id}")
        except CosmosHttpResponseError as e:
            raise StorageError(f"Failed to read card state {card_id}: {e.message}") from e

    def _query(self, query: str, parameters: list[dict], learner_id: str) -> list[CardState]:
        try:
            items = list(
                self.container.query_items(
                    query=query,
                    parameters=parameters,
                    partition_key=learner_id,
                )
            )
        except CosmosHttpResponseError as e:
            raise StorageError(f"Failed to query card states: {e.message}") from e
        return [CardState.from_document(item) for item in items]

    def load_card_state(self, learner_id: str, card_id: str) -> CardState:
        """Get the card state for a learner and card."""
        return CardState.from_document(self._read(learner_id, card_id))

    def query_due(self, learner_id: str, now: datetime, new_limit: int, review_limit: int) -> DueSet:
        """Fetch due cards by dueDate ascending and new cards by createdAt ascending."""
        due: list[CardState] = []
        new: list[CardState] = []

        if review_limit > 0:
            due_query = (
                "SELECT TOP @limit * FROM c "
                "WHERE c.learnerId = @learnerId AND ARRAY_CONTAINS(@states, c.state) "
                "AND c.dueDate <= @now "
                "ORDER BY c.dueDate ASC, c.cardId ASC"
            )
            due_params = [
                {"name": "@limit", "value": review_limit},
                {"name": "@learnerId", "value": learner_id},
                {"name": "@states", "value": sorted(phase.value for phase in DUE_PHASES)},
                {"name": "@now", "value": utc_datetime_to_iso_z(now)},
            ]
            due = self._query(due_query, due_params, learner_id)

        if new_limit > 0:
            new_query = (
                "SELECT TOP @limit * FROM c "
                "WHERE c.learnerId = @learnerId AND c.state = @state "
                "ORDER BY c.createdAt ASC, c.cardId ASC"
            )
            new_params = [
                {"name": "@limit", "value": new_limit},
                {"name": "@learnerId", "value": learner_id},
                {"name": "@state", "value": CardPhase.NEW.value},
            ]
            new = self._query(new_query, new_params, learner_id)

        # Re-run the selection locally for tie-breaking and limit validation.
        return select_due([*due, *new], now, new_limit, review_limit)

    def save_card_state(self, state: CardState, expected: CardState | None = None) -> CardState:
        """Upsert a card state, optionally guarded by the stored document's etag."""
        body = state.to_document()
        try:
            if expected is None:
                saved = self.container.upsert_item(body=body)
            else:
                try:
                    current = self._read(state.learnerId, state.cardId)
                except CardStateNotFoundError:
                    raise StaleCardStateError(f"Card state {state.id} was removed concurrently") from None
                if not is_same_version(CardState.from_document(current), expected):
                    raise StaleCardStateError(f"Card state {state.id} changed concurrently")
                saved = self.container.replace_item(
                    item=state.id,
                    body=body,
                    etag=current.get("_etag"),
                    match_condition=MatchConditions.IfNotModified,
                )
        except CosmosAccessConditionFailedError as e:
            raise StaleCardStateError(f"Card state {state.id} changed concurrently") from e
        except CosmosHttpResponseError as e:
            raise StorageError(f"Failed to save card state {state.id}: {e.message}") from e
        return CardState.from_document(saved)

    def create_card_state(self, state: CardState) -> CardState:
        """Insert a new card state, returning the existing one if already present."""
        try:
            created = self.container.create_item(body=state.to_document())
        except CosmosResourceExistsError:
            logger.info("Card state %s already exists", state.id)
            return self.load_card_state(state.learnerId, state.cardId)
        except CosmosHttpResponseError as e:
            raise StorageError(f"Failed to create card state {state.id}: {e.message}") from e
        return CardState.from_document(created)
