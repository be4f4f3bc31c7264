"""Models module for Pydantic schemas."""

from .card_state import (
    CardPhase,
    CardState,
    DUE_PHASES,
    card_state_id,
    new_card_state,
)
from .learn import (
    ReviewRequest,
    SessionCountsResponse,
    SessionResponse,
)

__all__ = [
    "CardPhase",
    "CardState",
    "DUE_PHASES",
    "card_state_id",
    "new_card_state",
    "ReviewRequest",
    "SessionCountsResponse",
    "SessionResponse",
]
