"""Models for the learn (review session) endpoints."""

from __future__ import annotations

from pydantic import BaseModel, Field, StrictInt, StrictStr

from cadence.models.card_state import CardState


class ReviewRequest(BaseModel):
    """Body of POST /learn/review.

    The response is validated by the scheduler so that an unknown name or
    number is reported as InvalidResponseError rather than a schema error.
    Strict types keep booleans and floats from being coerced to 1-4.
    """

    cardId: str = Field(..., min_length=1, description="Card being answered")
    response: StrictStr | StrictInt = Field(..., description="again, hard, good, easy (or 1-4)")


class SessionCountsResponse(BaseModel):
    """Per-phase counts of a session."""

    new: int
    learning: int
    relearning: int
    review: int
    total: int


class SessionResponse(BaseModel):
    """Response for GET /learn/session."""

    cards: list[CardState]
    counts: SessionCountsResponse
