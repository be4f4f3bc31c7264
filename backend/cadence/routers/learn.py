"""Learn (SRS) API router."""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status

from cadence.models import CardState, ReviewRequest, SessionCountsResponse, SessionResponse
from cadence.services import DEFAULT_NEW_LIMIT, DEFAULT_REVIEW_LIMIT, SchedulerService
from cadence.srs.errors import (
    CardStateNotFoundError,
    InvalidResponseError,
    InvalidStateError,
    StaleCardStateError,
    StorageError,
)

logger = logging.getLogger(__name__)


router = APIRouter(prefix="/learn", tags=["learn"])


def get_learner_id(x_user_id: str | None = Header(None, description="Learner ID header")) -> str:
    """Extract the learner ID from the X-User-Id header."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No X-User-Id header provided",
        )
    return x_user_id


def get_scheduler_service(request: Request) -> SchedulerService:
    """Return the scheduler wired up in the application lifespan."""
    return request.app.state.scheduler


LearnerId = Annotated[str, Depends(get_learner_id)]
Scheduler = Annotated[SchedulerService, Depends(get_scheduler_service)]


@router.post("/review", response_model=CardState)
async def submit_review(req: ReviewRequest, learner_id: LearnerId, scheduler: Scheduler) -> CardState:
    """Apply a learner response to a card and return its new schedule."""
    try:
        return scheduler.submit_response(learner_id, req.cardId, req.response)
    except CardStateNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Card state for card {req.cardId} not found",
        )
    except InvalidResponseError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except InvalidStateError as e:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except StaleCardStateError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except StorageError as e:
        logger.error("Storage failure while applying response: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")


@router.get("/session", response_model=SessionResponse)
async def get_session(
    learner_id: LearnerId,
    scheduler: Scheduler,
    newLimit: int = Query(DEFAULT_NEW_LIMIT, ge=0),
    reviewLimit: int = Query(DEFAULT_REVIEW_LIMIT, ge=0),
) -> SessionResponse:
    """Return the ordered cards of the learner's next session."""
    try:
        session = scheduler.get_session(learner_id, new_limit=newLimit, review_limit=reviewLimit)
    except StorageError as e:
        logger.error("Storage failure while building session: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
    return SessionResponse(
        cards=session.cards,
        counts=SessionCountsResponse(**session.counts.as_dict()),
    )


@router.post("/cards/{card_id}", response_model=CardState, status_code=status.HTTP_201_CREATED)
async def register_card(card_id: str, learner_id: LearnerId, scheduler: Scheduler) -> CardState:
    """Create the New scheduling record for a card."""
    try:
        return scheduler.register_card(learner_id, card_id)
    except StorageError as e:
        logger.error("Storage failure while registering card: %s", e)
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Storage unavailable")
