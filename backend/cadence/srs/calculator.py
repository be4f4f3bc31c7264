"""Interval calculation: the card state machine.

    NEW -> LEARNING -> REVIEW <-> RELEARNING

apply_response() is a pure function of (card state, response, policy, now,
random source). It never touches storage and never mutates its input; a
rejected call raises before any new state is built.

Rules:
- NEW + again/hard -> LEARNING at step 0
- NEW + good -> LEARNING at step 0, or REVIEW at graduatingIntervalDays when
  only one learning step is configured
- NEW + easy -> REVIEW at easyIntervalDays
- LEARNING/RELEARNING + again -> step 0; + hard -> same step;
  + good/easy -> next step, graduating to REVIEW after the last one
- REVIEW + again -> lapse into RELEARNING, remembering the interval to
  restore on graduation
- REVIEW + hard/good/easy -> REVIEW with the interval scaled by the
  hard multiplier, the ease, or ease * easyBonus
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from cadence.models.card_state import CardPhase, CardState
from cadence.srs.errors import InvalidResponseError
from cadence.srs.policy import SchedulingPolicy
from cadence.srs.time import add_days, add_minutes, days_to_minutes, minutes_to_days, normalize_utc, round_half_up, utc_now

HARD_EASE_DELTA = -150
EASY_EASE_DELTA = 150


class Response(str, Enum):
    """Learner self-assessment after seeing the answer."""

    AGAIN = "again"
    HARD = "hard"
    GOOD = "good"
    EASY = "easy"


# Anki-style 1-4 quality numbers
_QUALITY_TO_RESPONSE: dict[int, Response] = {
    1: Response.AGAIN,
    2: Response.HARD,
    3: Response.GOOD,
    4: Response.EASY,
}


def parse_response(value: object) -> Response:
    """Coerce a response given as enum, name or 1-4 quality number.

    Raises:
        InvalidResponseError: For anything else.
    """
    if isinstance(value, Response):
        return value
    if isinstance(value, bool):
        raise InvalidResponseError(value)
    if isinstance(value, int):
        if value in _QUALITY_TO_RESPONSE:
            return _QUALITY_TO_RESPONSE[value]
        raise InvalidResponseError(value)
    if isinstance(value, str):
        try:
            return Response(value.strip().lower())
        except ValueError:
            raise InvalidResponseError(value) from None
    raise InvalidResponseError(value)


@dataclass(frozen=True)
class _Outcome:
    phase: CardPhase
    interval: float
    step: int
    ease: int
    pending: float | None


def _from_new(response: Response, policy: SchedulingPolicy, ease: int) -> _Outcome:
    first_step = minutes_to_days(policy.learningStepsMinutes[0])
    if response is Response.EASY:
        return _Outcome(CardPhase.REVIEW, policy.easyIntervalDays, 0, ease, None)
    if response is Response.GOOD and len(policy.learningStepsMinutes) == 1:
        return _Outcome(CardPhase.REVIEW, policy.graduatingIntervalDays, 0, ease, None)
    return _Outcome(CardPhase.LEARNING, first_step, 0, ease, None)


def _from_steps(state: CardState, response: Response, policy: SchedulingPolicy, ease: int, relearning: bool) -> _Outcome:
    steps = policy.steps_for(relearning)
    phase = CardPhase.RELEARNING if relearning else CardPhase.LEARNING
    # A shortened step list can leave a stored index past the end.
    current = min(state.learningStep, len(steps) - 1)
    pending = state.pendingGraduationInterval

    if response is Response.AGAIN:
        return _Outcome(phase, minutes_to_days(steps[0]), 0, ease, pending)
    if response is Response.HARD:
        return _Outcome(phase, minutes_to_days(steps[current]), current, ease, pending)

    next_step = current + 1
    if next_step < len(steps):
        return _Outcome(phase, minutes_to_days(steps[next_step]), next_step, ease, pending)

    # Graduation
    if relearning and pending is not None:
        interval = pending
    elif response is Response.EASY:
        interval = policy.easyIntervalDays
    else:
        interval = policy.graduatingIntervalDays
    return _Outcome(CardPhase.REVIEW, interval, 0, ease, None)


def _from_review(state: CardState, response: Response, policy: SchedulingPolicy, ease: int) -> _Outcome:
    interval = state.interval

    if response is Response.AGAIN:
        return _Outcome(
            CardPhase.RELEARNING,
            minutes_to_days(policy.relearningStepsMinutes[0]),
            0,
            policy.clamp_ease(ease - policy.lapseEasePenalty),
            max(1, round_half_up(interval * policy.lapseNewIntervalPercent)),
        )
    if response is Response.HARD:
        return _Outcome(
            CardPhase.REVIEW,
            interval * policy.hardIntervalMultiplier,
            0,
            policy.clamp_ease(ease + HARD_EASE_DELTA),
            None,
        )
    if response is Response.GOOD:
        return _Outcome(CardPhase.REVIEW, interval * (ease / 1000), 0, ease, None)
    return _Outcome(
        CardPhase.REVIEW,
        interval * (ease / 1000) * policy.easyBonus,
        0,
        policy.clamp_ease(ease + EASY_EASE_DELTA),
        None,
    )


def fuzz_interval(interval: float, percent: float, rng: random.Random) -> float:
    """Spread an interval of 2+ days by up to +/- percent, in whole days (min 1)."""
    if interval < 2:
        return interval
    factor = 1.0 + (rng.random() * 2 - 1) * percent
    return float(max(1, round_half_up(interval * factor)))


def _finish_review_interval(interval: float, policy: SchedulingPolicy, rng: random.Random | None) -> float:
    interval *= policy.intervalModifier
    if policy.fuzzEnabled and interval >= 2:
        interval = fuzz_interval(interval, policy.fuzzPercent, rng or random.Random())
    interval = min(interval, policy.maximumInterval)
    # Again never produces a review result, so the one-day floor always applies here.
    if round_half_up(interval) < 1:
        interval = 1.0
    return interval


def apply_response(
    state: CardState,
    response: Response | str | int,
    policy: SchedulingPolicy,
    now: datetime | None = None,
    rng: random.Random | None = None,
) -> CardState:
    """Compute the card state that follows a learner response.

    Args:
        state: Current card state (left untouched)
        response: Response enum, its name, or an Anki-style 1-4 quality
        policy: Validated scheduling policy
        now: Review time, defaults to the current UTC time
        rng: Random source for fuzz; a fresh unseeded one is used when omitted

    Returns:
        The new card state with repetitions, lastReviewDate and dueDate updated.

    Raises:
        InvalidResponseError: If the response is not recognized
        InvalidStateError: If the stored state is not a known phase
    """
    answer = parse_response(response)
    phase = state.phase
    reviewed_at = normalize_utc(now) if now is not None else utc_now()
    ease = policy.clamp_ease(state.easeFactor)

    if phase is CardPhase.NEW:
        outcome = _from_new(answer, policy, ease)
    elif phase is CardPhase.REVIEW:
        outcome = _from_review(state, answer, policy, ease)
    else:
        outcome = _from_steps(state, answer, policy, ease, relearning=phase is CardPhase.RELEARNING)

    if outcome.phase is CardPhase.REVIEW:
        interval = _finish_review_interval(outcome.interval, policy, rng)
        due = add_days(reviewed_at, max(1, round_half_up(interval)))
    else:
        interval = outcome.interval
        due = add_minutes(reviewed_at, days_to_minutes(interval))

    return state.evolve(
        state=outcome.phase.value,
        interval=interval,
        easeFactor=policy.clamp_ease(outcome.ease),
        learningStep=outcome.step,
        pendingGraduationInterval=outcome.pending,
        dueDate=due,
        lastReviewDate=reviewed_at,
        repetitions=state.repetitions + 1,
    )
