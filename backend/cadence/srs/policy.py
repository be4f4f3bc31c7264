"""Scheduling policy: the tunable parameters of the interval calculator.

The policy is validated once when it is loaded. Any violated constraint
raises ConfigError; values are never clamped, coerced or defaulted to make a bad
policy usable.

The JSON layout matches the camelCase field names, e.g.:

    {
        "learningStepsMinutes": [1, 10],
        "relearningStepsMinutes": [10],
        "graduatingIntervalDays": 1,
        "easyIntervalDays": 4,
        ...
    }
"""

from __future__ import annotations

import json
import logging
import os
from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    ValidationError,
    field_validator,
    model_validator,
)

from cadence.srs.errors import ConfigError

logger = logging.getLogger(__name__)


class SchedulingPolicy(BaseModel):
    """Immutable scheduling parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    learningStepsMinutes: tuple[StrictInt, ...] = Field((1, 10), description="Learning steps in minutes")
    relearningStepsMinutes: tuple[StrictInt, ...] = Field((10,), description="Relearning steps in minutes")
    graduatingIntervalDays: float = Field(1, strict=True, gt=0, description="Interval after graduating with Good")
    easyIntervalDays: float = Field(4, strict=True, gt=0, description="Interval after graduating with Easy")
    intervalModifier: float = Field(1.0, strict=True, gt=0, description="Global multiplier for review intervals")
    hardIntervalMultiplier: float = Field(1.2, strict=True, gt=0, description="Review interval multiplier for Hard")
    easyBonus: float = Field(1.3, strict=True, gt=1, description="Extra multiplier for Easy in review")
    lapseNewIntervalPercent: float = Field(0.5, strict=True, ge=0, le=1, description="Share of interval kept on lapse")
    lapseEasePenalty: int = Field(200, strict=True, gt=0, description="Ease (permille) lost on lapse")
    minimumEaseFactor: int = Field(1300, strict=True, gt=0, description="Lower ease bound (permille)")
    maximumEaseFactor: int = Field(5000, strict=True, gt=0, description="Upper ease bound (permille)")
    initialEaseFactor: int = Field(2500, strict=True, gt=0, description="Ease of a new card (permille)")
    maximumInterval: float = Field(36500, strict=True, ge=1, description="Cap for review intervals in days")
    fuzzEnabled: bool = Field(True, strict=True, description="Randomize review intervals of 2 days or more")
    fuzzPercent: float = Field(0.05, strict=True, ge=0, lt=1, description="Maximum relative fuzz")

    @field_validator("learningStepsMinutes", "relearningStepsMinutes")
    @classmethod
    def _check_steps(cls, steps: tuple[int, ...]) -> tuple[int, ...]:
        if not steps:
            raise ValueError("step sequence must not be empty")
        if any(step <= 0 for step in steps):
            raise ValueError("steps must be positive minutes")
        if any(later <= earlier for earlier, later in zip(steps, steps[1:])):
            raise ValueError("steps must be strictly ascending")
        return steps

    @model_validator(mode="after")
    def _check_bounds(self) -> "SchedulingPolicy":
        if self.maximumEaseFactor < self.minimumEaseFactor:
            raise ValueError("maximumEaseFactor must be >= minimumEaseFactor")
        if not self.minimumEaseFactor <= self.initialEaseFactor <= self.maximumEaseFactor:
            raise ValueError("initialEaseFactor must lie within the ease bounds")
        if self.easyIntervalDays < self.graduatingIntervalDays:
            raise ValueError("easyIntervalDays must be >= graduatingIntervalDays")
        if self.graduatingIntervalDays > self.maximumInterval:
            raise ValueError("graduatingIntervalDays must not exceed maximumInterval")
        return self

    def steps_for(self, relearning: bool) -> tuple[int, ...]:
        """Return the step sequence used by the learning or relearning phase."""
        return self.relearningStepsMinutes if relearning else self.learningStepsMinutes

    def clamp_ease(self, ease: int) -> int:
        return max(self.minimumEaseFactor, min(self.maximumEaseFactor, ease))


def load_policy(source: Mapping[str, Any] | str | Path | None = None) -> SchedulingPolicy:
    """Load and validate a scheduling policy.

    Args:
        source: A mapping of policy fields, a path to a JSON file, or None
            for the built-in defaults.

    Returns:
        The validated, frozen policy.

    Raises:
        ConfigError: If the file cannot be read or any constraint is violated.
    """
    if source is None:
        data: Mapping[str, Any] = {}
    elif isinstance(source, Mapping):
        data = source
    else:
        path = Path(source)
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read scheduling policy from {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Scheduling policy in {path} must be a JSON object")

    try:
        return SchedulingPolicy(**data)
    except (ValidationError, TypeError) as e:
        raise ConfigError(f"Invalid scheduling policy: {e}") from e


@lru_cache()
def get_policy() -> SchedulingPolicy:
    """Get the cached policy, read from SRS_POLICY_PATH if it is set."""
    path = os.getenv("SRS_POLICY_PATH")
    if path:
        logger.info("Loading scheduling policy from %s", path)
        return load_policy(path)
    return load_policy()
