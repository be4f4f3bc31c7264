"""Pytest configuration and fixtures."""

import os
import random
from datetime import datetime, timezone

import pytest

from cadence.models import CardState
from cadence.srs.policy import SchedulingPolicy, load_policy

# Keep the app on in-memory storage with a fixed seed during tests
os.environ.setdefault("SRS_STORAGE", "memory")
os.environ.setdefault("SRS_RANDOM_SEED", "1234")

NOW = datetime(2025, 12, 13, 12, 0, 0, tzinfo=timezone.utc)


class MidpointRandom(random.Random):
    """Random source whose random() always returns 0.5 (a fuzz factor of exactly 1.0)."""

    def random(self) -> float:
        return 0.5


@pytest.fixture
def now() -> datetime:
    return NOW


@pytest.fixture
def policy() -> SchedulingPolicy:
    return load_policy()


@pytest.fixture
def steady_rng() -> random.Random:
    return MidpointRandom()


@pytest.fixture
def make_state():
    """Factory for card states with sensible defaults."""

    def _make(**overrides) -> CardState:
        fields = {
            "learnerId": "learner-1",
            "cardId": "card-1",
            "dueDate": NOW,
            "createdAt": NOW,
        }
        fields.update(overrides)
        return CardState(**fields)

    return _make
