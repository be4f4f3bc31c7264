"""Repositories module for data access layer."""

from cadence.config import SchedulerSettings

from .base import CardStateRepository
from .memory_repository import InMemoryCardStateRepository
from .card_state_repository import CosmosCardStateRepository


def build_card_state_repository(settings: SchedulerSettings) -> CardStateRepository:
    """Create the repository selected by SRS_STORAGE."""
    if settings.storage == "cosmos":
        return CosmosCardStateRepository()
    return InMemoryCardStateRepository()


__all__ = [
    "CardStateRepository",
    "InMemoryCardStateRepository",
    "CosmosCardStateRepository",
    "build_card_state_repository",
]
