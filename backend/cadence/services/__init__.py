"""Application services."""

from .scheduler import DEFAULT_NEW_LIMIT, DEFAULT_REVIEW_LIMIT, SchedulerService, Session

__all__ = [
    "DEFAULT_NEW_LIMIT",
    "DEFAULT_REVIEW_LIMIT",
    "SchedulerService",
    "Session",
]
