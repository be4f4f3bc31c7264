"""Scheduler configuration loaded from environment variables."""

import os
from functools import lru_cache
from typing import Literal
from pydantic import BaseModel, Field


class SchedulerSettings(BaseModel):
    """Application-level settings for the scheduler service."""

    storage: Literal["memory", "cosmos"] = "memory"
    policy_path: str | None = None  # JSON scheduling policy; defaults when unset
    random_seed: int | None = None  # Fixed seed for reproducible fuzz/shuffle
    session_order: Literal["shuffle", "interleave"] = "shuffle"
    new_every: int = Field(10, ge=1)  # Reviews between new cards when interleaving
    cors_origins: list[str] = ["http://localhost:3000", "http://localhost:5173"]


@lru_cache()
def get_scheduler_settings() -> SchedulerSettings:
    """Get cached scheduler settings from environment variables."""
    seed = os.getenv("SRS_RANDOM_SEED")
    cors = os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173")

    return SchedulerSettings(
        storage=os.getenv("SRS_STORAGE", "memory").lower(),
        policy_path=os.getenv("SRS_POLICY_PATH") or None,
        random_seed=int(seed) if seed else None,
        session_order=os.getenv("SRS_SESSION_ORDER", "shuffle").lower(),
        new_every=int(os.getenv("SRS_NEW_EVERY", "10")),
        cors_origins=[origin.strip() for origin in cors.split(",") if origin.strip()],
    )
