"""API routers module."""

from .learn import router as learn_router

__all__ = [
    "learn_router",
]
