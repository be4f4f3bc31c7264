import logging
import random
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from cadence.config import get_scheduler_settings
from cadence.db import get_settings, verify_connection, close_client
from cadence.repositories import build_card_state_repository
from cadence.routers import learn_router
from cadence.services import SchedulerService
from cadence.srs.policy import load_policy

load_dotenv()

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    settings = get_scheduler_settings()

    # A malformed policy raises ConfigError here and aborts startup
    policy = load_policy(settings.policy_path)
    logger.info("Scheduling policy loaded (%s)", settings.policy_path or "defaults")

    if settings.storage == "cosmos":
        cosmos_settings = get_settings()
        if not cosmos_settings.is_configured():
            logger.warning("Cosmos DB not configured (COSMOS_ENDPOINT not set)")
        elif verify_connection():
            logger.info("Connected to Cosmos DB")
        else:
            logger.error("Failed to connect to Cosmos DB - check configuration")
    else:
        logger.warning("Using in-memory card state storage (SRS_STORAGE=memory)")

    rng = random.Random(settings.random_seed)
    app.state.scheduler = SchedulerService(
        repository=build_card_state_repository(settings),
        policy=policy,
        rng=rng,
        ordering=settings.session_order,
        new_every=settings.new_every,
    )

    yield

    # Shutdown
    if settings.storage == "cosmos":
        close_client()
        logger.info("Cosmos DB connection closed")


app = FastAPI(
    title="Cadence SRS API",
    description="Spaced-repetition scheduling API",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_scheduler_settings().cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(learn_router)


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": "Cadence SRS API",
        "version": "1.0.0",
        "endpoints": {
            "health": "/healthz",
            "review": "/learn/review",
            "session": "/learn/session",
            "register": "/learn/cards/{card_id}",
        },
    }


@app.get("/healthz")
async def healthz():
    """Health check endpoint."""
    return {"status": "healthy"}
