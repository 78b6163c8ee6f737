"""Ganamos API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly, one router per module
    - Global error handlers map GanamosError to the {success: false, error} envelope
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event
    - Mock routers are always registered; require_mocks gates them per request
      so toggling USE_MOCKS needs no code change
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ganamos.api.error_handlers import register_error_handlers
from ganamos.api.routes import (
    alexa_groups,
    alexa_jobs,
    alexa_oauth,
    alexa_skill,
    device_config,
    device_economy,
    device_jobs,
    device_pairing,
    game_scores,
    health,
    maps,
    mock_lightning,
    mock_services,
    pickleball,
    user_balance,
    wallet,
)
from ganamos.config import get_settings
from ganamos.infrastructure import database
from ganamos.infrastructure.database import init_db
from ganamos.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info(
        "Ganamos API started",
        extra={"environment": settings.environment, "use_mocks": settings.use_mocks},
    )
    yield
    if database.db_manager:
        await database.db_manager.close()
    logger.info("Ganamos API shutting down")


app = FastAPI(title="Ganamos API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(health.router)
app.include_router(device_pairing.router)
app.include_router(device_config.router)
app.include_router(device_economy.router)
app.include_router(device_jobs.router)
app.include_router(game_scores.router)
app.include_router(game_scores.leaderboard_router)
app.include_router(pickleball.router)
app.include_router(alexa_oauth.router)
app.include_router(alexa_jobs.router)
app.include_router(alexa_groups.router)
app.include_router(alexa_skill.router)
app.include_router(maps.router)
app.include_router(user_balance.router)
app.include_router(wallet.router)
app.include_router(mock_services.router)
app.include_router(mock_lightning.router)
