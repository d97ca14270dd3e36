"""Vouch API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map VouchError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database initialized on startup via lifespan context manager

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py so tests can build bare apps
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from vouch.api.error_handlers import register_error_handlers
from vouch.api.routes import (
    health, communities, memberships, workers, references, bookings,
)
from vouch.config import get_settings
from vouch.infrastructure.database import init_db
from vouch.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    manager = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    logger.info("Vouch API started")
    yield
    logger.info("Vouch API shutting down")
    await manager.dispose()


app = FastAPI(title="Vouch API", version="1.0.0", lifespan=lifespan)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(communities.router)
app.include_router(memberships.router)
app.include_router(workers.router)
app.include_router(references.router)
app.include_router(bookings.router)

register_error_handlers(app)
