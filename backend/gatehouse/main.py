"""Gatehouse API: FastAPI application entry point.

Invariants:
    - Routers are included explicitly: health checks and event participation
    - Error handlers are registered last, after every router exists
    - The engine is created in lifespan startup and disposed on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from gatehouse import __version__
from gatehouse.api.error_handlers import register_error_handlers
from gatehouse.api.routes import event_participation, health
from gatehouse.config import get_settings
from gatehouse.infrastructure import database
from gatehouse.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    database.init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
        sqlite_busy_timeout=settings.sqlite_busy_timeout,
    )
    logger.info(
        f"Gatehouse API ready (auto-assign attempts: {settings.auto_assign_max_attempts})",
    )
    yield
    if database.db_manager:
        await database.db_manager.dispose()
    logger.info("Gatehouse API stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(
        title="Gatehouse API",
        description="Event gate allocation and participation",
        version=__version__,
        lifespan=lifespan,
    )
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["*"],
    )
    application.include_router(health.router)
    application.include_router(event_participation.router)
    register_error_handlers(application)
    return application


app = create_app()
