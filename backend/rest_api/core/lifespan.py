"""
Startup and shutdown of the API process.

Startup refuses to continue in production with an unsafe configuration,
creates missing tables, and seeds the demo menu in development. Shutdown
closes the notification client.
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI

from shared.config.settings import settings
from shared.config.logging import setup_logging, rest_api_logger as logger
from shared.infrastructure.db import engine, get_db_context
from shared.infrastructure.events import close_redis_pool
from rest_api.models import Base
from rest_api.seed import seed


def _check_configuration() -> None:
    errors = settings.validate_production_settings()
    for error in errors:
        logger.error("Configuration error", error=error)
    if errors and settings.is_production:
        raise RuntimeError("Refusing to start: " + "; ".join(errors))


def _prepare_database() -> None:
    Base.metadata.create_all(bind=engine)
    logger.info("Schema ready", dialect=engine.dialect.name)

    if settings.environment == "development":
        with get_db_context() as db:
            seed(db)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    _check_configuration()
    logger.info(
        "Starting Table Share API",
        environment=settings.environment,
        port=settings.rest_api_port,
        events_enabled=settings.events_enabled,
    )
    _prepare_database()

    yield

    await close_redis_pool()
    logger.info("Table Share API stopped")
