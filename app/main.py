"""FastAPI application entrypoint for the service."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from app.api.companies import router as companies_router
from app.api.health import router as health_router
from app.api.users import router as users_router
from app.core.config import Settings
from app.core.config import get_settings
from app.core.error_handlers import RecoveryMiddleware
from app.core.error_handlers import register_error_handlers
from app.core.logging import RequestLoggingMiddleware
from app.core.logging import configure_logging
from app.core.telemetry import Telemetry
from app.db import models as _models  # noqa: F401
from app.db.manager import DatabaseManager

logger = logging.getLogger(__name__)


def create_app(
    settings: Settings | None = None,
    *,
    database: DatabaseManager | None = None,
    telemetry: Telemetry | None = None,
) -> FastAPI:
    """Build the application; the database manager is created at startup unless given."""
    settings = settings or get_settings()
    configure_logging(settings)
    telemetry = telemetry or Telemetry(
        service=settings.app_name,
        environment=settings.app_env,
        release=settings.release,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owns_database = app.state.database is None
        if owns_database:
            app.state.database = DatabaseManager(settings.database, telemetry=telemetry)
        logger.info("Service started", extra={"env": settings.app_env, "version": settings.app_version})
        try:
            yield
        finally:
            if owns_database:
                app.state.database.close()
                app.state.database = None
            telemetry.flush()
            logger.info("Service stopped")

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)
    app.state.database = database

    register_error_handlers(app, settings=settings, telemetry=telemetry)
    app.add_middleware(RecoveryMiddleware, settings=settings, telemetry=telemetry)
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(companies_router)
    return app


app = create_app()
