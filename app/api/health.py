"""Service and database health routes."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone

from fastapi import APIRouter
from fastapi import Request
from fastapi.responses import JSONResponse

from app.core.config import get_settings
from app.core.error_handlers import success_response
from app.core.errors import internal_error
from app.db.manager import DatabaseManager
from app.schemas.envelope import ERROR_RESPONSES
from app.schemas.envelope import SuccessEnvelope
from app.schemas.health import DatabaseHealth
from app.schemas.health import DatabaseMetrics
from app.schemas.health import DatabaseStatus
from app.schemas.health import ServiceHealth

router = APIRouter(tags=["health"], responses={500: ERROR_RESPONSES[500]})


def _database(request: Request) -> DatabaseManager:
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise internal_error("Database not initialized").with_resource("database")
    return database


@router.get("/", response_model=SuccessEnvelope[ServiceHealth])
def service_health(request: Request) -> JSONResponse:
    """Report that the service is up."""
    settings = getattr(request.app.state, "settings", None) or get_settings()
    payload = ServiceHealth(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.app_version,
        service=settings.app_name,
    )
    return success_response("Service is healthy", payload)


@router.get("/health/database", response_model=SuccessEnvelope[DatabaseStatus])
def database_health(request: Request) -> JSONResponse:
    """Probe the database now and report pool metrics."""
    database = _database(request)
    status = database.health_check()
    if not status.is_healthy:
        raise (
            internal_error("Database is unhealthy")
            .with_operation("database_health_check")
            .with_resource("database")
            .with_context("last_error", status.last_error)
        )
    payload = DatabaseStatus(
        database_health=status.to_dict(),
        connection_metrics=database.get_metrics().to_dict(),
        timestamp=datetime.now(timezone.utc),
    )
    return success_response("Database is healthy", payload)


@router.get("/health/fast", response_model=SuccessEnvelope[DatabaseHealth])
def fast_health(request: Request) -> JSONResponse:
    """Return the cached database health snapshot without probing."""
    status = _database(request).fast_health_check()
    return success_response("Database health snapshot", DatabaseHealth(**status.to_dict()))


@router.get("/health/metrics", response_model=SuccessEnvelope[DatabaseMetrics])
def database_metrics(request: Request) -> JSONResponse:
    """Report pool metrics, a fresh probe and the pool configuration."""
    database = _database(request)
    settings = database.settings
    payload = DatabaseMetrics(
        connection_metrics=database.get_metrics().to_dict(),
        health_status=database.health_check().to_dict(),
        configuration={
            "max_open_connections": settings.max_open_conns,
            "max_idle_connections": settings.max_idle_conns,
            "conn_max_lifetime_seconds": settings.conn_max_lifetime_seconds,
            "conn_max_idle_time_seconds": settings.conn_max_idle_time_seconds,
            "connect_timeout_seconds": settings.connect_timeout_seconds,
            "query_timeout_seconds": settings.query_timeout_seconds,
        },
        timestamp=datetime.now(timezone.utc),
    )
    return success_response("Database metrics retrieved successfully", payload)
