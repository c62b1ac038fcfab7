"""Pydantic schemas for health and database diagnostics payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class ServiceHealth(BaseModel):
    """Liveness payload for the service root."""

    status: str
    timestamp: datetime
    version: str
    service: str


class DatabaseHealth(BaseModel):
    is_healthy: bool
    last_check: datetime | None = None
    last_error: str = ""
    response_time_ms: float = 0.0
    retry_count: int = 0


class ConnectionMetrics(BaseModel):
    total_connections: int = 0
    open_connections: int = 0
    idle_connections: int = 0
    in_use_connections: int = 0
    wait_count: int = 0
    wait_duration_ms: float = 0.0
    max_open_connections: int = 0
    max_idle_connections: int = 0


class PoolConfiguration(BaseModel):
    max_open_connections: int
    max_idle_connections: int
    conn_max_lifetime_seconds: float
    conn_max_idle_time_seconds: float
    connect_timeout_seconds: float
    query_timeout_seconds: float


class DatabaseStatus(BaseModel):
    """Probe result plus pool metrics for `/health/database`."""

    database_health: DatabaseHealth
    connection_metrics: ConnectionMetrics
    timestamp: datetime


class DatabaseMetrics(BaseModel):
    """Metrics, probe and pool configuration for `/health/metrics`."""

    connection_metrics: ConnectionMetrics
    health_status: DatabaseHealth
    configuration: PoolConfiguration
    timestamp: datetime
