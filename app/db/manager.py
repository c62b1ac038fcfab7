"""Database connection manager: retrying bootstrap, health probes and pool metrics."""

from __future__ import annotations

from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import asdict
from dataclasses import dataclass
from dataclasses import replace
from datetime import datetime
from datetime import timedelta
from datetime import timezone
from typing import Any
import logging
import math
import threading
import time

from sqlalchemy import create_engine
from sqlalchemy import event
from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.engine import make_url
from sqlalchemy.exc import DisconnectionError
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker

from app.core.config import DatabaseSettings
from app.core.errors import database_error
from app.core.telemetry import Telemetry

logger = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL_SECONDS = 30.0
METRICS_INTERVAL_SECONDS = 10.0
FAST_HEALTH_MAX_AGE = timedelta(seconds=10)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ConnectionHealthStatus:
    is_healthy: bool = False
    last_check: datetime | None = None
    last_error: str = ""
    response_time: float = 0.0
    retry_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_healthy": self.is_healthy,
            "last_check": self.last_check,
            "last_error": self.last_error,
            "response_time_ms": round(self.response_time * 1000, 3),
            "retry_count": self.retry_count,
        }


@dataclass
class ConnectionMetrics:
    total_connections: int = 0
    open_connections: int = 0
    idle_connections: int = 0
    in_use_connections: int = 0
    wait_count: int = 0
    wait_duration: float = 0.0
    max_open_connections: int = 0
    max_idle_connections: int = 0

    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)
        payload["wait_duration_ms"] = round(payload.pop("wait_duration") * 1000, 3)
        return payload


def _pool_stat(pool: Any, name: str) -> int:
    # StaticPool and friends do not report checkin/checkout counts
    method = getattr(pool, name, None)
    if not callable(method):
        return 0
    return max(int(method()), 0)


class DatabaseManager:
    """Own one SQLAlchemy engine and publish its health and pool metrics.

    Construction blocks until a connection is confirmed or every retry is
    spent. Snapshots are read and written under one lock, which is never held
    while talking to the database.
    """

    def __init__(
        self,
        settings: DatabaseSettings,
        *,
        telemetry: Telemetry | None = None,
        engine_factory: Callable[..., Engine] = create_engine,
        sleep_fn: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = _utcnow,
        start_background: bool = True,
    ) -> None:
        self._settings = settings
        self._telemetry = telemetry
        self._engine_factory = engine_factory
        self._sleep = sleep_fn
        self._clock = clock

        self._lock = threading.Lock()
        self._health = ConnectionHealthStatus()
        self._metrics = ConnectionMetrics(
            max_open_connections=settings.max_open_conns,
            max_idle_connections=settings.max_idle_conns,
        )
        self._wait_count = 0
        self._wait_duration = 0.0
        self._refresh_in_flight = False
        self._closed = False

        self._engine: Engine | None = None
        self._session_factory: sessionmaker[Session] | None = None
        self._executor = ThreadPoolExecutor(max_workers=4, thread_name_prefix="db-probe")
        self._stop = threading.Event()
        self._threads: list[threading.Thread] = []

        self._connect_with_retry()
        if start_background:
            self._start_background_loops()

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise database_error("Database is not connected").with_resource("database")
        return self._engine

    @property
    def session_factory(self) -> sessionmaker[Session]:
        if self._session_factory is None:
            raise database_error("Database is not connected").with_resource("database")
        return self._session_factory

    @property
    def settings(self) -> DatabaseSettings:
        return self._settings

    # -- bootstrap ---------------------------------------------------------

    def _engine_kwargs(self) -> dict[str, Any]:
        settings = self._settings
        url = make_url(settings.url)
        kwargs: dict[str, Any] = {"echo": settings.debug, "pool_pre_ping": True}
        if url.get_backend_name() == "sqlite":
            return kwargs

        max_idle = max(settings.max_idle_conns, 1)
        kwargs.update(
            pool_size=max_idle,
            max_overflow=max(settings.max_open_conns - max_idle, 0),
            pool_recycle=settings.conn_max_lifetime_seconds if settings.conn_max_lifetime_seconds > 0 else -1,
            pool_timeout=settings.connect_timeout_seconds,
        )
        if url.get_backend_name() == "postgresql":
            statement_timeout_ms = int(settings.query_timeout_seconds * 1000)
            kwargs["connect_args"] = {
                "connect_timeout": max(int(math.ceil(settings.connect_timeout_seconds)), 1),
                "options": f"-c statement_timeout={statement_timeout_ms}",
            }
        return kwargs

    def _install_pool_listeners(self, engine: Engine) -> None:
        max_idle_time = self._settings.conn_max_idle_time_seconds

        @event.listens_for(engine, "checkin")
        def _on_checkin(dbapi_connection, connection_record) -> None:
            connection_record.info["returned_at"] = time.monotonic()

        @event.listens_for(engine, "checkout")
        def _on_checkout(dbapi_connection, connection_record, connection_proxy) -> None:
            returned_at = connection_record.info.pop("returned_at", None)
            if max_idle_time > 0 and returned_at is not None:
                if time.monotonic() - returned_at > max_idle_time:
                    raise DisconnectionError("connection exceeded max idle time")

        @event.listens_for(engine, "do_connect")
        def _on_do_connect(dialect, connection_record, cargs, cparams) -> None:
            connection_record.info["connect_started"] = time.perf_counter()

        @event.listens_for(engine, "connect")
        def _on_connect(dbapi_connection, connection_record) -> None:
            started = connection_record.info.pop("connect_started", None)
            if started is None:
                return
            elapsed = time.perf_counter() - started
            with self._lock:
                self._wait_count += 1
                self._wait_duration += elapsed

    def _connect(self) -> float:
        engine = self._engine_factory(self._settings.url, **self._engine_kwargs())
        self._install_pool_listeners(engine)
        try:
            elapsed = self._probe(engine, self._settings.connect_timeout_seconds)
        except Exception:
            engine.dispose()
            raise
        self._engine = engine
        self._session_factory = sessionmaker(
            bind=engine,
            autoflush=False,
            expire_on_commit=False,
            class_=Session,
        )
        return elapsed

    def _connect_with_retry(self) -> None:
        attempts = max(self._settings.retry_attempts, 1)
        last_error: BaseException | None = None

        for attempt in range(1, attempts + 1):
            logger.info(
                "Attempting to connect to database",
                extra={"attempt": attempt, "max_attempts": attempts},
            )
            try:
                elapsed = self._connect()
            except Exception as exc:
                last_error = exc
                with self._lock:
                    self._health.retry_count = attempt
                logger.error(
                    "Database connection attempt failed",
                    extra={"attempt": attempt, "error": str(exc)},
                )
                if self._telemetry is not None:
                    self._telemetry.capture_exception(
                        exc,
                        tags={"operation": "database_connection", "attempt": str(attempt)},
                        extras={"retry_count": attempt},
                    )
                if attempt < attempts:
                    self._sleep(self._settings.retry_delay_seconds)
                continue

            with self._lock:
                self._health = ConnectionHealthStatus(
                    is_healthy=True,
                    last_check=self._clock(),
                    response_time=elapsed,
                    retry_count=0,
                )
            self.update_metrics()
            logger.info(
                "Database connection established successfully",
                extra={"database": self._settings.safe_for_logging()},
            )
            return

        self._executor.shutdown(wait=False, cancel_futures=True)
        raise (
            database_error("Failed to connect to database after retries", last_error)
            .with_operation("connect_database")
            .with_resource("database")
            .with_context("retry_attempts", attempts)
        )

    # -- probes ------------------------------------------------------------

    @staticmethod
    def _ping(engine: Engine) -> None:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))

    def _probe(self, engine: Engine, timeout: float) -> float:
        """Run `SELECT 1` on a worker thread; returns elapsed seconds."""
        start = time.perf_counter()
        future = self._executor.submit(self._ping, engine)
        try:
            future.result(timeout=timeout)
        except FutureTimeoutError as exc:
            raise TimeoutError(f"database probe timed out after {timeout}s") from exc
        return time.perf_counter() - start

    def _update_health_status(self, is_healthy: bool, last_error: str, response_time: float) -> None:
        with self._lock:
            self._health.is_healthy = is_healthy
            self._health.last_check = self._clock()
            self._health.last_error = last_error
            self._health.response_time = response_time

    def health_check(self) -> ConnectionHealthStatus:
        """Probe the database now and return the updated snapshot."""
        engine = self._engine
        if engine is None or self._closed:
            self._update_health_status(False, "database connection is closed", 0.0)
            return self.get_health_status()

        start = time.perf_counter()
        try:
            elapsed = self._probe(engine, self._settings.health_timeout_seconds)
        except Exception as exc:
            logger.warning("Database health probe failed", extra={"error": str(exc)})
            self._update_health_status(False, str(exc) or type(exc).__name__, time.perf_counter() - start)
        else:
            self._update_health_status(True, "", elapsed)
        return self.get_health_status()

    def fast_health_check(self) -> ConnectionHealthStatus:
        """Return the cached snapshot, refreshing it in the background when stale."""
        with self._lock:
            snapshot = replace(self._health)
            last_check = self._health.last_check
            fresh = last_check is not None and self._clock() - last_check < FAST_HEALTH_MAX_AGE
            if fresh or self._refresh_in_flight or self._closed:
                return snapshot
            self._refresh_in_flight = True

        threading.Thread(
            target=self._background_refresh,
            name="db-health-refresh",
            daemon=True,
        ).start()
        return snapshot

    def _background_refresh(self) -> None:
        try:
            self.health_check()
        except Exception:
            logger.exception("Background database health refresh failed")
        finally:
            with self._lock:
                self._refresh_in_flight = False

    def is_healthy(self) -> bool:
        return self.get_health_status().is_healthy

    def get_health_status(self) -> ConnectionHealthStatus:
        with self._lock:
            return replace(self._health)

    # -- metrics -----------------------------------------------------------

    def update_metrics(self) -> None:
        engine = self._engine
        if engine is None:
            return
        pool = engine.pool
        in_use = _pool_stat(pool, "checkedout")
        idle = _pool_stat(pool, "checkedin")
        with self._lock:
            self._metrics = ConnectionMetrics(
                total_connections=in_use + idle,
                open_connections=in_use + idle,
                idle_connections=idle,
                in_use_connections=in_use,
                wait_count=self._wait_count,
                wait_duration=self._wait_duration,
                max_open_connections=self._settings.max_open_conns,
                max_idle_connections=self._settings.max_idle_conns,
            )

    def get_metrics(self) -> ConnectionMetrics:
        with self._lock:
            return replace(self._metrics)

    # -- background loops --------------------------------------------------

    def _start_background_loops(self) -> None:
        for name, interval, action in (
            ("health", HEALTH_CHECK_INTERVAL_SECONDS, self.health_check),
            ("metrics", METRICS_INTERVAL_SECONDS, self.update_metrics),
        ):
            thread = threading.Thread(
                target=self._run_periodically,
                args=(name, interval, action),
                name=f"db-{name}-loop",
                daemon=True,
            )
            thread.start()
            self._threads.append(thread)

    def _run_periodically(self, name: str, interval: float, action: Callable[[], Any]) -> None:
        while not self._stop.wait(interval):
            try:
                action()
            except Exception:
                logger.exception("Database %s loop iteration failed", name)

    # -- shutdown ----------------------------------------------------------

    def close(self, timeout: float = 30.0) -> None:
        """Stop background loops and dispose the pool; safe to call twice."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
            self._health.is_healthy = False
            engine = self._engine

        self._stop.set()
        for thread in self._threads:
            thread.join(timeout=timeout)

        try:
            if engine is not None:
                future = self._executor.submit(engine.dispose)
                try:
                    future.result(timeout=timeout)
                except Exception as exc:
                    logger.error("Failed to close database connection", extra={"error": str(exc)})
                    raise (
                        database_error("Failed to close database connection", exc)
                        .with_operation("close_database")
                        .with_resource("database")
                    ) from exc
        finally:
            self._executor.shutdown(wait=False)

        logger.info("Database connection closed gracefully")
