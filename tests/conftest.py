"""Shared pytest fixtures for the service test suites."""

from collections.abc import Generator
from pathlib import Path
from typing import Any
import sys

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy import event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from app.core.config import DatabaseSettings  # noqa: E402
from app.core.config import Settings  # noqa: E402
from app.core.telemetry import Telemetry  # noqa: E402
from app.db.manager import DatabaseManager  # noqa: E402
from app.db.models import Base  # noqa: E402


class TelemetryRecorder:
    """Telemetry sink that keeps every captured event in memory."""

    def __init__(self) -> None:
        self.events: list[tuple[BaseException, dict[str, Any]]] = []

    def __call__(self, exc: BaseException, event_payload: dict[str, Any]) -> None:
        self.events.append((exc, event_payload))


class StatementCounter:
    """Record SQL statements issued through an engine."""

    def __init__(self, engine: Engine) -> None:
        self.statements: list[str] = []
        event.listen(engine, "before_cursor_execute", self._record)

    def _record(self, conn, cursor, statement, parameters, context, executemany) -> None:
        self.statements.append(statement)

    def reset(self) -> None:
        self.statements.clear()

    def matching(self, fragment: str) -> list[str]:
        return [statement for statement in self.statements if fragment in statement.upper()]


def make_sqlite_engine() -> Engine:
    """One shared in-memory SQLite connection with the full schema."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def sqlite_database_settings(**overrides: Any) -> DatabaseSettings:
    values: dict[str, Any] = {
        "url": "sqlite://",
        "conn_max_idle_time_seconds": 0,
        "retry_attempts": 1,
        "retry_delay_seconds": 0,
        "health_timeout_seconds": 5,
        "connect_timeout_seconds": 5,
    }
    values.update(overrides)
    return DatabaseSettings(**values)


@pytest.fixture
def engine() -> Generator[Engine, None, None]:
    sqlite_engine = make_sqlite_engine()
    yield sqlite_engine
    sqlite_engine.dispose()


@pytest.fixture
def session(engine: Engine) -> Generator[Session, None, None]:
    factory = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)
    db_session = factory()
    try:
        yield db_session
    finally:
        db_session.close()


@pytest.fixture
def statements(engine: Engine) -> StatementCounter:
    return StatementCounter(engine)


@pytest.fixture
def telemetry_recorder() -> TelemetryRecorder:
    return TelemetryRecorder()


@pytest.fixture
def settings() -> Settings:
    return Settings(app_env="test", log_format="text", database=sqlite_database_settings())


@pytest.fixture
def database(engine: Engine, settings: Settings) -> Generator[DatabaseManager, None, None]:
    manager = DatabaseManager(
        settings.database,
        engine_factory=lambda url, **kwargs: engine,
        start_background=False,
    )
    yield manager
    manager.close()


@pytest.fixture
def client(
    settings: Settings,
    database: DatabaseManager,
    telemetry_recorder: TelemetryRecorder,
) -> Generator[TestClient, None, None]:
    """Provide an API test client backed by the in-memory database."""
    from app.main import create_app

    telemetry = Telemetry(
        service=settings.app_name,
        environment=settings.app_env,
        release=settings.release,
        sink=telemetry_recorder,
    )
    app = create_app(settings, database=database, telemetry=telemetry)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def database_settings_factory():
    """Build SQLite database settings with per-test overrides."""
    return sqlite_database_settings


@pytest.fixture
def sqlite_engine_factory():
    return make_sqlite_engine
