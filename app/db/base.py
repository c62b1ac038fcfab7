"""Session helpers bound to the application's database manager."""

from __future__ import annotations

from collections.abc import Generator

from fastapi import Request
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import database_error


def get_db_session(request: Request) -> Generator[Session, None, None]:
    """Yield a database session for dependency injection."""
    database = getattr(request.app.state, "database", None)
    if database is None:
        raise database_error("Database not initialized").with_resource("database")
    session = database.session_factory()
    try:
        yield session
    finally:
        session.close()


def commit_session(session: Session, *, operation: str, resource: str) -> None:
    """Commit the unit of work, rolling back and raising a database error on failure."""
    try:
        session.commit()
    except SQLAlchemyError as exc:
        session.rollback()
        raise (
            database_error("Failed to commit transaction", exc)
            .with_operation(operation)
            .with_resource(resource)
        ) from exc
