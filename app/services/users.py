"""Service helpers for user API operations."""

from __future__ import annotations

from collections.abc import Iterable
from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.errors import not_found_error
from app.db.base import commit_session
from app.db.models.company import Company
from app.db.models.user import User
from app.db.repository.abstract import is_lookup_miss
from app.db.repository.companies import CompanyRepository
from app.db.repository.users import UserRepository
from app.schemas.common import DataResponse
from app.schemas.common import PageableRequest
from app.schemas.company import CompanyReference
from app.schemas.user import UserCreate
from app.schemas.user import UserUpdate
from app.services.companies import find_company

logger = logging.getLogger(__name__)

_SCALAR_FIELDS = ("email", "first_name", "last_name", "identity_id")


def _unique_ids(references: Iterable[CompanyReference]) -> list[UUID]:
    return list(dict.fromkeys(reference.id for reference in references))


def _find_user(repository: UserRepository, user_id: UUID | str, *, operation: str) -> User:
    try:
        return repository.get_user(user_id, "companies")
    except AppError as exc:
        if not is_lookup_miss(exc):
            raise
        logger.warning("User lookup failed", extra={"user_id": str(user_id), "operation": operation})
        raise (
            not_found_error("User", exc)
            .with_operation(operation)
            .with_resource("user")
            .with_context("user_id", str(user_id))
        ) from exc


def create_user_service(session: Session, payload: UserCreate) -> User:
    """Create a user; every referenced company must exist."""
    users = UserRepository(session)
    companies = CompanyRepository(session)
    try:
        members = [
            find_company(companies, company_id, operation="create_user")
            for company_id in _unique_ids(payload.companies)
        ]
        user = users.create_user(
            User(
                email=str(payload.email),
                first_name=payload.first_name,
                last_name=payload.last_name,
                identity_id=payload.identity_id or "",
                companies=members,
            )
        )
        commit_session(session, operation="create_user", resource="user")
    except AppError:
        session.rollback()
        raise
    return user


def get_user_service(session: Session, user_id: UUID | str) -> User:
    """Fetch a user with companies or raise not found."""
    return _find_user(UserRepository(session), user_id, operation="get_user")


def update_user_service(session: Session, user_id: UUID | str, payload: UserUpdate) -> User:
    """Update scalar fields and, when companies are given, replace memberships."""
    users = UserRepository(session)
    companies = CompanyRepository(session)
    try:
        user = _find_user(users, user_id, operation="update_user")

        members: list[Company] = list(user.companies)
        if payload.companies:
            current = {company.id: company for company in user.companies}
            members = [
                current[company_id]
                if company_id in current
                else find_company(companies, company_id, operation="update_user")
                for company_id in _unique_ids(payload.companies)
            ]

        for field in _SCALAR_FIELDS:
            value = getattr(payload, field)
            if value:
                setattr(user, field, str(value))

        users.update_user(user, members)
        commit_session(session, operation="update_user", resource="user")
    except AppError:
        session.rollback()
        raise
    return user


def delete_user_service(session: Session, user_id: UUID | str) -> None:
    """Soft-delete a user."""
    users = UserRepository(session)
    try:
        user = _find_user(users, user_id, operation="delete_user")
        users.delete_user(user)
        commit_session(session, operation="delete_user", resource="user")
    except AppError:
        session.rollback()
        raise


def list_users_service(session: Session, request: PageableRequest) -> DataResponse[User]:
    """List users with their companies."""
    return UserRepository(session).list_users(request, "companies")
