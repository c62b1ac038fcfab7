"""Repository for user entities and their company associations."""

from __future__ import annotations

from collections.abc import Sequence
import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import database_error
from app.db.models.base import utcnow
from app.db.models.company import Company
from app.db.models.user import User
from app.db.repository.abstract import AbstractRepository
from app.schemas.common import DataResponse
from app.schemas.common import PageableRequest

_SORT_COLUMNS = {
    "created_at": User.created_at,
    "updated_at": User.updated_at,
    "first_name": User.first_name,
    "last_name": User.last_name,
    "email": User.email,
}

USER_SORT_FIELDS = frozenset(_SORT_COLUMNS)


class UserRepository(AbstractRepository[User]):
    """User data access; every storage failure surfaces as a database AppError."""

    def __init__(self, session: Session) -> None:
        super().__init__(User, session)

    def create_user(self, user: User) -> User:
        try:
            return self.create(user)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to create user", exc)
                .with_operation("create_user")
                .with_resource("user")
                .with_context("email", user.email)
            ) from exc

    def get_user(self, user_id: uuid.UUID | str, *preloads: str) -> User:
        try:
            return self.find_one_by_id(user_id, *preloads)
        except (SQLAlchemyError, ValueError) as exc:
            raise (
                database_error("Failed to get user by ID", exc)
                .with_operation("get_user_by_id")
                .with_resource("user")
                .with_context("user_id", str(user_id))
            ) from exc

    def update_user(self, user: User, companies: Sequence[Company]) -> User:
        """Write scalar changes, then replace the company set in three flushes."""
        try:
            user.updated_at = utcnow()
            self.session.flush()
            user.companies.clear()
            self.session.flush()
            user.companies.extend(companies)
            self.session.flush()
            return user
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to update user", exc)
                .with_operation("update_user")
                .with_resource("user")
                .with_context("user_id", str(user.id))
            ) from exc

    def delete_user(self, user: User) -> None:
        try:
            self.delete(user)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to delete user", exc)
                .with_operation("delete_user")
                .with_resource("user")
                .with_context("user_id", str(user.id))
            ) from exc

    def list_users(self, request: PageableRequest, *preloads: str) -> DataResponse[User]:
        stmt = self._apply_sort(
            self._base_query(),
            request.sort,
            _SORT_COLUMNS,
            operation="list_users",
            resource="user",
        )
        stmt = self._apply_search(stmt, request.q, (User.first_name, User.last_name, User.email))
        stmt = self._apply_date_range(stmt, request)
        try:
            return self._find(stmt, request, self._preload_options(preloads))
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to get users", exc)
                .with_operation("list_users")
                .with_resource("user")
                .with_context("request", request.model_dump(mode="json"))
            ) from exc
