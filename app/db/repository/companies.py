"""Repository for company entities."""

from __future__ import annotations

import uuid

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import database_error
from app.db.models.company import Company
from app.db.repository.abstract import AbstractRepository
from app.schemas.common import DataResponse
from app.schemas.common import PageableRequest

_SORT_COLUMNS = {
    "created_at": Company.created_at,
    "updated_at": Company.updated_at,
    "name": Company.name,
}

COMPANY_SORT_FIELDS = frozenset(_SORT_COLUMNS)


class CompanyRepository(AbstractRepository[Company]):
    """Company data access; every storage failure surfaces as a database AppError."""

    def __init__(self, session: Session) -> None:
        super().__init__(Company, session)

    def create_company(self, company: Company) -> Company:
        try:
            return self.create(company)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to create company", exc)
                .with_operation("create_company")
                .with_resource("company")
                .with_context("name", company.name)
            ) from exc

    def get_company(self, company_id: uuid.UUID | str, *preloads: str) -> Company:
        try:
            return self.find_one_by_id(company_id, *preloads)
        except (SQLAlchemyError, ValueError) as exc:
            raise (
                database_error("Failed to get company by ID", exc)
                .with_operation("get_company_by_id")
                .with_resource("company")
                .with_context("company_id", str(company_id))
            ) from exc

    def update_company(self, changes: Company) -> int:
        """Apply the non-empty fields of `changes` to the row with the same id."""
        try:
            return self.updates(changes)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to update company", exc)
                .with_operation("update_company")
                .with_resource("company")
                .with_context("company_id", str(changes.id))
            ) from exc

    def delete_company(self, company: Company) -> None:
        try:
            self.delete(company)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to delete company", exc)
                .with_operation("delete_company")
                .with_resource("company")
                .with_context("company_id", str(company.id))
            ) from exc

    def list_companies(self, request: PageableRequest) -> DataResponse[Company]:
        stmt = self._apply_sort(
            self._base_query(),
            request.sort,
            _SORT_COLUMNS,
            operation="list_companies",
            resource="company",
        )
        stmt = self._apply_search(stmt, request.q, (Company.name,))
        stmt = self._apply_date_range(stmt, request)
        try:
            return self._find(stmt, request)
        except SQLAlchemyError as exc:
            raise (
                database_error("Failed to get companies", exc)
                .with_operation("list_companies")
                .with_resource("company")
                .with_context("request", request.model_dump(mode="json"))
            ) from exc
