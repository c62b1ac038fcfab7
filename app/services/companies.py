"""Service helpers for company API operations."""

from __future__ import annotations

from uuid import UUID
import logging

from sqlalchemy.orm import Session

from app.core.errors import AppError
from app.core.errors import not_found_error
from app.db.base import commit_session
from app.db.models.company import Company
from app.db.repository.abstract import is_lookup_miss
from app.db.repository.companies import CompanyRepository
from app.schemas.common import DataResponse
from app.schemas.common import PageableRequest
from app.schemas.company import CompanyCreate
from app.schemas.company import CompanyUpdate

logger = logging.getLogger(__name__)


def find_company(repository: CompanyRepository, company_id: UUID | str, *, operation: str) -> Company:
    """Fetch a live company or raise a not-found AppError tagged with `operation`."""
    try:
        return repository.get_company(company_id)
    except AppError as exc:
        if not is_lookup_miss(exc):
            raise
        logger.warning(
            "Company lookup failed",
            extra={"company_id": str(company_id), "operation": operation},
        )
        raise (
            not_found_error("Company", exc)
            .with_operation(operation)
            .with_resource("company")
            .with_context("company_id", str(company_id))
        ) from exc


def create_company_service(session: Session, payload: CompanyCreate) -> Company:
    """Create and persist a new company."""
    repository = CompanyRepository(session)
    try:
        company = repository.create_company(
            Company(name=payload.name, identity_id=payload.identity_id or "")
        )
        commit_session(session, operation="create_company", resource="company")
    except AppError:
        session.rollback()
        raise
    return company


def get_company_service(session: Session, company_id: UUID | str) -> Company:
    """Fetch a company or raise not found."""
    return find_company(CompanyRepository(session), company_id, operation="get_company")


def update_company_service(session: Session, company_id: UUID | str, payload: CompanyUpdate) -> Company:
    """Apply the provided fields to an existing company."""
    repository = CompanyRepository(session)
    try:
        company = find_company(repository, company_id, operation="update_company")
        repository.update_company(
            Company(id=company.id, name=payload.name, identity_id=payload.identity_id)
        )
        session.refresh(company)
        commit_session(session, operation="update_company", resource="company")
    except AppError:
        session.rollback()
        raise
    return company


def delete_company_service(session: Session, company_id: UUID | str) -> None:
    """Soft-delete a company."""
    repository = CompanyRepository(session)
    try:
        company = find_company(repository, company_id, operation="delete_company")
        repository.delete_company(company)
        commit_session(session, operation="delete_company", resource="company")
    except AppError:
        session.rollback()
        raise


def list_companies_service(session: Session, request: PageableRequest) -> DataResponse[Company]:
    """List companies with search, date-range, sort and pagination."""
    return CompanyRepository(session).list_companies(request)
