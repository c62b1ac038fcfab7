"""Company API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.params import pageable_params
from app.core.error_handlers import success_response
from app.db.base import get_db_session
from app.db.repository.companies import COMPANY_SORT_FIELDS
from app.schemas.common import PageableRequest
from app.schemas.company import Company
from app.schemas.company import CompanyCreate
from app.schemas.company import CompanyUpdate
from app.schemas.envelope import ERROR_RESPONSES
from app.schemas.envelope import SuccessEnvelope
from app.services.companies import create_company_service
from app.services.companies import delete_company_service
from app.services.companies import get_company_service
from app.services.companies import list_companies_service
from app.services.companies import update_company_service

router = APIRouter(prefix="/api/v1", tags=["companies"], responses=ERROR_RESPONSES)


@router.post("/companies", response_model=SuccessEnvelope[Company])
def create_company_endpoint(
    payload: CompanyCreate,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Create a company."""
    company = create_company_service(session, payload)
    return success_response("Company created successfully", Company.model_validate(company))


@router.get("/companies", response_model=SuccessEnvelope[list[Company]])
def list_companies_endpoint(
    pageable: PageableRequest = Depends(pageable_params(COMPANY_SORT_FIELDS)),
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """List companies with search, date-range, sort and pagination."""
    result = list_companies_service(session, pageable)
    return success_response(
        "Companies retrieved successfully",
        [Company.model_validate(company) for company in result.data],
        result.pageable,
    )


@router.get("/companies/{company_id}", response_model=SuccessEnvelope[Company])
def get_company_endpoint(
    company_id: UUID,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Get a single company by id."""
    company = get_company_service(session, company_id)
    return success_response("Company retrieved successfully", Company.model_validate(company))


@router.put("/companies/{company_id}", response_model=SuccessEnvelope[Company])
def update_company_endpoint(
    company_id: UUID,
    payload: CompanyUpdate,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Update a company."""
    company = update_company_service(session, company_id, payload)
    return success_response("Company updated successfully", Company.model_validate(company))


@router.delete("/companies/{company_id}", response_model=SuccessEnvelope[None])
def delete_company_endpoint(
    company_id: UUID,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Soft-delete a company."""
    delete_company_service(session, company_id)
    return success_response("Company deleted successfully")
