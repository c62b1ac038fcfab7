"""User API routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter
from fastapi import Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.api.params import pageable_params
from app.core.error_handlers import success_response
from app.db.base import get_db_session
from app.db.repository.users import USER_SORT_FIELDS
from app.schemas.common import PageableRequest
from app.schemas.envelope import ERROR_RESPONSES
from app.schemas.envelope import SuccessEnvelope
from app.schemas.user import User
from app.schemas.user import UserCreate
from app.schemas.user import UserUpdate
from app.services.users import create_user_service
from app.services.users import delete_user_service
from app.services.users import get_user_service
from app.services.users import list_users_service
from app.services.users import update_user_service

router = APIRouter(prefix="/api/v1", tags=["users"], responses=ERROR_RESPONSES)


@router.post("/users", response_model=SuccessEnvelope[User])
def create_user_endpoint(
    payload: UserCreate,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Create a user."""
    user = create_user_service(session, payload)
    return success_response("User created successfully", User.model_validate(user))


@router.get("/users", response_model=SuccessEnvelope[list[User]])
def list_users_endpoint(
    pageable: PageableRequest = Depends(pageable_params(USER_SORT_FIELDS)),
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """List users with search, date-range, sort and pagination."""
    result = list_users_service(session, pageable)
    return success_response(
        "Users retrieved successfully",
        [User.model_validate(user) for user in result.data],
        result.pageable,
    )


@router.get("/users/{user_id}", response_model=SuccessEnvelope[User])
def get_user_endpoint(
    user_id: UUID,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Get a single user by id."""
    user = get_user_service(session, user_id)
    return success_response("User retrieved successfully", User.model_validate(user))


@router.put("/users/{user_id}", response_model=SuccessEnvelope[User])
def update_user_endpoint(
    user_id: UUID,
    payload: UserUpdate,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Update a user."""
    user = update_user_service(session, user_id, payload)
    return success_response("User updated successfully", User.model_validate(user))


@router.delete("/users/{user_id}", response_model=SuccessEnvelope[None])
def delete_user_endpoint(
    user_id: UUID,
    session: Session = Depends(get_db_session),
) -> JSONResponse:
    """Soft-delete a user."""
    delete_user_service(session, user_id)
    return success_response("User deleted successfully")
