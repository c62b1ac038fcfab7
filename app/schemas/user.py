"""Pydantic schemas for user API payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import EmailStr
from pydantic import Field

from app.schemas.company import Company
from app.schemas.company import CompanyReference


class UserCreate(BaseModel):
    """Payload to create a user."""

    email: EmailStr
    first_name: str = Field(min_length=2, max_length=100)
    last_name: str = Field(min_length=2, max_length=100)
    identity_id: str | None = Field(default=None, min_length=2, max_length=100)
    companies: list[CompanyReference] = Field(default_factory=list)


class UserUpdate(BaseModel):
    """Payload to update a user.

    A non-empty `companies` list replaces the user's memberships; an empty or
    missing list keeps them.
    """

    email: EmailStr | None = None
    first_name: str | None = Field(default=None, min_length=2, max_length=100)
    last_name: str | None = Field(default=None, min_length=2, max_length=100)
    identity_id: str | None = Field(default=None, min_length=2, max_length=100)
    companies: list[CompanyReference] | None = None


class User(BaseModel):
    """User response payload."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: str
    last_name: str
    identity_id: str
    created_at: datetime
    updated_at: datetime
    companies: list[Company] = Field(default_factory=list)
