"""Pydantic schemas for company API payloads."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel
from pydantic import ConfigDict
from pydantic import Field


class CompanyCreate(BaseModel):
    """Payload to create a company."""

    name: str = Field(min_length=2, max_length=100)
    identity_id: str | None = Field(default=None, min_length=2, max_length=100)


class CompanyUpdate(BaseModel):
    """Payload to update mutable company fields; omitted fields are kept."""

    name: str | None = Field(default=None, min_length=2, max_length=100)
    identity_id: str | None = Field(default=None, min_length=2, max_length=100)


class CompanyReference(BaseModel):
    """Reference to an existing company by id."""

    id: UUID


class Company(BaseModel):
    """Company response payload."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    identity_id: str
    created_at: datetime
    updated_at: datetime
