"""Response envelope schemas shared across API handlers."""

from __future__ import annotations

from typing import Any
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel
from pydantic import ConfigDict

DataT = TypeVar("DataT")


class Meta(BaseModel):
    """Envelope metadata block."""

    model_config = ConfigDict(extra="forbid")

    error_code: str
    message: str
    code: int
    page: int | None = None
    page_size: int | None = None
    total: int | None = None
    details: dict[str, Any] | None = None


class ErrorEnvelope(BaseModel):
    """Top-level API error response envelope."""

    meta: Meta
    data: None = None


class SuccessEnvelope(BaseModel, Generic[DataT]):
    """Top-level API success response envelope."""

    meta: Meta
    data: DataT | None = None


# OpenAPI `responses=` entries for routes that fail with the error envelope.
ERROR_RESPONSES: dict[int | str, dict[str, Any]] = {
    400: {"model": ErrorEnvelope, "description": "Validation failed"},
    404: {"model": ErrorEnvelope, "description": "Resource not found"},
    500: {"model": ErrorEnvelope, "description": "Internal or database error"},
}
