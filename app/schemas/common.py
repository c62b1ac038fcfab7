"""Pagination request and result schemas shared by list endpoints."""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field
from datetime import datetime
from typing import Generic
from typing import TypeVar

from pydantic import BaseModel
from pydantic import Field
from pydantic import model_validator

NO_LIMIT = 0
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 10

T = TypeVar("T")


class PageableRequest(BaseModel):
    """Pagination, date-range, free-text and sort intent for list queries.

    `page_size == 0` disables pagination entirely: no COUNT query is issued
    and the result carries no `Pageable`.
    """

    page: int = Field(default=DEFAULT_PAGE, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    q: str = ""
    sort: list[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_date_range(self) -> PageableRequest:
        if self.start_date is not None and self.end_date is not None:
            if self.end_date < self.start_date:
                raise ValueError("end_date must be greater than or equal to start_date")
        return self

    @classmethod
    def unpaginated(cls) -> PageableRequest:
        return cls(page_size=NO_LIMIT)

    def should_paginate(self) -> bool:
        return self.page_size > NO_LIMIT

    @property
    def limit(self) -> int | None:
        """Row limit, or None for no limit."""
        if not self.should_paginate():
            return None
        return self.page_size

    @property
    def offset(self) -> int:
        if not self.should_paginate():
            return 0
        return (self.page - 1) * self.page_size


class Pageable(BaseModel):
    """Page window metadata attached to paginated results."""

    page: int
    page_size: int
    total: int


@dataclass
class DataResponse(Generic[T]):
    """Rows of one list query; `pageable` is set only when paginating."""

    data: list[T] = field(default_factory=list)
    pageable: Pageable | None = None
