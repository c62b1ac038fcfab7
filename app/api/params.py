"""Query-parameter parsing shared by list endpoints."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Collection

from fastapi import Query
from fastapi import Request

from app.core.config import get_settings
from app.core.errors import validation_error_with_details
from app.schemas.common import DEFAULT_PAGE
from app.schemas.common import PageableRequest
from app.utils.dates import parse_date_range
from app.utils.sort import normalize_and_validate_sort
from app.utils.sort import split_sort_params


# LIMIT and OFFSET are bound as signed 64-bit integers
MAX_SQL_INT = 2**63 - 1


def _parse_int(raw: str | None, default: int, *, minimum: int, maximum: int = MAX_SQL_INT) -> int:
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    if value < minimum or value > maximum:
        return default
    return value


def _default_page_size(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None) or get_settings()
    return settings.default_page_size


def pageable_params(allowed_sort: Collection[str]) -> Callable[..., PageableRequest]:
    """Build a dependency that turns list query parameters into a PageableRequest.

    Malformed paging values fall back to defaults; unknown sort fields and bad
    date ranges are validation errors.
    """

    def dependency(
        request: Request,
        page: str | None = Query(default=None, description="1-based page number"),
        page_size: str | None = Query(default=None, description="Rows per page, 0 disables paging"),
        start_date: str | None = Query(default=None, description="RFC 3339 lower bound on created_at"),
        end_date: str | None = Query(default=None, description="RFC 3339 upper bound on created_at"),
        q: str = Query(default="", description="Free-text search"),
        sort: list[str] | None = Query(default=None, description="Sort fields, `-` prefix for descending"),
    ) -> PageableRequest:
        valid, invalid = normalize_and_validate_sort(split_sort_params(sort or []), allowed_sort)
        if invalid:
            raise validation_error_with_details(
                "Validation failed",
                {"sort": "invalid sort field(s): " + ", ".join(invalid)},
            )

        date_range = parse_date_range(start_date, end_date)
        size = _parse_int(page_size, _default_page_size(request), minimum=0)
        number = _parse_int(page, DEFAULT_PAGE, minimum=1)
        if (number - 1) * size > MAX_SQL_INT:
            number = DEFAULT_PAGE
        return PageableRequest(
            page=number,
            page_size=size,
            start_date=date_range.start_date,
            end_date=date_range.end_date,
            q=q.strip(),
            sort=valid,
        )

    return dependency
