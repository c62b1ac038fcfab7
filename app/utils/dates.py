"""Date-range parsing for list filters."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from datetime import timezone

from app.core.errors import validation_error

_FORMAT_HINT = "Must be RFC 3339 format (e.g., 2025-03-08T15:05:42.536581Z)"


@dataclass(frozen=True)
class DateRange:
    start_date: datetime | None = None
    end_date: datetime | None = None


def parse_date(value: str | None, *, field: str = "date") -> datetime | None:
    """Parse an ISO-8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError as exc:
        raise validation_error(f"Invalid {field} format. {_FORMAT_HINT}", exc).with_context(
            field, value
        ) from exc
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_date_range(start: str | None, end: str | None) -> DateRange:
    """Parse `start_date`/`end_date` query values and check their order."""
    start_date = parse_date(start, field="start_date")
    end_date = parse_date(end, field="end_date")
    if start_date is not None and end_date is not None and end_date < start_date:
        raise validation_error("end_date must be greater than or equal to start_date").with_context(
            "end_date", "must be greater than or equal to start_date"
        )
    return DateRange(start_date=start_date, end_date=end_date)
