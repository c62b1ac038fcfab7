"""Unit tests for list date-range parsing."""

from __future__ import annotations

from datetime import datetime
from datetime import timezone

import pytest

from app.core.errors import AppError
from app.core.errors import ErrorKind
from app.utils.dates import parse_date
from app.utils.dates import parse_date_range


def test_rfc3339_with_zulu_suffix() -> None:
    parsed = parse_date("2025-03-08T15:05:42.536581Z", field="start_date")

    assert parsed == datetime(2025, 3, 8, 15, 5, 42, 536581, tzinfo=timezone.utc)


def test_naive_timestamp_is_taken_as_utc() -> None:
    parsed = parse_date("2025-03-08T15:05:42")

    assert parsed.tzinfo == timezone.utc


def test_empty_values_parse_to_none() -> None:
    assert parse_date(None) is None
    assert parse_date("") is None
    assert parse_date_range(None, "").start_date is None


def test_malformed_value_names_the_field() -> None:
    with pytest.raises(AppError) as excinfo:
        parse_date("yesterday", field="start_date")

    err = excinfo.value
    assert err.kind is ErrorKind.VALIDATION
    assert err.message.startswith("Invalid start_date format. Must be RFC 3339 format")
    assert err.context == {"start_date": "yesterday"}


def test_range_rejects_end_before_start() -> None:
    with pytest.raises(AppError) as excinfo:
        parse_date_range("2025-03-08T00:00:00Z", "2025-03-07T00:00:00Z")

    assert excinfo.value.message == "end_date must be greater than or equal to start_date"


def test_range_accepts_equal_bounds() -> None:
    date_range = parse_date_range("2025-03-08T00:00:00Z", "2025-03-08T00:00:00+00:00")

    assert date_range.start_date == date_range.end_date
