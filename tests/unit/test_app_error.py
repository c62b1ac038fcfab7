"""Unit tests for the application error taxonomy."""

from __future__ import annotations

import pytest

from app.core.errors import KIND_TABLE
from app.core.errors import AppError
from app.core.errors import ErrorCode
from app.core.errors import ErrorKind
from app.core.errors import cache_error
from app.core.errors import conflict_error
from app.core.errors import database_error
from app.core.errors import external_service_error
from app.core.errors import forbidden_error
from app.core.errors import get_app_error
from app.core.errors import get_error_code
from app.core.errors import get_error_message
from app.core.errors import get_http_status
from app.core.errors import internal_error
from app.core.errors import is_app_error
from app.core.errors import not_found_error
from app.core.errors import timeout_error
from app.core.errors import unauthorized_error
from app.core.errors import validation_error
from app.core.errors import validation_error_with_details


@pytest.mark.parametrize(
    ("factory", "kind", "code", "status"),
    [
        (validation_error, ErrorKind.VALIDATION, ErrorCode.VALIDATION_ERROR, 400),
        (unauthorized_error, ErrorKind.UNAUTHORIZED, ErrorCode.UNAUTHORIZED, 401),
        (forbidden_error, ErrorKind.FORBIDDEN, ErrorCode.FORBIDDEN, 403),
        (conflict_error, ErrorKind.CONFLICT, ErrorCode.CONFLICT, 409),
        (internal_error, ErrorKind.INTERNAL, ErrorCode.INTERNAL_ERROR, 500),
        (database_error, ErrorKind.DATABASE, ErrorCode.DATABASE_ERROR, 500),
        (external_service_error, ErrorKind.EXTERNAL, ErrorCode.EXTERNAL_SERVICE_ERROR, 502),
        (cache_error, ErrorKind.CACHE, ErrorCode.CACHE_ERROR, 500),
        (timeout_error, ErrorKind.TIMEOUT, ErrorCode.TIMEOUT_ERROR, 408),
    ],
)
def test_constructors_fix_kind_code_and_status(factory, kind, code, status) -> None:
    err = factory("boom")

    assert err.kind is kind
    assert err.code == code
    assert err.http_status == status
    assert KIND_TABLE[kind] == (code, status)


def test_every_kind_has_a_table_entry() -> None:
    assert set(KIND_TABLE) == set(ErrorKind)


def test_not_found_message_names_the_resource() -> None:
    err = not_found_error("User")

    assert err.message == "User not found"
    assert err.http_status == 404
    assert err.code == ErrorCode.NOT_FOUND


def test_str_includes_cause_when_present() -> None:
    assert str(validation_error("bad input")) == "VALIDATION_ERROR: bad input"

    err = database_error("Failed to get user by ID", RuntimeError("connection reset"))
    assert str(err) == "DATABASE_ERROR: Failed to get user by ID (caused by: connection reset)"
    assert err.__cause__ is err.cause


def test_builders_mutate_and_return_the_same_error() -> None:
    err = internal_error("boom")

    returned = err.with_context("a", 1).with_operation("create_user").with_resource("user")

    assert returned is err
    assert err.context == {"a": 1}
    assert err.operation == "create_user"
    assert err.resource == "user"


def test_with_context_overwrites_existing_key() -> None:
    err = validation_error("bad").with_context("email", "first").with_context("email", "second")

    assert err.context == {"email": "second"}


def test_validation_error_with_details_copies_field_messages() -> None:
    err = validation_error_with_details(
        "Validation failed",
        {"email": "email is required", "first_name": "first_name must be at least 2 characters long"},
    )

    assert err.kind is ErrorKind.VALIDATION
    assert err.context == {
        "email": "email is required",
        "first_name": "first_name must be at least 2 characters long",
    }


def test_stack_trace_and_timestamp_are_captured() -> None:
    err = conflict_error("duplicate")

    assert err.timestamp.tzinfo is not None
    assert "test_stack_trace_and_timestamp_are_captured" in err.stack_trace


def test_inspection_helpers_handle_plain_exceptions() -> None:
    app_error = timeout_error("slow")
    plain = KeyError("missing")

    assert is_app_error(app_error)
    assert not is_app_error(plain)
    assert not is_app_error(None)
    assert get_app_error(app_error) is app_error
    assert get_app_error(plain) is None

    assert get_error_code(app_error) == ErrorCode.TIMEOUT_ERROR
    assert get_error_code(plain) == ErrorCode.INTERNAL_ERROR
    assert get_http_status(app_error) == 408
    assert get_http_status(plain) == 500
    assert get_error_message(app_error) == "slow"
    assert get_error_message(ValueError("raw")) == "raw"


def test_app_error_is_raisable() -> None:
    with pytest.raises(AppError) as excinfo:
        raise forbidden_error("nope").with_resource("company")

    assert excinfo.value.resource == "company"
