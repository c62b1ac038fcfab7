"""Unit tests for flattening field-level validation failures."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from app.core.errors import FieldViolation
from app.core.errors import format_location
from app.core.errors import parse_validation_errors
from app.core.errors import violations_from_pydantic
from app.schemas.user import UserCreate


def test_required_field_and_omitempty_marker() -> None:
    field_errors = parse_validation_errors(
        [
            FieldViolation(field="Email", rule="required"),
            FieldViolation(field="Phone", rule="omitempty"),
        ]
    )

    assert field_errors == {"Email": "Email is required"}


def test_templates_substitute_rule_parameter() -> None:
    field_errors = parse_validation_errors(
        [
            FieldViolation(field="first_name", rule="min", param="2"),
            FieldViolation(field="status", rule="oneof", param="active inactive"),
            FieldViolation(field="age", rule="gte", param="18"),
        ]
    )

    assert field_errors == {
        "first_name": "first_name must be at least 2 characters long",
        "status": "status must be one of: active inactive",
        "age": "age must be greater than or equal to 18",
    }


def test_unknown_rule_uses_generic_message_with_value() -> None:
    field_errors = parse_validation_errors(
        [FieldViolation(field="color", rule="hexcolor", value="zzz")]
    )

    assert field_errors == {"color": "color is invalid (value: zzz)"}


def test_later_violation_for_same_field_wins() -> None:
    field_errors = parse_validation_errors(
        [
            FieldViolation(field="email", rule="required"),
            FieldViolation(field="email", rule="email"),
        ]
    )

    assert field_errors == {"email": "email must be a valid email address"}


@pytest.mark.parametrize(
    ("location", "expected"),
    [
        (("body", "email"), "email"),
        (("body", "companies", 0, "id"), "companies.0.id"),
        (("query", "page"), "page"),
        (("body",), "body"),
        ((), "request"),
        ("plain", "plain"),
    ],
)
def test_format_location(location, expected) -> None:
    assert format_location(location) == expected


def test_pydantic_errors_map_to_rule_messages() -> None:
    with pytest.raises(ValidationError) as excinfo:
        UserCreate.model_validate({"first_name": "A", "last_name": "Lovelace"})

    field_errors = parse_validation_errors(violations_from_pydantic(excinfo.value.errors()))

    assert field_errors["email"] == "email is required"
    assert field_errors["first_name"] == "first_name must be at least 2 characters long"
    assert "last_name" not in field_errors


def test_pydantic_email_failure_maps_to_email_rule() -> None:
    with pytest.raises(ValidationError) as excinfo:
        UserCreate.model_validate(
            {"email": "not-an-email", "first_name": "Ada", "last_name": "Lovelace"}
        )

    field_errors = parse_validation_errors(violations_from_pydantic(excinfo.value.errors()))

    assert field_errors == {"email": "email must be a valid email address"}
