"""Typed application error taxonomy and validation-failure flattening."""

from __future__ import annotations

from collections.abc import Iterable
from collections.abc import Mapping
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime
from datetime import timezone
from enum import Enum
from typing import Any
import traceback

from fastapi import status


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    CONFLICT = "conflict"
    INTERNAL = "internal"
    EXTERNAL = "external"
    DATABASE = "database"
    CACHE = "cache"
    TIMEOUT = "timeout"


class ErrorCode:
    """Stable error codes exposed to clients as `meta.error_code`."""

    SUCCESS = "SUCCESS"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    UNAUTHORIZED = "UNAUTHORIZED"
    FORBIDDEN = "FORBIDDEN"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DATABASE_ERROR = "DATABASE_ERROR"
    EXTERNAL_SERVICE_ERROR = "EXTERNAL_SERVICE_ERROR"
    CACHE_ERROR = "CACHE_ERROR"
    TIMEOUT_ERROR = "TIMEOUT_ERROR"


# kind -> (code, http status); fixed for the lifetime of the process
KIND_TABLE: Mapping[ErrorKind, tuple[str, int]] = {
    ErrorKind.VALIDATION: (ErrorCode.VALIDATION_ERROR, status.HTTP_400_BAD_REQUEST),
    ErrorKind.NOT_FOUND: (ErrorCode.NOT_FOUND, status.HTTP_404_NOT_FOUND),
    ErrorKind.UNAUTHORIZED: (ErrorCode.UNAUTHORIZED, status.HTTP_401_UNAUTHORIZED),
    ErrorKind.FORBIDDEN: (ErrorCode.FORBIDDEN, status.HTTP_403_FORBIDDEN),
    ErrorKind.CONFLICT: (ErrorCode.CONFLICT, status.HTTP_409_CONFLICT),
    ErrorKind.INTERNAL: (ErrorCode.INTERNAL_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ErrorKind.EXTERNAL: (ErrorCode.EXTERNAL_SERVICE_ERROR, status.HTTP_502_BAD_GATEWAY),
    ErrorKind.DATABASE: (ErrorCode.DATABASE_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ErrorKind.CACHE: (ErrorCode.CACHE_ERROR, status.HTTP_500_INTERNAL_SERVER_ERROR),
    ErrorKind.TIMEOUT: (ErrorCode.TIMEOUT_ERROR, status.HTTP_408_REQUEST_TIMEOUT),
}


def _capture_stack() -> str:
    # drop the frames of this module so the trace starts at the failure site
    frames = [
        frame
        for frame in traceback.extract_stack()[:-1]
        if frame.filename != __file__
    ]
    return "".join(traceback.format_list(frames))


class AppError(Exception):
    """Structured application error carrying a taxonomy kind and HTTP status.

    `kind`, `code` and `http_status` are fixed at construction. `context`,
    `operation` and `resource` are filled in by the `with_*` builder methods
    while the error travels up the stack.
    """

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        code, http_status = KIND_TABLE[kind]
        self._kind = kind
        self._code = code
        self._http_status = http_status
        self.message = message
        self.cause = cause
        self.__cause__ = cause
        self.context: dict[str, Any] = {}
        self.operation = ""
        self.resource = ""
        self.timestamp = datetime.now(timezone.utc)
        self.stack_trace = _capture_stack()

    @property
    def kind(self) -> ErrorKind:
        return self._kind

    @property
    def code(self) -> str:
        return self._code

    @property
    def http_status(self) -> int:
        return self._http_status

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.code}: {self.message} (caused by: {self.cause})"
        return f"{self.code}: {self.message}"

    def __repr__(self) -> str:
        return f"AppError(kind={self.kind.value!r}, code={self.code!r}, message={self.message!r})"

    def with_context(self, key: str, value: Any) -> AppError:
        self.context[key] = value
        return self

    def with_operation(self, operation: str) -> AppError:
        self.operation = operation
        return self

    def with_resource(self, resource: str) -> AppError:
        self.resource = resource
        return self


def validation_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.VALIDATION, message, cause=cause)


def validation_error_with_details(
    message: str,
    field_errors: Mapping[str, str],
    cause: BaseException | None = None,
) -> AppError:
    """Validation error whose context holds one message per failing field."""
    error = AppError(ErrorKind.VALIDATION, message, cause=cause)
    for field, field_message in field_errors.items():
        error.with_context(field, field_message)
    return error


def not_found_error(resource: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.NOT_FOUND, f"{resource} not found", cause=cause)


def unauthorized_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.UNAUTHORIZED, message, cause=cause)


def forbidden_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.FORBIDDEN, message, cause=cause)


def conflict_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.CONFLICT, message, cause=cause)


def internal_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.INTERNAL, message, cause=cause)


def database_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.DATABASE, message, cause=cause)


def external_service_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.EXTERNAL, message, cause=cause)


def cache_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.CACHE, message, cause=cause)


def timeout_error(message: str, cause: BaseException | None = None) -> AppError:
    return AppError(ErrorKind.TIMEOUT, message, cause=cause)


def is_app_error(exc: BaseException | None) -> bool:
    return isinstance(exc, AppError)


def get_app_error(exc: BaseException | None) -> AppError | None:
    if isinstance(exc, AppError):
        return exc
    return None


def get_error_code(exc: BaseException) -> str:
    app_error = get_app_error(exc)
    if app_error is not None:
        return app_error.code
    return ErrorCode.INTERNAL_ERROR


def get_http_status(exc: BaseException) -> int:
    app_error = get_app_error(exc)
    if app_error is not None:
        return app_error.http_status
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def get_error_message(exc: BaseException) -> str:
    app_error = get_app_error(exc)
    if app_error is not None:
        return app_error.message
    return str(exc)


# ---------------------------------------------------------------------------
# Field-level validation failures
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldViolation:
    """One decoded rule violation reported by a validation frontend."""

    field: str
    rule: str
    param: str = ""
    value: Any = None


_MESSAGE_TEMPLATES: Mapping[str, str] = {
    "required": "{field} is required",
    "email": "{field} must be a valid email address",
    "min": "{field} must be at least {param} characters long",
    "max": "{field} must be at most {param} characters long",
    "len": "{field} must be exactly {param} characters long",
    "numeric": "{field} must be a valid number",
    "alpha": "{field} must contain only letters",
    "alphanum": "{field} must contain only letters and numbers",
    "url": "{field} must be a valid URL",
    "uuid": "{field} must be a valid UUID",
    "oneof": "{field} must be one of: {param}",
    "gte": "{field} must be greater than or equal to {param}",
    "lte": "{field} must be less than or equal to {param}",
    "gt": "{field} must be greater than {param}",
    "lt": "{field} must be less than {param}",
    "eq": "{field} must be equal to {param}",
    "ne": "{field} must not be equal to {param}",
    "unique": "{field} must be unique",
}

# rules that only mark a field as optional and never describe a failure
_SKIPPED_RULES = frozenset({"omitempty"})


def parse_validation_errors(violations: Iterable[FieldViolation]) -> dict[str, str]:
    """Flatten rule violations into a field -> human-readable message mapping."""
    field_errors: dict[str, str] = {}
    for violation in violations:
        if violation.rule in _SKIPPED_RULES:
            continue
        template = _MESSAGE_TEMPLATES.get(violation.rule)
        if template is None:
            message = f"{violation.field} is invalid (value: {violation.value})"
        else:
            message = template.format(field=violation.field, param=violation.param)
        field_errors[violation.field] = message
    return field_errors


_PYDANTIC_RULES: Mapping[str, tuple[str, str | None]] = {
    # pydantic error type -> (rule tag, ctx key holding the rule parameter)
    "missing": ("required", None),
    "string_too_short": ("min", "min_length"),
    "string_too_long": ("max", "max_length"),
    "too_short": ("min", "min_length"),
    "too_long": ("max", "max_length"),
    "greater_than_equal": ("gte", "ge"),
    "less_than_equal": ("lte", "le"),
    "greater_than": ("gt", "gt"),
    "less_than": ("lt", "lt"),
    "uuid_parsing": ("uuid", None),
    "uuid_type": ("uuid", None),
    "int_parsing": ("numeric", None),
    "int_type": ("numeric", None),
    "float_parsing": ("numeric", None),
    "float_type": ("numeric", None),
    "url_parsing": ("url", None),
    "url_type": ("url", None),
    "literal_error": ("oneof", "expected"),
    "enum": ("oneof", "expected"),
}

_LOCATION_PREFIXES = frozenset({"body", "query", "path", "header", "cookie"})


def format_location(location: Sequence[Any] | Any) -> str:
    """Render a pydantic error location as a dotted field path."""
    if not isinstance(location, (tuple, list)):
        return str(location)

    filtered = [str(part) for part in location if part not in _LOCATION_PREFIXES]
    if filtered:
        return ".".join(filtered)

    if not location:
        return "request"

    return str(location[0])


def violations_from_pydantic(errors: Iterable[Mapping[str, Any]]) -> list[FieldViolation]:
    """Decode pydantic error dicts (`exc.errors()`) into field violations."""
    violations: list[FieldViolation] = []
    for issue in errors:
        error_type = str(issue.get("type", ""))
        ctx = issue.get("ctx") or {}
        field = format_location(issue.get("loc", ()))

        rule, param_key = _PYDANTIC_RULES.get(error_type, (error_type, None))
        if error_type == "value_error" and "email" in str(issue.get("msg", "")).lower():
            rule = "email"

        param = ""
        if param_key is not None and param_key in ctx:
            param = str(ctx[param_key])

        violations.append(
            FieldViolation(field=field, rule=rule, param=param, value=issue.get("input"))
        )
    return violations


__all__ = [
    "AppError",
    "ErrorCode",
    "ErrorKind",
    "FieldViolation",
    "KIND_TABLE",
    "cache_error",
    "conflict_error",
    "database_error",
    "external_service_error",
    "forbidden_error",
    "format_location",
    "get_app_error",
    "get_error_code",
    "get_error_message",
    "get_http_status",
    "internal_error",
    "is_app_error",
    "not_found_error",
    "parse_validation_errors",
    "timeout_error",
    "unauthorized_error",
    "validation_error",
    "validation_error_with_details",
    "violations_from_pydantic",
]
