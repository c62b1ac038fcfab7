"""Error-to-response translation, panic recovery and success envelopes."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any
import logging
import traceback

from fastapi import FastAPI
from fastapi import Request
from fastapi import status
from fastapi.encoders import jsonable_encoder
from fastapi.exception_handlers import http_exception_handler as default_http_exception_handler
from fastapi.exception_handlers import (
    request_validation_exception_handler as default_request_validation_exception_handler,
)
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.types import ASGIApp
from starlette.types import Message
from starlette.types import Receive
from starlette.types import Scope
from starlette.types import Send

from app.core.config import Settings
from app.core.config import get_settings
from app.core.errors import AppError
from app.core.errors import ErrorCode
from app.core.errors import conflict_error
from app.core.errors import external_service_error
from app.core.errors import forbidden_error
from app.core.errors import get_app_error
from app.core.errors import internal_error
from app.core.errors import not_found_error
from app.core.errors import parse_validation_errors
from app.core.errors import timeout_error
from app.core.errors import unauthorized_error
from app.core.errors import validation_error
from app.core.errors import validation_error_with_details
from app.core.errors import violations_from_pydantic
from app.core.telemetry import Telemetry
from app.schemas.common import Pageable
from app.schemas.envelope import Meta

logger = logging.getLogger(__name__)

DIAGNOSTIC_PATH_MARKERS = ("/swagger", "/docs", "/redoc", "/openapi.json", "favicon")


def is_diagnostics_path(path: str) -> bool:
    """Return True for documentation and favicon routes."""
    return any(marker in path for marker in DIAGNOSTIC_PATH_MARKERS)


def _json_safe(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, Mapping):
        return {str(key): _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_json_safe(item) for item in value]
    return str(value)


def as_app_error(exc: BaseException) -> AppError:
    """Return `exc` itself when it is an AppError, otherwise wrap it as internal."""
    app_error = get_app_error(exc)
    if app_error is not None:
        return app_error
    return internal_error("An unexpected error occurred", exc)


def render_error(exc: BaseException, *, expose_details: bool = True) -> JSONResponse:
    """Render any exception as the standard error envelope."""
    err = as_app_error(exc)
    details = None
    if expose_details and err.context:
        details = _json_safe(err.context)
    meta = Meta(
        error_code=err.code,
        message=err.message,
        code=err.http_status,
        details=details,
    )
    return JSONResponse(
        status_code=err.http_status,
        content={"meta": meta.model_dump(exclude_none=True), "data": None},
    )


def success_response(
    message: str,
    data: Any = None,
    pageable: Pageable | None = None,
    status_code: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Render a payload as the standard success envelope."""
    meta = Meta(error_code=ErrorCode.SUCCESS, message=message, code=status_code)
    if pageable is not None:
        meta.page = pageable.page
        meta.page_size = pageable.page_size
        meta.total = pageable.total
    return JSONResponse(
        status_code=status_code,
        content={"meta": meta.model_dump(exclude_none=True), "data": jsonable_encoder(data)},
    )


def app_error_from_http_exception(exc: StarletteHTTPException) -> AppError:
    """Classify a framework HTTP exception into the error taxonomy."""
    message = exc.detail if isinstance(exc.detail, str) and exc.detail else "Request failed"
    code = exc.status_code
    if code == status.HTTP_401_UNAUTHORIZED:
        return unauthorized_error(message, exc)
    if code == status.HTTP_403_FORBIDDEN:
        return forbidden_error(message, exc)
    if code == status.HTTP_404_NOT_FOUND:
        err = not_found_error("Resource", exc)
        err.message = message
        return err
    if code == status.HTTP_408_REQUEST_TIMEOUT:
        return timeout_error(message, exc)
    if code == status.HTTP_409_CONFLICT:
        return conflict_error(message, exc)
    if code == status.HTTP_502_BAD_GATEWAY:
        return external_service_error(message, exc)
    if code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return internal_error(message, exc)
    return validation_error(message, exc)


def _settings_for(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or get_settings()


def _telemetry_for(request: Request) -> Telemetry | None:
    return getattr(request.app.state, "telemetry", None)


def _report(request: Request, err: AppError) -> None:
    level = logging.ERROR if err.http_status >= 500 else logging.WARNING
    logger.log(
        level,
        "Request failed",
        extra={
            "error_code": err.code,
            "error_kind": err.kind.value,
            "http_status": err.http_status,
            "error_message": err.message,
            "operation": err.operation,
            "resource": err.resource,
            "method": request.method,
            "path": request.url.path,
            "cause": str(err.cause) if err.cause is not None else None,
        },
    )
    telemetry = _telemetry_for(request)
    if telemetry is not None:
        telemetry.capture_exception(
            err,
            tags={
                "error_code": err.code,
                "error_kind": err.kind.value,
                "operation": err.operation,
                "resource": err.resource,
            },
            extras={
                "request": telemetry.request_context(request),
                "context": _json_safe(err.context),
            },
        )


def _respond(request: Request, err: AppError) -> JSONResponse:
    _report(request, err)
    settings = _settings_for(request)
    expose = settings.is_development or err.http_status < status.HTTP_500_INTERNAL_SERVER_ERROR
    return render_error(err, expose_details=expose)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render typed application errors."""
    return _respond(request, exc)


async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    """Flatten request validation failures into field messages."""
    if is_diagnostics_path(request.url.path):
        return await default_request_validation_exception_handler(request, exc)

    issues = exc.errors()
    if any(issue.get("type") == "json_invalid" for issue in issues):
        return _respond(request, validation_error("Invalid request body", exc))

    field_errors = parse_validation_errors(violations_from_pydantic(issues))
    if field_errors:
        err = validation_error_with_details("Validation failed", field_errors, exc)
    else:
        err = validation_error("Validation failed", exc)
    return _respond(request, err)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Translate framework HTTP exceptions, leaving diagnostics routes untouched."""
    if is_diagnostics_path(request.url.path):
        return await default_http_exception_handler(request, exc)

    response = _respond(request, app_error_from_http_exception(exc))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


def register_error_handlers(
    app: FastAPI,
    *,
    settings: Settings | None = None,
    telemetry: Telemetry | None = None,
) -> None:
    """Attach the error translation handlers to a FastAPI app instance."""
    if settings is not None:
        app.state.settings = settings
    if telemetry is not None:
        app.state.telemetry = telemetry

    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)


class RecoveryMiddleware:
    """Outermost error boundary: turn any escaped exception into a 500 envelope."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        settings: Settings,
        telemetry: Telemetry | None = None,
    ) -> None:
        self.app = app
        self.settings = settings
        self.telemetry = telemetry

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        response_started = False

        async def send_wrapper(message: Message) -> None:
            nonlocal response_started
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        except Exception as exc:
            if response_started:
                raise
            request = Request(scope)
            panic = self._panic_error(exc)
            self._report(request, panic, exc)
            response = render_error(panic, expose_details=self.settings.is_development)
            await response(scope, receive, send)

    def _panic_error(self, exc: Exception) -> AppError:
        stack_trace = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__))
        panic = internal_error("Application panic occurred", exc).with_operation("panic_recovery")
        panic.stack_trace = stack_trace
        if self.settings.is_development:
            panic.with_context("panic_value", repr(exc))
            panic.with_context("stack_trace", stack_trace)
        return panic

    def _report(self, request: Request, panic: AppError, exc: Exception) -> None:
        request_fields = {
            "method": request.method,
            "path": request.url.path,
            "query": str(request.url.query),
            "user_agent": request.headers.get("user-agent", ""),
            "client_ip": request.client.host if request.client else None,
        }
        logger.error(
            "Application panic recovered",
            extra={
                "error_code": panic.code,
                "error_kind": panic.kind.value,
                "http_status": panic.http_status,
                "operation": panic.operation,
                "panic_value": repr(exc),
                "stack_trace": panic.stack_trace,
                **request_fields,
            },
        )
        if self.telemetry is not None:
            self.telemetry.capture_exception(
                panic,
                tags={
                    "error_code": panic.code,
                    "error_kind": panic.kind.value,
                    "operation": panic.operation,
                },
                extras={
                    "panic_value": repr(exc),
                    "stack_trace": panic.stack_trace,
                    "request": self.telemetry.request_context(request),
                },
            )
