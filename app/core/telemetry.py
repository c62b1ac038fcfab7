"""Exception reporting side channel for the service."""

from __future__ import annotations

from collections.abc import Callable
from collections.abc import Mapping
from typing import Any
import logging

from starlette.requests import Request

logger = logging.getLogger(__name__)

TELEMETRY_LOGGER_NAME = "app.telemetry"

SENSITIVE_HEADERS = frozenset(
    {
        "authorization",
        "cookie",
        "set-cookie",
        "x-api-key",
        "proxy-authorization",
    }
)

EventSink = Callable[[BaseException, dict[str, Any]], None]


class Telemetry:
    """Explicitly constructed telemetry handle.

    Events go to `sink` when one is given, otherwise to the `app.telemetry`
    logger. Reporting is fire-and-forget: a failing sink is logged and never
    reaches the caller.
    """

    def __init__(
        self,
        service: str,
        environment: str,
        release: str,
        *,
        sink: EventSink | None = None,
    ) -> None:
        self.service = service
        self.environment = environment
        self.release = release
        self._sink = sink
        self._logger = logging.getLogger(TELEMETRY_LOGGER_NAME)

    def capture_exception(
        self,
        exc: BaseException,
        *,
        tags: Mapping[str, Any] | None = None,
        extras: Mapping[str, Any] | None = None,
    ) -> None:
        event = {
            "service": self.service,
            "environment": self.environment,
            "release": self.release,
            "tags": dict(tags or {}),
            "extras": dict(extras or {}),
        }
        try:
            if self._sink is not None:
                self._sink(exc, event)
            else:
                self._logger.error(
                    "telemetry.exception",
                    exc_info=(type(exc), exc, exc.__traceback__),
                    extra={"telemetry": event},
                )
        except Exception:
            logger.warning("Telemetry capture failed", exc_info=True)

    def request_context(self, request: Request) -> dict[str, Any]:
        """Describe a request for an exception report without credentials."""
        headers = {
            name: value
            for name, value in request.headers.items()
            if name.lower() not in SENSITIVE_HEADERS
        }
        context: dict[str, Any] = {
            "method": request.method,
            "path": request.url.path,
            "query_params": dict(request.query_params),
            "headers": headers,
            "client_ip": request.client.host if request.client else None,
            "user_agent": request.headers.get("user-agent", ""),
        }
        for key in ("user_id", "organization_id"):
            value = getattr(request.state, key, None)
            if value is not None:
                context[key] = str(value)
        return context

    def flush(self, timeout: float = 2.0) -> None:
        # logging handlers flush synchronously; timeout is kept for sinks that buffer
        for handler in self._logger.handlers or logging.getLogger().handlers:
            try:
                handler.flush()
            except Exception:
                logger.warning("Telemetry flush failed", exc_info=True)
