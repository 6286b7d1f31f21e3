"""Request-aware logging.

Every record passes through :class:`RequestContextFilter`, which stamps the
current request id and organization id onto it. In production the records are
written as one JSON object per line; locally a readable single-line format is
used instead (``LOG_JSON=false``).
"""

from __future__ import annotations

import json
import logging
import sys
import time
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from geartracker.core.config import Settings

REQUEST_ID_CONTEXT: ContextVar[str | None] = ContextVar("request_id", default=None)
ORGANIZATION_ID_CONTEXT: ContextVar[str | None] = ContextVar("organization_id", default=None)

_CONTEXT_FIELDS = ("request_id", "organization_id")
# Attributes every LogRecord carries; anything else arrived through ``extra``.
_STANDARD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_QUIET_PATH_PREFIXES = ("/metrics", "/api/health")
_TEXT_FORMAT = (
    "%(asctime)s %(levelname)-7s %(name)s "
    "[req=%(request_id)s org=%(organization_id)s] %(message)s"
)

_configured = False


class RequestContextFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = REQUEST_ID_CONTEXT.get()
        record.organization_id = ORGANIZATION_ID_CONTEXT.get()
        return True


class JsonFormatter(logging.Formatter):
    """Render a record, its context ids and any ``extra`` fields as JSON."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, value)
            for field in _CONTEXT_FIELDS
            if (value := getattr(record, field, None))
        )
        entry.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _STANDARD_ATTRS
            and key not in _CONTEXT_FIELDS
            and not key.startswith("_")
        )
        if record.exc_info:
            entry["exc_info"] = self.formatException(record.exc_info)
        if record.stack_info:
            entry["stack"] = self.formatStack(record.stack_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(settings: Settings) -> None:
    """Route the root and uvicorn loggers through one stdout handler."""

    global _configured
    if _configured:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestContextFilter())
    if settings.log_json:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT, datefmt="%H:%M:%S"))

    level = logging.getLevelName(settings.log_level.upper())
    logging.basicConfig(level=level, handlers=[handler], force=True)
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        server_logger = logging.getLogger(name)
        server_logger.handlers = [handler]
        server_logger.setLevel(level)
        server_logger.propagate = False
    # botocore logs every retry at INFO.
    logging.getLogger("botocore").setLevel(logging.WARNING)

    _configured = True


def bind_organization(organization_id: str | None) -> None:
    ORGANIZATION_ID_CONTEXT.set(organization_id)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Reuse the caller's ``X-Request-ID`` or mint one, and echo it back."""

    def __init__(self, app: Any, header_name: str = "X-Request-ID") -> None:
        super().__init__(app)
        self.header_name = header_name

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        request_id = request.headers.get(self.header_name) or uuid4().hex
        request.state.request_id = request_id
        tokens = (
            (REQUEST_ID_CONTEXT, REQUEST_ID_CONTEXT.set(request_id)),
            (ORGANIZATION_ID_CONTEXT, ORGANIZATION_ID_CONTEXT.set(None)),
        )
        try:
            response = await call_next(request)
        finally:
            for variable, token in reversed(tokens):
                variable.reset(token)
        response.headers[self.header_name] = request_id
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: Any, logger: logging.Logger | None = None) -> None:
        super().__init__(app)
        self.logger = logger or logging.getLogger("geartracker.request")

    @staticmethod
    def _fields(request: Request, status_code: int, started: float) -> dict[str, Any]:
        return {
            "method": request.method,
            "path": request.url.path,
            "status_code": status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 3),
            "client_ip": request.client.host if request.client else None,
        }

    async def dispatch(self, request: Request, call_next: Any) -> Response:
        started = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception:
            self.logger.exception(
                "Request failed", extra=self._fields(request, 500, started)
            )
            raise
        if not request.url.path.startswith(_QUIET_PATH_PREFIXES):
            self.logger.info(
                "%s %s -> %s",
                request.method,
                request.url.path,
                response.status_code,
                extra=self._fields(request, response.status_code, started),
            )
        return response


__all__ = [
    "ORGANIZATION_ID_CONTEXT",
    "REQUEST_ID_CONTEXT",
    "JsonFormatter",
    "RequestContextFilter",
    "RequestIDMiddleware",
    "RequestLoggingMiddleware",
    "bind_organization",
    "configure_logging",
]
