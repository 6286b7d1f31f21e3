"""Application entrypoint for the GearTracker API."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any, cast

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.gzip import GZipMiddleware
from starlette.types import ExceptionHandler

from geartracker.api.v1 import api_router
from geartracker.core.config import get_settings
from geartracker.core.errors import DomainError, InternalError
from geartracker.core.limiter import limiter
from geartracker.core.logging import RequestIDMiddleware, RequestLoggingMiddleware, configure_logging
from geartracker.core.metrics import setup_metrics
from geartracker.core.sentry import init_sentry

logger = logging.getLogger("geartracker.errors")
lifecycle_logger = logging.getLogger("geartracker.lifecycle")


def _envelope(status_code: int, message: str, **extra: Any) -> JSONResponse:
    body: dict[str, Any] = {
        "status": "fail" if status_code < 500 else "error",
        "message": message,
    }
    body.update(extra)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(body))


async def _domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            "Request failed: %s",
            exc.message,
            extra={"path": request.url.path, "error_type": type(exc).__name__},
        )
    extra = {"details": exc.details} if exc.details else {}
    return _envelope(exc.status_code, exc.message, **extra)


async def _http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    response = _envelope(exc.status_code, message)
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = []
    for error in exc.errors():
        loc = error.get("loc", ())
        field = ".".join(str(part) for part in loc if part not in {"body", "query", "path"}) or "body"
        errors.append({"field": field, "message": error.get("msg", "Invalid value")})
    return _envelope(status.HTTP_400_BAD_REQUEST, "Invalid request", errors=errors)


async def _database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database operation failed", extra={"path": request.url.path})
    return _envelope(status.HTTP_500_INTERNAL_SERVER_ERROR, "Database operation failed")


async def _unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception",
        exc_info=exc,
        extra={"path": request.url.path, "error_type": type(exc).__name__},
    )
    return await _domain_error_handler(request, InternalError("Internal server error"))


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)
    init_sentry(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        lifecycle_logger.info("Application startup complete", extra={"env": settings.app_env})
        yield
        lifecycle_logger.info("Application shutdown complete")

    app = FastAPI(title="GearTracker API", version="1.0.0", lifespan=lifespan)

    app.state.limiter = limiter
    app.add_exception_handler(
        RateLimitExceeded,
        cast(ExceptionHandler, _rate_limit_exceeded_handler),
    )
    app.add_exception_handler(DomainError, cast(ExceptionHandler, _domain_error_handler))
    app.add_exception_handler(StarletteHTTPException, cast(ExceptionHandler, _http_error_handler))
    app.add_exception_handler(
        RequestValidationError, cast(ExceptionHandler, _validation_error_handler)
    )
    app.add_exception_handler(SQLAlchemyError, cast(ExceptionHandler, _database_error_handler))
    app.add_exception_handler(Exception, cast(ExceptionHandler, _unhandled_error_handler))

    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=settings.gzip_min_length)

    allow_origins = list(settings.cors_allowed_origins) or ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(api_router)

    app.state.instrumentator = setup_metrics(app)

    return app


app = create_app()
