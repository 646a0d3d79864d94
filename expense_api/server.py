"""FastAPI application exposing the expense report and user endpoints."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, get_settings
from .database import ConnectionPool
from .exceptions import ServiceError, ValidationFailed, WriteFailure
from .logging import setup_logger
from .middleware import (
    RateLimitMiddleware,
    RequestLoggingMiddleware,
    SecurityHeadersMiddleware,
    UnhandledErrorMiddleware,
    unexpected_error_response,
)
from .routers import expenses, health, users
from .validation import violations_from_errors

logger = logging.getLogger(__name__)


def _install_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(ServiceError)
    async def handle_service_error(request: Request, exc: ServiceError) -> JSONResponse:
        content = exc.to_dict()
        if isinstance(exc, WriteFailure) and not settings.is_production and exc.detail:
            content["error"] = exc.detail
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        failure = ValidationFailed(violations_from_errors(exc.errors()))
        return JSONResponse(status_code=failure.status_code, content=failure.to_dict())

    @app.exception_handler(StarletteHTTPException)
    async def handle_http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        if exc.status_code == status.HTTP_404_NOT_FOUND:
            content = {"success": False, "message": "Resource not found", "path": request.url.path}
        else:
            content = {"success": False, "message": str(exc.detail)}
        return JSONResponse(status_code=exc.status_code, content=content, headers=getattr(exc, "headers", None))

    # Backstop for failures raised by the middleware layers themselves.
    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        return unexpected_error_response(request, exc, expose_details=not settings.is_production)


def create_app(settings: Optional[Settings] = None, pool: Optional[ConnectionPool] = None) -> FastAPI:
    """Build the application; ``pool`` overrides the one derived from ``settings``."""
    settings = settings or get_settings()
    setup_logger(json_format=settings.JSON_LOGS, level=settings.LOG_LEVEL, log_dir=settings.LOG_DIR)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.pool.init()
        logger.info("Expense service started in %s mode", settings.ENVIRONMENT)
        yield
        logger.info("Shutting down, draining connection pool")
        app.state.pool.shutdown()

    app = FastAPI(title="Expense Report Service", version="1.0.0", lifespan=lifespan)
    app.state.settings = settings
    app.state.pool = pool or ConnectionPool.from_settings(settings)

    # Last added is outermost: logging wraps everything, error mapping sits next to routing.
    app.add_middleware(UnhandledErrorMiddleware, expose_details=not settings.is_production)
    app.add_middleware(
        RateLimitMiddleware,
        max_requests=settings.RATE_LIMIT_MAX,
        window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
    )
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list or ["*"],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", "Authorization"],
        expose_headers=["X-Total-Count"],
        max_age=86400,
    )
    app.add_middleware(RequestLoggingMiddleware)

    _install_exception_handlers(app, settings)

    app.include_router(health.router, tags=["system"])
    app.include_router(expenses.router, prefix="/api/expenses", tags=["expenses"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    return app
