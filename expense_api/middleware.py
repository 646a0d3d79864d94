"""HTTP middleware: error mapping, security headers, rate limiting and request logging."""
from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Callable

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response
from starlette.types import ASGIApp

logger = logging.getLogger("expense_api.access")
error_logger = logging.getLogger("expense_api.server")

SECURITY_HEADERS: dict[str, str] = {
    "Content-Security-Policy": (
        "default-src 'self'; script-src 'self'; object-src 'none'; "
        "img-src 'self' data:; style-src 'self'; font-src 'self';"
    ),
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "SAMEORIGIN",
    "Referrer-Policy": "no-referrer",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
    "Surrogate-Control": "no-store",
}


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        response = await call_next(request)
        for name, value in SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        return response


@dataclass
class _Window:
    started: float
    hits: int


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Fixed-window limit per client address on paths under ``prefix``."""

    def __init__(
        self,
        app: ASGIApp,
        *,
        max_requests: int,
        window_seconds: int,
        prefix: str = "/api/",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        super().__init__(app)
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self.prefix = prefix
        self._clock = clock
        self._windows: dict[str, _Window] = {}
        self._next_sweep = clock() + window_seconds

    def _sweep(self, now: float) -> None:
        """Forget clients whose window has expired."""
        expired = [key for key, window in self._windows.items() if now - window.started >= self.window_seconds]
        for key in expired:
            del self._windows[key]
        self._next_sweep = now + self.window_seconds

    def _hit(self, key: str) -> _Window:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)
        window = self._windows.get(key)
        if window is None or now - window.started >= self.window_seconds:
            window = _Window(started=now, hits=0)
            self._windows[key] = window
        window.hits += 1
        return window

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if not request.url.path.startswith(self.prefix):
            return await call_next(request)
        client = request.client.host if request.client else "unknown"
        window = self._hit(client)
        reset = max(0, math.ceil(window.started + self.window_seconds - self._clock()))
        headers = {
            "RateLimit-Limit": str(self.max_requests),
            "RateLimit-Remaining": str(max(0, self.max_requests - window.hits)),
            "RateLimit-Reset": str(reset),
        }
        if window.hits > self.max_requests:
            logger.warning("Rate limit exceeded for %s", client, extra={"client": client})
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "message": "Too many requests from this IP, please try again later.",
                },
                headers={**headers, "Retry-After": str(reset)},
            )
        response = await call_next(request)
        response.headers.update(headers)
        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            elapsed_ms,
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "process_time_ms": round(elapsed_ms, 3),
                "client": request.client.host if request.client else None,
            },
        )
        return response


def unexpected_error_response(request: Request, exc: Exception, *, expose_details: bool) -> JSONResponse:
    """Log ``exc`` and render the generic 500 envelope."""
    error_logger.exception(
        "Unhandled application error: %s",
        exc,
        extra={"method": request.method, "path": request.url.path},
    )
    content: dict[str, object] = {"success": False, "message": "Internal server error"}
    if expose_details:
        content["message"] = str(exc)
        content["error"] = {"name": type(exc).__name__}
    return JSONResponse(status_code=500, content=content)


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Turn exceptions escaping the routes into a 500 inside the middleware stack.

    Installed innermost so the response still passes through the security
    header and access log layers.
    """

    def __init__(self, app: ASGIApp, *, expose_details: bool) -> None:
        super().__init__(app)
        self.expose_details = expose_details

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return unexpected_error_response(request, exc, expose_details=self.expose_details)
