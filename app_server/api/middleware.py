"""Middleware Chain — CORS, request logging and fault recovery around every route.

Invariants:
    - Order (outermost first): CORS → RequestLogging → Recovery → route
    - Every request produces exactly one access log line (method, path, status, latency, client)
    - An exception escaping a route becomes a 500 envelope; the server keeps serving
    - Recovery never leaks exception details to the client
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from app_server.api.responses import internal_error_response
from app_server.config import Settings

logger = logging.getLogger(__name__)

CORS_METHODS = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
CORS_HEADERS = ["Origin", "Content-Length", "Content-Type", "Authorization"]


def client_address(request: Request) -> str:
    return request.client.host if request.client else "-"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Access log: one line per request, structured fields for JSON output."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        start = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            latency_ms = round((time.perf_counter() - start) * 1000, 3)
            client = client_address(request)
            logger.info(
                f"{request.method} {request.url.path} {status_code} "
                f"{latency_ms:.3f}ms {client}",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "status": status_code,
                    "latency_ms": latency_ms,
                    "client_ip": client,
                },
            )


class RecoveryMiddleware(BaseHTTPMiddleware):
    """Turn any unhandled route exception into a 500 response."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error(
                f"Recovered from unhandled exception on "
                f"{request.method} {request.url.path}: {exc!r}",
                exc_info=True,
                extra={"error_code": "INTERNAL_ERROR", "path": request.url.path},
            )
            return internal_error_response()


def register_middleware(app: FastAPI, settings: Settings) -> None:
    """Install the chain; add_middleware wraps, so innermost goes first."""
    app.add_middleware(RecoveryMiddleware)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.server.allow_origins),
        allow_methods=CORS_METHODS,
        allow_headers=CORS_HEADERS,
    )
