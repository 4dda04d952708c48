"""Error Handlers — global exception handlers mapping errors to the response envelope.

Invariants:
    - RequestValidationError → 400 + envelope naming the offending fields
    - HTTPException (404, 405, ...) → its status + envelope, headers preserved
    - Unhandled exceptions are not handled here; RecoveryMiddleware owns them
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from app_server.api.responses import error_response

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    """Register all global error handlers on the FastAPI app."""
    _register_validation_error_handler(app)
    _register_http_error_handler(app)


def _register_validation_error_handler(app: FastAPI) -> None:

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(
        request: Request, exc: RequestValidationError,
    ):
        logger.warning(
            f"Validation error on {request.url.path}: {exc.errors()}",
            extra={"error_code": "VALIDATION_ERROR", "path": request.url.path},
        )
        return error_response(
            status.HTTP_400_BAD_REQUEST, format_validation_errors(exc),
        )


def _register_http_error_handler(app: FastAPI) -> None:

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        response = error_response(exc.status_code, str(exc.detail))
        if exc.headers:
            response.headers.update(exc.headers)
        return response


def format_validation_errors(exc: RequestValidationError) -> str:
    """One line: 'Invalid request parameters: body.message: Field required'."""
    details = "; ".join(
        f"{'.'.join(str(loc) for loc in e['loc'])}: {e['msg']}"
        for e in exc.errors()
    )
    return f"Invalid request parameters: {details}"
