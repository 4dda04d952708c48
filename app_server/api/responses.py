"""Response Envelope helpers — build JSONResponses wrapped in APIResponse."""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from app_server.core.time_utils import current_timestamp
from app_server.schemas.api import APIResponse


def envelope(
    *,
    success: bool,
    message: str | None = None,
    data: Any = None,
    error: str | None = None,
) -> dict:
    """Serialize an APIResponse, dropping unset optional keys."""
    return APIResponse(
        success=success, message=message, data=data, error=error,
        timestamp=current_timestamp(),
    ).model_dump(mode="json", exclude_none=True)


def success_response(data: Any = None, message: str = "success") -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content=envelope(success=True, message=message, data=data),
    )


def error_response(status_code: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code, content=envelope(success=False, error=error),
    )


def internal_error_response(error: str = "Internal server error") -> JSONResponse:
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, error)
