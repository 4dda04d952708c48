"""Health Probe — liveness endpoint for process supervisors and the desktop shell.

Invariants:
    - GET /health always returns 200 if the process is serving
"""

from fastapi import APIRouter, Depends, status

from app_server.api.dependencies import get_settings
from app_server.config import Settings
from app_server.core.time_utils import current_timestamp
from app_server.schemas.api import HealthResponse

router = APIRouter(tags=["health"])


@router.get(
    "/health", response_model=HealthResponse, status_code=status.HTTP_200_OK,
)
async def health_check(settings: Settings = Depends(get_settings)):
    """Basic liveness probe. Returns 200 if the process is up."""
    return HealthResponse(
        status="ok",
        timestamp=current_timestamp(),
        service=settings.app.name,
        version=settings.app.version,
    )
