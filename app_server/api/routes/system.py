"""System Info — application metadata and listener settings."""

from fastapi import APIRouter, Depends

from app_server.api.dependencies import get_settings
from app_server.config import Settings
from app_server.core.time_utils import current_timestamp
from app_server.schemas.api import AppInfoPayload, InfoResponse, ServerInfoPayload

router = APIRouter(prefix="/api/v1", tags=["system"])


@router.get("/info", response_model=InfoResponse)
async def get_system_info(settings: Settings = Depends(get_settings)):
    """Report app name/version/description/author and host/port/mode."""
    return InfoResponse(
        app=AppInfoPayload(
            name=settings.app.name,
            version=settings.app.version,
            description=settings.app.description,
            author=settings.app.author,
        ),
        server=ServerInfoPayload(
            host=settings.server.host,
            port=settings.server.port,
            mode=settings.server.mode,
        ),
        timestamp=current_timestamp(),
    )
