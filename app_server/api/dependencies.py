"""FastAPI dependencies."""

from fastapi import Request

from app_server.config import Settings


def get_settings(request: Request) -> Settings:
    """Settings injected into the app by create_app()."""
    return request.app.state.settings
