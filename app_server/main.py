"""App Server — FastAPI application factory.

Invariants:
    - Settings are injected: create_app(settings) stores them on app.state, routes read
      them through the get_settings dependency
    - Routes registered explicitly (no auto-discovery)
    - Error handlers map request errors to the response envelope; RecoveryMiddleware
      maps everything else to 500
    - release mode serves no interactive docs

Usage:
    app-server serve
    uvicorn --factory app_server.main:app_factory
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app_server.api.error_handlers import register_error_handlers
from app_server.api.middleware import register_middleware
from app_server.api.routes import examples, health, system
from app_server.config import Settings, load_settings
from app_server.infrastructure.observability import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings: Settings = app.state.settings
    logger.info(
        f"{settings.app.name} {settings.app.version} started "
        f"(mode={settings.server.mode})",
    )
    yield
    logger.info(f"{settings.app.name} shutting down")


def create_app(settings: Settings) -> FastAPI:
    """Build the application around an already-loaded Settings."""
    docs_enabled = not settings.server.is_release
    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        description=settings.app.description,
        docs_url="/docs" if docs_enabled else None,
        redoc_url=None,
        openapi_url="/openapi.json" if docs_enabled else None,
        lifespan=lifespan,
    )
    app.state.settings = settings

    register_middleware(app, settings)
    register_error_handlers(app)

    app.include_router(health.router)
    app.include_router(system.router)
    app.include_router(examples.router)
    return app


def app_factory() -> FastAPI:
    """Zero-argument factory for ``uvicorn --factory``."""
    settings = load_settings()
    setup_logging(settings.log.level, settings.log.format)
    return create_app(settings)
