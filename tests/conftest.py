"""Root conftest — isolate every test from real config files, env overrides and log handlers."""

import logging

import pytest
from fastapi.testclient import TestClient

from app_server.config import Settings
from app_server.main import create_app


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    """Empty working directory with no APP_PORT / APP_MODE set.

    The cwd is a child of tmp_path so ../config/config.json stays inside it.
    """
    monkeypatch.delenv("APP_PORT", raising=False)
    monkeypatch.delenv("APP_MODE", raising=False)
    work_dir = tmp_path / "work"
    work_dir.mkdir()
    monkeypatch.chdir(work_dir)
    return work_dir


@pytest.fixture(autouse=True)
def restore_root_logger():
    """Drop handlers installed by setup_logging during the test."""
    level = logging.root.level
    yield
    for handler in list(logging.root.handlers):
        if getattr(handler, "_app_server_handler", False):
            logging.root.removeHandler(handler)
    logging.root.setLevel(level)


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def client(settings):
    """TestClient around a freshly built app (lifespan included)."""
    with TestClient(create_app(settings)) as test_client:
        yield test_client
