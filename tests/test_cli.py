"""CLI Tests — show-config, set-port and serve wiring via click's CliRunner."""

import json
import socket

import pytest
from click.testing import CliRunner

from app_server import cli as cli_module
from app_server.cli import cli
from app_server.infrastructure.server import ShutdownResult


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


# -- show-config -------------------------------------------------------------


def test_show_config_prints_defaults(runner):
    result = runner.invoke(cli, ["show-config"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data["server"]["port"] == 1313
    assert data["server"]["allowOrigins"] == ["*"]


def test_show_config_applies_env_override(runner, monkeypatch):
    monkeypatch.setenv("APP_PORT", "8181")
    result = runner.invoke(cli, ["show-config"])
    assert json.loads(result.output)["server"]["port"] == 8181


def test_show_config_survives_invalid_env_overrides(runner, monkeypatch):
    monkeypatch.setenv("APP_PORT", "70000")
    monkeypatch.setenv("APP_MODE", "production")
    result = runner.invoke(cli, ["show-config"])
    assert result.exit_code == 0, result.output
    assert '"port": 1313' in result.output
    assert '"mode": "debug"' in result.output


def test_show_config_uses_explicit_file(runner, tmp_path):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({"app": {"name": "Custom"}}), encoding="utf-8")
    result = runner.invoke(cli, ["--config", str(path), "show-config"])
    assert result.exit_code == 0
    assert json.loads(result.output)["app"]["name"] == "Custom"


# -- set-port ----------------------------------------------------------------


def test_set_port_creates_config_in_cwd(runner, isolated_env):
    result = runner.invoke(cli, ["set-port", "8080"])
    assert result.exit_code == 0
    assert "1313 -> 8080" in result.output
    data = json.loads((isolated_env / "config.json").read_text(encoding="utf-8"))
    assert data["server"]["port"] == 8080


def test_set_port_updates_found_file(runner, isolated_env):
    path = isolated_env / "config" / "config.json"
    path.parent.mkdir()
    path.write_text(json.dumps({"server": {"port": 3000}}), encoding="utf-8")
    result = runner.invoke(cli, ["set-port", "4000"])
    assert result.exit_code == 0
    assert not (isolated_env / "config.json").exists()
    assert json.loads(path.read_text(encoding="utf-8"))["server"]["port"] == 4000


def test_set_port_same_value(runner, isolated_env):
    runner.invoke(cli, ["set-port", "9000"])
    result = runner.invoke(cli, ["set-port", "9000"])
    assert result.exit_code == 0
    assert "already 9000" in result.output


@pytest.mark.parametrize("port", ["0", "70000", "abc"])
def test_set_port_rejects_invalid_port(runner, port):
    result = runner.invoke(cli, ["set-port", port])
    assert result.exit_code == 2


def test_set_port_reports_broken_file(runner, isolated_env):
    (isolated_env / "config.json").write_text("{broken", encoding="utf-8")
    result = runner.invoke(cli, ["set-port", "8080"])
    assert result.exit_code == 1
    assert "invalid JSON" in result.output


# -- serve -------------------------------------------------------------------


class _FakeController:
    instances: list["_FakeController"] = []

    def __init__(self, app, settings):
        self.app = app
        self.settings = settings
        _FakeController.instances.append(self)

    def run(self):
        return ShutdownResult(clean=True, duration=0.0, trigger="SIGINT")


def test_serve_builds_app_from_loaded_settings(runner, monkeypatch):
    _FakeController.instances = []
    monkeypatch.setattr(cli_module, "ServerController", _FakeController)
    monkeypatch.setenv("APP_MODE", "release")
    result = runner.invoke(cli, ["serve"])
    assert result.exit_code == 0
    (controller,) = _FakeController.instances
    assert controller.settings.server.mode == "release"
    assert controller.app.state.settings is controller.settings


def test_serve_exits_1_when_port_is_taken(runner, monkeypatch):
    blocker = socket.create_server(("127.0.0.1", 0))
    try:
        monkeypatch.setenv("APP_PORT", str(blocker.getsockname()[1]))
        result = runner.invoke(cli, ["serve"])
    finally:
        blocker.close()
    assert result.exit_code == 1
