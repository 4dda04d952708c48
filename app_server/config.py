"""Application Configuration — layered settings via pydantic-settings.

Invariants:
    - Precedence (lowest → highest): built-in defaults → JSON config file → APP_PORT / APP_MODE
    - Settings are frozen after load and passed explicitly (no module-level instance)
    - A broken config file never stops the process: warning + defaults
    - An invalid APP_PORT / APP_MODE is dropped with a warning; the rest still applies

Design Decisions:
    - The JSON file is fed through init kwargs, env overrides through a custom source;
      pydantic-settings deep-merges both, so APP_PORT keeps the file's host
    - JSON keys are camelCase (allowOrigins, readTimeout); snake_case accepted as well
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.alias_generators import to_camel
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from app_server.core.errors import ConfigFileError

logger = logging.getLogger(__name__)

CONFIG_FILE_CANDIDATES = (
    Path("config.json"),
    Path("..") / "config" / "config.json",
    Path("config") / "config.json",
)

PORT_ENV_VAR = "APP_PORT"
MODE_ENV_VAR = "APP_MODE"

_SECTION_CONFIG = ConfigDict(
    frozen=True, alias_generator=to_camel, populate_by_name=True,
)


class AppInfo(BaseModel):
    """Application metadata reported by /health and /api/v1/info."""

    model_config = _SECTION_CONFIG

    name: str = "App Server"
    version: str = "1.0.0"
    description: str = "HTTP API server for a desktop application"
    author: str = "Developer"


class ServerSettings(BaseModel):
    """Listener, mode, CORS and timeout settings."""

    model_config = _SECTION_CONFIG

    host: str = "127.0.0.1"
    # 0 binds an ephemeral port
    port: int = Field(1313, ge=0, le=65535)
    mode: Literal["debug", "release", "test"] = "debug"
    allow_origins: list[str] = Field(default_factory=lambda: ["*"])
    read_timeout: int = Field(30, gt=0, description="Seconds")
    write_timeout: int = Field(30, gt=0, description="Seconds")

    @field_validator("mode", mode="before")
    @classmethod
    def normalize_mode(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @property
    def is_release(self) -> bool:
        return self.mode == "release"


class LogSettings(BaseModel):
    model_config = _SECTION_CONFIG

    level: Literal["debug", "info", "warn", "warning", "error"] = "info"
    format: Literal["json", "text"] = "text"

    @field_validator("level", "format", mode="before")
    @classmethod
    def lowercase(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class EnvOverridesSource(PydanticBaseSettingsSource):
    """APP_PORT / APP_MODE mapped onto the nested server section.

    Each value is checked against the ServerSettings field it overrides. An
    invalid override (non-integer or out-of-range port, unknown mode) is
    ignored with a warning, mirroring how the config file treats bad input.
    """

    _OVERRIDES = ((PORT_ENV_VAR, "port"), (MODE_ENV_VAR, "mode"))

    def get_field_value(
        self, field: FieldInfo, field_name: str,
    ) -> tuple[Any, str, bool]:
        return None, field_name, False

    def _checked(self, env_var: str, field_name: str, raw: str) -> Any:
        try:
            section = ServerSettings.model_validate({field_name: raw})
        except ValidationError as e:
            reason = e.errors()[0]["msg"]
            logger.warning(
                f"Ignoring {env_var}={raw!r}: {reason}",
                extra={"error_code": "ENV_OVERRIDE_INVALID"},
            )
            return None
        return getattr(section, field_name)

    def __call__(self) -> dict[str, Any]:
        server: dict[str, Any] = {}
        for env_var, field_name in self._OVERRIDES:
            raw = os.environ.get(env_var, "").strip()
            if not raw:
                continue
            value = self._checked(env_var, field_name, raw)
            if value is not None:
                server[field_name] = value
        return {"server": server} if server else {}


class Settings(BaseSettings):
    """Effective configuration for one server process."""

    model_config = SettingsConfigDict(frozen=True, extra="ignore")

    app: AppInfo = Field(default_factory=AppInfo)
    server: ServerSettings = Field(default_factory=ServerSettings)
    log: LogSettings = Field(default_factory=LogSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # Init kwargs carry the config file contents.
        return (EnvOverridesSource(settings_cls), init_settings)

    def to_file_dict(self) -> dict[str, Any]:
        """camelCase dict matching the config file layout."""
        return self.model_dump(mode="json", by_alias=True)


def default_file_dict() -> dict[str, Any]:
    """Built-in defaults in config file layout, ignoring the environment."""
    return {
        "app": AppInfo().model_dump(mode="json", by_alias=True),
        "server": ServerSettings().model_dump(mode="json", by_alias=True),
        "log": LogSettings().model_dump(mode="json", by_alias=True),
    }


def find_config_file(base_dir: Path | None = None) -> Path | None:
    """Return the first existing config file candidate, or None."""
    base = base_dir or Path.cwd()
    for candidate in CONFIG_FILE_CANDIDATES:
        path = base / candidate
        if path.is_file():
            return path
    return None


def read_config_file(path: Path) -> dict[str, Any]:
    """Read a JSON config file. Raises ConfigFileError on IO or parse failure."""
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigFileError(path, e.strerror or str(e)) from e
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ConfigFileError(path, f"invalid JSON ({e.msg} at line {e.lineno})") from e
    if not isinstance(data, dict):
        raise ConfigFileError(path, "top-level value must be an object")
    return data


def load_settings(config_file: Path | None = None) -> Settings:
    """Build Settings from defaults, the config file and the environment.

    ``config_file`` overrides the candidate search. Any problem with the
    file is logged and the file is skipped; environment overrides still apply.
    """
    path = config_file or find_config_file()
    if path is None:
        return Settings()
    try:
        settings = Settings(**read_config_file(path))
    except ConfigFileError as e:
        logger.warning(
            f"{e.message}; using default configuration",
            extra={"error_code": e.code},
        )
        return Settings()
    except ValidationError as e:
        logger.warning(
            f"Config file {path} has invalid values; using default configuration: "
            f"{e.error_count()} error(s)",
            extra={"error_code": "CONFIG_FILE_INVALID"},
        )
        return Settings()
    logger.info(f"Loaded config file: {path}")
    return settings


def save_settings(settings: Settings, path: Path) -> None:
    """Write settings as indented camelCase JSON, creating parent directories."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(settings.to_file_dict(), indent=2, ensure_ascii=False) + "\n",
        encoding="utf-8",
    )


def update_config_port(path: Path, port: int) -> int | None:
    """Set server.port in the config file at ``path``; return the previous port.

    Other keys in the file are preserved. A missing file is created from
    defaults.
    """
    if not 1 <= port <= 65535:
        raise ValueError(f"port must be between 1 and 65535, got {port}")
    if path.is_file():
        data = read_config_file(path)
    else:
        data = default_file_dict()
    server = data.setdefault("server", {})
    if not isinstance(server, dict):
        raise ConfigFileError(path, "'server' must be an object")
    previous = server.get("port")
    server["port"] = port
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(data, indent=2, ensure_ascii=False) + "\n", encoding="utf-8",
    )
    return previous if isinstance(previous, int) else None
