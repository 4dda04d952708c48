"""Structured Logging — JSON and text formatters, root logger setup.

Invariants:
    - All logs include timestamp, level, logger name, and message
    - Request fields (method, path, status, latency_ms, client_ip) surfaced when present
    - setup_logging owns exactly one root handler; calling it again replaces that handler
"""

import json
import logging
from datetime import datetime, timezone

EXTRA_FIELDS = (
    "method", "path", "status", "latency_ms", "client_ip",
    "error_code", "state",
)

LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s | %(message)s"


class JSONFormatter(logging.Formatter):
    """Format logs as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        log = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in EXTRA_FIELDS:
            val = record.__dict__.get(key)
            if val is not None:
                log[key] = val
        if record.exc_info:
            log["exception"] = self.formatException(record.exc_info)
        return json.dumps(log, ensure_ascii=False)


def resolve_level(level: str) -> int:
    """Map a configured level name to a logging level; unknown → INFO."""
    return LEVELS.get(level.strip().lower(), logging.INFO)


def setup_logging(level: str = "info", fmt: str = "text") -> logging.Handler:
    """Configure the root logger and return the installed handler."""
    handler = logging.StreamHandler()
    handler._app_server_handler = True  # type: ignore[attr-defined]
    if fmt == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))

    for existing in list(logging.root.handlers):
        if getattr(existing, "_app_server_handler", False):
            logging.root.removeHandler(existing)
    logging.root.addHandler(handler)
    logging.root.setLevel(resolve_level(level))
    return handler
