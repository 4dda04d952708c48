"""Error Hierarchy — typed, categorized exceptions for app-server process failures.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - These are process errors (config file, listener bind); none is raised while
      serving a request. Request errors are mapped to the envelope in api.error_handlers
    - No internal details leaked in user-facing messages

Design Decisions:
    - Single hierarchy with AppServerError base: callers catch one type and log its code
"""

from enum import Enum
from pathlib import Path


class ErrorSeverity(str, Enum):
    """Error severity for observability."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    CONFIGURATION = "configuration"
    NETWORK = "network"


class AppServerError(Exception):
    """Base exception for all app-server errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity


class ConfigFileError(AppServerError):
    """Configuration file could not be read or holds invalid values."""
    def __init__(self, path: Path, reason: str):
        super().__init__(
            f"Config file {path} is invalid: {reason}",
            "CONFIG_FILE_INVALID", ErrorCategory.CONFIGURATION,
            ErrorSeverity.WARNING,
        )
        self.path = path


class ListenerBindError(AppServerError):
    """Listening socket could not be bound."""
    def __init__(self, address: str, reason: str):
        super().__init__(
            f"Failed to bind listener on {address}: {reason}",
            "LISTENER_BIND_FAILED", ErrorCategory.NETWORK,
            ErrorSeverity.CRITICAL,
        )
        self.address = address
