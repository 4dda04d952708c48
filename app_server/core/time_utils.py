"""Time helpers — Unix timestamps and wall-clock formatting.

Invariants:
    - Timestamps are integers (seconds or milliseconds since the epoch)
    - Formatted strings use local time and DEFAULT_LAYOUT unless told otherwise
"""

import time
from datetime import datetime

DEFAULT_LAYOUT = "%Y-%m-%d %H:%M:%S"


def current_timestamp() -> int:
    """Seconds since the epoch."""
    return int(time.time())


def current_timestamp_ms() -> int:
    """Milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def format_time(moment: datetime, layout: str = DEFAULT_LAYOUT) -> str:
    return moment.strftime(layout)


def current_time_string(layout: str = DEFAULT_LAYOUT) -> str:
    """Local wall-clock time, e.g. ``2025-01-31 14:05:09``."""
    return format_time(datetime.now(), layout)


def parse_time(text: str, layout: str = DEFAULT_LAYOUT) -> datetime:
    """Parse ``text`` with ``layout``. Raises ValueError on mismatch."""
    return datetime.strptime(text, layout)
