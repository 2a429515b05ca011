"""
Timestamp utilities used across ctguard:
- millisecond epoch clock (CT timestamps are milliseconds since the epoch)
- ISO-8601 rendering for human-facing output
"""

from __future__ import annotations
import datetime as _dt
import time


def now_ms() -> int:
    """Milliseconds since the Unix epoch."""
    return int(time.time() * 1000)


def ms_to_iso(ms: int) -> str:
    """Render an epoch-millisecond timestamp as ISO-8601 with Z suffix."""
    value = _dt.datetime.fromtimestamp(ms / 1000, tz=_dt.timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")
