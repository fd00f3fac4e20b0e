"""
Timestamp helpers for mdkanban.

Task files and audit entries store UTC timestamps as ISO 8601 strings with
millisecond precision and a ``Z`` suffix, e.g. ``2024-01-15T10:30:00.000Z``.
"""

from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso(now: Optional[datetime] = None) -> str:
    """Format ``now`` (default: current UTC time) as ``YYYY-MM-DDTHH:MM:SS.mmmZ``."""
    now = now or utc_now()
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    now = now.astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
