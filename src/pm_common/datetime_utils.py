"""UTC datetime utilities."""

import time
from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def unix_now() -> int:
    """Current Unix timestamp in whole seconds (market end times use this)."""
    return int(time.time())


def as_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from backends that drop tzinfo (SQLite)."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
