"""
Datetime helpers for timezone-aware timestamps.
"""
from datetime import datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """
    Return the current time as a timezone-aware UTC datetime.

    Patch this function in tests instead of ``datetime.now``.
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Return ``dt`` with UTC attached if it is naive.

    SQLite hands back naive datetimes even for ``DateTime(timezone=True)``
    columns.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def elapsed_seconds(start: datetime, end: Optional[datetime] = None) -> float:
    """Seconds between ``start`` and ``end`` (defaults to now), never negative."""
    finish = ensure_timezone_aware(end) if end is not None else utc_now()
    return max(0.0, (finish - ensure_timezone_aware(start)).total_seconds())
