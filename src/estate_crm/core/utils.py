"""Core utility functions."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Get current UTC datetime with timezone info. Always use this instead of datetime.now()."""
    return datetime.now(timezone.utc)


def ensure_aware(dt: Optional[datetime]) -> Optional[datetime]:
    """
    Ensure a datetime is timezone-aware (UTC).

    SQLite stores datetimes without timezone info, so we need to make them
    aware before comparing or serializing.

    Args:
        dt: A datetime that may or may not be timezone-aware.

    Returns:
        Timezone-aware datetime in UTC, or None if input was None.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        # Assume naive datetimes are UTC
        return dt.replace(tzinfo=timezone.utc)
    return dt


def isoformat(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime as an ISO-8601 UTC string, or None."""
    aware = ensure_aware(dt)
    return aware.isoformat() if aware else None


def calculate_commission(property_price: float, percentage: float) -> float:
    """Commission owed on a sale: price * percentage / 100."""
    return property_price * percentage / 100


def like_pattern(term: str) -> str:
    """Build a substring LIKE pattern, escaping SQL wildcards in the term."""
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"
