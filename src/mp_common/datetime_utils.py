"""UTC datetime utilities."""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def current_year() -> int:
    """UTC calendar year; invoice numbering restarts each year."""
    return utc_now().year
