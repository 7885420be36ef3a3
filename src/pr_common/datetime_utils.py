"""UTC datetime utilities."""

from datetime import datetime, timedelta, timezone

SECONDS_PER_DAY = 86400


def utc_now() -> datetime:
    """Return timezone-aware UTC now."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Treat naive datetimes as UTC; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def add_days(dt: datetime, days: int) -> datetime:
    return dt + timedelta(days=days)


def elapsed_days(since: datetime, now: datetime) -> float:
    """Fractional days between two instants (negative if `since` is in the future)."""
    return (ensure_utc(now) - ensure_utc(since)).total_seconds() / SECONDS_PER_DAY
