"""Time utilities for consistent timestamp handling."""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Return current UTC timestamp (timezone-aware)."""
    return datetime.now(timezone.utc)


def expires_at(ttl_seconds: int, now: datetime | None = None) -> datetime:
    """Return the instant a record written now stops being valid."""
    return (now or utc_now()) + timedelta(seconds=ttl_seconds)


def is_expired(deadline: datetime | None, now: datetime | None = None) -> bool:
    """True when `deadline` is set and already in the past."""
    if deadline is None:
        return False
    if deadline.tzinfo is None:
        deadline = deadline.replace(tzinfo=timezone.utc)
    return deadline <= (now or utc_now())
