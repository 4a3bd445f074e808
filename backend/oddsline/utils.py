from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """Make a naive datetime timezone-aware (UTC). Already-aware datetimes pass through.

    MongoDB returns naive datetimes. Wrap values read from a document with
    ensure_utc() before comparing them against utcnow().
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt


def floor_to_minute(dt: datetime) -> datetime:
    """Truncate a datetime to the start of its wall-clock minute (UTC)."""
    return ensure_utc(dt).replace(second=0, microsecond=0)


def as_int_id(value) -> int | None:
    """Coerce a provider ID to int, or None when it is not an integral number.

    Booleans, fractional or non-finite floats and non-numeric strings are not IDs.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None
