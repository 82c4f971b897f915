"""
DateTime utilities for consistent timezone handling.
"""
from datetime import datetime, timezone, timedelta
from typing import Optional, Union


def utc_now() -> datetime:
    """
    Get the current UTC time with timezone awareness.
    
    Returns:
        datetime: Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: datetime) -> datetime:
    """
    Make a datetime timezone-aware in UTC.
    
    Naive datetimes are assumed to already be UTC.
    """
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def to_iso(dt: Optional[datetime]) -> Optional[str]:
    """Serialize a datetime to an ISO-8601 string (None passes through)."""
    if dt is None:
        return None
    return ensure_utc(dt).isoformat()


def from_iso(value: Optional[Union[str, datetime]]) -> Optional[datetime]:
    """Parse an ISO-8601 string produced by ``to_iso``."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return ensure_utc(value)
    return ensure_utc(datetime.fromisoformat(value))


def seconds_since(dt: datetime, now: Optional[datetime] = None) -> float:
    """
    Seconds elapsed between ``dt`` and ``now`` (defaults to the current time).
    
    Args:
        dt: Earlier datetime
        now: Reference time
    
    Returns:
        float: Elapsed seconds (negative if ``dt`` is in the future)
    """
    reference = ensure_utc(now) if now is not None else utc_now()
    return (reference - ensure_utc(dt)).total_seconds()


def expires_at(seconds: int, now: Optional[datetime] = None) -> datetime:
    """Return the UTC datetime ``seconds`` from ``now``."""
    reference = ensure_utc(now) if now is not None else utc_now()
    return reference + timedelta(seconds=seconds)
