"""
Datetime helpers for answer timestamps.
"""
from datetime import datetime, timezone
from typing import Callable, Optional

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """
    Return the current datetime in UTC.

    This is the default clock for answer timestamps. Sessions accept any
    zero-argument callable in its place, so tests can pin time without
    patching.

    Example:
        >>> from focus_engine.core.datetime_utils import utc_now
        >>> utc_now().tzinfo == timezone.utc
        True
    """
    return datetime.now(timezone.utc)


def ensure_timezone_aware(dt: Optional[datetime]) -> datetime:
    """
    Ensure a datetime is timezone-aware (UTC).

    Injected clocks may hand back naive datetimes; those are taken to be UTC.

    Raises:
        ValueError: If dt is None
    """
    if dt is None:
        raise ValueError("datetime cannot be None")
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt
