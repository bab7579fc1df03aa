"""
Calendar-day helpers.

A ``tz`` of None means system local time throughout.
"""

from datetime import date, datetime, time, tzinfo
from typing import Optional


def to_local(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Convert an instant to local wall-clock time."""
    return value.astimezone(tz)


def local_date(value: datetime, tz: Optional[tzinfo] = None) -> date:
    """Calendar day an instant falls on in local time.

    An instant at exactly local midnight belongs to the day starting there.
    """
    return to_local(value, tz).date()


def at_local_time(day: date, hour: int, minute: int, tz: Optional[tzinfo] = None) -> datetime:
    """Aware datetime for ``hour:minute`` local time on ``day``."""
    if tz is None:
        return datetime.combine(day, time(hour, minute)).astimezone()
    return datetime.combine(day, time(hour, minute), tzinfo=tz)


def local_midnight(value: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """Start of the local calendar day containing ``value``."""
    return at_local_time(local_date(value, tz), 0, 0, tz)
