"""
Display formatting for events and summaries.
"""

from datetime import datetime, timedelta, tzinfo
from typing import List, Optional, Sequence, Tuple, TypeVar

from .localtime import local_date, to_local
from baby_tracker.storage.models import DiaperType

T = TypeVar("T")

RECENT_LIMIT = 15

_DIAPER_LABELS = {
    DiaperType.WET: "Wet",
    DiaperType.DIRTY: "Dirty",
    DiaperType.BOTH: "Both",
}


def time_since(timestamp: datetime, now: datetime) -> str:
    """Elapsed time as ``"Xh Ym ago"``, or ``"Ym ago"`` under one hour.

    Timestamps in the future read as ``"0m ago"``.
    """
    total_minutes = max(0, int((now - timestamp).total_seconds() // 60))
    hours, minutes = divmod(total_minutes, 60)
    if hours > 0:
        return f"{hours}h {minutes}m ago"
    return f"{minutes}m ago"


def format_clock(timestamp: datetime, tz: Optional[tzinfo] = None) -> str:
    """Local clock time like ``8:05 AM``."""
    local = to_local(timestamp, tz)
    hour = local.hour % 12 or 12
    suffix = "AM" if local.hour < 12 else "PM"
    return f"{hour}:{local.minute:02d} {suffix}"


def format_day_header(
    timestamp: datetime,
    reference: datetime,
    tz: Optional[tzinfo] = None,
) -> str:
    """``Today``, ``Yesterday``, or a short date like ``Mon, Jan 5``."""
    day = local_date(timestamp, tz)
    today = local_date(reference, tz)
    if day == today:
        return "Today"
    if day == today - timedelta(days=1):
        return "Yesterday"
    return f"{day.strftime('%a')}, {day.strftime('%b')} {day.day}"


def format_ounces(value: float) -> str:
    """Ounces rounded to one decimal, without a trailing ``.0``."""
    text = f"{round(value, 1):.1f}"
    return text[:-2] if text.endswith(".0") else text


def diaper_label(diaper_type: DiaperType) -> str:
    return _DIAPER_LABELS[diaper_type]


def group_recent(
    events: Sequence[T],
    reference: datetime,
    tz: Optional[tzinfo] = None,
    limit: int = RECENT_LIMIT,
) -> List[Tuple[str, List[T]]]:
    """Group the first ``limit`` events under day headers.

    Expects events most recent first, as the repository returns them;
    a new group starts whenever the header changes.
    """
    groups: List[Tuple[str, List[T]]] = []
    for event in events[:limit]:
        header = format_day_header(event.timestamp, reference, tz)
        if not groups or groups[-1][0] != header:
            groups.append((header, []))
        groups[-1][1].append(event)
    return groups
