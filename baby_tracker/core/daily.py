"""
Rolling daily series.

Buckets logged events into consecutive local calendar days ending on the
reference day, oldest first, for the feed and diaper charts.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, tzinfo
from typing import Dict, Iterable, List, Optional

from .localtime import local_date
from baby_tracker.storage.models import DiaperEvent, FeedEvent


DEFAULT_WINDOW_DAYS = 14

# Chart scale floors so a quiet fortnight doesn't produce a degenerate axis
FEED_CHART_FLOOR = 20
DIAPER_CHART_FLOOR = 10


@dataclass(frozen=True)
class FeedDayBucket:
    """Feed totals for one local calendar day."""
    day: date
    label: str
    ounces: float
    count: int
    is_today: bool


@dataclass(frozen=True)
class DiaperDayBucket:
    """Diaper counts for one local calendar day.

    A ``both`` change counts toward ``wet`` and ``dirty`` but only once
    toward ``total``.
    """
    day: date
    label: str
    wet: int
    dirty: int
    total: int
    is_today: bool


def window_days(
    reference: datetime,
    days: int = DEFAULT_WINDOW_DAYS,
    tz: Optional[tzinfo] = None,
) -> List[date]:
    """Return the ``days`` local calendar days ending on the reference day.

    Raises:
        ValueError: If days is not positive
    """
    if days <= 0:
        raise ValueError("window must contain at least one day")
    today = local_date(reference, tz)
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def _day_label(day: date) -> str:
    return str(day.day)


def daily_feed_series(
    events: Iterable[FeedEvent],
    reference: datetime,
    days: int = DEFAULT_WINDOW_DAYS,
    tz: Optional[tzinfo] = None,
) -> List[FeedDayBucket]:
    """Sum ounces per local day over the window ending at ``reference``.

    Args:
        events: Feed events in any order
        reference: Instant whose local day is the last bucket
        days: Number of buckets
        tz: Local timezone (None for system local)

    Returns:
        Exactly ``days`` buckets, oldest first; only the last is today
    """
    dates = window_days(reference, days, tz)
    ounces: Dict[date, float] = {day: 0.0 for day in dates}
    counts: Dict[date, int] = {day: 0 for day in dates}

    for event in events:
        day = local_date(event.timestamp, tz)
        if day in ounces:
            ounces[day] += event.ounces
            counts[day] += 1

    today = dates[-1]
    return [
        FeedDayBucket(
            day=day,
            label=_day_label(day),
            ounces=ounces[day],
            count=counts[day],
            is_today=day == today,
        )
        for day in dates
    ]


def daily_diaper_series(
    events: Iterable[DiaperEvent],
    reference: datetime,
    days: int = DEFAULT_WINDOW_DAYS,
    tz: Optional[tzinfo] = None,
) -> List[DiaperDayBucket]:
    """Count wet, dirty and total changes per local day over the window.

    Args:
        events: Diaper events in any order
        reference: Instant whose local day is the last bucket
        days: Number of buckets
        tz: Local timezone (None for system local)

    Returns:
        Exactly ``days`` buckets, oldest first; only the last is today
    """
    dates = window_days(reference, days, tz)
    wet: Dict[date, int] = {day: 0 for day in dates}
    dirty: Dict[date, int] = {day: 0 for day in dates}
    total: Dict[date, int] = {day: 0 for day in dates}

    for event in events:
        day = local_date(event.timestamp, tz)
        if day not in total:
            continue
        total[day] += 1
        if event.type.is_wet:
            wet[day] += 1
        if event.type.is_dirty:
            dirty[day] += 1

    today = dates[-1]
    return [
        DiaperDayBucket(
            day=day,
            label=_day_label(day),
            wet=wet[day],
            dirty=dirty[day],
            total=total[day],
            is_today=day == today,
        )
        for day in dates
    ]


def feed_chart_max(buckets: Iterable[FeedDayBucket]) -> float:
    """Top of the feed chart scale, never below FEED_CHART_FLOOR ounces."""
    return max([bucket.ounces for bucket in buckets] + [FEED_CHART_FLOOR])


def diaper_chart_max(buckets: Iterable[DiaperDayBucket]) -> int:
    """Top of the diaper chart scale, never below DIAPER_CHART_FLOOR changes."""
    return max([bucket.total for bucket in buckets] + [DIAPER_CHART_FLOOR])
