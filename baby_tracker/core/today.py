"""
Today summary statistics.

Filters events to those at or after today's local midnight and reduces
them to the figures shown above each chart.
"""

from dataclasses import dataclass
from datetime import datetime, tzinfo
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional, TypeVar

from .formatting import time_since
from .localtime import local_date
from baby_tracker.storage.models import DiaperEvent, FeedEvent

E = TypeVar("E", FeedEvent, DiaperEvent)


@dataclass(frozen=True)
class FeedTodaySummary:
    """Today's feeding figures."""
    total_oz: float
    feed_count: int
    avg_per_feed: float
    last_feed_at: Optional[datetime] = None
    last_feed_ago: Optional[str] = None

    @property
    def avg_display(self) -> str:
        """Average as shown: one decimal place, or ``0`` with no feeds."""
        if self.feed_count == 0:
            return "0"
        return f"{self.avg_per_feed:.1f}"


@dataclass(frozen=True)
class DiaperTodaySummary:
    """Today's diaper figures; ``both`` counts as wet and as dirty."""
    total: int
    wet: int
    dirty: int
    last_change_at: Optional[datetime] = None
    last_change_ago: Optional[str] = None


def events_since_midnight(
    events: Iterable[E],
    reference: datetime,
    tz: Optional[tzinfo] = None,
) -> List[E]:
    """Events whose timestamp is at or after the reference day's local midnight."""
    today = local_date(reference, tz)
    return [event for event in events if local_date(event.timestamp, tz) >= today]


def _average(total: float, count: int) -> float:
    """Average rounded half-up to one decimal place; 0 with no samples."""
    if count == 0:
        return 0.0
    average = Decimal(total) / Decimal(count)
    return float(average.quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def today_feed_summary(
    events: Iterable[FeedEvent],
    reference: datetime,
    tz: Optional[tzinfo] = None,
) -> FeedTodaySummary:
    """Summarize today's feeds.

    Args:
        events: Feed events in any order
        reference: Current instant; defines today and the elapsed time
        tz: Local timezone (None for system local)

    Returns:
        Totals, count, rounded average and time since the latest feed
    """
    todays = events_since_midnight(events, reference, tz)
    total_oz = sum((event.ounces for event in todays), 0.0)
    last = max((event.timestamp for event in todays), default=None)
    return FeedTodaySummary(
        total_oz=total_oz,
        feed_count=len(todays),
        avg_per_feed=_average(total_oz, len(todays)),
        last_feed_at=last,
        last_feed_ago=time_since(last, reference) if last else None,
    )


def today_diaper_summary(
    events: Iterable[DiaperEvent],
    reference: datetime,
    tz: Optional[tzinfo] = None,
) -> DiaperTodaySummary:
    """Summarize today's diaper changes."""
    todays = events_since_midnight(events, reference, tz)
    last = max((event.timestamp for event in todays), default=None)
    return DiaperTodaySummary(
        total=len(todays),
        wet=sum(1 for event in todays if event.type.is_wet),
        dirty=sum(1 for event in todays if event.type.is_dirty),
        last_change_at=last,
        last_change_ago=time_since(last, reference) if last else None,
    )
