"""
Entry screen state.

One immutable state value holds the active tab, the picked time, the
picked ounces or diaper type, and which record (if any) is being edited.
Every transition is a pure function returning a new state.
"""

from dataclasses import dataclass, replace
from datetime import datetime, tzinfo
from enum import Enum
from typing import Optional

from .localtime import at_local_time, local_date, to_local
from baby_tracker.storage.models import (
    DEFAULT_OUNCES,
    OUNCE_CHOICES,
    DiaperEvent,
    DiaperType,
    FeedEvent,
)


class Tab(Enum):
    """Top-level screens."""
    FEEDS = "feeds"
    DIAPERS = "diapers"


@dataclass(frozen=True)
class EntryState:
    """Everything the entry form shows."""
    hour: int
    minute: int
    tab: Tab = Tab.FEEDS
    ounces: float = DEFAULT_OUNCES
    diaper_type: DiaperType = DiaperType.WET
    editing_feed_id: Optional[str] = None
    editing_diaper_id: Optional[str] = None

    def __post_init__(self):
        """Validate picker values."""
        if not 0 <= self.hour <= 23:
            raise ValueError(f"hour must be 0-23, got {self.hour}")
        if not 0 <= self.minute <= 59:
            raise ValueError(f"minute must be 0-59, got {self.minute}")
        if self.ounces not in OUNCE_CHOICES:
            raise ValueError(f"ounces must be one of 0.5-10 in 0.5 steps, got {self.ounces}")

    @property
    def is_editing(self) -> bool:
        return self.editing_feed_id is not None or self.editing_diaper_id is not None


def initial_state(now: datetime, tz: Optional[tzinfo] = None) -> EntryState:
    """Fresh form set to the current local time."""
    local = to_local(now, tz)
    return EntryState(hour=local.hour, minute=local.minute)


def select_tab(state: EntryState, tab: Tab) -> EntryState:
    return replace(state, tab=tab)


def set_time(state: EntryState, hour: int, minute: int) -> EntryState:
    return replace(state, hour=hour, minute=minute)


def set_ounces(state: EntryState, ounces: float) -> EntryState:
    return replace(state, ounces=ounces)


def set_diaper_type(state: EntryState, diaper_type: DiaperType) -> EntryState:
    return replace(state, diaper_type=diaper_type)


def _reset_to_now(state: EntryState, now: datetime, tz: Optional[tzinfo]) -> EntryState:
    local = to_local(now, tz)
    return replace(state, hour=local.hour, minute=local.minute, ounces=DEFAULT_OUNCES)


def start_feed_edit(state: EntryState, feed: FeedEvent, tz: Optional[tzinfo] = None) -> EntryState:
    """Load a feed's local time and ounces into the form for editing."""
    local = to_local(feed.timestamp, tz)
    return replace(
        state,
        hour=local.hour,
        minute=local.minute,
        ounces=feed.ounces,
        editing_feed_id=feed.id,
    )


def start_diaper_edit(
    state: EntryState, diaper: DiaperEvent, tz: Optional[tzinfo] = None
) -> EntryState:
    """Load a diaper change's local time and type into the form for editing."""
    local = to_local(diaper.timestamp, tz)
    return replace(
        state,
        hour=local.hour,
        minute=local.minute,
        diaper_type=diaper.type,
        editing_diaper_id=diaper.id,
    )


def cancel_edit(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> EntryState:
    """Leave edit mode and reset the form to the current time."""
    reset = _reset_to_now(state, now, tz)
    return replace(
        reset,
        diaper_type=DiaperType.WET,
        editing_feed_id=None,
        editing_diaper_id=None,
    )


def feed_saved(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> EntryState:
    """State after a feed was written."""
    return replace(_reset_to_now(state, now, tz), editing_feed_id=None)


def diaper_saved(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> EntryState:
    """State after a diaper change was written."""
    reset = _reset_to_now(state, now, tz)
    return replace(reset, diaper_type=DiaperType.WET, editing_diaper_id=None)


def entry_timestamp(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> datetime:
    """The picked time on the current local day."""
    return at_local_time(local_date(now, tz), state.hour, state.minute, tz)


def build_feed(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> FeedEvent:
    """Feed record for the form; ``created_at`` is always ``now``, edits included."""
    return FeedEvent(
        timestamp=entry_timestamp(state, now, tz),
        ounces=state.ounces,
        created_at=now,
        id=state.editing_feed_id,
    )


def build_diaper(state: EntryState, now: datetime, tz: Optional[tzinfo] = None) -> DiaperEvent:
    """Diaper record for the form; ``created_at`` is always ``now``, edits included."""
    return DiaperEvent(
        timestamp=entry_timestamp(state, now, tz),
        type=state.diaper_type,
        created_at=now,
        id=state.editing_diaper_id,
    )
