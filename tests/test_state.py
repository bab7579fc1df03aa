"""
Unit tests for entry form state transitions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from baby_tracker.core import state as entry
from baby_tracker.core.state import EntryState, Tab
from baby_tracker.storage.models import DiaperEvent, DiaperType, FeedEvent

TZ = timezone(timedelta(hours=-5))
NOW = datetime(2024, 3, 15, 18, 42, tzinfo=TZ)


class TestEntryState:
    """Test the form value and its validation."""

    def test_initial_state(self):
        """Test a fresh form shows the current local time and defaults."""
        state = entry.initial_state(datetime(2024, 3, 15, 23, 42, tzinfo=timezone.utc), TZ)

        assert (state.hour, state.minute) == (18, 42)
        assert state.tab == Tab.FEEDS
        assert state.ounces == 4.0
        assert state.diaper_type == DiaperType.WET
        assert not state.is_editing

    @pytest.mark.parametrize("hour,minute", [(24, 0), (-1, 0), (12, 60)])
    def test_invalid_time_rejected(self, hour, minute):
        """Test out-of-range picker values."""
        with pytest.raises(ValueError):
            EntryState(hour=hour, minute=minute)

    def test_ounces_must_be_on_scale(self):
        """Test ounces outside the picker scale are rejected."""
        state = entry.initial_state(NOW, TZ)

        with pytest.raises(ValueError, match="ounces"):
            entry.set_ounces(state, 4.25)
        with pytest.raises(ValueError, match="ounces"):
            entry.set_ounces(state, 10.5)

    def test_setters_do_not_mutate(self):
        """Test transitions return new values."""
        state = entry.initial_state(NOW, TZ)

        changed = entry.set_time(entry.set_ounces(state, 6.5), 7, 5)

        assert (changed.hour, changed.minute, changed.ounces) == (7, 5, 6.5)
        assert (state.hour, state.minute, state.ounces) == (18, 42, 4.0)

    def test_select_tab(self):
        """Test switching tabs keeps the picked values."""
        state = entry.set_ounces(entry.initial_state(NOW, TZ), 2.0)

        switched = entry.select_tab(state, Tab.DIAPERS)

        assert switched.tab == Tab.DIAPERS
        assert switched.ounces == 2.0


class TestEditing:
    """Test edit mode transitions."""

    def setup_method(self):
        """Set up test environment."""
        self.state = entry.initial_state(NOW, TZ)
        self.feed = FeedEvent(
            id="-N1",
            timestamp=datetime(2024, 3, 15, 14, 10, tzinfo=timezone.utc),
            ounces=5.5,
            created_at=datetime(2024, 3, 15, 14, 11, tzinfo=timezone.utc),
        )
        self.diaper = DiaperEvent(
            id="-N2",
            timestamp=datetime(2024, 3, 15, 7, 30, tzinfo=TZ),
            type=DiaperType.DIRTY,
            created_at=datetime(2024, 3, 15, 7, 30, tzinfo=TZ),
        )

    def test_start_feed_edit_loads_local_time(self):
        """Test the feed's local time and ounces fill the form."""
        state = entry.start_feed_edit(self.state, self.feed, TZ)

        assert (state.hour, state.minute) == (9, 10)
        assert state.ounces == 5.5
        assert state.editing_feed_id == "-N1"
        assert state.is_editing

    def test_start_diaper_edit(self):
        """Test the change's time and type fill the form."""
        state = entry.start_diaper_edit(self.state, self.diaper, TZ)

        assert (state.hour, state.minute) == (7, 30)
        assert state.diaper_type == DiaperType.DIRTY
        assert state.editing_diaper_id == "-N2"

    def test_cancel_edit_resets_form(self):
        """Test cancel leaves edit mode and restores defaults at the current time."""
        editing = entry.start_feed_edit(self.state, self.feed, TZ)
        editing = entry.set_diaper_type(editing, DiaperType.BOTH)
        later = NOW + timedelta(minutes=3)

        state = entry.cancel_edit(editing, later, TZ)

        assert not state.is_editing
        assert (state.hour, state.minute) == (18, 45)
        assert state.ounces == 4.0
        assert state.diaper_type == DiaperType.WET

    def test_feed_saved_resets_ounces_and_time(self):
        """Test a saved feed resets the form but keeps the tab."""
        editing = entry.select_tab(entry.start_feed_edit(self.state, self.feed, TZ), Tab.FEEDS)

        state = entry.feed_saved(editing, NOW, TZ)

        assert state.editing_feed_id is None
        assert state.ounces == 4.0
        assert (state.hour, state.minute) == (18, 42)

    def test_diaper_saved_resets_type(self):
        """Test a saved change resets the type to wet."""
        editing = entry.start_diaper_edit(self.state, self.diaper, TZ)

        state = entry.diaper_saved(editing, NOW, TZ)

        assert state.editing_diaper_id is None
        assert state.diaper_type == DiaperType.WET


class TestBuilders:
    """Test records built from the form."""

    def test_timestamp_is_today_at_picked_time(self):
        """Test the picked hour and minute land on the current local day."""
        state = entry.set_time(entry.initial_state(NOW, TZ), 6, 15)

        timestamp = entry.entry_timestamp(state, NOW, TZ)

        assert timestamp == datetime(2024, 3, 15, 6, 15, tzinfo=TZ)

    def test_build_feed(self):
        """Test a new feed has no id and is created now."""
        state = entry.set_ounces(entry.initial_state(NOW, TZ), 3.0)

        feed = entry.build_feed(state, NOW, TZ)

        assert feed.id is None
        assert feed.ounces == 3.0
        assert feed.created_at == NOW

    def test_update_overwrites_created_at_with_edit_time(self):
        """Test an edited record carries the edit time as created_at."""
        original = FeedEvent(
            id="-N1",
            timestamp=datetime(2024, 3, 15, 9, 0, tzinfo=TZ),
            ounces=4.0,
            created_at=datetime(2024, 3, 15, 9, 1, tzinfo=TZ),
        )
        state = entry.start_feed_edit(entry.initial_state(NOW, TZ), original, TZ)

        feed = entry.build_feed(state, NOW, TZ)

        assert feed.id == "-N1"
        assert feed.timestamp == original.timestamp
        assert feed.created_at == NOW

    def test_build_diaper(self):
        """Test the diaper type comes from the form."""
        state = entry.set_diaper_type(entry.initial_state(NOW, TZ), DiaperType.BOTH)

        diaper = entry.build_diaper(state, NOW, TZ)

        assert diaper.type == DiaperType.BOTH
        assert diaper.timestamp == datetime(2024, 3, 15, 18, 42, tzinfo=TZ)
