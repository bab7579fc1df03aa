"""
Integration tests for the tracker session against fake remote services.
"""

import os
import tempfile
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest

from baby_tracker.config.loader import AppConfig
from baby_tracker.core.state import Tab
from baby_tracker.sdk.auth_client import ProviderAuthError
from baby_tracker.sdk.tracker import EventNotFoundError, NotAuthenticatedError, Tracker
from baby_tracker.storage.models import DiaperType
from baby_tracker.storage.session_store import SessionStore
from fakes import FIREBASE, FakeFirebase

TZ = timezone(timedelta(hours=-5))
NOW = datetime(2024, 3, 15, 18, 0, tzinfo=TZ)

EMAIL = "parent@example.com"
PASSWORD = "secret1"


class TestTracker:
    """Test the tracker lifecycle end to end."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.db_path = os.path.join(self.temp_dir, "test.db")
        self.config = AppConfig(firebase=FIREBASE, db_path=self.db_path)
        self.firebase = FakeFirebase()
        self.firebase.identity.add_account(EMAIL, PASSWORD, uid="uid-1")
        self.tracker = self._tracker()

    def teardown_method(self):
        """Clean up test environment."""
        self.tracker.close()
        if os.path.exists(self.db_path):
            os.remove(self.db_path)
        os.rmdir(self.temp_dir)

    def _tracker(self) -> Tracker:
        return Tracker(
            self.config,
            http_client=self.firebase.client(),
            clock=lambda: NOW,
            tz=TZ,
        )

    def test_start_without_session(self):
        """Test a fresh install has no session and loads nothing."""
        assert self.tracker.start() is None
        assert not self.tracker.loaded
        assert self.firebase.database.requests == []

    def test_operations_need_session(self):
        """Test writes without a session raise."""
        with pytest.raises(NotAuthenticatedError):
            self.tracker.save_feed()
        with pytest.raises(NotAuthenticatedError):
            self.tracker.reload()

    def test_log_in_persists_and_loads(self):
        """Test log-in stores the session and loads both collections."""
        session = self.tracker.log_in(EMAIL, PASSWORD)

        assert self.tracker.loaded
        assert SessionStore(self.db_path).peek() == session
        paths = [request.url.path for request in self.firebase.database.requests]
        assert paths == ["/users/uid-1/feeds.json", "/users/uid-1/diapers.json"]

    def test_failed_log_in_keeps_logged_out(self):
        """Test bad credentials leave no session behind."""
        with pytest.raises(ProviderAuthError):
            self.tracker.log_in(EMAIL, "wrong-password")

        assert self.tracker.session is None
        assert SessionStore(self.db_path).peek() is None

    def test_sign_up(self):
        """Test sign-up creates the account and signs in."""
        session = self.tracker.sign_up("new@example.com", "secret9", "secret9")

        assert session.email == "new@example.com"
        assert self.tracker.session == session

    def test_session_restored_on_start(self):
        """Test a second tracker picks up the stored session."""
        self.tracker.log_in(EMAIL, PASSWORD)
        self.tracker.set_ounces(5.0)
        self.tracker.save_feed()

        other = self._tracker()
        try:
            restored = other.start()
            assert restored.local_id == "uid-1"
            assert [feed.ounces for feed in other.feeds.events] == [5.0]
        finally:
            other.close()

    def test_expired_session_refreshed_on_start(self):
        """Test an expired session is exchanged and keeps its email."""
        session = self.tracker.log_in(EMAIL, PASSWORD)
        SessionStore(self.db_path).save(replace(session, expires_at=0))

        other = self._tracker()
        try:
            restored = other.start()
            assert restored is not None
            assert restored.id_token != session.id_token
            assert restored.email == EMAIL
            assert SessionStore(self.db_path).peek() == restored
            assert other.loaded
        finally:
            other.close()

    def test_failed_refresh_signs_out(self):
        """Test a rejected refresh clears the stored session."""
        session = self.tracker.log_in(EMAIL, PASSWORD)
        SessionStore(self.db_path).save(
            replace(session, expires_at=0, refresh_token="revoked")
        )

        other = self._tracker()
        try:
            assert other.start() is None
            assert SessionStore(self.db_path).peek() is None
        finally:
            other.close()

    def test_save_feed_creates_and_resets_form(self):
        """Test a saved feed is stored at the picked time and the form resets."""
        self.tracker.log_in(EMAIL, PASSWORD)
        self.tracker.set_time(7, 30)
        self.tracker.set_ounces(6.5)

        result = self.tracker.save_feed()

        assert result.ok
        feeds = self.tracker.feeds.events
        assert len(feeds) == 1
        assert feeds[0].id == result.record_id
        assert feeds[0].ounces == 6.5
        assert feeds[0].timestamp == datetime(2024, 3, 15, 7, 30, tzinfo=TZ)
        assert self.tracker.state.ounces == 4.0
        assert (self.tracker.state.hour, self.tracker.state.minute) == (18, 0)

    def test_edit_feed_updates_in_place(self):
        """Test the edit flow replaces the record without creating another."""
        self.tracker.log_in(EMAIL, PASSWORD)
        record_id = self.tracker.save_feed().record_id

        self.tracker.edit_feed(record_id)
        self.tracker.set_ounces(8.0)
        result = self.tracker.save_feed()

        assert result.ok
        assert [(feed.id, feed.ounces) for feed in self.tracker.feeds.events] == [(record_id, 8.0)]
        assert self.firebase.database.requests[-2].method == "PUT"
        assert not self.tracker.state.is_editing

    def test_edit_unknown_id(self):
        """Test editing needs a loaded record."""
        self.tracker.log_in(EMAIL, PASSWORD)

        with pytest.raises(EventNotFoundError):
            self.tracker.edit_feed("-Nmissing")

    def test_cancel_edit(self):
        """Test cancel leaves edit mode without writing."""
        self.tracker.log_in(EMAIL, PASSWORD)
        record_id = self.tracker.save_feed().record_id
        requests_before = len(self.firebase.database.requests)

        self.tracker.edit_feed(record_id)
        self.tracker.cancel_edit()

        assert not self.tracker.state.is_editing
        assert len(self.firebase.database.requests) == requests_before

    def test_delete_feed(self):
        """Test deletion removes the record and reloads."""
        self.tracker.log_in(EMAIL, PASSWORD)
        record_id = self.tracker.save_feed().record_id

        result = self.tracker.delete_feed(record_id)

        assert result.ok
        assert self.tracker.feeds.events == []

    def test_save_diaper(self):
        """Test diaper entries and the type reset."""
        self.tracker.log_in(EMAIL, PASSWORD)
        self.tracker.select_tab(Tab.DIAPERS)
        self.tracker.set_diaper_type(DiaperType.BOTH)

        result = self.tracker.save_diaper()

        assert result.ok
        assert self.tracker.diapers.events[0].type == DiaperType.BOTH
        assert self.tracker.state.diaper_type == DiaperType.WET
        assert self.tracker.state.tab == Tab.DIAPERS

    def test_edit_and_delete_diaper(self):
        """Test diaper edits and deletes go through the diapers collection."""
        self.tracker.log_in(EMAIL, PASSWORD)
        record_id = self.tracker.save_diaper().record_id

        self.tracker.edit_diaper(record_id)
        self.tracker.set_diaper_type(DiaperType.DIRTY)
        self.tracker.save_diaper()
        assert self.tracker.diapers.events[0].type == DiaperType.DIRTY

        self.tracker.delete_diaper(record_id)
        assert self.tracker.diapers.events == []

    def test_failed_write_keeps_form(self):
        """Test a rejected write leaves the form as it was."""
        self.tracker.log_in(EMAIL, PASSWORD)
        self.tracker.set_ounces(9.5)
        self.firebase.database.tokens.clear()

        result = self.tracker.save_feed()

        assert not result.ok
        assert self.tracker.state.ounces == 9.5

    def test_log_out_clears_everything(self):
        """Test log-out forgets the session and both lists."""
        self.tracker.log_in(EMAIL, PASSWORD)
        self.tracker.save_feed()
        self.tracker.save_diaper()

        self.tracker.log_out()

        assert self.tracker.session is None
        assert self.tracker.feeds.events == []
        assert self.tracker.diapers.events == []
        assert SessionStore(self.db_path).peek() is None

    def test_derived_views(self):
        """Test series and summaries reflect the loaded events."""
        self.tracker.log_in(EMAIL, PASSWORD)
        for hour, ounces in [(8, 4.0), (12, 6.0)]:
            self.tracker.set_time(hour, 0)
            self.tracker.set_ounces(ounces)
            self.tracker.save_feed()
        self.tracker.set_diaper_type(DiaperType.BOTH)
        self.tracker.save_diaper()

        feed_series = self.tracker.feed_series()
        today = self.tracker.feed_today()
        diapers = self.tracker.diaper_today()

        assert len(feed_series) == 14
        assert feed_series[-1].ounces == 10
        assert today.feed_count == 2
        assert today.avg_display == "5.0"
        assert today.last_feed_ago == "6h 0m ago"
        assert (diapers.total, diapers.wet, diapers.dirty) == (1, 1, 1)
        assert self.tracker.diaper_series()[-1].total == 1
