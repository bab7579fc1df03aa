"""
Tracker session.

Ties the session store, auth client and both event repositories together:
restore or establish a session, load events, write through the repository
and reload, and derive the chart and summary views.
"""

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional

import httpx

from ..config.loader import AppConfig
from ..core import state as entry
from ..core.daily import (
    DiaperDayBucket,
    FeedDayBucket,
    daily_diaper_series,
    daily_feed_series,
)
from ..core.state import EntryState, Tab
from ..core.today import (
    DiaperTodaySummary,
    FeedTodaySummary,
    today_diaper_summary,
    today_feed_summary,
)
from ..storage.models import DiaperEvent, DiaperType, FeedEvent, Session
from ..storage.repository import DIAPERS, FEEDS, EventRepository, RepositoryResult
from ..storage.session_store import SessionStore
from .auth_client import AuthClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class NotAuthenticatedError(Exception):
    """Raised when an operation needs a session and there is none."""
    def __init__(self, message: str = "Not logged in"):
        super().__init__(message)


class EventNotFoundError(LookupError):
    """Raised when an id is not among the loaded events."""
    def __init__(self, collection: str, record_id: str):
        super().__init__(f"No {collection} record with id {record_id}")
        self.collection = collection
        self.record_id = record_id


class Tracker:
    """One user's tracking session.

    Writes never merge into the local lists; each write is followed by a
    full reload of the affected collection.
    """

    def __init__(
        self,
        config: AppConfig,
        http_client: Optional[httpx.Client] = None,
        session_store: Optional[SessionStore] = None,
        auth_client: Optional[AuthClient] = None,
        clock: Clock = _utc_now,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize tracker.

        Args:
            config: Application configuration
            http_client: Optional httpx client shared by all remote calls
            session_store: Optional session store (defaults to config.db_path)
            auth_client: Optional auth client
            clock: Returns the current aware datetime
            tz: Overrides the configured display timezone
        """
        self.config = config
        self.tz = tz or config.display.get_tzinfo()
        self.clock = clock
        self.http_client = http_client or httpx.Client(timeout=config.timeout)
        self.session_store = session_store or SessionStore(config.db_path)
        self.auth = auth_client or AuthClient(config.firebase, http_client=self.http_client)
        self.session: Optional[Session] = None
        self.loaded = False
        self.feeds: EventRepository[FeedEvent] = EventRepository(
            FEEDS, config.firebase.database_url, self._require_session,
            http_client=self.http_client,
        )
        self.diapers: EventRepository[DiaperEvent] = EventRepository(
            DIAPERS, config.firebase.database_url, self._require_session,
            http_client=self.http_client,
        )
        self.state: EntryState = entry.initial_state(clock(), self.tz)

    def _require_session(self) -> Session:
        if self.session is None:
            raise NotAuthenticatedError()
        return self.session

    def _now_ms(self) -> int:
        return int(self.clock().timestamp() * 1000)

    # Session lifecycle

    def start(self) -> Optional[Session]:
        """Restore the stored session, refreshing it if expired, and load events."""
        self.session = self.session_store.load(
            refresher=self.auth.refresh, now_ms=self._now_ms()
        )
        if self.session is not None:
            self.reload()
        return self.session

    def _establish(self, session: Session) -> Session:
        self.session_store.save(session)
        self.session = session
        logger.info("Signed in as %s", session.local_id)
        self.reload()
        return session

    def sign_up(self, email: str, password: str, confirm_password: str) -> Session:
        """Create an account, persist its session and load events."""
        return self._establish(self.auth.sign_up(email, password, confirm_password))

    def log_in(self, email: str, password: str) -> Session:
        """Log in, persist the session and load events."""
        return self._establish(self.auth.log_in(email, password))

    def log_out(self) -> None:
        """Forget the session and both event lists."""
        self.session_store.clear()
        self.session = None
        self.feeds.clear_cache()
        self.diapers.clear_cache()
        self.loaded = False
        logger.info("Signed out")

    def reload(self) -> None:
        """Reload both collections."""
        self._require_session()
        self.feeds.fetch()
        self.diapers.fetch()
        self.loaded = True

    # Entry form

    def select_tab(self, tab: Tab) -> None:
        self.state = entry.select_tab(self.state, tab)

    def set_time(self, hour: int, minute: int) -> None:
        self.state = entry.set_time(self.state, hour, minute)

    def set_ounces(self, ounces: float) -> None:
        self.state = entry.set_ounces(self.state, ounces)

    def set_diaper_type(self, diaper_type: DiaperType) -> None:
        self.state = entry.set_diaper_type(self.state, diaper_type)

    def edit_feed(self, record_id: str) -> FeedEvent:
        """Put a loaded feed into the form for editing."""
        feed = self._find(self.feeds, record_id)
        self.state = entry.start_feed_edit(self.state, feed, self.tz)
        return feed

    def edit_diaper(self, record_id: str) -> DiaperEvent:
        """Put a loaded diaper change into the form for editing."""
        diaper = self._find(self.diapers, record_id)
        self.state = entry.start_diaper_edit(self.state, diaper, self.tz)
        return diaper

    def cancel_edit(self) -> None:
        self.state = entry.cancel_edit(self.state, self.clock(), self.tz)

    @staticmethod
    def _find(repository: EventRepository, record_id: str):
        for event in repository.events:
            if event.id == record_id:
                return event
        raise EventNotFoundError(repository.collection, record_id)

    # Writes

    def save_feed(self) -> RepositoryResult[FeedEvent]:
        """Create or update the feed in the form, then reload feeds.

        The form resets only when the write succeeded.
        """
        self._require_session()
        now = self.clock()
        feed = entry.build_feed(self.state, now, self.tz)
        if self.state.editing_feed_id:
            result = self.feeds.update(self.state.editing_feed_id, feed)
        else:
            result = self.feeds.create(feed)
        self.feeds.fetch()
        if result.ok:
            self.state = entry.feed_saved(self.state, now, self.tz)
        return result

    def save_diaper(self) -> RepositoryResult[DiaperEvent]:
        """Create or update the diaper change in the form, then reload diapers."""
        self._require_session()
        now = self.clock()
        diaper = entry.build_diaper(self.state, now, self.tz)
        if self.state.editing_diaper_id:
            result = self.diapers.update(self.state.editing_diaper_id, diaper)
        else:
            result = self.diapers.create(diaper)
        self.diapers.fetch()
        if result.ok:
            self.state = entry.diaper_saved(self.state, now, self.tz)
        return result

    def delete_feed(self, record_id: str) -> RepositoryResult[FeedEvent]:
        result = self.feeds.delete(record_id)
        self.feeds.fetch()
        return result

    def delete_diaper(self, record_id: str) -> RepositoryResult[DiaperEvent]:
        result = self.diapers.delete(record_id)
        self.diapers.fetch()
        return result

    # Derived views, recomputed on every call

    def feed_series(self) -> List[FeedDayBucket]:
        return daily_feed_series(
            self.feeds.events, self.clock(), self.config.display.window_days, self.tz
        )

    def diaper_series(self) -> List[DiaperDayBucket]:
        return daily_diaper_series(
            self.diapers.events, self.clock(), self.config.display.window_days, self.tz
        )

    def feed_today(self) -> FeedTodaySummary:
        return today_feed_summary(self.feeds.events, self.clock(), self.tz)

    def diaper_today(self) -> DiaperTodaySummary:
        return today_diaper_summary(self.diapers.events, self.clock(), self.tz)

    def close(self) -> None:
        self.http_client.close()
