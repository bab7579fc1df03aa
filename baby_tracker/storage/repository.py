"""
Repository pattern for remote event collections.

Reads and writes a user's feeds or diapers in the realtime database's
path-addressed JSON store.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar, Union

import httpx

from .models import DiaperEvent, FeedEvent, Session

logger = logging.getLogger(__name__)

FEEDS = "feeds"
DIAPERS = "diapers"

Event = Union[FeedEvent, DiaperEvent]
E = TypeVar("E", FeedEvent, DiaperEvent)

_EVENT_TYPES = {
    FEEDS: FeedEvent,
    DIAPERS: DiaperEvent,
}


@dataclass
class RepositoryResult(Generic[E]):
    """Outcome of a repository call.

    Failures never raise; callers decide whether to surface ``error``.
    """
    ok: bool
    events: List[E] = field(default_factory=list)
    record_id: Optional[str] = None
    error: Optional[str] = None


class EventRepository(Generic[E]):
    """Repository for one event collection of the authenticated user.

    Writes do not touch the local cache. After a write the caller
    reloads with ``list_all()`` to observe the new state.
    """

    def __init__(
        self,
        collection: str,
        database_url: str,
        session_provider: Callable[[], Session],
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        """Initialize the repository.

        Args:
            collection: Collection name, ``feeds`` or ``diapers``
            database_url: Base URL of the realtime database
            session_provider: Returns the session whose token authorizes calls
            http_client: Optional preconfigured httpx client
            timeout: Request timeout in seconds when creating a client

        Raises:
            ValueError: If the collection name is unknown
        """
        if collection not in _EVENT_TYPES:
            raise ValueError(f"Unknown collection: {collection}")
        self.collection = collection
        self.event_type = _EVENT_TYPES[collection]
        self.database_url = database_url.rstrip("/")
        self._session_provider = session_provider
        self.client = http_client or httpx.Client(timeout=timeout)
        self.events: List[E] = []

    def _collection_url(self, session: Session) -> str:
        return f"{self.database_url}/users/{session.local_id}/{self.collection}.json"

    def _record_url(self, session: Session, record_id: str) -> str:
        if not record_id:
            raise ValueError("record id is required and cannot be empty")
        return f"{self.database_url}/users/{session.local_id}/{self.collection}/{record_id}.json"

    def _request(
        self,
        method: str,
        url: str,
        token: str,
        payload: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Perform a call and return its decoded body.

        Raises:
            httpx.HTTPError: On transport failure or error status
            ValueError: If the body is not JSON or carries an error
        """
        response = self.client.request(
            method, url, params={"auth": token}, json=payload
        )
        data = response.json() if response.content else None
        if isinstance(data, dict) and "error" in data:
            raise ValueError(str(data["error"]))
        response.raise_for_status()
        return data

    def fetch(self) -> RepositoryResult[E]:
        """Fetch the whole collection, most recent first.

        An empty or null collection yields no events. A failed fetch
        yields no events and an error; the cache is left untouched.
        Records that cannot be decoded are skipped.
        """
        session = self._session_provider()
        try:
            data = self._request("GET", self._collection_url(session), session.id_token)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error fetching %s: %s", self.collection, e)
            return RepositoryResult(ok=False, error=str(e))

        events: List[E] = []
        if isinstance(data, dict):
            for record_id, record in data.items():
                try:
                    events.append(self.event_type.from_record(record_id, record))
                except (KeyError, TypeError, ValueError) as e:
                    logger.warning(
                        "Skipping malformed %s record %s: %s", self.collection, record_id, e
                    )
        events.sort(key=lambda event: event.timestamp, reverse=True)
        self.events = events
        return RepositoryResult(ok=True, events=events)

    def list_all(self) -> List[E]:
        """Reload the cache and return it; empty on failure."""
        return self.fetch().events

    def create(self, event: E) -> RepositoryResult[E]:
        """Insert a new record; the remote store assigns its id."""
        session = self._session_provider()
        try:
            data = self._request(
                "POST", self._collection_url(session), session.id_token, event.to_record()
            )
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error saving %s: %s", self.collection, e)
            return RepositoryResult(ok=False, error=str(e))
        record_id = data.get("name") if isinstance(data, dict) else None
        return RepositoryResult(ok=True, record_id=record_id)

    def update(self, record_id: str, event: E) -> RepositoryResult[E]:
        """Replace the record at ``record_id`` in full."""
        session = self._session_provider()
        url = self._record_url(session, record_id)
        try:
            self._request("PUT", url, session.id_token, event.to_record())
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error updating %s/%s: %s", self.collection, record_id, e)
            return RepositoryResult(ok=False, record_id=record_id, error=str(e))
        return RepositoryResult(ok=True, record_id=record_id)

    def delete(self, record_id: str) -> RepositoryResult[E]:
        """Remove the record at ``record_id``."""
        session = self._session_provider()
        url = self._record_url(session, record_id)
        try:
            self._request("DELETE", url, session.id_token)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Error deleting %s/%s: %s", self.collection, record_id, e)
            return RepositoryResult(ok=False, record_id=record_id, error=str(e))
        return RepositoryResult(ok=True, record_id=record_id)

    def clear_cache(self) -> None:
        self.events = []

    def close(self) -> None:
        self.client.close()
