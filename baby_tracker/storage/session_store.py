"""
Persisted authentication session.

Keeps a single session slot in local storage across restarts and decides
whether a stored session can be used as-is or must be refreshed first.
"""

import json
import logging
import time
from dataclasses import replace
from typing import Callable, Optional

from .db import get_connection, initialize_schema
from .models import Session

logger = logging.getLogger(__name__)

SESSION_STORAGE_KEY = "babyMonitorAuth"

# Exchanges a refresh token for a new session; raises on failure
Refresher = Callable[[str], Session]


def _now_ms() -> int:
    return int(time.time() * 1000)


class SessionStore:
    """Single-slot, last-write-wins session persistence.

    The token is stored unencrypted in the local SQLite file.
    """

    def __init__(self, db_path: str = "baby_tracker.db", key: str = SESSION_STORAGE_KEY):
        """Initialize the store and make sure its table exists.

        Args:
            db_path: Path to SQLite database file
            key: Storage key the session record lives under
        """
        self.db_path = db_path
        self.key = key
        initialize_schema(db_path)

    def _read_raw(self) -> Optional[str]:
        conn = get_connection(self.db_path)
        try:
            row = conn.execute(
                "SELECT value FROM local_storage WHERE key = ?", (self.key,)
            ).fetchone()
            return row[0] if row else None
        finally:
            conn.close()

    def save(self, session: Session) -> None:
        """Persist the full session record, overwriting any prior value."""
        conn = get_connection(self.db_path)
        try:
            conn.execute(
                "INSERT OR REPLACE INTO local_storage (key, value) VALUES (?, ?)",
                (self.key, json.dumps(session.to_record())),
            )
            conn.commit()
        finally:
            conn.close()

    def clear(self) -> None:
        """Remove the persisted session."""
        conn = get_connection(self.db_path)
        try:
            conn.execute("DELETE FROM local_storage WHERE key = ?", (self.key,))
            conn.commit()
        finally:
            conn.close()

    def peek(self) -> Optional[Session]:
        """Return the stored session without checking expiry.

        Malformed records are cleared and reported as absent.
        """
        raw = self._read_raw()
        if raw is None:
            return None
        try:
            return Session.from_record(json.loads(raw))
        except ValueError as e:
            # json.JSONDecodeError is a ValueError
            logger.warning("Discarding malformed stored session: %s", e)
            self.clear()
            return None

    def load(
        self,
        refresher: Optional[Refresher] = None,
        now_ms: Optional[int] = None,
    ) -> Optional[Session]:
        """Restore a usable session.

        A stored session that has not expired is returned directly. An
        expired one is exchanged through ``refresher``; on success the new
        session is persisted and returned, on failure the stored session
        is discarded and None is returned.

        Args:
            refresher: Callable exchanging a refresh token for a new session
            now_ms: Current time in epoch milliseconds (defaults to wall clock)

        Returns:
            A session valid at ``now_ms``, or None
        """
        stored = self.peek()
        if stored is None:
            return None

        now = _now_ms() if now_ms is None else now_ms
        if stored.is_valid(now):
            return stored

        if refresher is None:
            logger.info("Stored session expired and no refresher given")
            self.clear()
            return None

        try:
            refreshed = refresher(stored.refresh_token)
        except Exception as e:
            logger.warning("Session refresh failed, signing out: %s", e)
            self.clear()
            return None

        # The refresh response carries no email
        if not refreshed.email:
            refreshed = replace(refreshed, email=stored.email)

        if not refreshed.is_valid(now):
            logger.warning("Refreshed session is already expired, signing out")
            self.clear()
            return None

        self.save(refreshed)
        return refreshed
