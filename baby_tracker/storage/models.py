"""
Data models for storage layer.

Defines the session record and the two logged event kinds.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


# Fixed ounce choices offered by the entry picker: 0.5 to 10 in 0.5 steps
OUNCE_CHOICES = tuple(i / 2 for i in range(1, 21))
DEFAULT_OUNCES = 4.0


class DiaperType(Enum):
    """Kind of diaper change."""
    WET = "wet"
    DIRTY = "dirty"
    BOTH = "both"

    @property
    def is_wet(self) -> bool:
        return self in (DiaperType.WET, DiaperType.BOTH)

    @property
    def is_dirty(self) -> bool:
        return self in (DiaperType.DIRTY, DiaperType.BOTH)


def parse_instant(value: str) -> datetime:
    """Parse an ISO-8601 instant into an aware datetime.

    Accepts the trailing ``Z`` form written by the remote store. Naive
    values are interpreted in system local time.

    Raises:
        ValueError: If the value is not a valid ISO-8601 string
    """
    if not isinstance(value, str) or not value:
        raise ValueError(f"Invalid timestamp: {value!r}")
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.astimezone()
    return parsed


def format_instant(value: datetime) -> str:
    """Format a datetime as a UTC ISO-8601 instant with millisecond precision."""
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class Session:
    """Client-held credential bundle for one user.

    ``expires_at`` is epoch milliseconds: issue time plus the lifetime
    reported by the identity provider.
    """
    id_token: str
    refresh_token: str
    local_id: str
    email: str
    expires_at: int

    @classmethod
    def issued(
        cls,
        id_token: str,
        refresh_token: str,
        local_id: str,
        email: str,
        expires_in: Any,
        issued_at_ms: int,
    ) -> "Session":
        """Build a session whose expiry is issue time + provider lifetime (seconds)."""
        return cls(
            id_token=id_token,
            refresh_token=refresh_token,
            local_id=local_id,
            email=email or "",
            expires_at=issued_at_ms + int(expires_in) * 1000,
        )

    def is_valid(self, now_ms: int) -> bool:
        """A session at or past its expiry must not authorize requests."""
        return self.expires_at > now_ms

    def to_record(self) -> Dict[str, Any]:
        """Serialize to the persisted JSON shape."""
        return {
            "idToken": self.id_token,
            "refreshToken": self.refresh_token,
            "localId": self.local_id,
            "email": self.email,
            "expiresAt": self.expires_at,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "Session":
        """Deserialize from the persisted JSON shape.

        Raises:
            ValueError: If required fields are missing or mistyped
        """
        if not isinstance(record, dict):
            raise ValueError("Session record must be an object")
        try:
            return cls(
                id_token=str(record["idToken"]),
                refresh_token=str(record["refreshToken"]),
                local_id=str(record["localId"]),
                email=str(record.get("email") or ""),
                expires_at=int(record["expiresAt"]),
            )
        except (KeyError, TypeError, OverflowError) as e:
            raise ValueError(f"Malformed session record: {e}")


@dataclass(frozen=True)
class FeedEvent:
    """A single logged feed.

    ``timestamp`` is when the feed happened (user-editable, minute
    precision); ``created_at`` is when the record was written.
    """
    timestamp: datetime
    ounces: float
    created_at: datetime
    id: Optional[str] = field(default=None, compare=False)

    def __post_init__(self):
        """Validate ounces fall on the fixed picker scale."""
        if self.ounces not in OUNCE_CHOICES:
            raise ValueError(
                f"ounces must be one of 0.5-10 in 0.5 steps, got {self.ounces}"
            )

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": format_instant(self.timestamp),
            "ounces": self.ounces,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_record(cls, record_id: str, record: Dict[str, Any]) -> "FeedEvent":
        return cls(
            id=record_id,
            timestamp=parse_instant(record["timestamp"]),
            ounces=float(record["ounces"]),
            created_at=parse_instant(record.get("createdAt") or record["timestamp"]),
        )


@dataclass(frozen=True)
class DiaperEvent:
    """A single logged diaper change."""
    timestamp: datetime
    type: DiaperType
    created_at: datetime
    id: Optional[str] = field(default=None, compare=False)

    def to_record(self) -> Dict[str, Any]:
        return {
            "timestamp": format_instant(self.timestamp),
            "type": self.type.value,
            "createdAt": format_instant(self.created_at),
        }

    @classmethod
    def from_record(cls, record_id: str, record: Dict[str, Any]) -> "DiaperEvent":
        return cls(
            id=record_id,
            timestamp=parse_instant(record["timestamp"]),
            type=DiaperType(record["type"]),
            created_at=parse_instant(record.get("createdAt") or record["timestamp"]),
        )
