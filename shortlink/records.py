"""Domain records shared by the services and every store backend.

Record Layout
=============
::
    ShortURLRecord
    ├─ shortcode: str (unique, immutable)
    ├─ original_url: str
    ├─ created_at: datetime (UTC)
    ├─ expires_at: datetime | None (UTC, None = never expires)
    └─ clicks: list[ClickRecord] (append-only, chronological)

    ClickRecord
    ├─ timestamp: datetime (UTC)
    ├─ source: str ("Unknown" when no referrer)
    └─ location: str ("Unknown" when not derivable)

Key Behaviours
===============
- Expiry is a pure function of wall-clock time: ``is_expired(now)``.
- Stores hand out copies; mutating a returned record never touches storage.
"""

__all__ = ["UNKNOWN", "Clock", "ClickRecord", "ShortURLRecord", "utc_now", "ensure_utc"]

import datetime
from collections.abc import Callable
from dataclasses import dataclass, field

UNKNOWN = "Unknown"

Clock = Callable[[], datetime.datetime]


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.UTC)


def ensure_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Attach UTC to naive timestamps (SQLite drops tz info on round trip)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.UTC)
    return value.astimezone(datetime.UTC)


@dataclass(frozen=True)
class ClickRecord:
    timestamp: datetime.datetime
    source: str = UNKNOWN
    location: str = UNKNOWN


@dataclass
class ShortURLRecord:
    shortcode: str
    original_url: str
    created_at: datetime.datetime
    expires_at: datetime.datetime | None = None
    clicks: list[ClickRecord] = field(default_factory=list)

    @property
    def total_clicks(self) -> int:
        return len(self.clicks)

    def is_expired(self, now: datetime.datetime) -> bool:
        """Return True once ``now`` is strictly past the expiry."""
        return self.expires_at is not None and now > self.expires_at
