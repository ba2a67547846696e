"""Date/time helpers: UTC timestamps for events and the database, and
clock-style formatting of track durations."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

from terminal_music_player.domain.shared.messages import ErrorMessages


@dataclass(frozen=True, slots=True)
class UtcDateTime:
    """Timezone-aware UTC ``datetime`` with the formats the database stores."""

    dt: datetime

    def __post_init__(self) -> None:
        if self.dt.tzinfo is None:
            raise ValueError(ErrorMessages.TIMEZONE_REQUIRED_UTC_DATETIME)
        object.__setattr__(self, "dt", self.dt.astimezone(UTC))

    @classmethod
    def now(cls) -> UtcDateTime:
        return cls(datetime.now(UTC))

    @property
    def iso(self) -> str:
        return self.dt.isoformat()


def utcnow() -> datetime:
    """Return a timezone-aware datetime in UTC."""
    return datetime.now(UTC)


def format_seconds(seconds: float | None) -> str:
    """Format a duration as M:SS or H:MM:SS, or "Unknown" when absent."""
    if seconds is None:
        return "Unknown"

    total = int(seconds)
    hours, remainder = divmod(total, 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"
