"""Port interface for listening-history submission services."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class Scrobbler(ABC):
    """Interface for a listening-history service (e.g. Last.fm)."""

    @abstractmethod
    async def now_playing(self, track: "Track") -> None:
        """Announce the track that just started."""
        ...

    @abstractmethod
    async def scrobble(self, track: "Track", started_at: datetime, elapsed: float) -> None:
        """Record a listen that met the eligibility threshold."""
        ...
