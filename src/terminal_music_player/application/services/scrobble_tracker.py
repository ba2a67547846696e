"""Scrobble Tracker - forwards qualifying listens to a listening-history service."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING

from ...domain.music.events import MusicEvent, PlaybackError, TrackFinished, TrackStarted
from ...domain.music.services import ScrobbleDomainService
from ...domain.music.value_objects import ErrorKind
from ...domain.shared.datetime_utils import format_seconds
from ...domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ...domain.shared.events import EventChannel, Subscription
    from ..interfaces.scrobbler import Scrobbler

logger = logging.getLogger(__name__)


class ScrobbleTracker:
    """Listens to player events and submits listens that met the threshold.

    A track counts once it has played for half its length or four minutes,
    whichever comes first. Submission failures are logged and never reach
    the player.
    """

    def __init__(self, *, scrobbler: Scrobbler) -> None:
        self._scrobbler = scrobbler
        self._current: Track | None = None
        self._started_at: datetime | None = None
        self._subscription: Subscription | None = None

    @property
    def is_attached(self) -> bool:
        return self._subscription is not None and not self._subscription.closed

    def attach(self, channel: EventChannel) -> None:
        if self.is_attached:
            return
        self._subscription = channel.add_listener(
            self.handle_event, event_types=(TrackStarted, TrackFinished)
        )

    async def detach(self, channel: EventChannel) -> None:
        await channel.remove_listener(self.handle_event)
        self._subscription = None

    async def handle_event(self, event: MusicEvent) -> None:
        if isinstance(event, TrackStarted):
            await self._on_started(event)
        elif isinstance(event, TrackFinished):
            await self._on_finished(event)
        elif isinstance(event, PlaybackError) and event.kind == ErrorKind.EVENTS_DROPPED:
            logger.warning(event.message)

    async def _on_started(self, event: TrackStarted) -> None:
        self._current = event.track
        self._started_at = event.timestamp
        logger.debug(LogTemplates.SCROBBLE_NOW_PLAYING, event.track.display_title)
        try:
            await self._scrobbler.now_playing(event.track)
        except Exception:
            logger.exception(LogTemplates.SCROBBLE_FAILED, event.track.display_title)

    async def _on_finished(self, event: TrackFinished) -> None:
        track = event.track
        started_at = self._started_at if self._is_current(track) else None
        self._current = None
        self._started_at = None

        duration = event.duration if event.duration is not None else track.duration_seconds
        if not ScrobbleDomainService.is_eligible(track, event.elapsed, duration):
            logger.debug(
                LogTemplates.SCROBBLE_SKIPPED,
                track.display_title,
                event.elapsed,
                format_seconds(duration),
            )
            return

        try:
            await self._scrobbler.scrobble(track, started_at or event.timestamp, event.elapsed)
        except Exception:
            logger.exception(LogTemplates.SCROBBLE_FAILED, track.display_title)
            return
        logger.info(
            LogTemplates.SCROBBLE_SUBMITTED,
            track.display_title,
            event.elapsed,
            duration if duration is not None else 0.0,
        )

    def _is_current(self, track: Track) -> bool:
        return self._current is not None and self._current.same_file(track)
