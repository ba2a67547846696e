"""
Music Domain Services

Domain services containing business logic that doesn't naturally fit
within a single entity or value object.
"""

from __future__ import annotations

import math

from terminal_music_player.domain.music.entities import PlaybackQueue, Track
from terminal_music_player.domain.music.value_objects import RepeatMode
from terminal_music_player.domain.shared.constants import ScrobbleConstants
from terminal_music_player.domain.shared.exceptions import SeekOutOfRangeError


class QueueDomainService:
    """Domain service for queue-related business rules."""

    @classmethod
    def replays_on_finish(cls, queue: PlaybackQueue) -> bool:
        """Whether a natural end-of-track replays the same track."""
        return queue.repeat == RepeatMode.TRACK and queue.current is not None


class PlaybackDomainService:
    """Domain service for playback-related business rules."""

    @staticmethod
    def clamp_volume(level: float) -> float:
        """Clamp a requested volume into [0.0, 1.0]."""
        if math.isnan(level):
            return 0.0
        return min(1.0, max(0.0, level))

    @staticmethod
    def clamp_seek(target: float, duration: float | None) -> float:
        """Clamp a seek target into the playable range.

        Args:
            target: Requested position in seconds.
            duration: Track duration, or None if unknown.

        Returns:
            The clamped target.

        Raises:
            SeekOutOfRangeError: If the target is negative and the duration is unknown.
        """
        if duration is None:
            if target < 0 or math.isnan(target):
                raise SeekOutOfRangeError(target)
            return target
        if math.isnan(target):
            raise SeekOutOfRangeError(target)
        return min(duration, max(0.0, target))


class ScrobbleDomainService:
    """Listening-history eligibility rules."""

    @staticmethod
    def threshold_for(duration: float | None) -> float:
        """Seconds of listening required before a track counts as played.

        Half the track, capped at four minutes; tracks of unknown length need
        the full four minutes.
        """
        if duration is None:
            return ScrobbleConstants.MAX_THRESHOLD_SECONDS
        return min(
            duration * ScrobbleConstants.THRESHOLD_FRACTION,
            ScrobbleConstants.MAX_THRESHOLD_SECONDS,
        )

    @classmethod
    def is_eligible(cls, track: Track, elapsed: float, duration: float | None = None) -> bool:
        effective = duration if duration is not None else track.duration_seconds
        return elapsed >= cls.threshold_for(effective)
