"""Enumerations describing player state, ordering policy and failure kinds."""

from __future__ import annotations

from enum import Enum


class PlaybackState(Enum):
    """Transport state of the player.

    IDLE only before the first Play. PAUSED is entered from PLAYING and left
    for PLAYING or STOPPED; STOPPED keeps the queue cursor so Play resumes
    from the same track.
    """

    IDLE = "idle"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"

    def can_transition_to(self, target: PlaybackState) -> bool:
        # Only PAUSED needs a loaded track; every other state is reachable from anywhere.
        if target == PlaybackState.PAUSED:
            return self.is_active
        return target != PlaybackState.IDLE

    @property
    def is_active(self) -> bool:
        """True while a decoder is loaded."""
        return self in {PlaybackState.PLAYING, PlaybackState.PAUSED}


class OrderingMode(Enum):
    """How Next/Previous walk the queue."""

    SEQUENTIAL = "sequential"
    RANDOM = "random"

    def toggled(self) -> OrderingMode:
        if self == OrderingMode.RANDOM:
            return OrderingMode.SEQUENTIAL
        return OrderingMode.RANDOM


class RepeatMode(Enum):
    """Repeat settings for queue playback."""

    OFF = "off"
    QUEUE = "queue"  # Wrap around / start a new rotation
    TRACK = "track"  # Replay the current track on natural end

    def next_mode(self) -> RepeatMode:
        """OFF -> QUEUE -> TRACK -> OFF."""
        modes = list(RepeatMode)
        return modes[(modes.index(self) + 1) % len(modes)]


class TrackFinishReason(Enum):
    """Why a track stopped being the loaded track."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    STOPPED = "stopped"
    REMOVED = "removed"
    ERROR = "error"


class ErrorKind(Enum):
    """Error taxonomy shared by command results and error events."""

    NO_TRACK_AVAILABLE = "no_track_available"
    DECODE_ERROR = "decode_error"
    SEEK_OUT_OF_RANGE = "seek_out_of_range"
    QUEUE_INDEX_INVALID = "queue_index_invalid"
    EVENTS_DROPPED = "events_dropped"
    DEVICE_ERROR = "device_error"
