"""Domain events for the music bounded context."""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field

from terminal_music_player.domain.shared.datetime_utils import utcnow
from terminal_music_player.domain.shared.types import (
    DurationSeconds,
    Generation,
    NonEmptyStr,
    NonNegativeFloat,
    NonNegativeInt,
    QueueIndex,
    UtcDatetimeField,
    VolumeLevel,
)

from .entities import Track
from .value_objects import ErrorKind, OrderingMode, PlaybackState, RepeatMode, TrackFinishReason


class MusicEvent(BaseModel):
    """Base class for all player events.

    ``sequence`` is stamped by the event channel on publish.
    """

    model_config = ConfigDict(frozen=True)

    sequence: NonNegativeInt = 0
    timestamp: UtcDatetimeField = Field(default_factory=utcnow)

    def with_sequence(self, sequence: int) -> MusicEvent:
        return self.model_copy(update={"sequence": sequence})


class TrackStarted(MusicEvent):
    event_type: Literal["TrackStarted"] = "TrackStarted"
    track: Track
    duration: DurationSeconds | None = None
    generation: Generation = 0


class PositionChanged(MusicEvent):
    event_type: Literal["PositionChanged"] = "PositionChanged"
    elapsed: NonNegativeFloat
    duration: DurationSeconds | None = None


class TrackFinished(MusicEvent):
    event_type: Literal["TrackFinished"] = "TrackFinished"
    track: Track
    elapsed: NonNegativeFloat = 0.0
    duration: DurationSeconds | None = None
    reason: TrackFinishReason = TrackFinishReason.COMPLETED


class PlaybackStateChanged(MusicEvent):
    event_type: Literal["PlaybackStateChanged"] = "PlaybackStateChanged"
    state: PlaybackState
    previous: PlaybackState | None = None


class VolumeChanged(MusicEvent):
    event_type: Literal["VolumeChanged"] = "VolumeChanged"
    level: VolumeLevel


class QueueExhausted(MusicEvent):
    event_type: Literal["QueueExhausted"] = "QueueExhausted"
    last_track: Track | None = None


class PlaybackError(MusicEvent):
    event_type: Literal["PlaybackError"] = "PlaybackError"
    kind: ErrorKind
    message: NonEmptyStr
    track: Track | None = None
    dropped_count: NonNegativeInt = 0


class QueueChanged(MusicEvent):
    event_type: Literal["QueueChanged"] = "QueueChanged"
    length: NonNegativeInt
    cursor: QueueIndex | None = None
    mode: OrderingMode = OrderingMode.SEQUENTIAL
    repeat: RepeatMode = RepeatMode.OFF


PlayerEvent = Annotated[
    TrackStarted
    | PositionChanged
    | TrackFinished
    | PlaybackStateChanged
    | VolumeChanged
    | QueueExhausted
    | PlaybackError
    | QueueChanged,
    Field(discriminator="event_type"),
]
