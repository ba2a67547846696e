"""Point-in-time view of the player for UIs and scripted callers."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from terminal_music_player.domain.music.entities import Track
from terminal_music_player.domain.music.value_objects import OrderingMode, PlaybackState, RepeatMode
from terminal_music_player.domain.shared.datetime_utils import format_seconds
from terminal_music_player.domain.shared.types import (
    DurationSeconds,
    Generation,
    NonNegativeFloat,
    QueueIndex,
    VolumeLevel,
)


class PlayerSnapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    state: PlaybackState = PlaybackState.IDLE
    track: Track | None = None
    position: NonNegativeFloat = 0.0
    duration: DurationSeconds | None = None
    volume: VolumeLevel = 0.5
    tracks: list[Track] = Field(default_factory=list)
    cursor: QueueIndex | None = None
    mode: OrderingMode = OrderingMode.SEQUENTIAL
    repeat: RepeatMode = RepeatMode.OFF
    generation: Generation = 0

    @property
    def queue_length(self) -> int:
        return len(self.tracks)

    @property
    def is_playing(self) -> bool:
        return self.state == PlaybackState.PLAYING

    @property
    def is_paused(self) -> bool:
        return self.state == PlaybackState.PAUSED

    @property
    def progress(self) -> float | None:
        """Fraction of the track played, when the duration is known."""
        if not self.duration:
            return None
        return min(1.0, self.position / self.duration)

    @property
    def position_formatted(self) -> str:
        return f"{format_seconds(self.position)} / {format_seconds(self.duration)}"
