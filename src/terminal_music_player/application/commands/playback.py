"""
Playback Commands

Transport controls submitted to the playback controller.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING

from terminal_music_player.domain.shared.constants import AudioConstants

if TYPE_CHECKING:
    from ...domain.music.entities import Track


@dataclass
class Command:
    """Base class for everything the controller's command queue accepts."""

    @property
    def name(self) -> str:
        return type(self).__name__


@dataclass
class Play(Command):
    """Play a specific track, or resume/start from the cursor when none is given.

    A track that is not queued yet is appended first.
    """

    track: Track | None = None


@dataclass
class Pause(Command):
    pass


@dataclass
class Resume(Command):
    pass


@dataclass
class TogglePause(Command):
    """Pause when playing, resume when paused, otherwise play."""


@dataclass
class Stop(Command):
    pass


@dataclass
class Seek(Command):
    """Seek to an absolute position in the loaded track."""

    target_seconds: float

    def __post_init__(self) -> None:
        if math.isnan(self.target_seconds):
            raise ValueError("Seek target must be a number")


@dataclass
class SeekRelative(Command):
    """Seek relative to the current position (arrow keys step 5 seconds)."""

    delta_seconds: float = AudioConstants.SEEK_STEP_SECONDS

    def __post_init__(self) -> None:
        if math.isnan(self.delta_seconds):
            raise ValueError("Seek delta must be a number")


@dataclass
class Next(Command):
    pass


@dataclass
class Previous(Command):
    pass


@dataclass
class JumpTo(Command):
    """Play the track at a queue index."""

    index: int


@dataclass
class SetVolume(Command):
    """Set the output volume; values outside [0.0, 1.0] are clamped."""

    level: float


@dataclass
class AdjustVolume(Command):
    delta: float = AudioConstants.VOLUME_STEP
