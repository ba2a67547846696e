"""
Queue Commands

Queue mutations are serialized through the controller with the transport
commands so a mutation never races a track change.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from terminal_music_player.application.commands.playback import Command

if TYPE_CHECKING:
    from ...domain.music.entities import SavedQueue, Track
    from ...domain.music.value_objects import OrderingMode, RepeatMode


@dataclass
class Enqueue(Command):
    track: Track


@dataclass
class Extend(Command):
    """Bulk-append tracks, e.g. from a loaded playlist."""

    tracks: Sequence[Track] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        self.tracks = tuple(self.tracks)


@dataclass
class RemoveAt(Command):
    """Remove a queued track. Removing the loaded track stops playback first."""

    index: int


@dataclass
class Move(Command):
    from_index: int
    to_index: int


@dataclass
class ClearQueue(Command):
    pass


@dataclass
class SetOrderingMode(Command):
    """Switch between sequential and random order; None toggles."""

    mode: OrderingMode | None = None


@dataclass
class SetRepeatMode(Command):
    """Set the repeat mode; None cycles to the next one."""

    repeat: RepeatMode | None = None


@dataclass
class Reshuffle(Command):
    """Start a new random rotation at the current track."""


@dataclass
class LoadQueue(Command):
    """Replace the queue (and volume) with a saved one. Playback is stopped."""

    saved: SavedQueue
