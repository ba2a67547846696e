"""
Music Bounded Context

Domain logic for tracks, the playback queue and player events.
"""

from terminal_music_player.domain.music.entities import PlaybackQueue, SavedQueue, Track
from terminal_music_player.domain.music.events import (
    MusicEvent,
    PlaybackError,
    PlaybackStateChanged,
    PlayerEvent,
    PositionChanged,
    QueueChanged,
    QueueExhausted,
    TrackFinished,
    TrackStarted,
    VolumeChanged,
)
from terminal_music_player.domain.music.repository import QueueRepository
from terminal_music_player.domain.music.services import (
    PlaybackDomainService,
    QueueDomainService,
    ScrobbleDomainService,
)
from terminal_music_player.domain.music.value_objects import (
    ErrorKind,
    OrderingMode,
    PlaybackState,
    RepeatMode,
    TrackFinishReason,
)

__all__ = [
    # Entities
    "Track",
    "SavedQueue",
    "PlaybackQueue",
    # Value Objects
    "PlaybackState",
    "OrderingMode",
    "RepeatMode",
    "TrackFinishReason",
    "ErrorKind",
    # Events
    "MusicEvent",
    "PlayerEvent",
    "TrackStarted",
    "PositionChanged",
    "TrackFinished",
    "PlaybackStateChanged",
    "VolumeChanged",
    "QueueExhausted",
    "PlaybackError",
    "QueueChanged",
    # Repository
    "QueueRepository",
    # Services
    "QueueDomainService",
    "PlaybackDomainService",
    "ScrobbleDomainService",
]
