# ruff: noqa: N999
"""
Domain Layer

Contains pure playback logic organized by bounded contexts:
- shared/: Cross-cutting types, exceptions and the event channel
- music/: Track, queue, player events and playback rules
"""

from terminal_music_player.domain.shared.exceptions import DomainError

__all__ = [
    "DomainError",
]
