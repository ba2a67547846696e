"""
Application Queries (CQRS Read Side)

Read models returned by the controller. Queries do not modify state.
"""

from terminal_music_player.application.queries.snapshot import PlayerSnapshot

__all__ = [
    "PlayerSnapshot",
]
