"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Persistence (SQLite queue repository)
- Audio (PyAV decoder, sounddevice output)
"""

from terminal_music_player.infrastructure.persistence.database import Database

__all__ = [
    "Database",
]
