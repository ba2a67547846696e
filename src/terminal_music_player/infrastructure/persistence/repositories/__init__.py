"""SQLite repository implementations."""

from terminal_music_player.infrastructure.persistence.repositories.queue_repository import (
    SQLiteQueueRepository,
)

__all__ = [
    "SQLiteQueueRepository",
]
