"""
Music Domain Repository Interfaces

Abstract base classes defining the contracts for data persistence.
Implementations live in the infrastructure layer.
"""

from abc import ABC, abstractmethod

from terminal_music_player.domain.music.entities import SavedQueue

DEFAULT_QUEUE_NAME = "default"


class QueueRepository(ABC):
    """Abstract repository for the persisted play queue.

    The player restores the queue it had when it last exited. Queues are
    keyed by name so a caller can keep more than one.
    """

    @abstractmethod
    async def get(self, name: str = DEFAULT_QUEUE_NAME) -> SavedQueue | None:
        """Retrieve a saved queue.

        Args:
            name: Queue name.

        Returns:
            The saved queue if found, None otherwise.
        """
        ...

    @abstractmethod
    async def save(self, saved: SavedQueue, name: str = DEFAULT_QUEUE_NAME) -> None:
        """Replace the saved queue with ``saved``."""
        ...

    @abstractmethod
    async def delete(self, name: str = DEFAULT_QUEUE_NAME) -> bool:
        """Delete a saved queue.

        Returns:
            True if a queue was deleted.
        """
        ...

    @abstractmethod
    async def exists(self, name: str = DEFAULT_QUEUE_NAME) -> bool:
        ...
