"""
Shared Domain Kernel

Contains types and exceptions shared across all bounded contexts.
The event channel lives in ``domain.shared.events`` and is imported from there.
"""

from terminal_music_player.domain.shared.exceptions import (
    DomainError,
    InvalidOperationError,
    NoTrackAvailableError,
    QueueIndexInvalidError,
    SeekOutOfRangeError,
    SubscriptionClosedError,
)

__all__ = [
    "DomainError",
    "InvalidOperationError",
    "NoTrackAvailableError",
    "QueueIndexInvalidError",
    "SeekOutOfRangeError",
    "SubscriptionClosedError",
]
