"""Base exception classes for domain-level errors."""

from __future__ import annotations

from terminal_music_player.domain.shared.messages import ErrorMessages


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class InvalidOperationError(DomainError):
    """Raised when an operation is invalid in the current state."""

    def __init__(self, operation: str, current_state: str, message: str | None = None) -> None:
        msg = message or ErrorMessages.INVALID_STATE.format(
            operation=operation, state=current_state
        )
        super().__init__(msg, code="INVALID_OPERATION")
        self.operation = operation
        self.current_state = current_state


class NoTrackAvailableError(DomainError):
    """Raised when playback is requested on an empty queue."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or ErrorMessages.NO_TRACK_AVAILABLE, code="NO_TRACK_AVAILABLE")


class QueueIndexInvalidError(DomainError):
    """Raised when a queue mutation references an index that does not exist."""

    def __init__(self, index: int, length: int) -> None:
        super().__init__(
            ErrorMessages.QUEUE_INDEX_INVALID.format(index=index, length=length),
            code="QUEUE_INDEX_INVALID",
        )
        self.index = index
        self.length = length


class SeekOutOfRangeError(DomainError):
    """Raised when a seek target cannot be clamped (negative with unknown duration)."""

    def __init__(self, target: float) -> None:
        super().__init__(
            ErrorMessages.SEEK_OUT_OF_RANGE.format(target=target), code="SEEK_OUT_OF_RANGE"
        )
        self.target = target


class SubscriptionClosedError(DomainError):
    """Raised when reading from a closed event subscription with nothing buffered."""

    def __init__(self, name: str) -> None:
        super().__init__(
            ErrorMessages.SUBSCRIPTION_CLOSED.format(name=name), code="SUBSCRIPTION_CLOSED"
        )
        self.name = name
