"""
Command Results

Every command returns a ``CommandResult``; failures are statuses, never
exceptions raised into the caller.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class CommandStatus(Enum):
    """Status codes for command results."""

    SUCCESS = "success"
    NO_TRACK_AVAILABLE = "no_track_available"
    NOTHING_LOADED = "nothing_loaded"
    SEEK_OUT_OF_RANGE = "seek_out_of_range"
    QUEUE_INDEX_INVALID = "queue_index_invalid"
    INVALID_STATE = "invalid_state"
    CLOSED = "closed"
    ERROR = "error"


@dataclass
class CommandResult:
    """Result of a controller command."""

    status: CommandStatus
    message: str = ""
    track: Track | None = None
    value: float | None = None

    @property
    def is_success(self) -> bool:
        return self.status == CommandStatus.SUCCESS

    @classmethod
    def success(
        cls, message: str = "", *, track: Track | None = None, value: float | None = None
    ) -> CommandResult:
        """Create a successful result."""
        return cls(status=CommandStatus.SUCCESS, message=message, track=track, value=value)

    @classmethod
    def error(cls, status: CommandStatus, message: str) -> CommandResult:
        """Create an error result."""
        return cls(status=status, message=message)
