"""
Application Commands (CQRS Write Side)

Command objects accepted by the playback controller, and their results.
Commands represent intent to change the system state.
"""

from terminal_music_player.application.commands.playback import (
    AdjustVolume,
    Command,
    JumpTo,
    Next,
    Pause,
    Play,
    Previous,
    Resume,
    Seek,
    SeekRelative,
    SetVolume,
    Stop,
    TogglePause,
)
from terminal_music_player.application.commands.queue import (
    ClearQueue,
    Enqueue,
    Extend,
    LoadQueue,
    Move,
    RemoveAt,
    Reshuffle,
    SetOrderingMode,
    SetRepeatMode,
)
from terminal_music_player.application.commands.result import CommandResult, CommandStatus

__all__ = [
    "Command",
    # Transport
    "Play",
    "Pause",
    "Resume",
    "TogglePause",
    "Stop",
    "Seek",
    "SeekRelative",
    "Next",
    "Previous",
    "JumpTo",
    "SetVolume",
    "AdjustVolume",
    # Queue
    "Enqueue",
    "Extend",
    "RemoveAt",
    "Move",
    "ClearQueue",
    "SetOrderingMode",
    "SetRepeatMode",
    "Reshuffle",
    "LoadQueue",
    # Results
    "CommandResult",
    "CommandStatus",
]
