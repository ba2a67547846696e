"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters. These are the "ports" in
hexagonal architecture.
"""

from terminal_music_player.application.interfaces.audio_backend import (
    AudioBackendError,
    AudioBlock,
    AudioDecoder,
    AudioFormat,
    AudioOutput,
    DecodeError,
    DecoderFactory,
    DeviceError,
)
from terminal_music_player.application.interfaces.scrobbler import Scrobbler

__all__ = [
    "AudioBackendError",
    "AudioBlock",
    "AudioDecoder",
    "AudioFormat",
    "AudioOutput",
    "DecodeError",
    "DecoderFactory",
    "DeviceError",
    "Scrobbler",
]
