"""Port interfaces for decoding audio files and writing PCM to a device.

All methods are blocking; the playback controller runs them in worker
threads.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np
from pydantic import BaseModel, ConfigDict

from terminal_music_player.domain.shared.constants import AudioConstants
from terminal_music_player.domain.shared.types import BlockFrames, ChannelCount, SampleRate

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class AudioBackendError(Exception):
    """Base class for decoder and output failures."""


class DecodeError(AudioBackendError):
    """A track could not be opened, read or repositioned."""


class DeviceError(AudioBackendError):
    """The output device could not be opened or written to."""


class AudioFormat(BaseModel):
    """PCM format shared by decoders and the output device."""

    model_config = ConfigDict(frozen=True)

    sample_rate: SampleRate = AudioConstants.DEFAULT_SAMPLE_RATE
    channels: ChannelCount = AudioConstants.DEFAULT_CHANNELS
    block_frames: BlockFrames = AudioConstants.DEFAULT_BLOCK_FRAMES

    @property
    def block_seconds(self) -> float:
        return self.block_frames / self.sample_rate


@dataclass(frozen=True, slots=True)
class AudioBlock:
    """A chunk of interleaved float32 PCM shaped ``(frames, channels)``.

    ``start`` and ``end`` are track positions in seconds.
    """

    pcm: np.ndarray
    start: float
    end: float

    @property
    def frames(self) -> int:
        return int(self.pcm.shape[0])

    @property
    def duration(self) -> float:
        return self.end - self.start

    def with_gain(self, gain: float) -> AudioBlock:
        if gain == 1.0:
            return self
        scaled = (self.pcm * np.float32(gain)).astype(np.float32, copy=False)
        return AudioBlock(pcm=scaled, start=self.start, end=self.end)


class AudioDecoder(ABC):
    """Decodes one track into PCM blocks of the output format."""

    @property
    @abstractmethod
    def duration(self) -> float | None:
        """Container-reported duration in seconds, if known."""
        ...

    @property
    @abstractmethod
    def position(self) -> float:
        """Position of the next block to be read, in seconds."""
        ...

    @abstractmethod
    def read_block(self) -> AudioBlock | None:
        """Return the next block, or None at end of stream.

        Raises:
            DecodeError: If the stream cannot be decoded.
        """
        ...

    @abstractmethod
    def seek(self, seconds: float) -> float:
        """Reposition the stream and return the position actually reached."""
        ...

    @abstractmethod
    def close(self) -> None:
        ...


class DecoderFactory(ABC):
    """Opens decoders for tracks."""

    @abstractmethod
    def open(self, track: "Track", audio_format: AudioFormat) -> AudioDecoder:
        """Open ``track`` for decoding into ``audio_format``.

        Raises:
            DecodeError: If the file is missing or has no decodable audio.
        """
        ...


class AudioOutput(ABC):
    """The device sink. ``write`` blocks until the device accepted the block."""

    @property
    @abstractmethod
    def audio_format(self) -> AudioFormat:
        ...

    @property
    @abstractmethod
    def is_open(self) -> bool:
        ...

    @abstractmethod
    def open(self) -> None:
        """Open the device.

        Raises:
            DeviceError: If the device is unavailable.
        """
        ...

    @abstractmethod
    def write(self, block: AudioBlock) -> None:
        """Write one block, blocking while the device buffer is full.

        Raises:
            DeviceError: If the device failed.
        """
        ...

    @abstractmethod
    def close(self) -> None:
        """Close the device. Must release a concurrently blocked ``write``."""
        ...
