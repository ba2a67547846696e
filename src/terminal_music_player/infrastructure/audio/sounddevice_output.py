"""sounddevice output adapter.

Uses a blocking ``OutputStream.write`` so the delivery loop is naturally
paced by the device.
"""

from __future__ import annotations

import logging
import threading
from typing import Any

import numpy as np
import sounddevice as sd

from terminal_music_player.application.interfaces.audio_backend import (
    AudioBlock,
    AudioFormat,
    AudioOutput,
    DeviceError,
)
from terminal_music_player.domain.shared.constants import AudioConstants
from terminal_music_player.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)


def _parse_device(device: str | None) -> int | str | None:
    """Numeric device names select by index, anything else by name substring."""
    if device is None or not device.strip():
        return None
    device = device.strip()
    return int(device) if device.isdigit() else device


class SoundDeviceOutput(AudioOutput):
    """PortAudio sink. The controller opens it before the first write."""

    def __init__(self, audio_format: AudioFormat, device: str | None = None) -> None:
        self._format = audio_format
        self._device = _parse_device(device)
        self._stream: Any = None
        self._lock = threading.Lock()

    @property
    def audio_format(self) -> AudioFormat:
        return self._format

    @property
    def is_open(self) -> bool:
        return self._stream is not None

    def open(self) -> None:
        with self._lock:
            if self._stream is not None:
                return
            try:
                stream = sd.OutputStream(
                    samplerate=self._format.sample_rate,
                    channels=self._format.channels,
                    dtype=AudioConstants.OUTPUT_DTYPE,
                    device=self._device,
                    blocksize=self._format.block_frames,
                )
                stream.start()
            except (sd.PortAudioError, ValueError) as e:
                raise DeviceError(ErrorMessages.DEVICE_FAILED.format(error=e)) from e
            self._stream = stream

        logger.info(
            LogTemplates.DEVICE_OPENED,
            self._device if self._device is not None else "default",
            self._format.sample_rate,
            self._format.channels,
        )

    def write(self, block: AudioBlock) -> None:
        stream = self._stream
        if stream is None:
            raise DeviceError(ErrorMessages.DEVICE_FAILED.format(error="stream is not open"))
        pcm = np.ascontiguousarray(block.pcm, dtype=np.float32)
        try:
            underflowed = stream.write(pcm)
        except sd.PortAudioError as e:
            # A concurrent close() aborts the stream and releases the blocked write.
            if self._stream is None:
                return
            raise DeviceError(ErrorMessages.DEVICE_FAILED.format(error=e)) from e
        if underflowed:
            logger.debug(LogTemplates.DEVICE_UNDERFLOW)

    def close(self) -> None:
        with self._lock:
            stream, self._stream = self._stream, None
        if stream is None:
            return
        try:
            stream.abort()
            stream.close()
        except sd.PortAudioError as e:
            logger.warning(LogTemplates.DEVICE_ERROR, e)
        logger.info(LogTemplates.DEVICE_CLOSED)
