"""PyAV decoder adapter.

Demuxes one audio stream, resamples every frame to the output format and
re-chunks the result into fixed-size float32 blocks.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any

import av
import numpy as np

from terminal_music_player.application.interfaces.audio_backend import (
    AudioBlock,
    AudioDecoder,
    AudioFormat,
    DecodeError,
    DecoderFactory,
)
from terminal_music_player.domain.shared.constants import AudioConstants
from terminal_music_player.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from terminal_music_player.domain.music.entities import Track

logger = logging.getLogger(__name__)

_LAYOUTS = {1: "mono", 2: "stereo"}


def _to_frames_by_channels(arr: np.ndarray, channels: int) -> np.ndarray:
    """Return ``(frames, channels)`` float32 from a planar ``(channels, frames)`` array."""
    if arr.ndim == 1:
        arr = arr[None, :]
    pcm = np.ascontiguousarray(arr.T, dtype=np.float32)
    have = pcm.shape[1]
    if have == channels:
        return pcm
    if have > channels:
        return pcm[:, :channels]
    pad = np.zeros((pcm.shape[0], channels - have), dtype=np.float32)
    return np.concatenate([pcm, pad], axis=1)


class PyAVDecoder(AudioDecoder):
    """Decodes a single file. Not thread-safe; one worker thread at a time."""

    def __init__(self, track: Track, audio_format: AudioFormat) -> None:
        self._track = track
        self._format = audio_format
        self._container: Any = None
        self._stream: Any = None
        self._resampler: Any = None
        self._packets: Any = None
        self._pending: list[np.ndarray] = []
        self._pending_frames = 0
        self._base = 0.0
        self._emitted = 0
        self._discard_to: float | None = None
        self._discard_frames = 0
        self._eof = False
        self._duration: float | None = None
        self._open()

    # ---- AudioDecoder ----

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def position(self) -> float:
        return self._base + self._emitted / self._format.sample_rate

    def read_block(self) -> AudioBlock | None:
        block_frames = self._format.block_frames
        try:
            while self._pending_frames < block_frames and not self._eof:
                self._decode_more()
        except av.error.FFmpegError as e:
            raise DecodeError(
                ErrorMessages.DECODE_FAILED.format(path=self._track.path, error=e)
            ) from e

        if self._pending_frames == 0:
            return None

        pcm = np.concatenate(self._pending, axis=0) if len(self._pending) > 1 else self._pending[0]
        chunk, rest = pcm[:block_frames], pcm[block_frames:]
        self._pending = [rest] if rest.shape[0] else []
        self._pending_frames = int(rest.shape[0])

        start = self.position
        self._emitted += int(chunk.shape[0])
        return AudioBlock(pcm=chunk, start=start, end=self.position)

    def seek(self, seconds: float) -> float:
        target = max(0.0, seconds)
        if self._duration is not None:
            target = min(target, self._duration)
        try:
            self._container.seek(
                int(target / self._stream.time_base),
                stream=self._stream,
                any_frame=False,
                backward=True,
            )
        except av.error.FFmpegError as e:
            raise DecodeError(
                ErrorMessages.DECODE_FAILED.format(path=self._track.path, error=e)
            ) from e

        self._reset_pipeline()
        self._base = target
        self._emitted = 0
        self._discard_to = target
        self._discard_frames = 0
        return target

    def close(self) -> None:
        if self._container is None:
            return
        try:
            self._container.close()
        except av.error.FFmpegError as e:
            raise DecodeError(
                ErrorMessages.DECODE_FAILED.format(path=self._track.path, error=e)
            ) from e
        finally:
            self._container = None
            self._packets = None
            logger.debug(LogTemplates.DECODER_CLOSED, self._track.display_title)

    # ---- Internals ----

    def _open(self) -> None:
        path = self._track.file_path
        if not path.is_file():
            raise DecodeError(ErrorMessages.FILE_NOT_FOUND.format(path=path))
        if path.stat().st_size == 0:
            raise DecodeError(ErrorMessages.FILE_EMPTY.format(path=path))

        try:
            self._container = av.open(str(path))
        except (av.error.FFmpegError, OSError) as e:
            raise DecodeError(ErrorMessages.DECODE_FAILED.format(path=path, error=e)) from e

        self._stream = next((s for s in self._container.streams if s.type == "audio"), None)
        if self._stream is None:
            self._container.close()
            self._container = None
            raise DecodeError(ErrorMessages.NO_AUDIO_STREAM.format(path=path))

        self._duration = self._probe_duration()
        self._reset_pipeline()
        logger.debug(LogTemplates.DECODER_OPENED, self._track.display_title, self._duration)

    def _probe_duration(self) -> float | None:
        stream = self._stream
        if stream.duration is not None and stream.time_base is not None:
            return float(stream.duration * stream.time_base)
        if self._container.duration is not None:
            return self._container.duration / av.time_base
        return None

    def _reset_pipeline(self) -> None:
        channels = self._format.channels
        self._resampler = av.AudioResampler(
            format=AudioConstants.SAMPLE_FORMAT,
            layout=_LAYOUTS.get(channels, channels),
            rate=self._format.sample_rate,
        )
        self._packets = self._container.demux(self._stream)
        self._pending = []
        self._pending_frames = 0
        self._eof = False

    def _decode_more(self) -> None:
        packet = next(self._packets, None)
        if packet is None:
            self._eof = True
            self._push_resampled(self._resampler.resample(None))
            return
        for frame in packet.decode():
            if self._discard_to is not None:
                self._discard_frames = self._leading_discard(frame)
            frame.pts = None
            self._push_resampled(self._resampler.resample(frame))

    def _leading_discard(self, frame: Any) -> int:
        """Frames to drop after a keyframe seek landed before the target."""
        target, self._discard_to = self._discard_to, None
        if frame.pts is None or frame.time_base is None:
            return 0
        frame_start = float(frame.pts * frame.time_base)
        return max(0, int(round((target - frame_start) * self._format.sample_rate)))

    def _push_resampled(self, frames: list[Any]) -> None:
        for out_frame in frames:
            pcm = _to_frames_by_channels(out_frame.to_ndarray(), self._format.channels)
            if self._discard_frames > 0:
                dropped = min(self._discard_frames, pcm.shape[0])
                pcm = pcm[dropped:]
                self._discard_frames -= dropped
            if pcm.shape[0] == 0:
                continue
            self._pending.append(pcm)
            self._pending_frames += int(pcm.shape[0])


class PyAVDecoderFactory(DecoderFactory):
    """Opens :class:`PyAVDecoder` instances."""

    def open(self, track: Track, audio_format: AudioFormat) -> AudioDecoder:
        return PyAVDecoder(track, audio_format)
