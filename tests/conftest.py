"""Shared fixtures: in-memory audio fakes, an event recorder and a controller."""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable

import numpy as np
import pytest
import pytest_asyncio

from terminal_music_player.application.interfaces.audio_backend import (
    AudioBlock,
    AudioDecoder,
    AudioFormat,
    AudioOutput,
    DecodeError,
    DecoderFactory,
    DeviceError,
)
from terminal_music_player.domain.music.entities import PlaybackQueue, Track

# ============================================================================
# Audio fakes
# ============================================================================

# One-second blocks keep positions in whole seconds.
FAKE_FORMAT = AudioFormat(sample_rate=8000, channels=2, block_frames=8000)


class FakeDecoder(AudioDecoder):
    """Produces constant one-second blocks up to ``duration``."""

    def __init__(
        self,
        track: Track,
        audio_format: AudioFormat,
        duration: float | None,
        read_failures: int = 0,
    ) -> None:
        self.track = track
        self._format = audio_format
        self._duration = duration
        self._position = 0.0
        self.read_failures = read_failures
        self.reads = 0
        self.seeks: list[float] = []
        self.closed = False

    @property
    def duration(self) -> float | None:
        return self._duration

    @property
    def position(self) -> float:
        return self._position

    def read_block(self) -> AudioBlock | None:
        if self.read_failures > 0:
            self.read_failures -= 1
            raise DecodeError(f"corrupt frame in {self.track.path}")
        limit = self._duration if self._duration is not None else float("inf")
        if self._position >= limit:
            return None
        self.reads += 1
        start = self._position
        end = min(start + self._format.block_seconds, limit)
        self._position = end
        pcm = np.ones((4, self._format.channels), dtype=np.float32)
        return AudioBlock(pcm=pcm, start=start, end=end)

    def seek(self, seconds: float) -> float:
        self.seeks.append(seconds)
        self._position = seconds
        return seconds

    def close(self) -> None:
        self.closed = True


class FakeDecoderFactory(DecoderFactory):
    """Opens :class:`FakeDecoder` with per-file durations and scripted failures.

    ``open_failures`` maps a file name to how many opens fail before one
    succeeds (``-1`` fails forever); ``read_failures`` scripts mid-stream
    read errors the same way.
    """

    def __init__(
        self,
        durations: dict[str, float | None] | None = None,
        open_failures: dict[str, int] | None = None,
        read_failures: dict[str, int] | None = None,
        default_duration: float | None = 180.0,
    ) -> None:
        self.durations = durations or {}
        self.open_failures = dict(open_failures or {})
        self.read_failures = dict(read_failures or {})
        self.default_duration = default_duration
        self.opened: list[str] = []
        self.decoders: list[FakeDecoder] = []

    def open(self, track: Track, audio_format: AudioFormat) -> AudioDecoder:
        name = track.file_path.name
        self.opened.append(name)
        remaining = self.open_failures.get(name, 0)
        if remaining:
            if remaining > 0:
                self.open_failures[name] = remaining - 1
            raise DecodeError(f"cannot open {name}")
        decoder = FakeDecoder(
            track,
            audio_format,
            self.durations.get(name, self.default_duration),
            read_failures=self.read_failures.get(name, 0),
        )
        self.decoders.append(decoder)
        return decoder


class FakeOutput(AudioOutput):
    """Records written blocks.

    With ``gated=True`` every write waits for a permit from :meth:`release`,
    which lets a test hold playback at an exact position. ``close`` releases
    a blocked write.
    """

    def __init__(
        self,
        audio_format: AudioFormat = FAKE_FORMAT,
        *,
        gated: bool = False,
        fail_open: bool = False,
        fail_writes: bool = False,
    ) -> None:
        self._format = audio_format
        self._gate = threading.Semaphore(0) if gated else None
        self._open = False
        self._closed_event = threading.Event()
        self.fail_open = fail_open
        self.fail_writes = fail_writes
        self.blocks: list[AudioBlock] = []
        self.open_count = 0
        self.close_count = 0

    @property
    def audio_format(self) -> AudioFormat:
        return self._format

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        if self.fail_open:
            raise DeviceError("no such device")
        self._open = True
        self._closed_event.clear()
        self.open_count += 1

    def write(self, block: AudioBlock) -> None:
        if self.fail_writes:
            raise DeviceError("device unplugged")
        if self._gate is not None:
            while not self._gate.acquire(timeout=0.01):
                if self._closed_event.is_set():
                    return
        self.blocks.append(block)

    def close(self) -> None:
        self._open = False
        self._closed_event.set()
        self.close_count += 1

    def release(self, blocks: int) -> None:
        """Allow ``blocks`` more writes to complete."""
        assert self._gate is not None
        for _ in range(blocks):
            self._gate.release()


# ============================================================================
# Helpers
# ============================================================================


def make_track(name: str, duration: float | None = None, **tags) -> Track:
    return Track(path=f"/music/{name}", duration_seconds=duration, **tags)


async def wait_for(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll ``predicate`` until it holds or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(0.005)


class EventRecorder:
    """Collects every event published on a channel."""

    def __init__(self, channel) -> None:
        self.subscription = channel.subscribe(capacity=100_000, name="recorder")
        self.events: list = []

    def collect(self) -> list:
        self.events.extend(self.subscription.drain())
        return self.events

    def of(self, event_type) -> list:
        return [e for e in self.collect() if isinstance(e, event_type)]

    def names(self) -> list[str]:
        return [e.event_type for e in self.collect()]


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def audio_format():
    return FAKE_FORMAT


@pytest.fixture
def decoder_factory():
    return FakeDecoderFactory()


@pytest.fixture
def output():
    return FakeOutput(gated=True)


@pytest.fixture
def queue():
    import random

    return PlaybackQueue(rng=random.Random(7))


@pytest.fixture
def channel():
    from terminal_music_player.domain.shared.events import EventChannel

    return EventChannel(default_capacity=256)


@pytest.fixture
def recorder(channel):
    return EventRecorder(channel)


@pytest_asyncio.fixture
async def controller(decoder_factory, output, channel, queue):
    """A started controller on fakes, emitting a position event per block."""
    from terminal_music_player.application.services.playback_controller import (
        PlaybackController,
    )

    ctrl = PlaybackController(
        decoder_factory=decoder_factory,
        output=output,
        channel=channel,
        queue=queue,
        volume=0.5,
        decode_retries=1,
        position_interval=0.0,
    )
    await ctrl.start()
    yield ctrl
    await ctrl.shutdown()
    await channel.close()


@pytest_asyncio.fixture
async def in_memory_database():
    """Create an in-memory SQLite database for testing."""
    from terminal_music_player.infrastructure.persistence.database import Database

    db = Database(":memory:")
    await db.initialize()
    yield db
    await db.close()


@pytest_asyncio.fixture
async def queue_repository(in_memory_database):
    """Create a queue repository with in-memory database."""
    from terminal_music_player.infrastructure.persistence.repositories.queue_repository import (
        SQLiteQueueRepository,
    )

    return SQLiteQueueRepository(in_memory_database)
