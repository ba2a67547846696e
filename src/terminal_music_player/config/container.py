"""Dependency Injection Container

Manages the application's dependency graph, providing lazy initialization
and lifecycle management for the event channel, the audio adapters, the
playback controller and the persisted queue.
Components are created on-demand and cached for reuse throughout the application.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import TYPE_CHECKING

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from ..application.interfaces.audio_backend import AudioOutput, DecoderFactory
    from ..application.interfaces.scrobbler import Scrobbler
    from ..application.services.playback_controller import PlaybackController
    from ..application.services.scrobble_tracker import ScrobbleTracker
    from ..domain.music.entities import PlaybackQueue
    from ..domain.music.repository import QueueRepository
    from ..domain.shared.events import EventChannel
    from ..infrastructure.persistence.database import Database
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    This container manages all application dependencies and their lifecycle.
    Components are lazily initialized when first accessed. Tests override
    adapters by assigning the private slots before first access.
    """

    settings: Settings
    scrobbler: Scrobbler | None = None

    # Persistence layer
    _database: Database | None = None
    _queue_repository: QueueRepository | None = None

    # Infrastructure adapters
    _decoder_factory: DecoderFactory | None = None
    _output: AudioOutput | None = None

    # Domain
    _event_channel: EventChannel | None = None
    _queue: PlaybackQueue | None = None

    # Application services
    _controller: PlaybackController | None = None
    _scrobble_tracker: ScrobbleTracker | None = None

    # === Database ===

    @property
    def database(self) -> Database:
        """Get the database connection manager."""
        if self._database is None:
            from ..infrastructure.persistence.database import Database

            self._database = Database(self.settings.database.url, settings=self.settings.database)
        return self._database

    # === Repositories ===

    @property
    def queue_repository(self) -> QueueRepository:
        """Get the persisted queue repository."""
        if self._queue_repository is None:
            from ..infrastructure.persistence.repositories.queue_repository import (
                SQLiteQueueRepository,
            )

            self._queue_repository = SQLiteQueueRepository(self.database)
        return self._queue_repository

    # === Infrastructure Adapters ===

    @property
    def decoder_factory(self) -> DecoderFactory:
        """Get the audio decoder factory."""
        if self._decoder_factory is None:
            from ..infrastructure.audio.pyav_decoder import PyAVDecoderFactory

            self._decoder_factory = PyAVDecoderFactory()
        return self._decoder_factory

    @property
    def output(self) -> AudioOutput:
        """Get the output device adapter."""
        if self._output is None:
            from ..application.interfaces.audio_backend import AudioFormat
            from ..infrastructure.audio.sounddevice_output import SoundDeviceOutput

            audio = self.settings.audio
            audio_format = AudioFormat(
                sample_rate=audio.sample_rate,
                channels=audio.channels,
                block_frames=audio.block_frames,
            )
            self._output = SoundDeviceOutput(audio_format, device=audio.device)
        return self._output

    # === Domain ===

    @property
    def event_channel(self) -> EventChannel:
        """Get the player event channel."""
        if self._event_channel is None:
            from ..domain.shared.events import EventChannel

            self._event_channel = EventChannel(self.settings.events.subscriber_capacity)
        return self._event_channel

    @property
    def queue(self) -> PlaybackQueue:
        """Get the playback queue seeded with the configured ordering defaults."""
        if self._queue is None:
            from ..domain.music.entities import PlaybackQueue

            queue_settings = self.settings.queue
            rng = (
                random.Random(queue_settings.random_seed)
                if queue_settings.random_seed is not None
                else None
            )
            self._queue = PlaybackQueue(
                rng=rng,
                mode=queue_settings.ordering_mode,
                repeat=queue_settings.repeat_mode,
            )
        return self._queue

    # === Application Services ===

    @property
    def controller(self) -> PlaybackController:
        """Get the playback controller."""
        if self._controller is None:
            from ..application.services.playback_controller import PlaybackController

            self._controller = PlaybackController(
                decoder_factory=self.decoder_factory,
                output=self.output,
                channel=self.event_channel,
                queue=self.queue,
                volume=self.settings.audio.default_volume,
                decode_retries=self.settings.audio.decode_retries,
                position_interval=self.settings.events.position_interval_seconds,
            )
        return self._controller

    @property
    def scrobble_tracker(self) -> ScrobbleTracker | None:
        """Get the scrobble tracker, or None when no scrobbler is configured."""
        if self.scrobbler is None:
            return None
        if self._scrobble_tracker is None:
            from ..application.services.scrobble_tracker import ScrobbleTracker

            self._scrobble_tracker = ScrobbleTracker(scrobbler=self.scrobbler)
        return self._scrobble_tracker

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Initialize all async resources."""
        await self.database.initialize()

        tracker = self.scrobble_tracker
        if tracker is not None:
            tracker.attach(self.event_channel)

        await self.controller.start()

    async def shutdown(self) -> None:
        """Shutdown and cleanup all resources."""
        if self._controller is not None:
            await self._controller.shutdown()

        try:
            if self._scrobble_tracker is not None and self._event_channel is not None:
                await self._scrobble_tracker.detach(self._event_channel)
        except Exception as exc:
            logger.warning("Failed detaching scrobble tracker: %r", exc)

        if self._event_channel is not None:
            await self._event_channel.close()

        if self._database is not None:
            await self._database.close()


def create_container(settings: Settings, scrobbler: Scrobbler | None = None) -> Container:
    """Create a new dependency injection container."""
    return Container(settings, scrobbler=scrobbler)
