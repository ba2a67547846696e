"""
Unit Tests for the Scrobble Tracker

Tests for:
- now_playing on TrackStarted
- Threshold-based scrobble submission on TrackFinished
- Failure isolation from the player
- Attaching to an event channel
"""

from unittest.mock import AsyncMock

import pytest

from terminal_music_player.application.services.scrobble_tracker import ScrobbleTracker
from terminal_music_player.domain.music.entities import Track
from terminal_music_player.domain.music.events import TrackFinished, TrackStarted
from terminal_music_player.domain.music.value_objects import TrackFinishReason
from terminal_music_player.domain.shared.events import EventChannel


@pytest.fixture
def scrobbler():
    mock = AsyncMock()
    mock.now_playing = AsyncMock()
    mock.scrobble = AsyncMock()
    return mock


@pytest.fixture
def tracker(scrobbler):
    return ScrobbleTracker(scrobbler=scrobbler)


@pytest.fixture
def track():
    return Track(path="/music/song.flac", title="Song", duration_seconds=300.0)


class TestScrobbleTracker:
    """Tests for ScrobbleTracker event handling."""

    @pytest.mark.asyncio
    async def test_now_playing_on_start(self, tracker, scrobbler, track):
        """Should announce the started track."""
        await tracker.handle_event(TrackStarted(track=track, duration=300.0))

        scrobbler.now_playing.assert_awaited_once_with(track)

    @pytest.mark.asyncio
    async def test_scrobbles_when_threshold_met(self, tracker, scrobbler, track):
        """Should scrobble after half the track with the start timestamp."""
        started = TrackStarted(track=track, duration=300.0)
        await tracker.handle_event(started)

        await tracker.handle_event(
            TrackFinished(
                track=track,
                elapsed=150.0,
                duration=300.0,
                reason=TrackFinishReason.SKIPPED,
            )
        )

        scrobbler.scrobble.assert_awaited_once_with(track, started.timestamp, 150.0)

    @pytest.mark.asyncio
    async def test_skips_short_listens(self, tracker, scrobbler, track):
        """Should not scrobble below the threshold."""
        await tracker.handle_event(TrackStarted(track=track, duration=300.0))

        await tracker.handle_event(TrackFinished(track=track, elapsed=20.0, duration=300.0))

        scrobbler.scrobble.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_four_minute_cap(self, tracker, scrobbler):
        """Should scrobble long tracks after four minutes."""
        long_track = Track(path="/music/long.flac", duration_seconds=1_200.0)

        await tracker.handle_event(
            TrackFinished(track=long_track, elapsed=240.0, duration=1_200.0)
        )

        scrobbler.scrobble.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_submission_failure_is_swallowed(self, tracker, scrobbler, track, caplog):
        """Should log and continue when the scrobbler fails."""
        scrobbler.scrobble.side_effect = ConnectionError("offline")

        await tracker.handle_event(TrackFinished(track=track, elapsed=200.0, duration=300.0))

        assert "Scrobble submission failed" in caplog.text

    @pytest.mark.asyncio
    async def test_attach_to_channel(self, tracker, scrobbler, track):
        """Should receive events published on the channel."""
        channel = EventChannel()
        tracker.attach(channel)
        assert tracker.is_attached

        channel.publish(TrackStarted(track=track, duration=300.0))
        channel.publish(TrackFinished(track=track, elapsed=299.0, duration=300.0))
        await channel.close()

        scrobbler.now_playing.assert_awaited_once()
        scrobbler.scrobble.assert_awaited_once()
