"""
Unit Tests for Domain Music Layer

Tests for:
- Value Objects: PlaybackState, OrderingMode, RepeatMode
- Entities: Track, SavedQueue, PlaybackQueue (cursor maintenance and ordering)
"""

import random
from pathlib import Path

import pytest
from pydantic import ValidationError

from terminal_music_player.domain.music.entities import PlaybackQueue, SavedQueue, Track
from terminal_music_player.domain.music.value_objects import (
    OrderingMode,
    PlaybackState,
    RepeatMode,
)
from terminal_music_player.domain.shared.exceptions import QueueIndexInvalidError


def _track(name: str, duration: float | None = None) -> Track:
    return Track(path=f"/music/{name}", duration_seconds=duration)


def _queue(*names: str, seed: int = 1, **kwargs) -> PlaybackQueue:
    return PlaybackQueue(
        rng=random.Random(seed), tracks=[_track(n) for n in names], **kwargs
    )


def _names(tracks) -> list[str]:
    return [t.file_path.name for t in tracks]


# =============================================================================
# Value Object Tests
# =============================================================================


class TestPlaybackState:
    """Unit tests for PlaybackState transitions."""

    def test_idle_cannot_pause(self):
        """Should not allow IDLE -> PAUSED."""
        assert not PlaybackState.IDLE.can_transition_to(PlaybackState.PAUSED)

    def test_any_state_can_stop(self):
        """Should allow STOPPED from every state."""
        for state in PlaybackState:
            assert state.can_transition_to(PlaybackState.STOPPED)

    def test_stopped_cannot_pause(self):
        """Should require a loaded track to pause."""
        assert not PlaybackState.STOPPED.can_transition_to(PlaybackState.PAUSED)

    def test_is_active(self):
        """Should report PLAYING and PAUSED as active."""
        assert PlaybackState.PLAYING.is_active
        assert PlaybackState.PAUSED.is_active
        assert not PlaybackState.STOPPED.is_active
        assert not PlaybackState.IDLE.is_active


class TestModes:
    """Unit tests for ordering and repeat modes."""

    def test_ordering_toggle(self):
        """Should flip between SEQUENTIAL and RANDOM."""
        assert OrderingMode.SEQUENTIAL.toggled() == OrderingMode.RANDOM
        assert OrderingMode.RANDOM.toggled() == OrderingMode.SEQUENTIAL

    def test_repeat_cycle(self):
        """Should cycle OFF -> QUEUE -> TRACK -> OFF."""
        assert RepeatMode.OFF.next_mode() == RepeatMode.QUEUE
        assert RepeatMode.QUEUE.next_mode() == RepeatMode.TRACK
        assert RepeatMode.TRACK.next_mode() == RepeatMode.OFF


# =============================================================================
# Track Entity Tests
# =============================================================================


class TestTrack:
    """Unit tests for the Track entity."""

    def test_path_is_made_absolute(self, tmp_path, monkeypatch):
        """Should normalize relative paths to absolute ones."""
        monkeypatch.chdir(tmp_path)
        track = Track.from_path("song.mp3")
        assert track.path == str(Path.cwd() / "song.mp3")

    def test_empty_path_rejected(self):
        """Should reject an empty path."""
        with pytest.raises(ValidationError, match="cannot be empty"):
            Track(path="   ")

    def test_negative_duration_rejected(self):
        """Should reject a negative duration."""
        with pytest.raises(ValidationError):
            Track(path="/music/a.mp3", duration_seconds=-1)

    def test_display_title_falls_back_to_stem(self):
        """Should use the file name without extension when untagged."""
        assert _track("Intro.flac").display_title == "Intro"
        assert Track(path="/music/x.mp3", title="Song").display_title == "Song"

    def test_display_artist_fallback(self):
        """Should show Unknown Artist when untagged."""
        assert _track("a.mp3").display_artist == "Unknown Artist"

    def test_immutable(self):
        """Should not allow mutation after creation."""
        track = _track("a.mp3")
        with pytest.raises(ValidationError):
            track.title = "changed"

    def test_with_duration(self):
        """Should return a refined copy and keep identity by path."""
        track = _track("a.mp3")
        refined = track.with_duration(200.0)

        assert refined.duration_seconds == 200.0
        assert track.duration_seconds is None
        assert refined.same_file(track)
        assert track.with_duration(None) is track

    def test_duration_formatted(self):
        """Should format the duration as M:SS."""
        assert _track("a.mp3", 185).duration_formatted == "3:05"


# =============================================================================
# PlaybackQueue Tests
# =============================================================================


class TestQueueMutations:
    """Unit tests for structural queue mutations."""

    def test_new_queue_is_empty(self):
        """Should start empty with no cursor."""
        queue = PlaybackQueue()
        assert queue.is_empty
        assert queue.cursor is None
        assert queue.current is None
        assert queue.start_index() is None

    def test_cursor_must_be_in_range(self):
        """Should reject a cursor beyond the end."""
        with pytest.raises(QueueIndexInvalidError):
            PlaybackQueue(tracks=[_track("a.mp3")], cursor=3)

    def test_append_and_extend(self):
        """Should return the new index and the added count."""
        queue = _queue("a.mp3")
        assert queue.append(_track("b.mp3")) == 1
        assert queue.extend([_track("c.mp3"), _track("d.mp3")]) == 2
        assert queue.extend([]) == 0
        assert queue.length == 4

    def test_remove_before_cursor_shifts_it(self):
        """Should keep the cursor on the same track."""
        queue = _queue("a.mp3", "b.mp3", "c.mp3")
        queue.jump_to(2)

        queue.remove_at(0)

        assert queue.cursor == 1
        assert queue.current.file_path.name == "c.mp3"

    def test_remove_at_cursor_keeps_index(self):
        """Should point at the track that took the removed one's place."""
        queue = _queue("a.mp3", "b.mp3", "c.mp3")
        queue.jump_to(1)

        removed = queue.remove_at(1)

        assert removed.file_path.name == "b.mp3"
        assert queue.cursor == 1
        assert queue.current.file_path.name == "c.mp3"

    def test_remove_last_at_cursor_clamps(self):
        """Should clamp the cursor to the new end."""
        queue = _queue("a.mp3", "b.mp3")
        queue.jump_to(1)

        queue.remove_at(1)

        assert queue.cursor == 0

    def test_remove_only_track_clears_cursor(self):
        """Should drop the cursor when the queue becomes empty."""
        queue = _queue("a.mp3")
        queue.jump_to(0)

        queue.remove_at(0)

        assert queue.cursor is None

    def test_remove_invalid_index(self):
        """Should raise QueueIndexInvalidError."""
        queue = _queue("a.mp3")
        with pytest.raises(QueueIndexInvalidError) as exc_info:
            queue.remove_at(5)
        assert exc_info.value.code == "QUEUE_INDEX_INVALID"

    @pytest.mark.parametrize(
        ("cursor", "src", "dst", "expected"),
        [
            (0, 0, 2, 2),  # moving the current track
            (1, 0, 2, 0),  # current shifts down
            (1, 2, 0, 2),  # current shifts up
            (0, 1, 2, 0),  # unaffected
        ],
    )
    def test_move_keeps_cursor_on_track(self, cursor, src, dst, expected):
        """Should keep the cursor on the same track after a move."""
        queue = _queue("a.mp3", "b.mp3", "c.mp3")
        queue.jump_to(cursor)
        current = queue.current

        queue.move(src, dst)

        assert queue.cursor == expected
        assert queue.current == current

    def test_clear(self):
        """Should remove everything and reset the cursor."""
        queue = _queue("a.mp3", "b.mp3")
        queue.jump_to(1)

        assert queue.clear() == 2
        assert queue.is_empty
        assert queue.cursor is None

    def test_refine_requires_same_file(self):
        """Should refuse to replace an entry with another file."""
        queue = _queue("a.mp3")
        queue.refine(0, _track("a.mp3", 10.0))
        assert queue.get(0).duration_seconds == 10.0

        with pytest.raises(ValueError):
            queue.refine(0, _track("b.mp3"))

    def test_index_of(self):
        """Should locate tracks by path."""
        queue = _queue("a.mp3", "b.mp3")
        assert queue.index_of(_track("b.mp3", 99.0)) == 1
        assert queue.index_of(_track("z.mp3")) is None


class TestSequentialOrdering:
    """Unit tests for sequential Next/Previous."""

    def test_advance_from_unset_cursor(self):
        """Should start at index 0."""
        queue = _queue("a.mp3", "b.mp3")
        assert queue.advance().file_path.name == "a.mp3"

    def test_advance_past_end(self):
        """Should return None and keep the cursor at the end."""
        queue = _queue("a.mp3", "b.mp3")
        queue.jump_to(1)

        assert queue.advance() is None
        assert queue.cursor == 1

    def test_retreat_before_start(self):
        """Should return None at the first track."""
        queue = _queue("a.mp3", "b.mp3")
        queue.jump_to(0)

        assert queue.retreat() is None
        assert queue.cursor == 0

    def test_repeat_queue_wraps_both_ways(self):
        """Should wrap past either end with repeat QUEUE."""
        queue = _queue("a.mp3", "b.mp3", "c.mp3", repeat=RepeatMode.QUEUE)
        queue.jump_to(2)

        assert queue.advance().file_path.name == "a.mp3"
        assert queue.retreat().file_path.name == "c.mp3"

    def test_peek_next_does_not_move(self):
        """Should report the next index without moving."""
        queue = _queue("a.mp3", "b.mp3")
        queue.jump_to(0)

        assert queue.peek_next() == 1
        assert queue.cursor == 0


class TestRandomOrdering:
    """Unit tests for the shuffle rotation."""

    def test_rotation_visits_each_track_once(self):
        """Should visit every index exactly once, then exhaust."""
        queue = _queue(*[f"{i}.mp3" for i in range(10)], mode=OrderingMode.RANDOM)

        visited = []
        while (track := queue.advance()) is not None:
            visited.append(track.file_path.name)

        assert sorted(visited) == sorted(f"{i}.mp3" for i in range(10))
        assert len(visited) == 10

    def test_rotation_is_seedable(self):
        """Should produce the same permutation for the same seed."""
        a = _queue(*[f"{i}.mp3" for i in range(10)], seed=42, mode=OrderingMode.RANDOM)
        b = _queue(*[f"{i}.mp3" for i in range(10)], seed=42, mode=OrderingMode.RANDOM)
        assert a.rotation == b.rotation

    def test_entering_random_anchors_current_track(self):
        """Should start the rotation at the current track."""
        queue = _queue(*[f"{i}.mp3" for i in range(6)])
        queue.jump_to(3)

        queue.set_mode(OrderingMode.RANDOM)

        assert queue.rotation[0] == 3
        rest = [queue.advance() for _ in range(5)]
        assert 3 not in [queue.index_of(t) for t in rest]
        assert queue.advance() is None

    def test_jump_keeps_unplayed_tracks_ahead(self):
        """Should still visit every track after jumping deep into the rotation."""
        queue = _queue(*[f"{i}.mp3" for i in range(6)], seed=7, mode=OrderingMode.RANDOM)
        target = queue.rotation[4]

        queue.jump_to(target)
        visited = [target]
        while (track := queue.advance()) is not None:
            visited.append(queue.index_of(track))

        assert sorted(visited) == list(range(6))

    def test_jump_after_advancing_keeps_played_prefix(self):
        """Should leave already played tracks behind and the rest ahead."""
        queue = _queue(*[f"{i}.mp3" for i in range(6)], seed=3, mode=OrderingMode.RANDOM)
        played = [queue.index_of(queue.advance()) for _ in range(2)]
        target = queue.rotation[5]

        queue.jump_to(target)

        assert queue.rotation[:3] == [*played, target]
        rest = []
        while (track := queue.advance()) is not None:
            rest.append(queue.index_of(track))
        assert sorted([*played, target, *rest]) == list(range(6))
        assert queue.retreat() is not None

    def test_retreat_is_stable(self):
        """Should step back through the same permutation."""
        queue = _queue(*[f"{i}.mp3" for i in range(6)], mode=OrderingMode.RANDOM)
        forward = [queue.advance() for _ in range(4)]

        backward = [queue.retreat() for _ in range(3)]

        assert backward == list(reversed(forward[:3]))
        assert queue.retreat() is None

    def test_mutation_regenerates_rotation(self):
        """Should include new tracks in a fresh rotation anchored at the cursor."""
        queue = _queue("a.mp3", "b.mp3", "c.mp3", mode=OrderingMode.RANDOM)
        first = queue.advance()

        queue.append(_track("d.mp3"))

        assert sorted(queue.rotation) == [0, 1, 2, 3]
        assert queue.rotation[0] == queue.index_of(first)

    def test_repeat_queue_starts_new_rotation(self):
        """Should begin a new rotation that does not repeat the last track first."""
        queue = _queue(*[f"{i}.mp3" for i in range(4)], mode=OrderingMode.RANDOM)
        queue.set_repeat(RepeatMode.QUEUE)
        for _ in range(4):
            queue.advance()
        last = queue.cursor

        nxt = queue.advance()

        assert nxt is not None
        assert queue.cursor != last

    def test_reshuffle_only_in_random(self):
        """Should refuse to reshuffle a sequential queue."""
        queue = _queue("a.mp3", "b.mp3")
        assert queue.reshuffle() is False
        queue.set_mode(OrderingMode.RANDOM)
        assert queue.reshuffle() is True

    def test_repeat_track_disables_random(self):
        """Should switch to sequential when repeat TRACK is chosen."""
        queue = _queue("a.mp3", mode=OrderingMode.RANDOM)
        queue.set_repeat(RepeatMode.TRACK)
        assert queue.mode == OrderingMode.SEQUENTIAL

    def test_random_disables_repeat_track(self):
        """Should turn repeat TRACK off when random is chosen."""
        queue = _queue("a.mp3", repeat=RepeatMode.TRACK)
        queue.set_mode(OrderingMode.RANDOM)
        assert queue.repeat == RepeatMode.OFF


class TestSavedQueue:
    """Unit tests for converting to the persisted form."""

    def test_to_saved(self):
        """Should carry tracks, cursor, modes and volume."""
        queue = _queue("a.mp3", "b.mp3", repeat=RepeatMode.QUEUE)
        queue.jump_to(1)

        saved = queue.to_saved(volume=0.3)

        assert _names(saved.tracks) == ["a.mp3", "b.mp3"]
        assert saved.cursor == 1
        assert saved.mode == OrderingMode.SEQUENTIAL
        assert saved.repeat == RepeatMode.QUEUE
        assert saved.volume == 0.3

    def test_saved_queue_is_frozen(self):
        """Should reject assignment."""
        saved = SavedQueue(tracks=[_track("a.mp3")], cursor=4)
        with pytest.raises(ValidationError):
            saved.cursor = 0
