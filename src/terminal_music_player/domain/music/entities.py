"""Core domain entities for the music bounded context."""

from __future__ import annotations

import random
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator

from terminal_music_player.domain.music.value_objects import OrderingMode, RepeatMode
from terminal_music_player.domain.shared.datetime_utils import format_seconds
from terminal_music_player.domain.shared.exceptions import QueueIndexInvalidError
from terminal_music_player.domain.shared.messages import ErrorMessages
from terminal_music_player.domain.shared.types import (
    DurationSeconds,
    NonEmptyStr,
    QueueIndex,
    TrackTitleStr,
    VolumeLevel,
)


class Track(BaseModel):
    """Immutable reference to a playable audio file.

    The absolute path is the identity; tags are display-only.
    """

    model_config = ConfigDict(frozen=True)

    path: NonEmptyStr
    title: TrackTitleStr | None = None
    artist: NonEmptyStr | None = None
    album: NonEmptyStr | None = None
    duration_seconds: DurationSeconds | None = None

    @field_validator("path", mode="before")
    @classmethod
    def normalize_path(cls, v: Any) -> Any:
        if isinstance(v, Path):
            v = str(v)
        if isinstance(v, str):
            if not v.strip():
                raise ValueError(ErrorMessages.EMPTY_TRACK_PATH)
            return str(Path(v).expanduser().absolute())
        return v

    @classmethod
    def from_path(cls, path: str | Path, **tags: Any) -> Track:
        return cls(path=str(path), **tags)

    @property
    def file_path(self) -> Path:
        return Path(self.path)

    @property
    def display_title(self) -> str:
        """Title tag, falling back to the file name without extension."""
        if self.title:
            return self.title
        return self.file_path.stem

    @property
    def display_artist(self) -> str:
        return self.artist or "Unknown Artist"

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        return format_seconds(self.duration_seconds)

    def with_duration(self, seconds: float | None) -> Track:
        """Return a copy refined with the decoder-reported duration."""
        if seconds is None or seconds == self.duration_seconds:
            return self
        return self.model_copy(update={"duration_seconds": float(seconds)})

    def same_file(self, other: Track) -> bool:
        return self.path == other.path


class SavedQueue(BaseModel):
    """Serializable queue state restored between runs."""

    model_config = ConfigDict(frozen=True)

    tracks: list[Track] = Field(default_factory=list)
    cursor: QueueIndex | None = None
    mode: OrderingMode = OrderingMode.SEQUENTIAL
    repeat: RepeatMode = RepeatMode.OFF
    volume: VolumeLevel = 0.5


class PlaybackQueue(BaseModel):
    """Ordered tracks plus a cursor and an ordering policy.

    Insertion order is the canonical playlist order. In RANDOM mode a realized
    permutation of the indices is walked forward by ``advance`` and backward by
    ``retreat``, so every track is visited exactly once per rotation and
    back-and-forth is stable. Structural mutations regenerate the permutation.
    """

    model_config = ConfigDict(validate_assignment=True)

    tracks: list[Track] = Field(default_factory=list)
    cursor: QueueIndex | None = None
    mode: OrderingMode = OrderingMode.SEQUENTIAL
    repeat: RepeatMode = RepeatMode.OFF

    _rng: random.Random = PrivateAttr(default_factory=random.Random)
    _order: list[int] = PrivateAttr(default_factory=list)
    _order_pos: int | None = PrivateAttr(default=None)

    def __init__(self, *, rng: random.Random | None = None, **data: Any) -> None:
        super().__init__(**data)
        if rng is not None:
            self._rng = rng
        if self.mode == OrderingMode.RANDOM:
            self._reshuffle(anchor=self.cursor)

    @model_validator(mode="after")
    def _check_cursor(self) -> PlaybackQueue:
        if self.cursor is not None and self.cursor >= len(self.tracks):
            raise QueueIndexInvalidError(self.cursor, len(self.tracks))
        return self

    def to_saved(self, volume: float) -> SavedQueue:
        return SavedQueue(
            tracks=list(self.tracks),
            cursor=self.cursor,
            mode=self.mode,
            repeat=self.repeat,
            volume=volume,
        )

    # ---- Read access ----

    @property
    def length(self) -> int:
        return len(self.tracks)

    @property
    def is_empty(self) -> bool:
        return not self.tracks

    @property
    def current(self) -> Track | None:
        if self.cursor is None:
            return None
        return self.tracks[self.cursor]

    @property
    def rotation(self) -> list[int]:
        """The realized shuffle permutation (empty in SEQUENTIAL mode)."""
        return list(self._order)

    def get(self, index: int) -> Track:
        self._check_index(index)
        return self.tracks[index]

    def index_of(self, track: Track) -> int | None:
        for index, queued in enumerate(self.tracks):
            if queued.same_file(track):
                return index
        return None

    def start_index(self) -> int | None:
        """Index a bare Play starts from: the cursor, else the first in order."""
        if not self.tracks:
            return None
        if self.cursor is not None:
            return self.cursor
        if self.mode == OrderingMode.RANDOM and self._order:
            return self._order[0]
        return 0

    # ---- Structural mutations ----

    def append(self, track: Track) -> int:
        """Add a track to the end and return its index."""
        self.tracks.append(track)
        self._structure_changed()
        return len(self.tracks) - 1

    def extend(self, tracks: Iterable[Track]) -> int:
        """Bulk-append tracks (playlist load) and return how many were added."""
        added = list(tracks)
        if not added:
            return 0
        self.tracks.extend(added)
        self._structure_changed()
        return len(added)

    def remove_at(self, index: int) -> Track:
        """Remove the track at index, keeping the cursor on a sensible entry."""
        self._check_index(index)
        removed = self.tracks.pop(index)

        if self.cursor is not None:
            if not self.tracks:
                self.cursor = None
            elif index < self.cursor:
                self.cursor -= 1
            elif index == self.cursor and self.cursor >= len(self.tracks):
                self.cursor = len(self.tracks) - 1

        self._structure_changed()
        return removed

    def move(self, from_index: int, to_index: int) -> None:
        """Move a track, keeping the cursor on the same track."""
        self._check_index(from_index)
        self._check_index(to_index)
        if from_index == to_index:
            return

        current = self.current
        track = self.tracks.pop(from_index)
        self.tracks.insert(to_index, track)

        if current is not None:
            if self.cursor == from_index:
                self.cursor = to_index
            elif from_index < self.cursor <= to_index:
                self.cursor -= 1
            elif to_index <= self.cursor < from_index:
                self.cursor += 1

        self._structure_changed()

    def refine(self, index: int, track: Track) -> None:
        """Replace an entry with a refined copy of the same file (e.g. a known duration)."""
        self._check_index(index)
        if not self.tracks[index].same_file(track):
            raise ValueError(f"Cannot refine index {index} with a different file")
        self.tracks[index] = track

    def clear(self) -> int:
        """Remove all tracks and return the count removed."""
        count = len(self.tracks)
        self.tracks.clear()
        self.cursor = None
        self._order = []
        self._order_pos = None
        return count

    # ---- Cursor and policy ----

    def jump_to(self, index: int) -> Track:
        self._check_index(index)
        self.cursor = index
        if self.mode == OrderingMode.RANDOM:
            self._place_in_rotation(index)
        return self.tracks[index]

    def set_mode(self, mode: OrderingMode) -> None:
        self.mode = mode
        if mode == OrderingMode.RANDOM:
            if self.repeat == RepeatMode.TRACK:
                self.repeat = RepeatMode.OFF
            self._reshuffle(anchor=self.cursor)
        else:
            self._order = []
            self._order_pos = None

    def set_repeat(self, repeat: RepeatMode) -> None:
        self.repeat = repeat
        if repeat == RepeatMode.TRACK and self.mode == OrderingMode.RANDOM:
            self.set_mode(OrderingMode.SEQUENTIAL)

    def reshuffle(self) -> bool:
        """Start a new rotation beginning at the current track.

        Returns False in SEQUENTIAL mode, where there is nothing to reshuffle.
        """
        if self.mode != OrderingMode.RANDOM:
            return False
        self._reshuffle(anchor=self.cursor)
        return True

    def peek_next(self) -> int | None:
        """Index ``advance`` would move to, without moving."""
        if not self.tracks:
            return None

        if self.mode == OrderingMode.RANDOM:
            if self._order_pos is None:
                return self._order[0]
            if self._order_pos + 1 < len(self._order):
                return self._order[self._order_pos + 1]
            return None

        if self.cursor is None:
            return 0
        if self.cursor + 1 < len(self.tracks):
            return self.cursor + 1
        if self.repeat == RepeatMode.QUEUE:
            return 0
        return None

    def advance(self) -> Track | None:
        """Move the cursor forward per the ordering policy.

        Returns None (cursor unchanged) when the queue is exhausted.
        """
        if not self.tracks:
            return None

        if self.mode == OrderingMode.RANDOM:
            nxt = self.peek_next()
            if nxt is None:
                if self.repeat != RepeatMode.QUEUE:
                    return None
                self._new_rotation()
                self.cursor = self._order[0]
                return self.current
            self._order_pos = 0 if self._order_pos is None else self._order_pos + 1
            self.cursor = nxt
            return self.current

        nxt = self.peek_next()
        if nxt is None:
            return None
        self.cursor = nxt
        return self.current

    def retreat(self) -> Track | None:
        """Move the cursor backward per the ordering policy."""
        if not self.tracks or self.cursor is None:
            return None

        if self.mode == OrderingMode.RANDOM:
            if self._order_pos is None or self._order_pos == 0:
                if self.repeat != RepeatMode.QUEUE:
                    return None
                self._order_pos = len(self._order) - 1
            else:
                self._order_pos -= 1
            self.cursor = self._order[self._order_pos]
            return self.current

        if self.cursor > 0:
            self.cursor -= 1
        elif self.repeat == RepeatMode.QUEUE:
            self.cursor = len(self.tracks) - 1
        else:
            return None
        return self.current

    # ---- Internals ----

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.tracks):
            raise QueueIndexInvalidError(index, len(self.tracks))

    def _structure_changed(self) -> None:
        if self.mode == OrderingMode.RANDOM:
            self._reshuffle(anchor=self.cursor)

    def _reshuffle(self, anchor: int | None) -> None:
        order = list(range(len(self.tracks)))
        self._rng.shuffle(order)
        if anchor is not None and anchor in order:
            order.remove(anchor)
            order.insert(0, anchor)
            self._order_pos = 0
        else:
            self._order_pos = None
        self._order = order

    def _new_rotation(self) -> None:
        previous = self.cursor
        self._reshuffle(anchor=None)
        # Avoid replaying the last track of the previous rotation back to back.
        if len(self._order) > 1 and self._order[0] == previous:
            self._order[0], self._order[1] = self._order[1], self._order[0]
        self._order_pos = 0

    def _place_in_rotation(self, index: int) -> None:
        """Place index right after the played part of the rotation; unplayed entries stay ahead."""
        if index not in self._order:
            self._reshuffle(anchor=index)
            return
        cut = 0 if self._order_pos is None else self._order_pos + 1
        played = [i for i in self._order[:cut] if i != index]
        rest = [i for i in self._order[cut:] if i != index]
        self._order = [*played, index, *rest]
        self._order_pos = len(played)
