"""Constrained ``Annotated`` field types shared by the pydantic models."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated

from pydantic import BeforeValidator, Field

# ── Numbers ──

NonNegativeInt = Annotated[int, Field(ge=0)]
"""Integer >= 0."""

NonNegativeFloat = Annotated[float, Field(ge=0.0)]
"""Float >= 0.0."""

VolumeLevel = Annotated[float, Field(ge=0.0, le=1.0)]
"""Output volume in [0.0, 1.0]."""


# ── Strings ──

NonEmptyStr = Annotated[str, Field(min_length=1)]

TrackTitleStr = Annotated[str, Field(min_length=1, max_length=500)]
"""Title tag, capped at 500 characters."""


# ── Playback ──

DurationSeconds = Annotated[float, Field(ge=0.0, le=86_400.0)]
"""Track duration or elapsed time in seconds: 0 … 86 400 (24 hours)."""

QueueIndex = Annotated[int, Field(ge=0)]
"""Zero-based queue index."""

Generation = Annotated[int, Field(ge=0)]
"""Playback session generation tag."""


# ── Audio format and database settings ──

SampleRate = Annotated[int, Field(ge=8_000, le=192_000)]
"""Output sample rate in Hz."""

ChannelCount = Annotated[int, Field(ge=1, le=8)]
"""Output channel count."""

BlockFrames = Annotated[int, Field(ge=64, le=65_536)]
"""PCM frames per delivered block."""

BusyTimeoutMs = Annotated[int, Field(ge=1000, le=30000)]
"""SQLite busy timeout (ms)."""

ConnectionTimeoutS = Annotated[int, Field(ge=1, le=60)]
"""aiosqlite connect timeout (s)."""


# ── Timestamps ──

def _ensure_utc(v: datetime) -> datetime:
    if v.tzinfo is None:
        raise ValueError("datetime must be timezone-aware (UTC)")
    return v.astimezone(UTC)


UtcDatetimeField = Annotated[datetime, BeforeValidator(_ensure_utc)]
"""Event timestamps; naive datetimes are rejected."""
