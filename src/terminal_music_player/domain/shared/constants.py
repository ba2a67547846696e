"""Shared constants: database schema names, SQLite pragmas and audio defaults."""

from __future__ import annotations


class DatabaseTables:
    """Database table names."""

    PLAYER_STATE = "player_state"
    QUEUE_TRACKS = "queue_tracks"


class SQLPragmas:
    """SQLite PRAGMA statements for database configuration.

    These pragmas are applied to each connection to ensure consistent behavior.
    """

    JOURNAL_MODE_WAL = "PRAGMA journal_mode=WAL"
    FOREIGN_KEYS_ON = "PRAGMA foreign_keys=ON"
    BUSY_TIMEOUT = "PRAGMA busy_timeout={timeout}"


class AudioConstants:
    """Audio format and transport constants."""

    DEFAULT_SAMPLE_RATE = 44_100
    DEFAULT_CHANNELS = 2
    DEFAULT_BLOCK_FRAMES = 2_048
    SAMPLE_FORMAT = "fltp"
    OUTPUT_DTYPE = "float32"

    # Transport steps (keyboard increments in the terminal UI)
    SEEK_STEP_SECONDS = 5.0
    VOLUME_STEP = 0.1

    # Decode failures are retried this many times before the track is skipped
    DECODE_RETRIES = 1


class ScrobbleConstants:
    """Listening-history submission thresholds."""

    MAX_THRESHOLD_SECONDS = 240.0
    THRESHOLD_FRACTION = 0.5


class EventConstants:
    """Event channel defaults."""

    DEFAULT_SUBSCRIBER_CAPACITY = 256
    DEFAULT_POSITION_INTERVAL_SECONDS = 0.25
