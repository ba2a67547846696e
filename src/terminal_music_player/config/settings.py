"""Player configuration.

One frozen pydantic-settings model per concern (database, audio, queue,
events), read from the environment or a local .env file. Nested values use
``__``, so ``AUDIO__DEVICE=3`` sets ``settings.audio.device``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.music.value_objects import OrderingMode, RepeatMode
from ..domain.shared.constants import AudioConstants, EventConstants
from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import BusyTimeoutMs, ConnectionTimeoutS


class DatabaseSettings(BaseModel):
    """Database configuration for the persisted queue."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    url: str = Field(
        default="sqlite:///~/.local/share/terminal-music-player/queue.db",
        validation_alias=AliasChoices("url", "database_url", "db_url"),
    )
    busy_timeout_ms: BusyTimeoutMs = Field(
        default=5000,
        validation_alias=AliasChoices("busy_timeout_ms", "busy_timeout"),
    )
    connection_timeout_s: ConnectionTimeoutS = Field(
        default=10,
        validation_alias=AliasChoices("connection_timeout_s", "connection_timeout"),
    )

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Only SQLite URLs are supported."""
        if not v.startswith("sqlite://"):
            raise ValueError(ErrorMessages.INVALID_DATABASE_URL)
        return v


class AudioSettings(BaseModel):
    """Audio decoding and output configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_volume: float = Field(
        default=0.5, ge=0.0, le=1.0, validation_alias=AliasChoices("default_volume", "volume")
    )
    sample_rate: int = Field(default=AudioConstants.DEFAULT_SAMPLE_RATE, ge=8_000, le=192_000)
    channels: int = Field(default=AudioConstants.DEFAULT_CHANNELS, ge=1, le=8)
    block_frames: int = Field(default=AudioConstants.DEFAULT_BLOCK_FRAMES, ge=64, le=65_536)
    device: str | None = Field(
        default=None, validation_alias=AliasChoices("device", "output_device")
    )
    decode_retries: int = Field(default=AudioConstants.DECODE_RETRIES, ge=0, le=5)


class QueueSettings(BaseModel):
    """Queue ordering defaults."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    default_mode: Literal["sequential", "random"] = Field(
        default="sequential", validation_alias=AliasChoices("default_mode", "mode")
    )
    default_repeat: Literal["off", "queue", "track"] = Field(
        default="off", validation_alias=AliasChoices("default_repeat", "repeat")
    )
    random_seed: int | None = None
    restore_on_start: bool = True

    @property
    def ordering_mode(self) -> OrderingMode:
        return OrderingMode(self.default_mode)

    @property
    def repeat_mode(self) -> RepeatMode:
        return RepeatMode(self.default_repeat)


class EventSettings(BaseModel):
    """Event channel configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    subscriber_capacity: int = Field(
        default=EventConstants.DEFAULT_SUBSCRIBER_CAPACITY,
        ge=1,
        le=65_536,
        validation_alias=AliasChoices("subscriber_capacity", "capacity"),
    )
    position_interval_seconds: float = Field(
        default=EventConstants.DEFAULT_POSITION_INTERVAL_SECONDS,
        ge=0.0,
        le=10.0,
        validation_alias=AliasChoices("position_interval_seconds", "position_interval"),
    )


class Settings(BaseSettings):
    """Top-level settings.

    Recognized variables:
    - ENVIRONMENT, DEBUG, LOG_LEVEL
    - AUDIO__DEFAULT_VOLUME, AUDIO__DEVICE, etc. (nested with ``__``)
    - QUEUE__DEFAULT_MODE, QUEUE__RANDOM_SEED
    - EVENTS__SUBSCRIBER_CAPACITY
    - DATABASE__URL
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    queue: QueueSettings = Field(default_factory=QueueSettings)
    events: EventSettings = Field(default_factory=EventSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=sorted(valid_levels))
            )
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Load settings once per process; later calls return the same instance."""
    return Settings()


def clear_settings_cache() -> None:
    """Forget the cached settings so the next get_settings() re-reads the environment."""
    get_settings.cache_clear()
