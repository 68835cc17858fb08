"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.messages import ErrorMessages


class DiscordSettings(BaseModel):
    """Discord bot configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    token: SecretStr = Field(
        default=SecretStr(""), validation_alias=AliasChoices("token", "bot_token", "discord_token")
    )
    command_prefix: str = Field(
        default="!",
        min_length=1,
        max_length=5,
        validation_alias=AliasChoices("command_prefix", "prefix"),
    )
    owner_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("owner_ids", "owners")
    )
    test_guild_ids: tuple[int, ...] = Field(
        default_factory=tuple, validation_alias=AliasChoices("test_guild_ids", "test_guilds")
    )
    sync_on_startup: bool = False

    @field_validator("owner_ids", "test_guild_ids", mode="before")
    @classmethod
    def validate_snowflake_ids(cls, v: tuple[int, ...] | list[int]) -> tuple[int, ...]:
        """Validate Discord snowflake IDs and convert lists to tuples."""
        if isinstance(v, list):
            v = tuple(v)
        for snowflake in v:
            if snowflake <= 0:
                raise ValueError(ErrorMessages.INVALID_SNOWFLAKE)
            if snowflake >= 2**64:
                raise ValueError(ErrorMessages.SNOWFLAKE_TOO_LARGE)
        return v


class AudioSettings(BaseModel):
    """Decode pipeline configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    ytdlp_format: str = "bestaudio/best"
    fetch_executable: str = Field(
        default="yt-dlp", validation_alias=AliasChoices("fetch_executable", "ytdlp_path")
    )
    ffmpeg_executable: str = Field(
        default="ffmpeg", validation_alias=AliasChoices("ffmpeg_executable", "ffmpeg_path")
    )
    sample_rate: int = Field(default=48000, gt=0)
    channels: int = Field(default=2, ge=1, le=2)
    frame_duration_ms: int = Field(default=20, gt=0)
    process_shutdown_timeout_seconds: float = Field(default=2.0, gt=0.0, le=30.0)

    @property
    def frame_size(self) -> int:
        """Bytes per frame of signed 16-bit little-endian PCM."""
        return self.sample_rate * self.frame_duration_ms // 1000 * self.channels * 2


class SessionSettings(BaseModel):
    """Per-guild playback session configuration."""

    model_config = SettingsConfigDict(frozen=True, strict=True, populate_by_name=True)

    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0.0,
        le=60.0,
        validation_alias=AliasChoices("connect_timeout_seconds", "connect_timeout"),
    )
    inactivity_timeout_minutes: float = Field(
        default=1.0,
        gt=0.0,
        validation_alias=AliasChoices("inactivity_timeout_minutes", "inactivity_timeout"),
    )
    watchdog_interval_seconds: float = Field(default=60.0, gt=0.0)
    max_queue_size: int = Field(default=100, ge=1, le=1000)
    shutdown_timeout_seconds: float = Field(default=30.0, gt=0.0)


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - DISCORD__TOKEN, DISCORD__COMMAND_PREFIX, etc. (nested with ``__``)
    - AUDIO__FFMPEG_EXECUTABLE, SESSION__INACTIVITY_TIMEOUT_MINUTES, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        strict=True,
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = "INFO"

    discord: DiscordSettings = Field(default_factory=DiscordSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels))
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
