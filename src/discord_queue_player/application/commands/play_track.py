"""Command and handler for playing a track from a query or URL."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field, field_validator

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.shared.exceptions import (
    ResolutionFailedError,
    TrackNotFoundError,
)
from discord_queue_player.domain.shared.messages import LogTemplates
from discord_queue_player.domain.shared.types import DiscordSnowflake, NonEmptyStr, NonNegativeInt

if TYPE_CHECKING:
    from ..interfaces.audio_resolver import AudioResolver
    from ..services.session_manager import SessionManager

logger = logging.getLogger(__name__)


class PlayTrackStatus(Enum):
    """Status codes for play track results."""

    NOW_PLAYING = "now_playing"
    QUEUED = "queued"
    TRACK_NOT_FOUND = "track_not_found"
    RESOLUTION_ERROR = "resolution_error"
    QUEUE_FULL = "queue_full"


class PlayTrackCommand(BaseModel):
    """Request to resolve a query/URL and queue the track in the caller's voice channel."""

    model_config = ConfigDict(frozen=True, strict=True)

    guild_id: DiscordSnowflake
    channel_id: DiscordSnowflake
    user_id: DiscordSnowflake
    user_name: NonEmptyStr
    query: NonEmptyStr

    requested_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @field_validator("query", mode="before")
    @classmethod
    def _strip_query(cls, v: str) -> str:
        if isinstance(v, str):
            return v.strip()
        return v


class PlayTrackResult(BaseModel):
    """Result of a play track command."""

    model_config = ConfigDict(frozen=True, strict=True)

    status: PlayTrackStatus
    message: str
    track: Track | None = None
    queue_position: NonNegativeInt | None = None
    queue_length: NonNegativeInt = 0

    @property
    def is_success(self) -> bool:
        return self.status in {PlayTrackStatus.NOW_PLAYING, PlayTrackStatus.QUEUED}

    @property
    def started_playing(self) -> bool:
        return self.status == PlayTrackStatus.NOW_PLAYING

    @classmethod
    def success(
        cls,
        track: Track,
        queue_position: int,
        queue_length: int,
        started_playing: bool = False,
    ) -> PlayTrackResult:
        if started_playing:
            status = PlayTrackStatus.NOW_PLAYING
            message = f"Now playing: {track.title}"
        else:
            status = PlayTrackStatus.QUEUED
            message = f"Added to queue: {track.title} (position {queue_position + 1})"

        return cls(
            status=status,
            message=message,
            track=track,
            queue_position=queue_position,
            queue_length=queue_length,
        )

    @classmethod
    def error(cls, status: PlayTrackStatus, message: str) -> PlayTrackResult:
        return cls(status=status, message=message)


class PlayTrackHandler:
    """Resolves a track from a query and hands it to the guild's session.

    Resolution failures are reported to the caller; the track never enters
    the queue and nothing is retried.
    """

    def __init__(
        self,
        *,
        session_manager: SessionManager,
        audio_resolver: AudioResolver,
    ) -> None:
        self._sessions = session_manager
        self._audio_resolver = audio_resolver

    async def handle(self, command: PlayTrackCommand) -> PlayTrackResult:
        try:
            track = await self._audio_resolver.resolve(command.query)
        except TrackNotFoundError:
            return PlayTrackResult.error(
                PlayTrackStatus.TRACK_NOT_FOUND, f"Could not find track: {command.query}"
            )
        except ResolutionFailedError as e:
            logger.warning(LogTemplates.PLAY_RESOLUTION_FAILED, command.query, command.guild_id, e)
            return PlayTrackResult.error(PlayTrackStatus.RESOLUTION_ERROR, e.message)

        track = track.with_requester(
            user_id=command.user_id,
            user_name=command.user_name,
            requested_at=command.requested_at,
        )

        session = self._sessions.get_or_create(command.guild_id)
        result = session.start_or_enqueue(track, channel_id=command.channel_id)

        if not result.success:
            return PlayTrackResult.error(PlayTrackStatus.QUEUE_FULL, result.message)

        return PlayTrackResult.success(
            track=track,
            queue_position=result.position,
            queue_length=result.queue_length,
            started_playing=result.started,
        )
