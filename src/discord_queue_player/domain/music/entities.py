"""Core domain entities for the music bounded context."""

from __future__ import annotations

from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict

from discord_queue_player.domain.music.value_objects import TrackIdField
from discord_queue_player.domain.shared.types import (
    DiscordSnowflake,
    DurationSeconds,
    HttpUrlStr,
    NonEmptyStr,
    TrackTitleStr,
    UtcDatetimeField,
)


class Track(BaseModel):
    """Immutable value object representing a playable track.

    Tracks are created once by the resolver and then only referenced: the
    queue compares entries by identity, so requesting the same song twice
    yields two independent queue entries.
    """

    model_config = ConfigDict(frozen=True)

    id: TrackIdField
    title: TrackTitleStr
    webpage_url: HttpUrlStr
    stream_url: HttpUrlStr
    duration_seconds: DurationSeconds | None = None
    uploader: NonEmptyStr | None = None
    thumbnail_url: HttpUrlStr | None = None
    query: NonEmptyStr | None = None

    # Request metadata (set when queued)
    requested_by_id: DiscordSnowflake | None = None
    requested_by_name: NonEmptyStr | None = None
    requested_at: UtcDatetimeField | None = None

    @property
    def duration_formatted(self) -> str:
        """Format duration as MM:SS or HH:MM:SS."""
        if self.duration_seconds is None:
            return "Unknown"

        hours, remainder = divmod(self.duration_seconds, 3600)
        minutes, seconds = divmod(remainder, 60)

        if hours > 0:
            return f"{hours}:{minutes:02d}:{seconds:02d}"
        return f"{minutes}:{seconds:02d}"

    @property
    def display_title(self) -> str:
        if self.duration_seconds:
            return f"{self.title} [{self.duration_formatted}]"
        return self.title

    def with_requester(
        self, user_id: DiscordSnowflake, user_name: NonEmptyStr, requested_at: datetime | None = None
    ) -> Track:
        """Return a copy of this track with requester metadata populated."""
        return self.model_copy(
            update={
                "requested_by_id": user_id,
                "requested_by_name": user_name,
                "requested_at": requested_at or datetime.now(UTC),
            }
        )
