"""Query for retrieving the current queue."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import LoopMode, SessionState
from discord_queue_player.domain.shared.types import DiscordSnowflake, NonNegativeInt

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class GetQueueQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake


class QueueInfo(BaseModel):
    """Point-in-time view of a guild's queue.

    ``tracks`` holds pending tracks only; the streaming track is in
    ``current_track``.
    """

    guild_id: DiscordSnowflake
    tracks: list[Track] = Field(default_factory=list)
    current_track: Track | None = None
    loop_mode: LoopMode = LoopMode.NONE
    state: SessionState = SessionState.IDLE
    total_duration: NonNegativeInt | None = None

    @property
    def length(self) -> int:
        return len(self.tracks)

    @property
    def is_empty(self) -> bool:
        return len(self.tracks) == 0 and self.current_track is None


class GetQueueHandler:

    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, query: GetQueueQuery) -> QueueInfo:
        session = self._sessions.get(query.guild_id)

        if session is None:
            return QueueInfo(guild_id=query.guild_id, tracks=[], total_duration=0)

        tracks = session.snapshot()
        total_duration = sum(t.duration_seconds for t in tracks if t.duration_seconds is not None)

        return QueueInfo(
            guild_id=query.guild_id,
            tracks=tracks,
            current_track=session.current_track,
            loop_mode=session.loop_mode,
            state=session.state,
            total_duration=total_duration,
        )
