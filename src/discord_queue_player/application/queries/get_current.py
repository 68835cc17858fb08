"""Query for retrieving the currently playing track."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import LoopMode
from discord_queue_player.domain.shared.types import DiscordSnowflake, NonNegativeInt

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class GetCurrentTrackQuery(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake


class CurrentTrackInfo(BaseModel):

    guild_id: DiscordSnowflake
    track: Track | None = None
    is_playing: bool = False
    is_connected: bool = False
    loop_mode: LoopMode = LoopMode.NONE
    queue_length: NonNegativeInt = 0


class GetCurrentTrackHandler:

    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, query: GetCurrentTrackQuery) -> CurrentTrackInfo:
        session = self._sessions.get(query.guild_id)

        if session is None:
            return CurrentTrackInfo(guild_id=query.guild_id)

        track = session.current_track
        return CurrentTrackInfo(
            guild_id=query.guild_id,
            track=track,
            is_playing=track is not None and session.is_streaming,
            is_connected=session.is_connected,
            loop_mode=session.loop_mode,
            queue_length=session.queue.pending_count,
        )
