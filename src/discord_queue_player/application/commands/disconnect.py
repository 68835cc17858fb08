"""Command and handler for leaving the voice channel and resetting the session."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.application.services.session_models import (
    OutcomeStatus,
    SessionOutcome,
)
from discord_queue_player.domain.shared.messages import ErrorMessages
from discord_queue_player.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class DisconnectCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake


class DisconnectHandler:
    """Stops playback, clears the queue and leaves voice.

    The session object itself is kept so the guild's loop mode survives.
    """

    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, command: DisconnectCommand) -> SessionOutcome:
        session = self._sessions.get(command.guild_id)
        if session is None:
            return SessionOutcome.failure(
                OutcomeStatus.NOT_CONNECTED, ErrorMessages.NOT_CONNECTED_TO_VOICE
            )

        return await session.disconnect()
