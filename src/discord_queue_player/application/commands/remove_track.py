"""Command and handler for removing a pending track from the queue."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.application.services.session_models import (
    OutcomeStatus,
    SessionOutcome,
)
from discord_queue_player.domain.shared.messages import ErrorMessages
from discord_queue_player.domain.shared.types import DiscordSnowflake, QueuePositionInt

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class RemoveTrackCommand(BaseModel):
    """Remove the pending track at the 0-based ``position``."""

    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    user_id: DiscordSnowflake
    position: QueuePositionInt


class RemoveTrackHandler:
    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, command: RemoveTrackCommand) -> SessionOutcome:
        session = self._sessions.get(command.guild_id)
        if session is None:
            return SessionOutcome.failure(
                OutcomeStatus.INVALID_POSITION,
                ErrorMessages.INVALID_REMOVE_POSITION.format(position=command.position + 1),
            )

        return session.remove_at(command.position)
