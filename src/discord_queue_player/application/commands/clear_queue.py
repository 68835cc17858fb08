"""Command and handler for clearing the queue."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.domain.shared.types import DiscordSnowflake, NonNegativeInt

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class ClearStatus(Enum):
    """Status codes for clear queue results."""

    SUCCESS = "success"
    QUEUE_EMPTY = "queue_empty"


class ClearQueueCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    user_id: DiscordSnowflake


class ClearResult(BaseModel):

    status: ClearStatus
    message: str
    tracks_cleared: NonNegativeInt = 0

    @property
    def is_success(self) -> bool:
        return self.status == ClearStatus.SUCCESS

    @classmethod
    def success(cls, tracks_cleared: int) -> ClearResult:
        return cls(
            status=ClearStatus.SUCCESS,
            message=f"Cleared {tracks_cleared} tracks from the queue.",
            tracks_cleared=tracks_cleared,
        )

    @classmethod
    def error(cls, status: ClearStatus, message: str) -> ClearResult:
        return cls(status=status, message=message)


class ClearQueueHandler:
    """Empties the queue; a track already streaming is left to finish."""

    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, command: ClearQueueCommand) -> ClearResult:
        session = self._sessions.get(command.guild_id)

        if session is None or len(session.queue) == 0:
            return ClearResult.error(ClearStatus.QUEUE_EMPTY, "Queue is already empty")

        return ClearResult.success(session.clear_all())
