"""Command and handler for changing the loop mode."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.domain.music.value_objects import LoopMode
from discord_queue_player.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class ToggleLoopCommand(BaseModel):
    """Cycle the loop mode, or set ``mode`` explicitly when given."""

    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    mode: LoopMode | None = None


class ToggleLoopResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    mode: LoopMode

    @property
    def message(self) -> str:
        return f"Loop mode: {self.mode.value}"


class ToggleLoopHandler:
    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, command: ToggleLoopCommand) -> ToggleLoopResult:
        session = self._sessions.get_or_create(command.guild_id)

        if command.mode is None:
            mode = session.toggle_loop()
        else:
            session.set_loop_mode(command.mode)
            mode = command.mode

        return ToggleLoopResult(guild_id=command.guild_id, mode=mode)
