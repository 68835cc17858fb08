"""
Skip Track Command

Command and handler for moving past the current track, either by skipping
it outright or by advancing as if it had finished.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from discord_queue_player.application.services.session_models import OutcomeStatus
from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.shared.messages import ErrorMessages
from discord_queue_player.domain.shared.types import DiscordSnowflake

if TYPE_CHECKING:
    from ..services.session_manager import SessionManager


class SkipMode(Enum):
    """How the current track is left behind.

    SKIP abandons it even under single-track loop; ADVANCE treats it as
    finished, so loop modes still apply.
    """

    SKIP = "skip"
    ADVANCE = "advance"


class SkipTrackCommand(BaseModel):
    model_config = ConfigDict(frozen=True)

    guild_id: DiscordSnowflake
    user_id: DiscordSnowflake
    mode: SkipMode = SkipMode.SKIP


class SkipResult(BaseModel):
    """Result of a skip track command."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    message: str
    mode: SkipMode = SkipMode.SKIP
    skipped_track: Track | None = None

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, skipped_track: Track, mode: SkipMode) -> SkipResult:
        verb = "Skipped" if mode is SkipMode.SKIP else "Advanced past"
        return cls(
            status=OutcomeStatus.SUCCESS,
            message=f"{verb}: {skipped_track.title}",
            mode=mode,
            skipped_track=skipped_track,
        )

    @classmethod
    def error(cls, status: OutcomeStatus, message: str, mode: SkipMode) -> SkipResult:
        return cls(status=status, message=message, mode=mode)


class SkipTrackHandler:
    def __init__(self, *, session_manager: SessionManager) -> None:
        self._sessions = session_manager

    async def handle(self, command: SkipTrackCommand) -> SkipResult:
        session = self._sessions.get(command.guild_id)
        if session is None:
            return SkipResult.error(
                OutcomeStatus.NOTHING_PLAYING, ErrorMessages.NOTHING_PLAYING, command.mode
            )

        if command.mode is SkipMode.ADVANCE:
            outcome = session.advance_to_next()
        else:
            outcome = session.skip()

        if not outcome.is_success or outcome.track is None:
            return SkipResult.error(outcome.status, outcome.message, command.mode)

        return SkipResult.success(outcome.track, command.mode)
