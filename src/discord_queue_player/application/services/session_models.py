"""DTOs returned by the session controller to its callers."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.shared.types import NonNegativeInt


class EnqueueResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    track: Track | None = None
    position: NonNegativeInt = 0
    queue_length: NonNegativeInt = 0
    started: bool = False
    message: str = ""


class OutcomeStatus(Enum):
    """Status codes for session control operations."""

    SUCCESS = "success"
    NOTHING_PLAYING = "nothing_playing"
    ALREADY_STOPPING = "already_stopping"
    NOT_CONNECTED = "not_connected"
    INVALID_POSITION = "invalid_position"


class SessionOutcome(BaseModel):
    """Structured result of skip/advance/remove/disconnect requests."""

    model_config = ConfigDict(frozen=True)

    status: OutcomeStatus
    message: str = ""
    track: Track | None = None

    @property
    def is_success(self) -> bool:
        return self.status == OutcomeStatus.SUCCESS

    @classmethod
    def success(cls, message: str = "", track: Track | None = None) -> SessionOutcome:
        return cls(status=OutcomeStatus.SUCCESS, message=message, track=track)

    @classmethod
    def failure(cls, status: OutcomeStatus, message: str) -> SessionOutcome:
        return cls(status=status, message=message)
