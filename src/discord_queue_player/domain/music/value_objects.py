"""Immutable value objects for the music bounded context."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Annotated

from pydantic import PlainSerializer, PlainValidator

from discord_queue_player.domain.shared.messages import ErrorMessages


@dataclass(frozen=True)
class TrackId:
    """Typically a YouTube video ID or a hash of the URL."""

    value: str

    def __post_init__(self) -> None:
        if not self.value or not self.value.strip():
            raise ValueError(ErrorMessages.EMPTY_TRACK_ID)

    def __str__(self) -> str:
        return self.value

    def __hash__(self) -> int:
        return hash(self.value)


# Serializes as plain string in JSON, stores as TrackId in the model.
TrackIdField = Annotated[
    TrackId,
    PlainValidator(lambda v: TrackId(v) if isinstance(v, str) else v),
    PlainSerializer(lambda v: v.value, return_type=str),
]


@dataclass(frozen=True)
class QueuePosition:
    """Zero-based position of a pending track."""

    value: int

    def __post_init__(self) -> None:
        if self.value < 0:
            raise ValueError(ErrorMessages.INVALID_QUEUE_POSITION)

    def __str__(self) -> str:
        return str(self.value)

    def __int__(self) -> int:
        return self.value

    @property
    def display(self) -> int:
        """One-based position as shown to users."""
        return self.value + 1


class LoopMode(Enum):
    """Loop mode settings for queue playback."""

    NONE = "none"
    SINGLE = "single"  # Repeat the current track
    ALL = "all"  # Cycle the whole queue

    def next_mode(self) -> LoopMode:
        """Cycle to next loop mode."""
        modes = list(LoopMode)
        current_index = modes.index(self)
        return modes[(current_index + 1) % len(modes)]


class SessionState(Enum):
    """Lifecycle of a guild playback session.

    - IDLE: no processing loop; a sink connection may linger until the
      inactivity watchdog fires.
    - CONNECTING: the loop is joining the voice channel.
    - PLAYING: frames are being relayed to the sink.
    - DRAINING: the current track was cancelled and its pipeline is unwinding.
    - DISCONNECTED: the session is tearing down its connection.
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    PLAYING = "playing"
    DRAINING = "draining"
    DISCONNECTED = "disconnected"

    @property
    def is_active(self) -> bool:
        return self in {SessionState.CONNECTING, SessionState.PLAYING, SessionState.DRAINING}


class CancelReason(Enum):
    """Why the current track's cancellation scope fired."""

    SKIP = "skip"  # Abandon the track, even under single-track loop
    ADVANCE = "advance"  # Treat as if the track ended naturally
    DISCONNECT = "disconnect"  # Tear the session down, no further tracks

    @property
    def priority(self) -> int:
        return 1 if self is CancelReason.DISCONNECT else 0


class TrackFinishReason(Enum):
    """How a single playback attempt ended."""

    COMPLETED = "completed"
    SKIPPED = "skipped"
    ADVANCED = "advanced"
    FAILED = "failed"
    DISCONNECTED = "disconnected"
