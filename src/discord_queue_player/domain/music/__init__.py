"""Music bounded context: tracks, the track queue and playback value objects."""

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.track_queue import TrackQueue
from discord_queue_player.domain.music.value_objects import (
    CancelReason,
    LoopMode,
    QueuePosition,
    SessionState,
    TrackFinishReason,
    TrackId,
)

__all__ = [
    "CancelReason",
    "LoopMode",
    "QueuePosition",
    "SessionState",
    "Track",
    "TrackFinishReason",
    "TrackId",
    "TrackQueue",
]
