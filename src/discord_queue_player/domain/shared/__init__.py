"""Shared kernel: exceptions, message templates and validated types."""

from discord_queue_player.domain.shared.exceptions import (
    BusinessRuleViolationError,
    ConnectionFailedError,
    ConnectionTimeoutError,
    DecodeFailedError,
    DomainError,
    PlaybackCancelledError,
    PlaybackError,
    ResolutionFailedError,
    SinkWriteFailedError,
    TrackNotFoundError,
)

__all__ = [
    "BusinessRuleViolationError",
    "ConnectionFailedError",
    "ConnectionTimeoutError",
    "DecodeFailedError",
    "DomainError",
    "PlaybackCancelledError",
    "PlaybackError",
    "ResolutionFailedError",
    "SinkWriteFailedError",
    "TrackNotFoundError",
]
