"""Base exception classes for domain-level and playback errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from discord_queue_player.domain.music.value_objects import CancelReason


class DomainError(Exception):
    """Base exception for all domain-level errors."""

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.__class__.__name__


class BusinessRuleViolationError(DomainError):
    """Raised when a business rule is violated."""

    def __init__(self, rule: str, message: str | None = None) -> None:
        msg = message or f"Business rule violated: {rule}"
        super().__init__(msg, code="BUSINESS_RULE_VIOLATION")
        self.rule = rule


class PlaybackError(DomainError):
    """Base exception for failures while resolving, connecting or streaming a track.

    ``stage`` names the step that failed (``resolve``, ``connect``, ``decode``,
    ``sink``) so log lines can be attributed without parsing the message.
    """

    stage: str = "playback"

    def __init__(self, message: str, code: str | None = None) -> None:
        super().__init__(message, code=code)


class ResolutionFailedError(PlaybackError):
    """Raised when the resolver could not turn a query into a playable track."""

    stage = "resolve"

    def __init__(self, query: str, message: str | None = None) -> None:
        super().__init__(message or f"Could not resolve '{query}'", code="RESOLUTION_FAILED")
        self.query = query


class TrackNotFoundError(ResolutionFailedError):
    """Raised when the resolver found nothing for a query."""

    def __init__(self, query: str) -> None:
        super().__init__(query, message=f"Track not found: {query}")
        self.code = "TRACK_NOT_FOUND"


class ConnectionFailedError(PlaybackError):
    """Raised when joining the voice channel failed."""

    stage = "connect"

    def __init__(self, channel_id: int | None, message: str | None = None) -> None:
        super().__init__(
            message or f"Could not connect to voice channel {channel_id}",
            code="CONNECTION_FAILED",
        )
        self.channel_id = channel_id


class ConnectionTimeoutError(ConnectionFailedError):
    """Raised when joining the voice channel did not finish in time."""

    def __init__(self, channel_id: int | None, timeout: float) -> None:
        super().__init__(
            channel_id,
            message=f"Timed out after {timeout:g}s connecting to voice channel {channel_id}",
        )
        self.code = "CONNECTION_TIMEOUT"
        self.timeout = timeout


class DecodeFailedError(PlaybackError):
    """Raised when the fetch/transcode pipeline exited abnormally or produced nothing."""

    stage = "decode"

    def __init__(self, message: str, returncode: int | None = None) -> None:
        super().__init__(message, code="DECODE_FAILED")
        self.returncode = returncode


class SinkWriteFailedError(PlaybackError):
    """Raised when an audio frame could not be delivered to the voice connection."""

    stage = "sink"

    def __init__(self, message: str) -> None:
        super().__init__(message, code="SINK_WRITE_FAILED")


class PlaybackCancelledError(PlaybackError):
    """Raised at a suspension point when the track's cancellation scope fired."""

    def __init__(self, reason: CancelReason) -> None:
        super().__init__(f"Playback cancelled ({reason.value})", code="PLAYBACK_CANCELLED")
        self.reason = reason
