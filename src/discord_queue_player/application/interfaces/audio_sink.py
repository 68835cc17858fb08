"""Port interfaces for the voice connection that receives decoded audio frames."""

from __future__ import annotations

from abc import ABC, abstractmethod


class SinkConnection(ABC):
    """A live voice connection owned by exactly one session."""

    @property
    @abstractmethod
    def channel_id(self) -> int:
        ...

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        ...

    @abstractmethod
    async def write_frame(self, frame: bytes) -> None:
        """Send one 20 ms PCM frame.

        Raises:
            SinkWriteFailedError: The frame could not be delivered.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Leave the voice channel. Safe to call more than once."""
        ...


class AudioSink(ABC):
    """Factory for voice connections in one guild."""

    @abstractmethod
    async def connect(self, channel_id: int, timeout: float) -> SinkConnection:
        """Join ``channel_id``.

        Raises:
            ConnectionTimeoutError: The join did not finish within ``timeout``.
            ConnectionFailedError: The join was refused or the channel is unusable.
        """
        ...
