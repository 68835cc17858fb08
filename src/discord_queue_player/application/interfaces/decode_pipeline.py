"""Port interfaces for the fetch → transcode pipeline producing raw PCM frames."""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import AbstractAsyncContextManager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from ..services.playback_scope import PlaybackScope


class FrameSource(ABC):
    """Lazy, non-restartable sequence of fixed-size PCM frames for one track attempt."""

    @abstractmethod
    async def read_frame(self) -> bytes:
        """Return the next frame, or ``b""`` at end of stream.

        Raises:
            DecodeFailedError: A pipeline stage failed or nothing was decoded.
            PlaybackCancelledError: The scope was cancelled while waiting.
        """
        ...

    @property
    @abstractmethod
    def frames_read(self) -> int:
        ...


class DecodePipeline(ABC):
    """Launches one pipeline per track attempt."""

    @abstractmethod
    def open(
        self, stream_url: str, scope: PlaybackScope
    ) -> AbstractAsyncContextManager[FrameSource]:
        """Start both stages for ``stream_url``.

        Leaving the context terminates every stage and awaits it, whether the
        stream ended, failed or was cancelled.
        """
        ...
