"""Cancellation scope shared by every stage of one track attempt."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from typing import TypeVar

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import CancelReason
from discord_queue_player.domain.shared.exceptions import PlaybackCancelledError
from discord_queue_player.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PlaybackScope:
    """One cancellation signal plus the reason it fired.

    The processing loop creates a scope per track attempt and routes every
    suspension point (voice join, frame read, frame write) through
    :meth:`guard`, so a skip, advance or disconnect unblocks whichever of them
    is pending instead of waiting for the I/O to finish.

    The first reason wins, except that ``DISCONNECT`` always overrides so a
    teardown is never downgraded to a skip.
    """

    def __init__(self, track: Track | None = None) -> None:
        self.track = track
        self._event = asyncio.Event()
        self._reason: CancelReason | None = None

    @property
    def reason(self) -> CancelReason | None:
        return self._reason

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: CancelReason) -> bool:
        """Request cancellation. Returns False if an equal or stronger reason is already set."""
        if self._reason is not None and reason.priority <= self._reason.priority:
            return False

        self._reason = reason
        self._event.set()
        logger.debug(
            LogTemplates.SCOPE_CANCELLED,
            reason.value,
            self.track.title if self.track else "<none>",
        )
        return True

    def raise_if_cancelled(self) -> None:
        if self._reason is not None:
            raise PlaybackCancelledError(self._reason)

    async def wait(self) -> CancelReason:
        await self._event.wait()
        assert self._reason is not None
        return self._reason

    async def guard(self, awaitable: Awaitable[T]) -> T:
        """Await ``awaitable`` unless the scope fires first.

        Raises:
            PlaybackCancelledError: The scope was (or became) cancelled; the
                wrapped operation has been cancelled and awaited.
        """
        self.raise_if_cancelled()

        operation = asyncio.ensure_future(awaitable)
        waiter = asyncio.ensure_future(self._event.wait())
        try:
            done, _ = await asyncio.wait(
                {operation, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            waiter.cancel()
            if not operation.done():
                operation.cancel()

        if operation in done:
            return operation.result()

        try:
            await operation
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.debug(LogTemplates.SCOPE_LATE_ERROR, exc)

        assert self._reason is not None
        raise PlaybackCancelledError(self._reason)
