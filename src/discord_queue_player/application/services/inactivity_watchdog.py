"""Periodic inactivity check that tears down an idle voice session."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable

from discord_queue_player.domain.shared.messages import LogTemplates

logger = logging.getLogger(__name__)


class InactivityWatchdog:
    """Fires ``on_timeout`` once nothing has streamed for ``timeout_seconds``.

    Owned by a single session: started when the session connects, stopped
    when it disconnects. ``is_streaming`` is consulted on every tick so a
    track that is actively playing is never cut off, even if the last frame
    timestamp lags behind.
    """

    def __init__(
        self,
        *,
        interval_seconds: float,
        timeout_seconds: float,
        last_activity: Callable[[], float],
        is_streaming: Callable[[], bool],
        on_timeout: Callable[[], Awaitable[object]],
        clock: Callable[[], float] = time.monotonic,
        name: str = "session",
    ) -> None:
        self._interval = interval_seconds
        self._timeout = timeout_seconds
        self._last_activity = last_activity
        self._is_streaming = is_streaming
        self._on_timeout = on_timeout
        self._clock = clock
        self._name = name
        self._task: asyncio.Task[None] | None = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.is_running:
            return

        self._task = asyncio.create_task(self._run_loop(), name=f"watchdog-{self._name}")
        logger.debug(LogTemplates.WATCHDOG_STARTED, self._name)

    async def stop(self) -> None:
        task = self._task
        self._task = None
        if task is None:
            return

        # The timeout callback disconnects the session, which stops this
        # watchdog from inside its own task.
        if task is asyncio.current_task():
            return

        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.debug(LogTemplates.WATCHDOG_STOPPED, self._name)

    def is_expired(self) -> bool:
        if self._is_streaming():
            return False
        return self._clock() - self._last_activity() >= self._timeout

    async def check(self) -> bool:
        """Run one inactivity check; returns True if the timeout callback fired."""
        if not self.is_expired():
            return False

        idle_for = self._clock() - self._last_activity()
        logger.info(LogTemplates.WATCHDOG_TIMEOUT, self._name, idle_for)
        await self._on_timeout()
        return True

    async def _run_loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                if await self.check():
                    return
            except Exception:
                logger.exception(LogTemplates.WATCHDOG_CHECK_FAILED, self._name)
