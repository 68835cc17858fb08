"""Per-guild session controller - drives the queue into a live voice connection."""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from discord_queue_player.application.services.inactivity_watchdog import InactivityWatchdog
from discord_queue_player.application.services.playback_scope import PlaybackScope
from discord_queue_player.application.services.session_models import (
    EnqueueResult,
    OutcomeStatus,
    SessionOutcome,
)
from discord_queue_player.config.settings import SessionSettings
from discord_queue_player.domain.music.track_queue import TrackQueue
from discord_queue_player.domain.music.value_objects import (
    CancelReason,
    LoopMode,
    SessionState,
    TrackFinishReason,
)
from discord_queue_player.domain.shared.exceptions import (
    BusinessRuleViolationError,
    ConnectionFailedError,
    ConnectionTimeoutError,
    PlaybackCancelledError,
    PlaybackError,
)
from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...domain.music.entities import Track
    from ..interfaces.audio_sink import AudioSink, SinkConnection
    from ..interfaces.decode_pipeline import DecodePipeline, FrameSource

logger = logging.getLogger(__name__)

TrackFinishedCallback = Callable[[int, "Track", TrackFinishReason], Any]


class SessionController:
    """Owns one guild's queue, voice connection, processing loop and watchdog.

    The processing loop is the only writer of session state and the only
    caller of ``commit_current``/``finish_current``/``skip_current``.
    Callers enqueue, request cancellation or read; they never move the state
    machine directly. Public methods must be called from the event loop
    thread; the queue itself tolerates other threads.
    """

    def __init__(
        self,
        *,
        guild_id: int,
        sink: AudioSink,
        pipeline: DecodePipeline,
        settings: SessionSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._guild_id = guild_id
        self._sink = sink
        self._pipeline = pipeline
        self._settings = settings or SessionSettings()
        self._clock = clock

        self._queue = TrackQueue(max_pending=self._settings.max_queue_size)
        self._state = SessionState.IDLE
        self._channel_id: int | None = None
        self._connection: SinkConnection | None = None
        self._scope: PlaybackScope | None = None

        # Check-and-set guard: at most one processing loop per session.
        self._loop_guard = threading.Lock()
        self._loop_running = False
        self._loop_task: asyncio.Task[None] | None = None
        self._disconnecting = False

        self._last_activity = clock()
        self._on_track_finished: TrackFinishedCallback | None = None

        self._watchdog = InactivityWatchdog(
            interval_seconds=self._settings.watchdog_interval_seconds,
            timeout_seconds=self._settings.inactivity_timeout_minutes * 60,
            last_activity=lambda: self._last_activity,
            is_streaming=lambda: self.is_streaming,
            on_timeout=self._on_inactivity,
            clock=clock,
            name=f"guild-{guild_id}",
        )

    # ── Reads ───────────────────────────────────────────────────────────

    @property
    def guild_id(self) -> int:
        return self._guild_id

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def queue(self) -> TrackQueue:
        return self._queue

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and self._connection.is_connected

    @property
    def channel_id(self) -> int | None:
        return self._channel_id

    @property
    def current_track(self) -> Track | None:
        return self._queue.current

    @property
    def loop_mode(self) -> LoopMode:
        return self._queue.loop_mode

    @property
    def is_loop_running(self) -> bool:
        return self._loop_running

    @property
    def is_streaming(self) -> bool:
        return self._loop_running and self._state.is_active

    @property
    def last_activity(self) -> float:
        return self._last_activity

    @property
    def watchdog(self) -> InactivityWatchdog:
        return self._watchdog

    def snapshot(self) -> list[Track]:
        return self._queue.snapshot()

    def set_track_finished_callback(self, callback: TrackFinishedCallback) -> None:
        self._on_track_finished = callback

    # ── Caller operations ───────────────────────────────────────────────

    def start_or_enqueue(self, track: Track, channel_id: int | None = None) -> EnqueueResult:
        """Queue ``track`` and make sure a processing loop will pick it up.

        ``started`` is True when the queue was idle, i.e. this call made the
        track play right away instead of waiting behind another one. Never
        waits for playback.
        """
        if channel_id is not None:
            self._channel_id = channel_id

        streaming_before = self.is_streaming
        try:
            position, was_idle = self._queue.enqueue_with_wake(track)
        except BusinessRuleViolationError as e:
            logger.info(LogTemplates.QUEUE_FULL, track.title, self._guild_id)
            return EnqueueResult(success=False, track=track, message=e.message)

        logger.info(LogTemplates.QUEUE_ENQUEUED, track.title, position.value, self._guild_id)

        # A loop that gave up on a failed join leaves tracks waiting; any new
        # request re-triggers it. During a disconnect the teardown restarts it.
        if not self._disconnecting:
            self._start_loop()

        started = was_idle and not streaming_before
        if started:
            message = f"Now playing: {track.title}"
        else:
            message = f"Added to queue at position {position.display}"

        return EnqueueResult(
            success=True,
            track=track,
            position=position.value,
            queue_length=self._queue.pending_count,
            started=started,
            message=message,
        )

    def skip(self) -> SessionOutcome:
        """Abandon the current track; it will not repeat even under single-track loop."""
        return self._request_cancel(CancelReason.SKIP)

    def advance_to_next(self) -> SessionOutcome:
        """End the current track as if it finished naturally (loop modes still apply)."""
        return self._request_cancel(CancelReason.ADVANCE)

    def clear_all(self) -> int:
        """Empty the queue. The track already streaming plays out; nothing starts after it."""
        count = self._queue.clear()
        logger.info(LogTemplates.QUEUE_CLEARED, count, self._guild_id)
        return count

    def remove_at(self, position: int) -> SessionOutcome:
        """Drop the pending track at the 0-based ``position``."""
        removed = self._queue.pop_at(position)
        if removed is None:
            return SessionOutcome.failure(
                OutcomeStatus.INVALID_POSITION,
                ErrorMessages.INVALID_REMOVE_POSITION.format(position=position + 1),
            )

        logger.info(LogTemplates.QUEUE_REMOVED, removed.title, self._guild_id)
        return SessionOutcome.success(f"Removed: {removed.title}", track=removed)

    def toggle_loop(self) -> LoopMode:
        mode = self._queue.toggle_loop()
        logger.info(LogTemplates.LOOP_MODE_CHANGED, mode.value, self._guild_id)
        return mode

    def set_loop_mode(self, mode: LoopMode) -> None:
        self._queue.set_loop_mode(mode)
        logger.info(LogTemplates.LOOP_MODE_CHANGED, mode.value, self._guild_id)

    async def disconnect(self) -> SessionOutcome:
        """Stop playback, leave the channel, clear the queue and stop the watchdog."""
        was_connected = self._connection is not None
        self._disconnecting = True

        try:
            scope = self._scope
            if scope is not None:
                scope.cancel(CancelReason.DISCONNECT)
            self._queue.clear()

            task = self._loop_task
            if task is not None and not task.done() and task is not asyncio.current_task():
                await asyncio.wait({task})

            self._state = SessionState.DISCONNECTED
            await self._watchdog.stop()
            await self._close_connection()
            self._state = SessionState.IDLE
        finally:
            self._disconnecting = False

        logger.info(LogTemplates.SESSION_DISCONNECTED, self._guild_id)
        # Tracks requested while the old loop was draining.
        if not self._queue.is_idle():
            self._start_loop()
        if not was_connected:
            return SessionOutcome.failure(
                OutcomeStatus.NOT_CONNECTED, ErrorMessages.NOT_CONNECTED_TO_VOICE
            )
        return SessionOutcome.success("Disconnected")

    # ── Processing loop ─────────────────────────────────────────────────

    def _start_loop(self) -> bool:
        with self._loop_guard:
            if self._loop_running:
                return False
            self._loop_running = True
            self._state = SessionState.CONNECTING

        self._loop_task = asyncio.get_running_loop().create_task(
            self._process_queue(), name=f"session-loop-{self._guild_id}"
        )
        logger.debug(LogTemplates.LOOP_STARTED, self._guild_id)
        return True

    def _finish_loop(self, *, only_if_idle: bool) -> bool:
        """Atomically decide whether the loop ends; pairs with :meth:`_start_loop`."""
        with self._loop_guard:
            if only_if_idle and not self._queue.is_idle():
                return False
            self._loop_running = False
            self._state = SessionState.IDLE
        logger.debug(LogTemplates.LOOP_EXITED, self._guild_id)
        return True

    async def _process_queue(self) -> None:
        try:
            while True:
                track = self._queue.peek_next()
                if track is None:
                    if self._finish_loop(only_if_idle=True):
                        return
                    continue

                result = await self._play_track(track)
                if result is None or result is TrackFinishReason.DISCONNECTED:
                    self._finish_loop(only_if_idle=False)
                    return

                await self._notify_track_finished(track, result)

                if self._finish_loop(only_if_idle=True):
                    return
        except Exception:
            logger.exception(LogTemplates.LOOP_CRASHED, self._guild_id)
            self._finish_loop(only_if_idle=False)
        except asyncio.CancelledError:
            self._finish_loop(only_if_idle=False)
            raise

    async def _play_track(self, track: Track) -> TrackFinishReason | None:
        """Run one attempt; returns None when the voice join failed."""
        scope = PlaybackScope(track)
        self._scope = scope
        try:
            self._state = SessionState.CONNECTING
            try:
                connection = await scope.guard(self._ensure_connection())
            except ConnectionFailedError as e:
                logger.error(
                    LogTemplates.SESSION_CONNECT_FAILED, track.title, self._guild_id, e.message
                )
                return None
            except PlaybackCancelledError as e:
                return self._apply_outcome(track, e.reason)

            self._queue.commit_current(track)
            self._state = SessionState.PLAYING
            logger.info(LogTemplates.TRACK_STARTED, track.title, self._guild_id)

            try:
                reason = await self._stream(track, scope, connection)
            except PlaybackError as e:
                if scope.reason is not None:
                    # Killed stages fail loudly; the cancel reason decides the outcome.
                    return self._apply_outcome(track, scope.reason)
                logger.error(
                    LogTemplates.TRACK_FAILED, track.title, track.id, e.stage, self._guild_id, e
                )
                self._queue.skip_current()
                return TrackFinishReason.FAILED
            except Exception:
                logger.exception(LogTemplates.TRACK_UNEXPECTED_ERROR, track.title, self._guild_id)
                self._queue.skip_current()
                return TrackFinishReason.FAILED

            return self._apply_outcome(track, reason)
        finally:
            self._scope = None

    async def _stream(
        self, track: Track, scope: PlaybackScope, connection: SinkConnection
    ) -> CancelReason | None:
        cancel_reason: CancelReason | None = None

        async with self._pipeline.open(track.stream_url, scope) as source:
            try:
                await self._relay(source, scope, connection)
            except PlaybackCancelledError as e:
                cancel_reason = e.reason
                self._state = SessionState.DRAINING
                logger.debug(LogTemplates.TRACK_DRAINING, track.title, e.reason.value)

        # A cancel that lands between the last frame and here still counts.
        return cancel_reason or scope.reason

    async def _relay(
        self, source: FrameSource, scope: PlaybackScope, connection: SinkConnection
    ) -> None:
        while True:
            frame = await source.read_frame()
            if not frame:
                return
            await scope.guard(connection.write_frame(frame))
            self._last_activity = self._clock()

    def _apply_outcome(self, track: Track, reason: CancelReason | None) -> TrackFinishReason:
        if reason is None:
            self._queue.finish_current()
            logger.info(LogTemplates.TRACK_FINISHED, track.title, self._guild_id)
            return TrackFinishReason.COMPLETED
        if reason is CancelReason.ADVANCE:
            self._queue.finish_current()
            logger.info(LogTemplates.TRACK_ADVANCED, track.title, self._guild_id)
            return TrackFinishReason.ADVANCED
        if reason is CancelReason.SKIP:
            self._queue.skip_current()
            logger.info(LogTemplates.TRACK_SKIPPED, track.title, self._guild_id)
            return TrackFinishReason.SKIPPED
        return TrackFinishReason.DISCONNECTED

    async def _ensure_connection(self) -> SinkConnection:
        channel_id = self._channel_id
        if channel_id is None:
            raise ConnectionFailedError(None, ErrorMessages.NO_VOICE_CHANNEL)

        connection = self._connection
        if connection is not None and connection.is_connected:
            if connection.channel_id == channel_id:
                return connection
            logger.info(LogTemplates.SESSION_MOVING, connection.channel_id, channel_id)
        if connection is not None:
            await self._close_connection()

        timeout = self._settings.connect_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                connection = await self._sink.connect(channel_id, timeout)
        except TimeoutError as e:
            raise ConnectionTimeoutError(channel_id, timeout) from e
        except ConnectionFailedError:
            raise
        except Exception as e:
            raise ConnectionFailedError(channel_id, str(e) or None) from e

        self._connection = connection
        self._last_activity = self._clock()
        self._watchdog.start()
        logger.info(LogTemplates.SESSION_CONNECTED, channel_id, self._guild_id)
        return connection

    async def _close_connection(self) -> None:
        connection = self._connection
        self._connection = None
        if connection is None:
            return

        try:
            await connection.close()
        except Exception as e:
            logger.warning(LogTemplates.SESSION_CLOSE_FAILED, self._guild_id, e)

    # ── Internals ───────────────────────────────────────────────────────

    def _request_cancel(self, reason: CancelReason) -> SessionOutcome:
        scope = self._scope
        if scope is None or scope.track is None or self._state not in (
            SessionState.PLAYING,
            SessionState.DRAINING,
        ):
            return SessionOutcome.failure(
                OutcomeStatus.NOTHING_PLAYING, ErrorMessages.NOTHING_PLAYING
            )

        if not scope.cancel(reason):
            return SessionOutcome.failure(
                OutcomeStatus.ALREADY_STOPPING, ErrorMessages.ALREADY_STOPPING
            )

        logger.info(LogTemplates.CANCEL_REQUESTED, reason.value, scope.track.title, self._guild_id)
        return SessionOutcome.success(track=scope.track)

    async def _notify_track_finished(self, track: Track, reason: TrackFinishReason) -> None:
        if self._on_track_finished is None:
            return
        try:
            result = self._on_track_finished(self._guild_id, track, reason)
            if asyncio.iscoroutine(result):
                await result
        except Exception:
            logger.exception(LogTemplates.TRACK_CALLBACK_ERROR, self._guild_id)

    async def _on_inactivity(self) -> None:
        logger.info(LogTemplates.SESSION_INACTIVE, self._guild_id)
        await self.disconnect()
