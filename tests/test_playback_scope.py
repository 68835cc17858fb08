"""Tests for PlaybackScope cancellation and reason precedence."""

import asyncio

import pytest

from discord_queue_player.application.services.playback_scope import PlaybackScope
from discord_queue_player.domain.music.value_objects import CancelReason
from discord_queue_player.domain.shared.exceptions import PlaybackCancelledError


class TestReasonPrecedence:
    """The first reason wins unless a disconnect arrives."""

    def test_first_reason_wins(self, track_a):
        scope = PlaybackScope(track_a)

        assert scope.cancel(CancelReason.SKIP) is True
        assert scope.cancel(CancelReason.ADVANCE) is False
        assert scope.reason is CancelReason.SKIP

    def test_disconnect_overrides_skip(self):
        scope = PlaybackScope()
        scope.cancel(CancelReason.ADVANCE)

        assert scope.cancel(CancelReason.DISCONNECT) is True
        assert scope.reason is CancelReason.DISCONNECT

    def test_nothing_overrides_disconnect(self):
        scope = PlaybackScope()
        scope.cancel(CancelReason.DISCONNECT)

        assert scope.cancel(CancelReason.SKIP) is False
        assert scope.cancel(CancelReason.DISCONNECT) is False
        assert scope.reason is CancelReason.DISCONNECT

    def test_fresh_scope_is_not_cancelled(self):
        scope = PlaybackScope()

        assert scope.cancelled is False
        assert scope.reason is None
        scope.raise_if_cancelled()


class TestGuard:
    """Tests for racing awaitables against the scope."""

    @pytest.mark.asyncio
    async def test_returns_result_when_not_cancelled(self):
        scope = PlaybackScope()

        async def work():
            await asyncio.sleep(0)
            return 42

        assert await scope.guard(work()) == 42

    @pytest.mark.asyncio
    async def test_cancel_unblocks_pending_operation(self):
        scope = PlaybackScope()
        started = asyncio.Event()
        was_cancelled = asyncio.Event()

        async def blocked():
            started.set()
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                was_cancelled.set()
                raise

        guarded = asyncio.create_task(scope.guard(blocked()))
        await started.wait()
        scope.cancel(CancelReason.ADVANCE)

        with pytest.raises(PlaybackCancelledError) as exc_info:
            await guarded

        assert exc_info.value.reason is CancelReason.ADVANCE
        assert was_cancelled.is_set()

    @pytest.mark.asyncio
    async def test_already_cancelled_scope_raises_immediately(self):
        scope = PlaybackScope()
        scope.cancel(CancelReason.SKIP)

        async def never_run():
            raise AssertionError("should not run")

        coro = never_run()
        with pytest.raises(PlaybackCancelledError):
            await scope.guard(coro)
        coro.close()

    @pytest.mark.asyncio
    async def test_operation_error_propagates(self):
        scope = PlaybackScope()

        async def boom():
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            await scope.guard(boom())

    @pytest.mark.asyncio
    async def test_wait_returns_reason(self):
        scope = PlaybackScope()
        waiter = asyncio.create_task(scope.wait())
        await asyncio.sleep(0)

        scope.cancel(CancelReason.DISCONNECT)

        assert await waiter is CancelReason.DISCONNECT
