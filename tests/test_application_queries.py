"""
Unit Tests for Application Layer Queries

Tests for:
- GetQueueHandler
- GetCurrentTrackHandler
"""

import pytest
import pytest_asyncio
from conftest import FakeSink, build_track, wait_until

from discord_queue_player.application.queries import (
    CurrentTrackInfo,
    GetCurrentTrackHandler,
    GetCurrentTrackQuery,
    GetQueueHandler,
    GetQueueQuery,
    QueueInfo,
)
from discord_queue_player.application.services.session_manager import SessionManager
from discord_queue_player.domain.music.value_objects import LoopMode, SessionState

GUILD_ID = 111
CHANNEL_ID = 222


@pytest_asyncio.fixture
async def session_manager(fake_pipeline, session_settings):
    manager = SessionManager(
        sink_factory=lambda guild_id: FakeSink(),
        pipeline=fake_pipeline,
        settings=session_settings,
    )
    yield manager
    await manager.shutdown()


async def _playing(session_manager, fake_pipeline, *tracks):
    fake_pipeline.block_all = True
    session = session_manager.get_or_create(GUILD_ID)
    for track in tracks:
        session.start_or_enqueue(track, channel_id=CHANNEL_ID)
    await wait_until(lambda: session.state is SessionState.PLAYING)
    return session


# =============================================================================
# GetQueueHandler Tests
# =============================================================================


class TestGetQueueHandler:
    """Tests for GetQueueHandler."""

    @pytest.mark.asyncio
    async def test_unknown_guild_is_empty(self, session_manager):
        handler = GetQueueHandler(session_manager=session_manager)

        info = await handler.handle(GetQueueQuery(guild_id=GUILD_ID))

        assert info.is_empty
        assert info.length == 0
        assert info.total_duration == 0
        assert info.state is SessionState.IDLE

    @pytest.mark.asyncio
    async def test_pending_tracks_exclude_current(self, session_manager, fake_pipeline):
        a = build_track("a", duration=100)
        b = build_track("b", duration=200)
        c = build_track("c", duration=None)
        await _playing(session_manager, fake_pipeline, a, b, c)
        handler = GetQueueHandler(session_manager=session_manager)

        info = await handler.handle(GetQueueQuery(guild_id=GUILD_ID))

        assert info.current_track is a
        assert info.tracks == [b, c]
        assert info.length == 2
        assert info.total_duration == 200
        assert info.state is SessionState.PLAYING
        assert not info.is_empty

    @pytest.mark.asyncio
    async def test_reports_loop_mode(self, session_manager):
        session_manager.get_or_create(GUILD_ID).set_loop_mode(LoopMode.ALL)
        handler = GetQueueHandler(session_manager=session_manager)

        info = await handler.handle(GetQueueQuery(guild_id=GUILD_ID))

        assert info.loop_mode is LoopMode.ALL

    def test_queue_info_with_only_current_is_not_empty(self, track_a):
        info = QueueInfo(guild_id=GUILD_ID, current_track=track_a)

        assert info.length == 0
        assert not info.is_empty


# =============================================================================
# GetCurrentTrackHandler Tests
# =============================================================================


class TestGetCurrentTrackHandler:
    """Tests for GetCurrentTrackHandler."""

    @pytest.mark.asyncio
    async def test_unknown_guild(self, session_manager):
        handler = GetCurrentTrackHandler(session_manager=session_manager)

        info = await handler.handle(GetCurrentTrackQuery(guild_id=GUILD_ID))

        assert info == CurrentTrackInfo(guild_id=GUILD_ID)

    @pytest.mark.asyncio
    async def test_streaming_track(self, session_manager, fake_pipeline, track_a, track_b):
        await _playing(session_manager, fake_pipeline, track_a, track_b)
        handler = GetCurrentTrackHandler(session_manager=session_manager)

        info = await handler.handle(GetCurrentTrackQuery(guild_id=GUILD_ID))

        assert info.track is track_a
        assert info.is_playing
        assert info.is_connected
        assert info.queue_length == 1

    @pytest.mark.asyncio
    async def test_idle_but_connected(self, session_manager, fake_pipeline, track_a):
        session = session_manager.get_or_create(GUILD_ID)
        session.start_or_enqueue(track_a, channel_id=CHANNEL_ID)
        await wait_until(lambda: not session.is_loop_running)
        handler = GetCurrentTrackHandler(session_manager=session_manager)

        info = await handler.handle(GetCurrentTrackQuery(guild_id=GUILD_ID))

        assert info.track is None
        assert not info.is_playing
        assert info.is_connected
