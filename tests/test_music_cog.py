"""
Unit Tests for MusicCog

Tests for the slash commands:
- /play, /skip, /next, /leave, /queue, /nowplaying, /remove, /clear, /loop
- Voice and guild checks
- "Up next" announcements after a track finishes

Handlers on the container are mocked; results are real application DTOs.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import discord
import pytest
from conftest import build_track

from discord_queue_player.application.commands import (
    ClearResult,
    PlayTrackResult,
    PlayTrackStatus,
    SkipMode,
    SkipResult,
    ToggleLoopResult,
)
from discord_queue_player.application.queries import CurrentTrackInfo, QueueInfo
from discord_queue_player.application.services.session_models import (
    OutcomeStatus,
    SessionOutcome,
)
from discord_queue_player.domain.music.value_objects import LoopMode, TrackFinishReason
from discord_queue_player.domain.shared.messages import DiscordUIMessages, ErrorMessages
from discord_queue_player.infrastructure.discord.cogs.music_cog import MusicCog, setup

GUILD_ID = 111111111
TEXT_CHANNEL_ID = 222222222
USER_ID = 333333333
VOICE_CHANNEL_ID = 444444444


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def mock_bot():
    bot = MagicMock()
    bot.get_channel = MagicMock(return_value=None)
    return bot


@pytest.fixture
def mock_container():
    """Create a mock DI container with async handlers."""
    container = MagicMock()
    for name in (
        "play_track_handler",
        "skip_track_handler",
        "clear_queue_handler",
        "remove_track_handler",
        "toggle_loop_handler",
        "disconnect_handler",
        "get_queue_handler",
        "get_current_handler",
    ):
        handler = MagicMock()
        handler.handle = AsyncMock()
        setattr(container, name, handler)

    container.session_manager = MagicMock()
    container.session_manager.set_track_finished_callback = MagicMock()
    return container


@pytest.fixture
def cog(mock_bot, mock_container):
    return MusicCog(mock_bot, mock_container)


@pytest.fixture
def mock_interaction():
    """Create a mock Discord Interaction from a member in voice."""
    interaction = MagicMock(spec=discord.Interaction)
    interaction.response = MagicMock()
    interaction.response.is_done.return_value = False
    interaction.response.send_message = AsyncMock()
    interaction.response.defer = AsyncMock()
    interaction.followup = MagicMock()
    interaction.followup.send = AsyncMock()

    interaction.guild = MagicMock()
    interaction.guild.id = GUILD_ID
    interaction.channel_id = TEXT_CHANNEL_ID

    member = MagicMock(spec=discord.Member)
    member.id = USER_ID
    member.display_name = "TestUser"
    member.voice = MagicMock()
    member.voice.channel = MagicMock()
    member.voice.channel.id = VOICE_CHANNEL_ID
    interaction.user = member

    return interaction


@pytest.fixture
def sample_track():
    return build_track("song").with_requester(USER_ID, "TestUser")


def _sent_text(interaction) -> str:
    """Text of the last message sent through response or followup."""
    for sender in (interaction.response.send_message, interaction.followup.send):
        if sender.await_count:
            args, kwargs = sender.await_args
            return args[0] if args else kwargs.get("content", "")
    raise AssertionError("nothing was sent")


# =============================================================================
# Lifecycle
# =============================================================================


class TestLifecycle:
    """Tests for cog load and extension setup."""

    @pytest.mark.asyncio
    async def test_cog_load_registers_callback(self, cog, mock_container):
        await cog.cog_load()

        mock_container.session_manager.set_track_finished_callback.assert_called_once_with(
            cog._on_track_finished
        )

    @pytest.mark.asyncio
    async def test_setup_requires_container(self):
        bot = MagicMock(spec=["add_cog"])

        with pytest.raises(RuntimeError, match=ErrorMessages.CONTAINER_NOT_FOUND):
            await setup(bot)

    @pytest.mark.asyncio
    async def test_setup_adds_cog(self, mock_container):
        bot = MagicMock()
        bot.container = mock_container
        bot.add_cog = AsyncMock()

        await setup(bot)

        bot.add_cog.assert_awaited_once()
        assert isinstance(bot.add_cog.await_args.args[0], MusicCog)


# =============================================================================
# /play
# =============================================================================


class TestPlay:
    """Tests for /play."""

    @pytest.mark.asyncio
    async def test_now_playing(self, cog, mock_container, mock_interaction, sample_track):
        mock_container.play_track_handler.handle.return_value = PlayTrackResult.success(
            sample_track, queue_position=0, queue_length=0, started_playing=True
        )

        await cog.play.callback(cog, mock_interaction, "test query")

        mock_interaction.response.defer.assert_awaited_once()
        command = mock_container.play_track_handler.handle.await_args.args[0]
        assert command.guild_id == GUILD_ID
        assert command.channel_id == VOICE_CHANNEL_ID
        assert command.user_name == "TestUser"
        assert command.query == "test query"
        mock_interaction.followup.send.assert_awaited_once_with(
            DiscordUIMessages.ACTION_NOW_PLAYING.format(track_title=sample_track.title)
        )

    @pytest.mark.asyncio
    async def test_queued_shows_one_based_position(
        self, cog, mock_container, mock_interaction, sample_track
    ):
        mock_container.play_track_handler.handle.return_value = PlayTrackResult.success(
            sample_track, queue_position=2, queue_length=3
        )

        await cog.play.callback(cog, mock_interaction, "test query")

        assert "position 3" in _sent_text(mock_interaction)

    @pytest.mark.asyncio
    async def test_not_found(self, cog, mock_container, mock_interaction):
        mock_container.play_track_handler.handle.return_value = PlayTrackResult.error(
            PlayTrackStatus.TRACK_NOT_FOUND, "nope"
        )

        await cog.play.callback(cog, mock_interaction, "nonexistent")

        assert _sent_text(mock_interaction) == DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(
            query="nonexistent"
        )

    @pytest.mark.asyncio
    async def test_resolution_error_is_reported(self, cog, mock_container, mock_interaction):
        mock_container.play_track_handler.handle.return_value = PlayTrackResult.error(
            PlayTrackStatus.RESOLUTION_ERROR, "Error resolving track: 403"
        )

        await cog.play.callback(cog, mock_interaction, "q")

        assert "Error resolving track: 403" in _sent_text(mock_interaction)

    @pytest.mark.asyncio
    async def test_user_not_in_voice(self, cog, mock_container, mock_interaction):
        mock_interaction.user.voice = None

        await cog.play.callback(cog, mock_interaction, "q")

        mock_container.play_track_handler.handle.assert_not_awaited()
        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE

    @pytest.mark.asyncio
    async def test_outside_guild(self, cog, mock_container, mock_interaction):
        mock_interaction.guild = None

        await cog.play.callback(cog, mock_interaction, "q")

        mock_container.play_track_handler.handle.assert_not_awaited()
        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_SERVER_ONLY


# =============================================================================
# /skip and /next
# =============================================================================


class TestSkipAndNext:
    """Tests for /skip and /next."""

    @pytest.mark.asyncio
    async def test_skip(self, cog, mock_container, mock_interaction, sample_track):
        mock_container.skip_track_handler.handle.return_value = SkipResult.success(
            sample_track, SkipMode.SKIP
        )

        await cog.skip.callback(cog, mock_interaction)

        command = mock_container.skip_track_handler.handle.await_args.args[0]
        assert command.mode is SkipMode.SKIP
        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_SKIPPED.format(
            track_title=sample_track.title
        )

    @pytest.mark.asyncio
    async def test_next_advances(self, cog, mock_container, mock_interaction, sample_track):
        mock_container.skip_track_handler.handle.return_value = SkipResult.success(
            sample_track, SkipMode.ADVANCE
        )

        await cog.next_track.callback(cog, mock_interaction)

        command = mock_container.skip_track_handler.handle.await_args.args[0]
        assert command.mode is SkipMode.ADVANCE
        assert "Moving on" in _sent_text(mock_interaction)

    @pytest.mark.asyncio
    async def test_nothing_playing(self, cog, mock_container, mock_interaction):
        mock_container.skip_track_handler.handle.return_value = SkipResult.error(
            OutcomeStatus.NOTHING_PLAYING, "Nothing is playing", SkipMode.SKIP
        )

        await cog.skip.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_NOTHING_PLAYING

    @pytest.mark.asyncio
    async def test_already_stopping(self, cog, mock_container, mock_interaction):
        mock_container.skip_track_handler.handle.return_value = SkipResult.error(
            OutcomeStatus.ALREADY_STOPPING, "stopping", SkipMode.SKIP
        )

        await cog.skip.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ERROR_ALREADY_STOPPING


# =============================================================================
# /leave
# =============================================================================


class TestLeave:
    """Tests for /leave."""

    @pytest.mark.asyncio
    async def test_leave(self, cog, mock_container, mock_interaction):
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID
        mock_container.disconnect_handler.handle.return_value = SessionOutcome.success(
            "Disconnected"
        )

        await cog.leave.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_DISCONNECTED
        assert GUILD_ID not in cog._announce_channels

    @pytest.mark.asyncio
    async def test_leave_when_not_connected(self, cog, mock_container, mock_interaction):
        mock_container.disconnect_handler.handle.return_value = SessionOutcome.failure(
            OutcomeStatus.NOT_CONNECTED, "Not connected"
        )

        await cog.leave.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_NOT_CONNECTED_TO_VOICE


# =============================================================================
# /queue and /nowplaying
# =============================================================================


class TestQueueViews:
    """Tests for /queue and /nowplaying."""

    @pytest.mark.asyncio
    async def test_empty_queue(self, cog, mock_container, mock_interaction):
        mock_container.get_queue_handler.handle.return_value = QueueInfo(guild_id=GUILD_ID)

        await cog.queue.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_QUEUE_EMPTY

    @pytest.mark.asyncio
    async def test_queue_pages(self, cog, mock_container, mock_interaction, sample_track):
        tracks = [build_track(f"t{i}") for i in range(15)]
        mock_container.get_queue_handler.handle.return_value = QueueInfo(
            guild_id=GUILD_ID,
            tracks=tracks,
            current_track=sample_track,
            loop_mode=LoopMode.ALL,
            total_duration=15 * 180,
        )

        await cog.queue.callback(cog, mock_interaction, page=2)

        embed = mock_interaction.response.send_message.await_args.kwargs["embed"]
        assert "Page 2/2" in embed.title
        # Now-playing field plus the five tracks left on page two.
        assert len(embed.fields) == 6
        assert embed.fields[1].name.startswith("11. ")
        assert "Loop: all" in embed.footer.text

    @pytest.mark.asyncio
    async def test_page_is_clamped(self, cog, mock_container, mock_interaction):
        mock_container.get_queue_handler.handle.return_value = QueueInfo(
            guild_id=GUILD_ID, tracks=[build_track("x")]
        )

        await cog.queue.callback(cog, mock_interaction, page=99)

        embed = mock_interaction.response.send_message.await_args.kwargs["embed"]
        assert "Page 1/1" in embed.title

    @pytest.mark.asyncio
    async def test_nowplaying(self, cog, mock_container, mock_interaction, sample_track):
        mock_container.get_current_handler.handle.return_value = CurrentTrackInfo(
            guild_id=GUILD_ID, track=sample_track, is_playing=True, queue_length=2
        )

        await cog.nowplaying.callback(cog, mock_interaction)

        embed = mock_interaction.response.send_message.await_args.kwargs["embed"]
        assert embed.title == DiscordUIMessages.EMBED_NOW_PLAYING
        assert sample_track.title in embed.description
        assert "2 track(s) waiting" in embed.footer.text

    @pytest.mark.asyncio
    async def test_nowplaying_idle(self, cog, mock_container, mock_interaction):
        mock_container.get_current_handler.handle.return_value = CurrentTrackInfo(
            guild_id=GUILD_ID
        )

        await cog.nowplaying.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.STATE_NOTHING_PLAYING


# =============================================================================
# /remove, /clear, /loop
# =============================================================================


class TestQueueEdits:
    """Tests for /remove, /clear and /loop."""

    @pytest.mark.asyncio
    async def test_remove_converts_to_zero_based(
        self, cog, mock_container, mock_interaction, sample_track
    ):
        mock_container.remove_track_handler.handle.return_value = SessionOutcome.success(
            track=sample_track
        )

        await cog.remove.callback(cog, mock_interaction, 3)

        command = mock_container.remove_track_handler.handle.await_args.args[0]
        assert command.position == 2
        assert sample_track.title in _sent_text(mock_interaction)

    @pytest.mark.asyncio
    async def test_remove_rejects_zero(self, cog, mock_container, mock_interaction):
        await cog.remove.callback(cog, mock_interaction, 0)

        mock_container.remove_track_handler.handle.assert_not_awaited()
        assert _sent_text(mock_interaction) == DiscordUIMessages.ERROR_POSITION_MUST_BE_POSITIVE

    @pytest.mark.asyncio
    async def test_remove_missing_position(self, cog, mock_container, mock_interaction):
        mock_container.remove_track_handler.handle.return_value = SessionOutcome.failure(
            OutcomeStatus.INVALID_POSITION, "nope"
        )

        await cog.remove.callback(cog, mock_interaction, 7)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ERROR_NO_TRACK_AT_POSITION.format(
            position=7
        )

    @pytest.mark.asyncio
    async def test_clear(self, cog, mock_container, mock_interaction):
        mock_container.clear_queue_handler.handle.return_value = ClearResult.success(4)

        await cog.clear.callback(cog, mock_interaction)

        assert _sent_text(mock_interaction) == DiscordUIMessages.ACTION_QUEUE_CLEARED.format(
            count=4
        )

    @pytest.mark.asyncio
    async def test_loop_cycles_without_choice(self, cog, mock_container, mock_interaction):
        mock_container.toggle_loop_handler.handle.return_value = ToggleLoopResult(
            guild_id=GUILD_ID, mode=LoopMode.SINGLE
        )

        await cog.loop.callback(cog, mock_interaction)

        command = mock_container.toggle_loop_handler.handle.await_args.args[0]
        assert command.mode is None
        assert "single" in _sent_text(mock_interaction)

    @pytest.mark.asyncio
    async def test_loop_with_choice(self, cog, mock_container, mock_interaction):
        mock_container.toggle_loop_handler.handle.return_value = ToggleLoopResult(
            guild_id=GUILD_ID, mode=LoopMode.ALL
        )
        choice = discord.app_commands.Choice(name="Whole queue", value="all")

        await cog.loop.callback(cog, mock_interaction, choice)

        command = mock_container.toggle_loop_handler.handle.await_args.args[0]
        assert command.mode is LoopMode.ALL


# =============================================================================
# Track-finished announcements
# =============================================================================


async def _drain_announcements(cog) -> None:
    await asyncio.gather(*list(cog._announce_tasks))


class TestUpNextAnnouncement:
    """Tests for the message posted when playback moves to another track."""

    @pytest.fixture
    def text_channel(self, mock_bot):
        channel = MagicMock(spec=discord.TextChannel)
        channel.send = AsyncMock()
        mock_bot.get_channel.return_value = channel
        return channel

    def _session_with_next(self, mock_container, next_track):
        session = MagicMock()
        session.queue.peek_next.return_value = next_track
        mock_container.session_manager.get.return_value = session

    @pytest.mark.asyncio
    async def test_announces_next_track(self, cog, mock_container, text_channel, sample_track):
        following = build_track("next")
        self._session_with_next(mock_container, following)
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID

        await cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.COMPLETED)
        await _drain_announcements(cog)

        text_channel.send.assert_awaited_once_with(
            DiscordUIMessages.ACTION_UP_NEXT.format(track_title=following.title)
        )

    @pytest.mark.asyncio
    async def test_single_loop_replay_is_silent(
        self, cog, mock_container, text_channel, sample_track
    ):
        self._session_with_next(mock_container, sample_track)
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID

        await cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.COMPLETED)
        await _drain_announcements(cog)

        text_channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_no_channel_recorded(self, cog, mock_container, text_channel, sample_track):
        self._session_with_next(mock_container, build_track("next"))

        await cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.SKIPPED)
        await _drain_announcements(cog)

        text_channel.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_is_logged(
        self, cog, mock_container, text_channel, sample_track, caplog
    ):
        self._session_with_next(mock_container, build_track("next"))
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID
        text_channel.send.side_effect = discord.HTTPException(
            MagicMock(status=500, reason="Server Error"), "boom"
        )

        await cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.FAILED)
        await _drain_announcements(cog)

        assert "boom" in caplog.text

    @pytest.mark.asyncio
    async def test_slow_send_does_not_hold_up_playback(
        self, cog, mock_container, text_channel, sample_track
    ):
        release = asyncio.Event()

        async def slow_send(*args, **kwargs):
            await release.wait()

        text_channel.send.side_effect = slow_send
        self._session_with_next(mock_container, build_track("next"))
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID

        await asyncio.wait_for(
            cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.COMPLETED),
            timeout=1.0,
        )

        assert len(cog._announce_tasks) == 1
        release.set()
        await _drain_announcements(cog)
        text_channel.send.assert_awaited_once()
        assert not cog._announce_tasks

    @pytest.mark.asyncio
    async def test_unload_cancels_pending_announcements(
        self, cog, mock_container, text_channel, sample_track
    ):
        async def stuck_send(*args, **kwargs):
            await asyncio.Event().wait()

        text_channel.send.side_effect = stuck_send
        self._session_with_next(mock_container, build_track("next"))
        cog._announce_channels[GUILD_ID] = TEXT_CHANNEL_ID
        await cog._on_track_finished(GUILD_ID, sample_track, TrackFinishReason.COMPLETED)
        pending = list(cog._announce_tasks)

        await cog.cog_unload()

        with pytest.raises(asyncio.CancelledError):
            await pending[0]
        assert not cog._announce_tasks
