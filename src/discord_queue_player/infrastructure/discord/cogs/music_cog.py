"""Slash-command music cog delegating to application command and query handlers."""

from __future__ import annotations

import asyncio
import logging
import math
from typing import TYPE_CHECKING

import discord
from discord import app_commands
from discord.ext import commands

from discord_queue_player.application.commands import (
    ClearQueueCommand,
    DisconnectCommand,
    PlayTrackCommand,
    PlayTrackStatus,
    RemoveTrackCommand,
    SkipMode,
    SkipTrackCommand,
    ToggleLoopCommand,
)
from discord_queue_player.application.queries import GetCurrentTrackQuery, GetQueueQuery
from discord_queue_player.application.services.session_models import OutcomeStatus
from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import LoopMode, TrackFinishReason
from discord_queue_player.domain.shared.messages import (
    DiscordUIMessages,
    ErrorMessages,
    LogTemplates,
)
from discord_queue_player.utils.reply import format_duration, truncate

if TYPE_CHECKING:
    from ....config.container import Container

logger = logging.getLogger(__name__)

QUEUE_PER_PAGE = 10

LOOP_EMOJIS: dict[LoopMode, str] = {
    LoopMode.NONE: "➡️",
    LoopMode.SINGLE: "🔂",
    LoopMode.ALL: "🔁",
}


class MusicCog(commands.Cog):
    def __init__(self, bot: commands.Bot, container: Container) -> None:
        self.bot = bot
        self.container = container

        # guild_id -> text channel of the latest /play, for "up next" notices
        self._announce_channels: dict[int, int] = {}
        # In-flight announcements; sending must not hold up the next track.
        self._announce_tasks: set[asyncio.Task[None]] = set()

    async def cog_load(self) -> None:
        self.container.session_manager.set_track_finished_callback(self._on_track_finished)

    async def cog_unload(self) -> None:
        self._announce_channels.clear()
        for task in self._announce_tasks:
            task.cancel()
        self._announce_tasks.clear()

    # ── Helpers ─────────────────────────────────────────────────────────

    async def _send_ephemeral(self, interaction: discord.Interaction, message: str) -> None:
        if interaction.response.is_done():
            await interaction.followup.send(message, ephemeral=True)
        else:
            await interaction.response.send_message(message, ephemeral=True)

    async def _get_member(self, interaction: discord.Interaction) -> discord.Member | None:
        if not interaction.guild:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_SERVER_ONLY)
            return None

        user = interaction.user
        if not isinstance(user, discord.Member):
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_VERIFY_VOICE_FAILED)
            return None

        return user

    async def _get_voice_channel_id(self, interaction: discord.Interaction) -> int | None:
        member = await self._get_member(interaction)
        if member is None:
            return None

        if not member.voice or not member.voice.channel:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NEED_TO_BE_IN_VOICE)
            return None

        return member.voice.channel.id

    def _build_now_playing_embed(self, track: Track, loop_mode: LoopMode) -> discord.Embed:
        embed = discord.Embed(
            title=DiscordUIMessages.EMBED_NOW_PLAYING,
            description=f"**[{truncate(track.title)}]({track.webpage_url})**",
            color=discord.Color.green(),
        )
        embed.add_field(
            name=DiscordUIMessages.EMBED_FIELD_DURATION,
            value=format_duration(track.duration_seconds),
            inline=True,
        )
        if track.requested_by_name:
            embed.add_field(
                name=DiscordUIMessages.EMBED_FIELD_REQUESTED_BY,
                value=track.requested_by_name,
                inline=True,
            )
        embed.add_field(
            name=DiscordUIMessages.EMBED_FIELD_LOOP,
            value=f"{LOOP_EMOJIS[loop_mode]} {loop_mode.value}",
            inline=True,
        )
        if track.thumbnail_url:
            embed.set_thumbnail(url=track.thumbnail_url)
        return embed

    async def _on_track_finished(
        self, guild_id: int, track: Track, reason: TrackFinishReason
    ) -> None:
        if reason is TrackFinishReason.DISCONNECTED:
            return

        channel_id = self._announce_channels.get(guild_id)
        if channel_id is None:
            return

        session = self.container.session_manager.get(guild_id)
        next_track = session.queue.peek_next() if session is not None else None
        # A single-track loop replays the same entry; no need to repeat the notice.
        if next_track is None or next_track is track:
            return

        channel = self.bot.get_channel(channel_id)
        if not isinstance(channel, discord.abc.Messageable):
            return

        task = asyncio.create_task(self._announce_up_next(guild_id, channel, next_track))
        self._announce_tasks.add(task)
        task.add_done_callback(self._announce_tasks.discard)

    async def _announce_up_next(
        self, guild_id: int, channel: discord.abc.Messageable, next_track: Track
    ) -> None:
        try:
            await channel.send(
                DiscordUIMessages.ACTION_UP_NEXT.format(track_title=truncate(next_track.title))
            )
        except discord.HTTPException as e:
            logger.warning(LogTemplates.TRACK_ANNOUNCE_FAILED, guild_id, e)

    # ── Playback ────────────────────────────────────────────────────────

    @app_commands.command(name="play", description="Play a song by URL or search query.")
    @app_commands.describe(query="YouTube URL or search query")
    async def play(self, interaction: discord.Interaction, query: str) -> None:
        # Resolution can exceed the 3-second interaction deadline.
        await interaction.response.defer()

        channel_id = await self._get_voice_channel_id(interaction)
        if channel_id is None:
            return

        assert interaction.guild is not None

        command = PlayTrackCommand(
            guild_id=interaction.guild.id,
            channel_id=channel_id,
            user_id=interaction.user.id,
            user_name=interaction.user.display_name,
            query=query,
        )
        result = await self.container.play_track_handler.handle(command)

        if result.status is PlayTrackStatus.TRACK_NOT_FOUND:
            await self._send_ephemeral(
                interaction, DiscordUIMessages.ERROR_TRACK_NOT_FOUND.format(query=truncate(query))
            )
            return
        if not result.is_success or result.track is None:
            await self._send_ephemeral(
                interaction, DiscordUIMessages.ERROR_COULD_NOT_PLAY.format(message=result.message)
            )
            return

        if interaction.channel_id is not None:
            self._announce_channels[interaction.guild.id] = interaction.channel_id

        title = truncate(result.track.title)
        if result.started_playing:
            content = DiscordUIMessages.ACTION_NOW_PLAYING.format(track_title=title)
        else:
            content = DiscordUIMessages.ACTION_QUEUED.format(
                position=(result.queue_position or 0) + 1, track_title=title
            )
        await interaction.followup.send(content)

    async def _skip_or_advance(self, interaction: discord.Interaction, mode: SkipMode) -> None:
        if await self._get_voice_channel_id(interaction) is None:
            return

        assert interaction.guild is not None

        result = await self.container.skip_track_handler.handle(
            SkipTrackCommand(guild_id=interaction.guild.id, user_id=interaction.user.id, mode=mode)
        )

        if result.status is OutcomeStatus.ALREADY_STOPPING:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_ALREADY_STOPPING)
            return
        if not result.is_success or result.skipped_track is None:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOTHING_PLAYING)
            return

        template = (
            DiscordUIMessages.ACTION_SKIPPED
            if mode is SkipMode.SKIP
            else DiscordUIMessages.ACTION_ADVANCED
        )
        await interaction.response.send_message(
            template.format(track_title=truncate(result.skipped_track.title))
        )

    @app_commands.command(name="skip", description="Skip the current track (ignores track loop).")
    async def skip(self, interaction: discord.Interaction) -> None:
        await self._skip_or_advance(interaction, SkipMode.SKIP)

    @app_commands.command(
        name="next", description="Move on as if the current track ended (loop modes apply)."
    )
    async def next_track(self, interaction: discord.Interaction) -> None:
        await self._skip_or_advance(interaction, SkipMode.ADVANCE)

    @app_commands.command(name="leave", description="Stop playback, clear the queue and leave.")
    async def leave(self, interaction: discord.Interaction) -> None:
        member = await self._get_member(interaction)
        if member is None:
            return

        assert interaction.guild is not None

        outcome = await self.container.disconnect_handler.handle(
            DisconnectCommand(guild_id=interaction.guild.id)
        )
        self._announce_channels.pop(interaction.guild.id, None)

        if not outcome.is_success:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_NOT_CONNECTED_TO_VOICE)
            return

        await interaction.response.send_message(DiscordUIMessages.ACTION_DISCONNECTED)

    # ── Queue ───────────────────────────────────────────────────────────

    @app_commands.command(name="queue", description="Show the current queue.")
    @app_commands.describe(page="Page number")
    async def queue(self, interaction: discord.Interaction, page: int = 1) -> None:
        if await self._get_member(interaction) is None:
            return

        assert interaction.guild is not None

        info = await self.container.get_queue_handler.handle(
            GetQueueQuery(guild_id=interaction.guild.id)
        )

        if info.is_empty:
            await interaction.response.send_message(
                DiscordUIMessages.STATE_QUEUE_EMPTY, ephemeral=True
            )
            return

        total_pages = max(1, math.ceil(info.length / QUEUE_PER_PAGE))
        page = max(1, min(page, total_pages))
        start_idx = (page - 1) * QUEUE_PER_PAGE

        embed = discord.Embed(
            title=DiscordUIMessages.EMBED_QUEUE.format(
                total_tracks=info.length, page=page, total_pages=total_pages
            ),
            color=discord.Color.blurple(),
        )

        if info.current_track:
            embed.add_field(
                name=DiscordUIMessages.EMBED_NOW_PLAYING,
                value=f"**{truncate(info.current_track.title)}**\n"
                f"Duration: {format_duration(info.current_track.duration_seconds)}",
                inline=False,
            )

        tracks = info.tracks[start_idx : start_idx + QUEUE_PER_PAGE]
        for idx, track in enumerate(tracks, start=start_idx + 1):
            embed.add_field(
                name=f"{idx}. {truncate(track.title)}",
                value=f"Requested by: {track.requested_by_name or 'Unknown'}",
                inline=False,
            )

        footer = f"{LOOP_EMOJIS[info.loop_mode]} Loop: {info.loop_mode.value}"
        if info.total_duration:
            footer += f" • Total duration: {format_duration(info.total_duration)}"
        embed.set_footer(text=footer)

        await interaction.response.send_message(embed=embed, ephemeral=True)

    @app_commands.command(name="nowplaying", description="Show the track that is playing.")
    async def nowplaying(self, interaction: discord.Interaction) -> None:
        if await self._get_member(interaction) is None:
            return

        assert interaction.guild is not None

        info = await self.container.get_current_handler.handle(
            GetCurrentTrackQuery(guild_id=interaction.guild.id)
        )
        if info.track is None:
            await interaction.response.send_message(
                DiscordUIMessages.STATE_NOTHING_PLAYING, ephemeral=True
            )
            return

        embed = self._build_now_playing_embed(info.track, info.loop_mode)
        if info.queue_length:
            embed.set_footer(text=f"{info.queue_length} track(s) waiting")
        await interaction.response.send_message(embed=embed)

    @app_commands.command(name="remove", description="Remove a track from the queue.")
    @app_commands.describe(position="Position in queue (1-based)")
    async def remove(self, interaction: discord.Interaction, position: int) -> None:
        if await self._get_voice_channel_id(interaction) is None:
            return

        assert interaction.guild is not None

        if position < 1:
            await self._send_ephemeral(interaction, DiscordUIMessages.ERROR_POSITION_MUST_BE_POSITIVE)
            return

        outcome = await self.container.remove_track_handler.handle(
            RemoveTrackCommand(
                guild_id=interaction.guild.id,
                user_id=interaction.user.id,
                position=position - 1,
            )
        )

        if not outcome.is_success or outcome.track is None:
            await self._send_ephemeral(
                interaction, DiscordUIMessages.ERROR_NO_TRACK_AT_POSITION.format(position=position)
            )
            return

        await interaction.response.send_message(
            DiscordUIMessages.ACTION_TRACK_REMOVED.format(track_title=truncate(outcome.track.title)),
            ephemeral=True,
        )

    @app_commands.command(name="clear", description="Clear the queue.")
    async def clear(self, interaction: discord.Interaction) -> None:
        if await self._get_voice_channel_id(interaction) is None:
            return

        assert interaction.guild is not None

        result = await self.container.clear_queue_handler.handle(
            ClearQueueCommand(guild_id=interaction.guild.id, user_id=interaction.user.id)
        )

        if not result.is_success:
            await self._send_ephemeral(interaction, DiscordUIMessages.STATE_QUEUE_ALREADY_EMPTY)
            return

        await interaction.response.send_message(
            DiscordUIMessages.ACTION_QUEUE_CLEARED.format(count=result.tracks_cleared)
        )

    @app_commands.command(name="loop", description="Cycle or set the loop mode.")
    @app_commands.describe(mode="Loop mode to set (omit to cycle)")
    @app_commands.choices(
        mode=[
            app_commands.Choice(name="Off", value=LoopMode.NONE.value),
            app_commands.Choice(name="Current track", value=LoopMode.SINGLE.value),
            app_commands.Choice(name="Whole queue", value=LoopMode.ALL.value),
        ]
    )
    async def loop(
        self,
        interaction: discord.Interaction,
        mode: app_commands.Choice[str] | None = None,
    ) -> None:
        if await self._get_voice_channel_id(interaction) is None:
            return

        assert interaction.guild is not None

        result = await self.container.toggle_loop_handler.handle(
            ToggleLoopCommand(
                guild_id=interaction.guild.id,
                mode=LoopMode(mode.value) if mode is not None else None,
            )
        )

        await interaction.response.send_message(
            DiscordUIMessages.ACTION_LOOP_MODE_CHANGED.format(
                emoji=LOOP_EMOJIS[result.mode], mode=result.mode.value
            ),
            ephemeral=True,
        )


async def setup(bot: commands.Bot) -> None:
    container = getattr(bot, "container", None)
    if container is None:
        raise RuntimeError(ErrorMessages.CONTAINER_NOT_FOUND)

    await bot.add_cog(MusicCog(bot, container))
