"""Discord voice sink implementing AudioSink on top of discord.py voice clients."""

from __future__ import annotations

import asyncio
import logging

import discord
from discord import opus

from discord_queue_player.application.interfaces.audio_sink import AudioSink, SinkConnection
from discord_queue_player.domain.shared.exceptions import (
    ConnectionFailedError,
    ConnectionTimeoutError,
    SinkWriteFailedError,
)
from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

VoiceChannelLike = discord.VoiceChannel | discord.StageChannel

# 20 ms of 48 kHz stereo s16le, the only PCM layout the voice gateway accepts
FRAME_SIZE = opus.Encoder.FRAME_SIZE
SAMPLES_PER_FRAME = opus.Encoder.SAMPLES_PER_FRAME


class DiscordSinkConnection(SinkConnection):
    """One live voice client; frames are Opus-encoded and sent as they arrive.

    The connection owns its encoder: ``VoiceClient.encoder`` only exists while
    ``VoiceClient.play`` is running, which this sink never uses.
    """

    def __init__(
        self, voice_client: discord.VoiceClient, encoder: opus.Encoder | None = None
    ) -> None:
        self._vc = voice_client
        self._encoder = encoder
        self._channel_id = voice_client.channel.id
        self._speaking = False

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def is_connected(self) -> bool:
        return self._vc.is_connected()

    @property
    def voice_client(self) -> discord.VoiceClient:
        return self._vc

    async def write_frame(self, frame: bytes) -> None:
        if not self._vc.is_connected():
            raise SinkWriteFailedError(ErrorMessages.SINK_NOT_CONNECTED)

        if len(frame) != FRAME_SIZE:
            raise SinkWriteFailedError(
                ErrorMessages.SINK_BAD_FRAME_SIZE.format(
                    size=len(frame), expected=FRAME_SIZE
                )
            )

        if not self._speaking:
            await self._set_speaking(discord.SpeakingState.voice)
            self._speaking = True

        try:
            packet = self._get_encoder().encode(frame, SAMPLES_PER_FRAME)
            self._vc.send_audio_packet(packet, encode=False)
        except (discord.DiscordException, OSError) as e:
            raise SinkWriteFailedError(ErrorMessages.SINK_SEND_FAILED.format(error=e)) from e

    def _get_encoder(self) -> opus.Encoder:
        if self._encoder is None:
            self._encoder = opus.Encoder()
        return self._encoder

    async def close(self) -> None:
        if self._speaking and self._vc.is_connected():
            await self._set_speaking(discord.SpeakingState.none)
        self._speaking = False

        if not self._vc.is_connected():
            return

        try:
            await self._vc.disconnect(force=True)
            logger.info(LogTemplates.VOICE_DISCONNECTED, self._channel_id)
        except discord.DiscordException as e:
            logger.warning(LogTemplates.VOICE_DISCONNECT_FAILED, self._channel_id, e)

    async def _set_speaking(self, state: discord.SpeakingState) -> None:
        # Discord drops audio from clients that never announce speaking.
        try:
            await self._vc.ws.speak(state)
        except (discord.DiscordException, OSError, AttributeError) as e:
            logger.debug(LogTemplates.VOICE_SPEAKING_FAILED, self._channel_id, e)


class DiscordVoiceSink(AudioSink):
    """Joins voice channels for a single guild."""

    def __init__(self, bot: discord.Client, guild_id: int) -> None:
        self._bot = bot
        self._guild_id = guild_id

    def _get_channel(self, channel_id: int) -> VoiceChannelLike:
        channel = self._bot.get_channel(channel_id)
        if channel is None:
            raise ConnectionFailedError(
                channel_id, ErrorMessages.CHANNEL_NOT_FOUND.format(channel_id=channel_id)
            )
        if not isinstance(channel, VoiceChannelLike):
            logger.warning(LogTemplates.VOICE_CHANNEL_NOT_VOICE, channel_id)
            raise ConnectionFailedError(
                channel_id, ErrorMessages.CHANNEL_NOT_VOICE.format(channel_id=channel_id)
            )
        return channel

    async def _drop_stale_client(self, guild: discord.Guild) -> None:
        vc = guild.voice_client
        if not isinstance(vc, discord.VoiceClient):
            return
        try:
            await vc.disconnect(force=True)
        except discord.DiscordException as e:
            logger.warning(LogTemplates.VOICE_DISCONNECT_FAILED, vc.channel.id, e)

    async def connect(self, channel_id: int, timeout: float) -> SinkConnection:
        channel = self._get_channel(channel_id)
        guild = channel.guild

        existing = guild.voice_client
        if (
            isinstance(existing, discord.VoiceClient)
            and existing.is_connected()
            and existing.channel.id == channel_id
        ):
            return DiscordSinkConnection(existing)
        await self._drop_stale_client(guild)

        try:
            async with asyncio.timeout(timeout):
                vc = await channel.connect(timeout=timeout, reconnect=False, self_deaf=True)
        except TimeoutError as e:
            logger.error(LogTemplates.VOICE_CONNECTION_TIMEOUT, channel_id)
            raise ConnectionTimeoutError(channel_id, timeout) from e
        except discord.Forbidden as e:
            logger.error(LogTemplates.VOICE_NO_PERMISSION, channel_id)
            raise ConnectionFailedError(
                channel_id, ErrorMessages.VOICE_NO_PERMISSION.format(channel_id=channel_id)
            ) from e
        except discord.ClientException as e:
            logger.error(LogTemplates.VOICE_CLIENT_ERROR, e)
            raise ConnectionFailedError(channel_id, str(e)) from e

        logger.info(LogTemplates.VOICE_CONNECTED, channel.name, guild.name)
        return DiscordSinkConnection(vc)
