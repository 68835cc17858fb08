"""Dependency Injection Container

Builds the application's object graph on demand: the audio resolver, the
decode pipeline, the per-guild session manager and the command/query
handlers the Discord cogs call into.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from typing import TYPE_CHECKING

from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)

if TYPE_CHECKING:
    from discord.ext.commands import Bot

    from ..application.commands.clear_queue import ClearQueueHandler
    from ..application.commands.disconnect import DisconnectHandler
    from ..application.commands.play_track import PlayTrackHandler
    from ..application.commands.remove_track import RemoveTrackHandler
    from ..application.commands.skip_track import SkipTrackHandler
    from ..application.commands.toggle_loop import ToggleLoopHandler
    from ..application.interfaces.audio_resolver import AudioResolver
    from ..application.interfaces.audio_sink import AudioSink
    from ..application.interfaces.decode_pipeline import DecodePipeline
    from ..application.queries.get_current import GetCurrentTrackHandler
    from ..application.queries.get_queue import GetQueueHandler
    from ..application.services.session_manager import SessionManager
    from .settings import Settings


@dataclass
class Container:
    """Dependency injection container.

    Components are created lazily on first access and cached for the
    lifetime of the bot.
    """

    settings: Settings
    _bot: Bot | None = None

    # Infrastructure adapters
    _audio_resolver: AudioResolver | None = None
    _decode_pipeline: DecodePipeline | None = None

    # Application services
    _session_manager: SessionManager | None = None

    # Command handlers
    _play_track_handler: PlayTrackHandler | None = None
    _skip_track_handler: SkipTrackHandler | None = None
    _clear_queue_handler: ClearQueueHandler | None = None
    _remove_track_handler: RemoveTrackHandler | None = None
    _toggle_loop_handler: ToggleLoopHandler | None = None
    _disconnect_handler: DisconnectHandler | None = None

    # Query handlers
    _get_queue_handler: GetQueueHandler | None = None
    _get_current_handler: GetCurrentTrackHandler | None = None

    def set_bot(self, bot: Bot) -> None:
        self._bot = bot

    @property
    def bot(self) -> Bot:
        if self._bot is None:
            raise RuntimeError(ErrorMessages.BOT_NOT_INITIALIZED)
        return self._bot

    # === Infrastructure ===

    @property
    def audio_resolver(self) -> AudioResolver:
        if self._audio_resolver is None:
            from ..infrastructure.audio.ytdlp_resolver import YtDlpResolver

            self._audio_resolver = YtDlpResolver(self.settings.audio)
        return self._audio_resolver

    @property
    def decode_pipeline(self) -> DecodePipeline:
        if self._decode_pipeline is None:
            from ..infrastructure.audio.ffmpeg_pipeline import FFmpegDecodePipeline

            self._decode_pipeline = FFmpegDecodePipeline(self.settings.audio)
        return self._decode_pipeline

    def create_sink(self, guild_id: int) -> AudioSink:
        """Voice sink for one guild; requires the bot to be set."""
        from ..infrastructure.discord.adapters.voice_sink import DiscordVoiceSink

        return DiscordVoiceSink(self.bot, guild_id)

    # === Sessions ===

    @property
    def session_manager(self) -> SessionManager:
        if self._session_manager is None:
            from ..application.services.session_manager import SessionManager

            self._session_manager = SessionManager(
                sink_factory=self.create_sink,
                pipeline=self.decode_pipeline,
                settings=self.settings.session,
            )
        return self._session_manager

    # === Command handlers ===

    @property
    def play_track_handler(self) -> PlayTrackHandler:
        if self._play_track_handler is None:
            from ..application.commands.play_track import PlayTrackHandler

            self._play_track_handler = PlayTrackHandler(
                session_manager=self.session_manager,
                audio_resolver=self.audio_resolver,
            )
        return self._play_track_handler

    @property
    def skip_track_handler(self) -> SkipTrackHandler:
        if self._skip_track_handler is None:
            from ..application.commands.skip_track import SkipTrackHandler

            self._skip_track_handler = SkipTrackHandler(session_manager=self.session_manager)
        return self._skip_track_handler

    @property
    def clear_queue_handler(self) -> ClearQueueHandler:
        if self._clear_queue_handler is None:
            from ..application.commands.clear_queue import ClearQueueHandler

            self._clear_queue_handler = ClearQueueHandler(session_manager=self.session_manager)
        return self._clear_queue_handler

    @property
    def remove_track_handler(self) -> RemoveTrackHandler:
        if self._remove_track_handler is None:
            from ..application.commands.remove_track import RemoveTrackHandler

            self._remove_track_handler = RemoveTrackHandler(session_manager=self.session_manager)
        return self._remove_track_handler

    @property
    def toggle_loop_handler(self) -> ToggleLoopHandler:
        if self._toggle_loop_handler is None:
            from ..application.commands.toggle_loop import ToggleLoopHandler

            self._toggle_loop_handler = ToggleLoopHandler(session_manager=self.session_manager)
        return self._toggle_loop_handler

    @property
    def disconnect_handler(self) -> DisconnectHandler:
        if self._disconnect_handler is None:
            from ..application.commands.disconnect import DisconnectHandler

            self._disconnect_handler = DisconnectHandler(session_manager=self.session_manager)
        return self._disconnect_handler

    # === Query handlers ===

    @property
    def get_queue_handler(self) -> GetQueueHandler:
        if self._get_queue_handler is None:
            from ..application.queries.get_queue import GetQueueHandler

            self._get_queue_handler = GetQueueHandler(session_manager=self.session_manager)
        return self._get_queue_handler

    @property
    def get_current_handler(self) -> GetCurrentTrackHandler:
        if self._get_current_handler is None:
            from ..application.queries.get_current import GetCurrentTrackHandler

            self._get_current_handler = GetCurrentTrackHandler(
                session_manager=self.session_manager
            )
        return self._get_current_handler

    # === Lifecycle ===

    async def initialize(self) -> None:
        """Check external tools and build the session manager up front."""
        audio = self.settings.audio
        for stage, executable in (
            ("fetch", audio.fetch_executable),
            ("transcode", audio.ffmpeg_executable),
        ):
            if shutil.which(executable) is None:
                logger.warning(LogTemplates.BOT_EXECUTABLE_MISSING, stage, executable)

        _ = self.session_manager

    async def shutdown(self) -> None:
        """Disconnect every guild session."""
        if self._session_manager is not None:
            await self._session_manager.shutdown()


def create_container(settings: Settings) -> Container:
    """Create a new dependency injection container."""
    return Container(settings)
