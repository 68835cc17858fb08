"""Registry of per-guild session controllers."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TYPE_CHECKING

from discord_queue_player.application.services.session_controller import (
    SessionController,
    TrackFinishedCallback,
)
from discord_queue_player.config.settings import SessionSettings
from discord_queue_player.domain.shared.messages import LogTemplates

if TYPE_CHECKING:
    from ..interfaces.audio_sink import AudioSink
    from ..interfaces.decode_pipeline import DecodePipeline

logger = logging.getLogger(__name__)

SinkFactory = Callable[[int], "AudioSink"]


class SessionManager:
    """Keeps exactly one :class:`SessionController` per guild.

    Sinks are per guild, so they are built through ``sink_factory``; the
    decode pipeline is stateless and shared.
    """

    def __init__(
        self,
        *,
        sink_factory: SinkFactory,
        pipeline: DecodePipeline,
        settings: SessionSettings | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._sink_factory = sink_factory
        self._pipeline = pipeline
        self._settings = settings or SessionSettings()
        self._clock = clock
        self._sessions: dict[int, SessionController] = {}
        self._on_track_finished: TrackFinishedCallback | None = None

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._sessions

    def get(self, guild_id: int) -> SessionController | None:
        return self._sessions.get(guild_id)

    def get_or_create(self, guild_id: int) -> SessionController:
        session = self._sessions.get(guild_id)
        if session is None:
            session = SessionController(
                guild_id=guild_id,
                sink=self._sink_factory(guild_id),
                pipeline=self._pipeline,
                settings=self._settings,
                clock=self._clock,
            )
            if self._on_track_finished is not None:
                session.set_track_finished_callback(self._on_track_finished)
            self._sessions[guild_id] = session
            logger.debug(LogTemplates.SESSION_CREATED, guild_id)
        return session

    def set_track_finished_callback(self, callback: TrackFinishedCallback) -> None:
        """Install ``callback`` on every current and future session."""
        self._on_track_finished = callback
        for session in self._sessions.values():
            session.set_track_finished_callback(callback)

    async def remove(self, guild_id: int) -> bool:
        """Disconnect and forget the guild's session."""
        session = self._sessions.pop(guild_id, None)
        if session is None:
            return False

        await session.disconnect()
        logger.debug(LogTemplates.SESSION_REMOVED, guild_id)
        return True

    async def shutdown(self) -> int:
        """Disconnect every session; used on process shutdown."""
        sessions = list(self._sessions.items())
        self._sessions.clear()

        for guild_id, session in sessions:
            try:
                await session.disconnect()
            except Exception as e:
                logger.warning(LogTemplates.SESSION_SHUTDOWN_FAILED, guild_id, e)

        logger.info(LogTemplates.SESSIONS_SHUTDOWN, len(sessions))
        return len(sessions)
