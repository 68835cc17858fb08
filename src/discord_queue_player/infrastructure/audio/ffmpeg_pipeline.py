"""
FFmpeg Decode Pipeline

Infrastructure component that chains a yt-dlp fetch process into an FFmpeg
transcode process and exposes the result as fixed-size PCM frames.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

from discord_queue_player.application.interfaces.decode_pipeline import (
    DecodePipeline,
    FrameSource,
)
from discord_queue_player.config.settings import AudioSettings
from discord_queue_player.domain.shared.exceptions import DecodeFailedError
from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates

if TYPE_CHECKING:
    from ...application.services.playback_scope import PlaybackScope

logger = logging.getLogger(__name__)

FETCH_STAGE = "fetch"
TRANSCODE_STAGE = "transcode"


@dataclass
class FFmpegConfig:
    """Command lines and limits for the fetch → transcode pipeline."""

    fetch_executable: str = "yt-dlp"
    ytdlp_format: str = "bestaudio/best"
    ffmpeg_executable: str = "ffmpeg"

    # Output format expected by the voice sink
    sample_rate: int = 48000
    channels: int = 2
    frame_size: int = 3840  # 20 ms of 48 kHz stereo s16le

    # Read the input at its native rate so frames arrive in real time
    realtime: bool = True

    pump_chunk_size: int = 64 * 1024
    shutdown_timeout: float = 2.0

    @classmethod
    def from_settings(cls, settings: AudioSettings) -> FFmpegConfig:
        return cls(
            fetch_executable=settings.fetch_executable,
            ytdlp_format=settings.ytdlp_format,
            ffmpeg_executable=settings.ffmpeg_executable,
            sample_rate=settings.sample_rate,
            channels=settings.channels,
            frame_size=settings.frame_size,
            shutdown_timeout=settings.process_shutdown_timeout_seconds,
        )

    def get_fetch_args(self, stream_url: str) -> list[str]:
        """Get the yt-dlp command line writing the raw media to stdout."""
        return [
            self.fetch_executable,
            "--quiet",
            "-f",
            self.ytdlp_format,
            "-o",
            "-",
            stream_url,
        ]

    def get_transcode_args(self) -> list[str]:
        """Get the FFmpeg command line turning stdin into raw PCM on stdout."""
        args = [self.ffmpeg_executable, "-hide_banner", "-loglevel", "error"]
        if self.realtime:
            args.append("-re")
        args += [
            "-i", "pipe:0",
            "-ac", str(self.channels),
            "-ar", str(self.sample_rate),
            "-f", "s16le",
            "pipe:1",
        ]
        return args


class _FFmpegFrameSource(FrameSource):
    """Frame reader over the transcode process's stdout."""

    def __init__(
        self,
        fetch: asyncio.subprocess.Process,
        transcode: asyncio.subprocess.Process,
        scope: PlaybackScope,
        frame_size: int,
        exit_grace: float,
    ) -> None:
        self._fetch = fetch
        self._transcode = transcode
        self._exit_grace = exit_grace
        self._scope = scope
        self._frame_size = frame_size
        self._frames_read = 0
        self._eof = False

    @property
    def frames_read(self) -> int:
        return self._frames_read

    async def read_frame(self) -> bytes:
        if self._eof:
            return b""

        stdout = self._transcode.stdout
        assert stdout is not None

        try:
            frame = await self._scope.guard(stdout.readexactly(self._frame_size))
        except asyncio.IncompleteReadError as e:
            self._eof = True
            await self._check_exit(has_partial=bool(e.partial))
            if not e.partial:
                return b""
            # Pad the tail so the sink always receives whole frames.
            frame = e.partial + b"\x00" * (self._frame_size - len(e.partial))

        self._frames_read += 1
        return frame

    async def _check_exit(self, *, has_partial: bool) -> None:
        returncode = await self._scope.guard(self._transcode.wait())
        if returncode != 0:
            raise DecodeFailedError(
                ErrorMessages.PIPELINE_STAGE_FAILED.format(
                    stage=TRANSCODE_STAGE, returncode=returncode
                ),
                returncode=returncode,
            )
        # ffmpeg exits cleanly on a truncated input, so the fetch stage decides.
        fetch_returncode = await self._fetch_returncode()
        if fetch_returncode:
            raise DecodeFailedError(
                ErrorMessages.PIPELINE_STAGE_FAILED.format(
                    stage=FETCH_STAGE, returncode=fetch_returncode
                ),
                returncode=fetch_returncode,
            )
        if self._frames_read == 0 and not has_partial:
            raise DecodeFailedError(ErrorMessages.PIPELINE_NO_FRAMES, returncode=returncode)

    async def _fetch_returncode(self) -> int | None:
        try:
            async with asyncio.timeout(self._exit_grace):
                return await self._scope.guard(self._fetch.wait())
        except TimeoutError:
            logger.debug(LogTemplates.PIPELINE_FETCH_STILL_RUNNING, self._exit_grace)
            return None


class FFmpegDecodePipeline(DecodePipeline):
    """Runs one yt-dlp | ffmpeg pipeline per track attempt.

    The two processes are joined by an in-process pump task rather than an
    OS pipe so that every piece of the pipeline is owned, and torn down, by
    the ``open`` context.
    """

    def __init__(
        self, settings: AudioSettings | None = None, config: FFmpegConfig | None = None
    ) -> None:
        """Initialize the pipeline factory.

        Args:
            settings: Audio settings from application config.
            config: Pipeline-specific configuration; derived from ``settings`` if omitted.
        """
        self._settings = settings or AudioSettings()
        self._config = config or FFmpegConfig.from_settings(self._settings)

    @property
    def config(self) -> FFmpegConfig:
        return self._config

    @asynccontextmanager
    async def open(self, stream_url: str, scope: PlaybackScope) -> AsyncIterator[FrameSource]:
        """Start both stages for ``stream_url`` and yield a frame source.

        Args:
            stream_url: URL handed to the fetch stage.
            scope: Cancellation scope of the current track attempt.

        Yields:
            A frame source reading the transcode stage's stdout.

        Raises:
            DecodeFailedError: A stage could not be started.
            PlaybackCancelledError: The scope was already cancelled.
        """
        scope.raise_if_cancelled()

        fetch = await self._spawn(
            self._config.get_fetch_args(stream_url),
            stdin=asyncio.subprocess.DEVNULL,
        )
        try:
            transcode = await self._spawn(
                self._config.get_transcode_args(),
                stdin=asyncio.subprocess.PIPE,
            )
        except BaseException:
            await self._terminate(fetch, FETCH_STAGE)
            raise

        logger.debug(LogTemplates.PIPELINE_STARTED, stream_url, fetch.pid, transcode.pid)

        assert fetch.stdout is not None and fetch.stderr is not None
        assert transcode.stdin is not None and transcode.stderr is not None

        pump = asyncio.create_task(self._pump(fetch.stdout, transcode.stdin))
        drains = [
            asyncio.create_task(self._drain_stderr(fetch.stderr, FETCH_STAGE)),
            asyncio.create_task(self._drain_stderr(transcode.stderr, TRANSCODE_STAGE)),
        ]

        source = _FFmpegFrameSource(
            fetch, transcode, scope, self._config.frame_size, self._config.shutdown_timeout
        )
        try:
            yield source
        finally:
            pump.cancel()
            await self._terminate(fetch, FETCH_STAGE)
            await self._terminate(transcode, TRANSCODE_STAGE)
            await self._join_tasks([pump, *drains])
            logger.debug(LogTemplates.PIPELINE_CLOSED, source.frames_read)

    async def _spawn(self, args: list[str], *, stdin: int) -> asyncio.subprocess.Process:
        try:
            return await asyncio.create_subprocess_exec(
                *args,
                stdin=stdin,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise DecodeFailedError(
                ErrorMessages.PIPELINE_START_FAILED.format(executable=args[0], error=e)
            ) from e

    async def _pump(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        """Copy fetch stdout into transcode stdin, closing stdin at end of input."""
        try:
            while True:
                chunk = await reader.read(self._config.pump_chunk_size)
                if not chunk:
                    break
                writer.write(chunk)
                await writer.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            logger.debug(LogTemplates.PIPELINE_PUMP_STOPPED, e)
        finally:
            if not writer.is_closing():
                writer.close()

    async def _drain_stderr(self, reader: asyncio.StreamReader, stage: str) -> None:
        while True:
            line = await reader.readline()
            if not line:
                return
            text = line.decode(errors="replace").rstrip()
            if text:
                logger.warning(LogTemplates.PIPELINE_STDERR, stage, text)

    async def _terminate(self, process: asyncio.subprocess.Process, stage: str) -> None:
        """Terminate ``process`` and wait for it, escalating to kill after the grace period.

        Args:
            process: The stage process.
            stage: Stage name for log lines.
        """
        if process.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                process.terminate()
            try:
                async with asyncio.timeout(self._config.shutdown_timeout):
                    await process.wait()
            except TimeoutError:
                logger.warning(LogTemplates.PIPELINE_KILLING, stage, self._config.shutdown_timeout)
                with contextlib.suppress(ProcessLookupError):
                    process.kill()
                await process.wait()

        logger.debug(LogTemplates.PIPELINE_STAGE_EXIT, stage, process.returncode)

    async def _join_tasks(self, tasks: list[asyncio.Task[None]]) -> None:
        for task in tasks:
            if not task.done():
                task.cancel()

        results = await asyncio.gather(*tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.debug(LogTemplates.PIPELINE_PUMP_STOPPED, result)
