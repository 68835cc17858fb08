import asyncio
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager

import pytest
import pytest_asyncio

from discord_queue_player.application.interfaces.audio_sink import AudioSink, SinkConnection
from discord_queue_player.application.interfaces.decode_pipeline import (
    DecodePipeline,
    FrameSource,
)
from discord_queue_player.config.settings import SessionSettings
from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import TrackId

FRAME = b"\x01" * 3840


# ============================================================================
# Helpers
# ============================================================================


async def wait_until(predicate: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until ``predicate`` holds or ``timeout`` passes."""
    async with asyncio.timeout(timeout):
        while not predicate():
            await asyncio.sleep(0.001)


def build_track(name: str = "a", duration: int | None = 180) -> Track:
    return Track(
        id=TrackId(f"track-{name}"),
        title=f"Track {name.upper()}",
        webpage_url=f"https://www.youtube.com/watch?v={name}",
        stream_url=f"https://stream.example/{name}",
        duration_seconds=duration,
    )


# ============================================================================
# Fake voice sink
# ============================================================================


class FakeConnection(SinkConnection):
    def __init__(self, channel_id: int) -> None:
        self._channel_id = channel_id
        self.connected = True
        self.frames: list[bytes] = []
        self.close_calls = 0
        self.write_error: Exception | None = None

    @property
    def channel_id(self) -> int:
        return self._channel_id

    @property
    def is_connected(self) -> bool:
        return self.connected

    async def write_frame(self, frame: bytes) -> None:
        await asyncio.sleep(0)
        if self.write_error is not None:
            raise self.write_error
        self.frames.append(frame)

    async def close(self) -> None:
        self.close_calls += 1
        self.connected = False


class FakeSink(AudioSink):
    """Records joins; queued errors in ``connect_errors`` are raised one per call."""

    def __init__(self) -> None:
        self.connect_calls: list[int] = []
        self.connections: list[FakeConnection] = []
        self.connect_errors: list[Exception] = []
        self.connect_delay: float = 0.0

    async def connect(self, channel_id: int, timeout: float) -> SinkConnection:
        self.connect_calls.append(channel_id)
        if self.connect_delay:
            await asyncio.sleep(self.connect_delay)
        if self.connect_errors:
            raise self.connect_errors.pop(0)
        connection = FakeConnection(channel_id)
        self.connections.append(connection)
        return connection

    @property
    def last_connection(self) -> FakeConnection:
        return self.connections[-1]


# ============================================================================
# Fake decode pipeline
# ============================================================================


class FakeFrameSource(FrameSource):
    def __init__(self, pipeline: "FakePipeline", url: str, scope) -> None:
        self._pipeline = pipeline
        self._url = url
        self._scope = scope
        self._remaining = pipeline.frames_per_track
        self._frames_read = 0

    @property
    def frames_read(self) -> int:
        return self._frames_read

    async def _next(self) -> bytes:
        await asyncio.sleep(0)
        error = self._pipeline.fail_urls.get(self._url)
        if error is not None:
            raise error
        if self._remaining > 0:
            self._remaining -= 1
            return FRAME
        if self._url in self._pipeline.blocking_urls or self._pipeline.block_all:
            await asyncio.Event().wait()
        return b""

    async def read_frame(self) -> bytes:
        frame = await self._scope.guard(self._next())
        if frame:
            self._frames_read += 1
        return frame


class FakePipeline(DecodePipeline):
    """Yields ``frames_per_track`` frames then EOF.

    URLs in ``blocking_urls`` (or every URL when ``block_all``) never reach EOF,
    standing in for a long track; errors in ``fail_urls`` are raised on read.
    """

    def __init__(self, frames_per_track: int = 3) -> None:
        self.frames_per_track = frames_per_track
        self.blocking_urls: set[str] = set()
        self.block_all = False
        self.fail_urls: dict[str, Exception] = {}
        self.opened: list[str] = []
        self.closed: list[str] = []

    @property
    def active(self) -> int:
        return len(self.opened) - len(self.closed)

    @asynccontextmanager
    async def open(self, stream_url: str, scope) -> AsyncIterator[FrameSource]:
        scope.raise_if_cancelled()
        self.opened.append(stream_url)
        try:
            yield FakeFrameSource(self, stream_url, scope)
        finally:
            self.closed.append(stream_url)


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def track_a():
    return build_track("a")


@pytest.fixture
def track_b():
    return build_track("b")


@pytest.fixture
def track_c():
    return build_track("c")


@pytest.fixture
def fake_sink():
    return FakeSink()


@pytest.fixture
def fake_pipeline():
    return FakePipeline()


@pytest.fixture
def session_settings():
    return SessionSettings(
        connect_timeout_seconds=1.0,
        inactivity_timeout_minutes=1.0,
        watchdog_interval_seconds=60.0,
        max_queue_size=10,
    )


@pytest_asyncio.fixture
async def make_controller(fake_sink, fake_pipeline, session_settings):
    """Factory building SessionControllers wired to the fakes; disconnected on teardown."""
    from discord_queue_player.application.services.session_controller import SessionController

    created = []

    def _make(**overrides):
        kwargs = {
            "guild_id": 111,
            "sink": fake_sink,
            "pipeline": fake_pipeline,
            "settings": session_settings,
        }
        kwargs.update(overrides)
        controller = SessionController(**kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        await controller.disconnect()
