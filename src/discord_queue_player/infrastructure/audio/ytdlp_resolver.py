"""AudioResolver implementation using yt-dlp for URL resolution and search."""

from __future__ import annotations

import asyncio
import hashlib
import logging
import re
import time
from typing import Any, Final, cast

from pydantic import ValidationError
from yt_dlp import YoutubeDL
from yt_dlp.utils import DownloadError

from discord_queue_player.application.interfaces.audio_resolver import AudioResolver
from discord_queue_player.config.settings import AudioSettings
from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import TrackId
from discord_queue_player.domain.shared.exceptions import (
    ResolutionFailedError,
    TrackNotFoundError,
)
from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates
from discord_queue_player.infrastructure.audio.models import (
    CACHE_MAX_SIZE,
    CACHE_TTL,
    HASH_ID_LENGTH,
    LOG_URL_TRUNCATE,
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)

logger = logging.getLogger(__name__)

URL_PATTERNS: Final[list[re.Pattern[str]]] = [
    re.compile(r"https?://"),
    re.compile(r"www\."),
]

YOUTUBE_ID_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?:youtube\.com/watch\?v=|youtu\.be/|youtube\.com/embed/)([a-zA-Z0-9_-]{11})"
)


def _generate_track_id(url: str) -> str:
    match = YOUTUBE_ID_PATTERN.search(url)
    if match:
        return match.group(1)

    return hashlib.sha256(url.encode()).hexdigest()[:HASH_ID_LENGTH]


class YtDlpResolver(AudioResolver):
    """Resolves URLs and free-text searches through yt-dlp.

    Extraction runs in a worker thread; URL lookups are cached for
    ``CACHE_TTL`` seconds since stream URLs expire after a few hours anyway.
    """

    def __init__(self, settings: AudioSettings | None = None) -> None:
        self._settings = settings or AudioSettings()
        self._opts = YtDlpOpts(format=self._settings.ytdlp_format)
        self._cache: dict[str, CacheEntry] = {}

    def _info_to_track(self, info: YtDlpTrackInfo, query: str) -> Track | None:
        url = info.webpage_url or info.url
        if not url:
            logger.warning(LogTemplates.YTDLP_NO_URL_IN_INFO_DICT)
            return None

        stream_url = self._extract_stream_url(info)
        if not stream_url:
            logger.warning(LogTemplates.YTDLP_NO_STREAM_URL, info.title)
            return None

        try:
            return Track(
                id=TrackId(value=info.id or _generate_track_id(url)),
                title=info.title[:500],
                webpage_url=url,
                stream_url=stream_url,
                duration_seconds=info.duration,
                thumbnail_url=info.thumbnail,
                uploader=info.uploader or info.channel,
                query=query,
            )
        except ValidationError as e:
            logger.warning(LogTemplates.YTDLP_INVALID_INFO, info.title, e)
            return None

    def _extract_stream_url(self, info: YtDlpTrackInfo) -> str | None:
        if info.url:
            return info.url
        return self._extract_stream_from_formats(info.formats)

    @staticmethod
    def _extract_stream_from_formats(formats: list[AudioFormatInfo]) -> str | None:
        audio_formats = [f for f in formats if f.has_audio]
        if not audio_formats:
            return None
        # yt-dlp lists formats worst to best
        return audio_formats[-1].url

    def _new_ydl(self) -> YoutubeDL:
        return YoutubeDL(params=cast(Any, self._opts.model_dump()))

    def _extract_info_sync(self, url: str) -> YtDlpTrackInfo | None:
        now = time.time()
        cached = self._cache.get(url)
        if cached is not None:
            if now - cached.cached_at < CACHE_TTL:
                logger.debug(LogTemplates.CACHE_HIT_URL, url[:LOG_URL_TRUNCATE])
                return cached.info
            self._cache.pop(url, None)

        with self._new_ydl() as ydl:
            data = ydl.extract_info(url, download=False)

        result = YtDlpTrackInfo.model_validate(dict(data)) if isinstance(data, dict) else None
        self._cache[url] = CacheEntry(info=result, cached_at=now)
        self._prune_cache(now)
        return result

    def _prune_cache(self, now: float) -> None:
        if len(self._cache) <= CACHE_MAX_SIZE:
            return
        expired = [k for k, entry in self._cache.items() if now - entry.cached_at >= CACHE_TTL]
        for k in expired:
            self._cache.pop(k, None)
        if expired:
            logger.debug(LogTemplates.CACHE_EXPIRED_CLEANED, len(expired))

    def _search_sync(self, query: str) -> YtDlpTrackInfo | None:
        with self._new_ydl() as ydl:
            data = ydl.extract_info(f"ytsearch1:{query}", download=False)

        if not isinstance(data, dict):
            return None
        entries = data.get("entries") or []
        for entry in entries:
            if entry:
                return YtDlpTrackInfo.model_validate(dict(entry))
        return None

    async def resolve(self, query: str) -> Track:
        query = query.strip()
        try:
            if self.is_url(query):
                info = await asyncio.to_thread(self._extract_info_sync, query)
            else:
                info = await asyncio.to_thread(self._search_sync, query)
        except DownloadError as e:
            if self.is_url(query):
                logger.warning(LogTemplates.YTDLP_FAILED_EXTRACT_INFO, query[:LOG_URL_TRUNCATE])
            else:
                logger.warning(LogTemplates.YTDLP_FAILED_SEARCH, query)
            raise ResolutionFailedError(
                query, ErrorMessages.RESOLUTION_FAILED.format(error=e)
            ) from e

        if info is None:
            raise TrackNotFoundError(query)

        track = self._info_to_track(info, query)
        if track is None:
            raise TrackNotFoundError(query)

        logger.debug(LogTemplates.YTDLP_RESOLVED, query, track.title)
        return track

    def is_url(self, query: str) -> bool:
        return any(pattern.search(query) for pattern in URL_PATTERNS)
