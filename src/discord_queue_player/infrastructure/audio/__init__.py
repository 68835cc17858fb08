"""Audio infrastructure - yt-dlp resolver and the fetch/transcode decode pipeline."""

from discord_queue_player.infrastructure.audio.ffmpeg_pipeline import (
    FFmpegConfig,
    FFmpegDecodePipeline,
)
from discord_queue_player.infrastructure.audio.models import (
    AudioFormatInfo,
    CacheEntry,
    YtDlpOpts,
    YtDlpTrackInfo,
)
from discord_queue_player.infrastructure.audio.ytdlp_resolver import YtDlpResolver

__all__ = [
    "AudioFormatInfo",
    "CacheEntry",
    "FFmpegConfig",
    "FFmpegDecodePipeline",
    "YtDlpOpts",
    "YtDlpResolver",
    "YtDlpTrackInfo",
]
