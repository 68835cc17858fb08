"""Infrastructure layer - external systems integration.

This layer contains implementations for:
- Discord (bot, cogs, voice sink)
- Audio (yt-dlp resolver, yt-dlp | ffmpeg decode pipeline)
"""

from discord_queue_player.infrastructure.discord.adapters.voice_sink import DiscordVoiceSink
from discord_queue_player.infrastructure.discord.bot import create_bot

__all__ = [
    "create_bot",
    "DiscordVoiceSink",
]
