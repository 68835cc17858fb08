"""
Application Interfaces (Ports)

Abstract interfaces that define contracts between the application
layer and infrastructure adapters.
"""

from discord_queue_player.application.interfaces.audio_resolver import AudioResolver
from discord_queue_player.application.interfaces.audio_sink import AudioSink, SinkConnection
from discord_queue_player.application.interfaces.decode_pipeline import (
    DecodePipeline,
    FrameSource,
)

__all__ = [
    "AudioResolver",
    "AudioSink",
    "DecodePipeline",
    "FrameSource",
    "SinkConnection",
]
