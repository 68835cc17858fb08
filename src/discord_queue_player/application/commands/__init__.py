"""
Application Commands (CQRS Write Side)

Command objects and their handlers for write operations.
Commands represent intent to change the system state.
"""

from discord_queue_player.application.commands.clear_queue import (
    ClearQueueCommand,
    ClearQueueHandler,
    ClearResult,
    ClearStatus,
)
from discord_queue_player.application.commands.disconnect import (
    DisconnectCommand,
    DisconnectHandler,
)
from discord_queue_player.application.commands.play_track import (
    PlayTrackCommand,
    PlayTrackHandler,
    PlayTrackResult,
    PlayTrackStatus,
)
from discord_queue_player.application.commands.remove_track import (
    RemoveTrackCommand,
    RemoveTrackHandler,
)
from discord_queue_player.application.commands.skip_track import (
    SkipMode,
    SkipResult,
    SkipTrackCommand,
    SkipTrackHandler,
)
from discord_queue_player.application.commands.toggle_loop import (
    ToggleLoopCommand,
    ToggleLoopHandler,
    ToggleLoopResult,
)

__all__ = [
    # Play
    "PlayTrackCommand",
    "PlayTrackHandler",
    "PlayTrackResult",
    "PlayTrackStatus",
    # Skip / advance
    "SkipMode",
    "SkipResult",
    "SkipTrackCommand",
    "SkipTrackHandler",
    # Clear
    "ClearQueueCommand",
    "ClearQueueHandler",
    "ClearResult",
    "ClearStatus",
    # Remove
    "RemoveTrackCommand",
    "RemoveTrackHandler",
    # Loop
    "ToggleLoopCommand",
    "ToggleLoopHandler",
    "ToggleLoopResult",
    # Disconnect
    "DisconnectCommand",
    "DisconnectHandler",
]
