"""Centralized message constants for error messages, log lines, and user feedback."""

from __future__ import annotations


class ErrorMessages:
    """Error messages for exceptions and validation failures."""

    # Discord ID Validation Errors
    INVALID_SNOWFLAKE = "Discord snowflake ID must be positive"
    SNOWFLAKE_TOO_LARGE = "Discord snowflake ID exceeds maximum value (2^64)"

    # Track Validation Errors
    EMPTY_TRACK_ID = "Track ID cannot be empty"

    # Queue Errors
    INVALID_QUEUE_POSITION = "Queue position cannot be negative"
    INVALID_REMOVE_POSITION = "No pending track at position {position}"
    QUEUE_FULL = "Queue is full ({max_size} tracks)"

    # Session Errors
    NOTHING_PLAYING = "Nothing is playing"
    ALREADY_STOPPING = "The current track is already stopping"
    NOT_CONNECTED_TO_VOICE = "Not connected to a voice channel"
    NO_VOICE_CHANNEL = "No voice channel selected for this session"

    # Voice Errors
    CHANNEL_NOT_FOUND = "Voice channel {channel_id} not found"
    CHANNEL_NOT_VOICE = "Channel {channel_id} is not a voice channel"
    VOICE_NO_PERMISSION = "No permission to join voice channel {channel_id}"
    SINK_NOT_CONNECTED = "Voice connection is closed"
    SINK_SEND_FAILED = "Failed to send audio frame: {error}"
    SINK_BAD_FRAME_SIZE = "Audio frame is {size} bytes, expected {expected}"

    # Decode Pipeline Errors
    PIPELINE_START_FAILED = "Could not start {executable}: {error}"
    PIPELINE_STAGE_FAILED = "{stage} exited with code {returncode}"
    PIPELINE_NO_FRAMES = "Decode pipeline produced no audio"

    # Resolver Errors
    RESOLUTION_FAILED = "Error resolving track: {error}"

    # Configuration Errors
    INVALID_LOG_LEVEL = "Invalid log level: {level}. Must be one of {valid_levels}"
    DISCORD_TOKEN_REQUIRED = "DISCORD__TOKEN environment variable is required"
    BOT_NOT_INITIALIZED = "Bot not initialized. Call set_bot() first."
    CONTAINER_NOT_FOUND = "Container not found on bot instance"


class LogTemplates:
    """Log message templates for structured logging.

    Use these with logger.info(), logger.error(), etc. and pass values as parameters
    for proper log formatting and structured logging support.
    """

    # Track Queue
    QUEUE_CURRENT_NOT_AT_HEAD = "Finished track '%s' is no longer at the queue head"
    QUEUE_ENQUEUED = "Enqueued track '%s' at position %s in guild %s"
    QUEUE_FULL = "Rejected '%s': queue full in guild %s"
    QUEUE_REMOVED = "Removed track '%s' from queue in guild %s"
    QUEUE_CLEARED = "Cleared %s tracks from queue in guild %s"
    LOOP_MODE_CHANGED = "Loop mode changed to %s in guild %s"

    # Cancellation Scope
    SCOPE_CANCELLED = "Cancellation (%s) requested for '%s'"
    SCOPE_LATE_ERROR = "Cancelled operation raised while unwinding: %r"
    CANCEL_REQUESTED = "%s requested for '%s' in guild %s"

    # Processing Loop
    LOOP_STARTED = "Processing loop started in guild %s"
    LOOP_EXITED = "Processing loop exited in guild %s"
    LOOP_CRASHED = "Processing loop crashed in guild %s"

    # Track Lifecycle
    TRACK_STARTED = "Started playing: %s in guild %s"
    TRACK_FINISHED = "Track finished: %s in guild %s"
    TRACK_SKIPPED = "Skipped track: %s in guild %s"
    TRACK_ADVANCED = "Advanced past track: %s in guild %s"
    TRACK_DRAINING = "Draining '%s' after %s"
    TRACK_FAILED = "Track '%s' (%s) failed at stage %s in guild %s: %s"
    TRACK_UNEXPECTED_ERROR = "Unexpected error streaming '%s' in guild %s"
    TRACK_CALLBACK_ERROR = "Error in track finished callback for guild %s"
    TRACK_ANNOUNCE_FAILED = "Failed to announce next track in guild %s: %s"

    # Session Lifecycle
    SESSION_CONNECTED = "Connected to voice channel %s in guild %s"
    SESSION_CONNECT_FAILED = "Could not join voice for '%s' in guild %s: %s"
    SESSION_MOVING = "Moving voice connection from channel %s to %s"
    SESSION_CLOSE_FAILED = "Error closing voice connection in guild %s: %r"
    SESSION_DISCONNECTED = "Session disconnected in guild %s"
    SESSION_INACTIVE = "Session inactive in guild %s, disconnecting"
    SESSION_CREATED = "Created session for guild %s"
    SESSION_REMOVED = "Removed session for guild %s"
    SESSION_SHUTDOWN_FAILED = "Error shutting down session for guild %s: %r"
    SESSIONS_SHUTDOWN = "Shut down %s sessions"

    # Inactivity Watchdog
    WATCHDOG_STARTED = "Inactivity watchdog started for %s"
    WATCHDOG_STOPPED = "Inactivity watchdog stopped for %s"
    WATCHDOG_TIMEOUT = "No audio relayed for %s in %.1fs"
    WATCHDOG_CHECK_FAILED = "Error during inactivity check for %s"

    # Decode Pipeline
    PIPELINE_STARTED = "Decode pipeline started for %s (fetch pid=%s, transcode pid=%s)"
    PIPELINE_STDERR = "[%s] %s"
    PIPELINE_PUMP_STOPPED = "Byte pump stopped: %r"
    PIPELINE_CLOSED = "Decode pipeline closed after %d frames"
    PIPELINE_KILLING = "%s did not exit within %.1fs, killing"
    PIPELINE_STAGE_EXIT = "%s exited with code %s"
    PIPELINE_FETCH_STILL_RUNNING = "Fetch stage still running %.1fs after transcode end of stream"

    # Voice Sink
    VOICE_CONNECTED = "Connected to voice channel %s in %s"
    VOICE_DISCONNECTED = "Disconnected from voice channel %s"
    VOICE_CONNECTION_TIMEOUT = "Timeout connecting to channel %s"
    VOICE_NO_PERMISSION = "No permission to connect to channel %s"
    VOICE_CLIENT_ERROR = "Client error connecting: %r"
    VOICE_CHANNEL_NOT_VOICE = "Channel %s is not a voice channel"
    VOICE_SPEAKING_FAILED = "Failed to set speaking state in channel %s: %r"
    VOICE_DISCONNECT_FAILED = "Failed to disconnect from channel %s: %r"

    # Resolver
    CACHE_HIT_URL = "Cache hit for URL: %s"
    CACHE_EXPIRED_CLEANED = "Cleaned %d expired cache entries"
    YTDLP_NO_URL_IN_INFO_DICT = "No URL found in info dict"
    YTDLP_NO_STREAM_URL = "No stream URL found for %s"
    YTDLP_FAILED_EXTRACT_INFO = "Failed to extract info from %s"
    YTDLP_FAILED_SEARCH = "Failed to search for %r"
    YTDLP_RESOLVED = "Resolved %r to '%s'"
    YTDLP_INVALID_INFO = "Discarding unusable result '%s': %s"

    # Commands
    PLAY_RESOLUTION_FAILED = "Failed to resolve %r in guild %s: %s"

    # Bot Lifecycle
    BOT_STARTING = "Starting Discord Queue Player in {environment} mode"
    BOT_SETUP = "Setting up bot..."
    BOT_SETUP_COMPLETE = "Bot setup complete"
    BOT_CONTAINER_INITIALIZED = "Container initialized"
    BOT_CONTAINER_INIT_FAILED = "Container initialization failed: %s"
    BOT_EXECUTABLE_MISSING = "%s executable %r not found on PATH; playback will fail until it is installed"
    BOT_STARTING_RUN = "Starting bot..."
    BOT_STOPPED = "Bot stopped successfully"
    BOT_KEYBOARD_INTERRUPT = "Received keyboard interrupt, shutting down..."
    BOT_FATAL_ERROR = "Fatal error: %s"
    BOT_SHUTTING_DOWN = "Shutting down bot..."
    BOT_SHUTDOWN_TIMEOUT = "Graceful shutdown did not finish within %.0fs"
    BOT_CONTAINER_SHUTDOWN = "Container shutdown complete"
    BOT_CONTAINER_SHUTDOWN_ERROR = "Error during container shutdown: %s"
    BOT_SHUTDOWN_COMPLETE = "Bot shutdown complete"
    BOT_READY = "Bot ready as %s (%s)"
    BOT_CONNECTED_GUILDS = "Connected to %s guilds"

    # Bot Cog Management
    BOT_COG_LOADED = "Loaded cog: %s"
    BOT_COG_LOAD_FAILED = "Failed to load cog %s: %s"

    # Bot Command Sync
    BOT_SYNCED_GUILD = "Synced %s commands to guild %s"
    BOT_SYNC_GUILD_FAILED = "Failed to sync to guild %s: %s"
    BOT_SYNCED_GLOBAL = "Synced %s commands globally"
    BOT_SYNC_GLOBAL_FAILED = "Failed to sync commands globally: %s"
    BOT_SYNC_ON_STARTUP_FAILED = "Failed to sync commands on startup: %s"

    # Bot Error Handling
    BOT_SLASH_COMMAND_ERROR = "Slash command error in '%s': %s"
    BOT_ERROR_MESSAGE_SEND_FAILED = "Failed to send error message to user"
    BOT_VOICE_STATE_DISCONNECT = "Bot was removed from voice in guild %s, resetting session"

    # Logging Setup
    LOGGING_CONFIG_FALLBACK = "Could not load %s, falling back to basic config"


class DiscordUIMessages:
    """User-facing Discord messages and responses.

    These strings are shown directly to users in Discord interactions.
    Keep them concise, friendly, and include appropriate emoji.
    """

    # Error Messages
    ERROR_OCCURRED = "❌ An error occurred: {error}"
    ERROR_TRACK_NOT_FOUND = "❌ Couldn't find a track for: {query}"
    ERROR_POSITION_MUST_BE_POSITIVE = "❌ Position must be 1 or greater."
    ERROR_NO_TRACK_AT_POSITION = "❌ No track at position {position}."
    ERROR_ALREADY_STOPPING = "⏳ The current track is already stopping."
    ERROR_COULD_NOT_PLAY = "❌ {message}"

    # Action Messages
    ACTION_NOW_PLAYING = "🎵 Now playing: **{track_title}**"
    ACTION_QUEUED = "⏭️ Queued at position {position}: **{track_title}**"
    ACTION_SKIPPED = "⏭️ Skipped: **{track_title}**"
    ACTION_ADVANCED = "⏩ Moving on from: **{track_title}**"
    ACTION_LOOP_MODE_CHANGED = "{emoji} Loop mode: **{mode}**"
    ACTION_DISCONNECTED = "👋 Disconnected from voice channel."
    ACTION_TRACK_REMOVED = "🗑️ Removed: **{track_title}**"
    ACTION_QUEUE_CLEARED = "🗑️ Cleared {count} tracks from the queue."
    ACTION_UP_NEXT = "🎶 Up next: **{track_title}**"

    # State Messages
    STATE_NOTHING_PLAYING = "Nothing is playing."
    STATE_QUEUE_EMPTY = "Queue is empty."
    STATE_QUEUE_ALREADY_EMPTY = "Queue is already empty."
    STATE_NOT_CONNECTED_TO_VOICE = "Not connected to a voice channel."
    STATE_NEED_TO_BE_IN_VOICE = "You need to be in a voice channel first."
    STATE_SERVER_ONLY = "This command can only be used in a server."
    STATE_VERIFY_VOICE_FAILED = "Could not verify your voice state."

    # Embed Titles
    EMBED_NOW_PLAYING = "🎵 Now Playing"
    EMBED_QUEUE = "📋 Queue ({total_tracks} tracks) - Page {page}/{total_pages}"
    EMBED_FIELD_REQUESTED_BY = "Requested by"
    EMBED_FIELD_DURATION = "Duration"
    EMBED_FIELD_LOOP = "Loop"
