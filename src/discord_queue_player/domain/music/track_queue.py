"""Thread-safe track queue with a current-track cursor and loop modes."""

from __future__ import annotations

import logging
import threading
from collections import deque

from discord_queue_player.domain.music.entities import Track
from discord_queue_player.domain.music.value_objects import LoopMode, QueuePosition
from discord_queue_player.domain.shared.exceptions import BusinessRuleViolationError
from discord_queue_player.domain.shared.messages import ErrorMessages, LogTemplates

logger = logging.getLogger(__name__)


class TrackQueue:
    """FIFO of requested tracks plus the track currently being streamed.

    The current track stays at the head of the sequence while it plays and is
    only popped by :meth:`finish_current` or :meth:`skip_current`. Everything
    behind it is *pending*. Entries are compared by identity, never by value.

    Every method takes the same lock, so the processing loop and caller
    threads can mutate the queue concurrently and readers always see a
    consistent snapshot.
    """

    def __init__(
        self, loop_mode: LoopMode = LoopMode.NONE, *, max_pending: int | None = None
    ) -> None:
        self._lock = threading.RLock()
        self._tracks: deque[Track] = deque()
        self._current: Track | None = None
        self._loop_mode = loop_mode
        self._max_pending = max_pending

    # ── Reads ───────────────────────────────────────────────────────────

    @property
    def current(self) -> Track | None:
        with self._lock:
            return self._current

    @property
    def loop_mode(self) -> LoopMode:
        with self._lock:
            return self._loop_mode

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._tracks) - self._head_offset()

    def __len__(self) -> int:
        with self._lock:
            return len(self._tracks)

    def snapshot(self) -> list[Track]:
        """Return the pending tracks in play order."""
        with self._lock:
            return list(self._tracks)[self._head_offset() :]

    def peek_next(self) -> Track | None:
        """Return what should play next without committing to it."""
        with self._lock:
            if self._loop_mode is LoopMode.SINGLE and self._current is not None:
                return self._current
            return self._tracks[0] if self._tracks else None

    def is_idle(self) -> bool:
        """True when nothing is waiting and no single-track loop is holding a track."""
        with self._lock:
            if self._loop_mode is LoopMode.SINGLE and self._current is not None:
                return False
            return not self._tracks

    # ── Mutations ───────────────────────────────────────────────────────

    def enqueue(self, track: Track) -> QueuePosition:
        """Append a track and return its position among pending tracks."""
        position, _ = self.enqueue_with_wake(track)
        return position

    def enqueue_with_wake(self, track: Track) -> tuple[QueuePosition, bool]:
        """Append a track and report whether the queue was idle just before.

        The idle check and the append happen under one lock, so of several
        racing callers exactly one sees ``True`` and becomes responsible for
        starting playback.

        Raises:
            BusinessRuleViolationError: The queue already holds ``max_pending`` tracks.
        """
        with self._lock:
            pending = len(self._tracks) - self._head_offset()
            if self._max_pending is not None and pending >= self._max_pending:
                raise BusinessRuleViolationError(
                    rule="MAX_QUEUE_SIZE",
                    message=ErrorMessages.QUEUE_FULL.format(max_size=self._max_pending),
                )

            was_idle = self.is_idle()
            self._tracks.append(track)
            return QueuePosition(pending), was_idle

    def commit_current(self, track: Track) -> None:
        with self._lock:
            if self._current is track:
                return
            self._current = track

    def finish_current(self) -> None:
        """Handle normal completion of the current track."""
        with self._lock:
            current = self._current
            if current is None:
                return
            if self._loop_mode is LoopMode.SINGLE:
                return

            if self._tracks and self._tracks[0] is current:
                finished = self._tracks.popleft()
                if self._loop_mode is LoopMode.ALL:
                    self._tracks.append(finished)
            else:
                logger.warning(LogTemplates.QUEUE_CURRENT_NOT_AT_HEAD, current.title)

            self._current = None

    def skip_current(self) -> None:
        """Abandon the current track, advancing past it even under single-track loop."""
        with self._lock:
            current = self._current
            if current is None:
                return

            if self._tracks and self._tracks[0] is current:
                self._tracks.popleft()
            if self._loop_mode is LoopMode.ALL:
                self._tracks.append(current)

            self._current = None

    def remove_at(self, position: int) -> bool:
        """Remove the pending track at ``position``; the current track is never touched."""
        return self.pop_at(position) is not None

    def pop_at(self, position: int) -> Track | None:
        """Remove and return the pending track at ``position``, or None if out of range."""
        with self._lock:
            offset = self._head_offset()
            if not 0 <= position < len(self._tracks) - offset:
                return None
            index = position + offset
            track = self._tracks[index]
            del self._tracks[index]
            return track

    def clear(self) -> int:
        """Drop every track and the current cursor; return how many entries were removed."""
        with self._lock:
            count = len(self._tracks)
            self._tracks.clear()
            self._current = None
            return count

    def set_loop_mode(self, mode: LoopMode) -> None:
        with self._lock:
            self._loop_mode = mode

    def toggle_loop(self) -> LoopMode:
        """Cycle NONE → SINGLE → ALL → NONE and return the new mode."""
        with self._lock:
            self._loop_mode = self._loop_mode.next_mode()
            return self._loop_mode

    # ── Internals ───────────────────────────────────────────────────────

    def _head_offset(self) -> int:
        # Caller holds the lock.
        if self._current is not None and self._tracks and self._tracks[0] is self._current:
            return 1
        return 0
