"""
Queue Manager for the preview player.
Ordered, in-memory play queue with a cursor (current index).
"""

import logging
import threading
from typing import List, Optional, Callable

from shared.models import Track

logger = logging.getLogger(__name__)


class QueueManager:
    """
    Session-based queue - clears when the application exits.

    current_index is -1 iff the queue is empty or nothing is selected.
    """

    def __init__(self):
        self._queue: List[Track] = []
        self._current_index = -1
        self._lock = threading.RLock()
        self._on_change_callbacks: List[Callable[[], None]] = []

    @property
    def current_index(self) -> int:
        return self._current_index

    def add(self, track: Track) -> None:
        """Add a track to the end of the queue."""
        with self._lock:
            self._queue.append(track)
            logger.debug(f"Added to queue: {track.name} by {track.artist}")
        self._notify_change()

    def add_multiple(self, tracks: List[Track]) -> None:
        """Add multiple tracks to the queue at once."""
        with self._lock:
            self._queue.extend(tracks)
            logger.debug(f"Added {len(tracks)} tracks to queue")
        self._notify_change()

    def get_all(self) -> List[Track]:
        """Get a copy of all queued tracks."""
        with self._lock:
            return self._queue.copy()

    def current(self) -> Optional[Track]:
        with self._lock:
            if 0 <= self._current_index < len(self._queue):
                return self._queue[self._current_index]
            return None

    def has_next(self) -> bool:
        with self._lock:
            return self._current_index + 1 < len(self._queue)

    def has_previous(self) -> bool:
        with self._lock:
            return self._current_index > 0

    def select(self, index: int, notify: bool = True) -> Optional[Track]:
        """
        Move the cursor to `index` and return that track.
        Returns None (cursor unchanged) if index is out of range.

        With notify=False no change callback fires; the caller reports the
        move itself.
        """
        with self._lock:
            if not 0 <= index < len(self._queue):
                return None
            self._current_index = index
            track = self._queue[index]
        if notify:
            self._notify_change()
        return track

    def advance(self, notify: bool = True) -> Optional[Track]:
        """Step the cursor forward; None at the last item."""
        with self._lock:
            if not self.has_next():
                return None
            return self.select(self._current_index + 1, notify=notify)

    def retreat(self, notify: bool = True) -> Optional[Track]:
        """Step the cursor back; None at the first item."""
        with self._lock:
            if not self.has_previous():
                return None
            return self.select(self._current_index - 1, notify=notify)

    def clear(self) -> None:
        """Clear all tracks from the queue and reset the cursor."""
        with self._lock:
            count = len(self._queue)
            self._queue.clear()
            self._current_index = -1
            logger.debug(f"Queue cleared ({count} tracks removed)")
        self._notify_change()

    def is_empty(self) -> bool:
        with self._lock:
            return len(self._queue) == 0

    def size(self) -> int:
        with self._lock:
            return len(self._queue)

    def add_change_callback(self, callback: Callable[[], None]) -> None:
        """Register a callback to be called when the queue changes."""
        if callback not in self._on_change_callbacks:
            self._on_change_callbacks.append(callback)

    def remove_change_callback(self, callback: Callable[[], None]) -> None:
        if callback in self._on_change_callbacks:
            self._on_change_callbacks.remove(callback)

    def _notify_change(self) -> None:
        for callback in self._on_change_callbacks:
            try:
                callback()
            except Exception as e:
                logger.error(f"Error in queue change callback: {e}")
