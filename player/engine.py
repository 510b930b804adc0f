"""
Playback controller.

State machine over an injected AudioPort:

    IDLE -> LOADED -> PLAYING <-> PAUSED

Transport commands take effect synchronously on the port. Port events
(time update, metadata, end of track, error) may arrive on a backend thread,
so every mutation goes through one re-entrant lock.
"""

import logging
import threading
from typing import Callable, List, Optional

from shared.constants import DEFAULT_VOLUME
from shared.models import PlaybackState, PlaybackStatus, Track
from .audio_port import AudioPort
from .queue_manager import QueueManager

logger = logging.getLogger(__name__)


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PlaybackEngine:
    """Holds the play queue and transport state and drives the audio port."""

    def __init__(self, port: AudioPort, queue_manager: Optional[QueueManager] = None,
                 volume: float = DEFAULT_VOLUME):
        self.port = port
        self.queue_manager = queue_manager or QueueManager()
        self._lock = threading.RLock()
        self._listeners: List[Callable[[PlaybackState], None]] = []

        self.status = PlaybackStatus.IDLE
        self.current_track: Optional[Track] = None
        self.current_time = 0.0
        self.duration = 0.0
        self.volume = clamp(volume, 0.0, 1.0)

        self.port.set_volume(self.volume)
        self.port.on_time_update(self._handle_time_update)
        self.port.on_loaded_metadata(self._handle_loaded_metadata)
        self.port.on_ended(self._handle_ended)
        self.port.on_error(self._handle_error)
        self.queue_manager.add_change_callback(self._notify)

    @property
    def is_playing(self) -> bool:
        return self.status is PlaybackStatus.PLAYING

    @property
    def queue(self) -> List[Track]:
        return self.queue_manager.get_all()

    @property
    def current_index(self) -> int:
        return self.queue_manager.current_index

    # Transport
    def play_track(self, track: Track) -> None:
        """
        Make `track` current and start it from 0.

        Without a preview source the track is shown but the transport is
        left alone: the controller stays LOADED.
        """
        with self._lock:
            self.current_track = track
            self.current_time = 0.0
            self.duration = 0.0
            if not track.has_preview:
                logger.warning(f"No preview URL available for track {track.id}")
                self.status = PlaybackStatus.LOADED
                self._notify()
                return
            try:
                self.port.load(track.preview_url)
                self.port.play()
            except Exception as e:
                logger.error(f"Failed to play track {track.id}: {e}")
                self.status = PlaybackStatus.LOADED
                self._notify()
                return
            self.status = PlaybackStatus.PLAYING
        self._notify()

    def play_from_queue(self, index: int) -> None:
        """Select queue item `index` and play it; out of range is a no-op."""
        with self._lock:
            track = self.queue_manager.select(index, notify=False)
            if track is not None:
                self.play_track(track)

    def pause(self) -> None:
        with self._lock:
            if self.status is not PlaybackStatus.PLAYING:
                return
            self.port.pause()
            self.status = PlaybackStatus.PAUSED
        self._notify()

    def resume(self) -> None:
        with self._lock:
            if self.status is not PlaybackStatus.PAUSED:
                return
            try:
                self.port.play()
            except Exception as e:
                logger.error(f"Failed to resume track: {e}")
                return
            self.status = PlaybackStatus.PLAYING
        self._notify()

    def toggle(self) -> None:
        with self._lock:
            if self.is_playing:
                self.pause()
            else:
                self.resume()

    def next(self) -> None:
        with self._lock:
            track = self.queue_manager.advance(notify=False)
            if track is not None:
                self.play_track(track)

    def previous(self) -> None:
        with self._lock:
            track = self.queue_manager.retreat(notify=False)
            if track is not None:
                self.play_track(track)

    def seek(self, position: float) -> None:
        with self._lock:
            upper = self.duration if self.duration > 0 else float("inf")
            position = clamp(float(position), 0.0, upper)
            self.current_time = position
            if self.current_track is not None and self.current_track.has_preview:
                self.port.seek(position)
        self._notify()

    def set_volume(self, volume: float) -> None:
        with self._lock:
            self.volume = clamp(float(volume), 0.0, 1.0)
            self.port.set_volume(self.volume)
        self._notify()

    # Queue
    def add_to_queue(self, track: Track) -> None:
        self.queue_manager.add(track)

    def clear_queue(self) -> None:
        """Empty the queue; whatever is playing keeps playing."""
        self.queue_manager.clear()

    def is_current_track(self, track_id: str) -> bool:
        return self.current_track is not None and self.current_track.id == track_id

    # State
    def get_state(self) -> PlaybackState:
        with self._lock:
            return PlaybackState(
                status=self.status,
                current_track=self.current_track,
                is_playing=self.is_playing,
                current_time=self.current_time,
                duration=self.duration,
                volume=self.volume,
                queue=self.queue_manager.get_all(),
                current_index=self.queue_manager.current_index,
            )

    def add_state_listener(self, callback: Callable[[PlaybackState], None]) -> None:
        if callback not in self._listeners:
            self._listeners.append(callback)

    def remove_state_listener(self, callback: Callable[[PlaybackState], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def _notify(self) -> None:
        state = self.get_state()
        for callback in list(self._listeners):
            try:
                callback(state)
            except Exception as e:
                logger.error(f"Error in playback state listener: {e}")

    # Port event handlers
    def _handle_time_update(self, position: float) -> None:
        with self._lock:
            self.current_time = position
        self._notify()

    def _handle_loaded_metadata(self, duration: float) -> None:
        with self._lock:
            self.duration = duration
        self._notify()

    def _handle_ended(self) -> None:
        """Natural end of track: auto-advance, or fall back to IDLE."""
        with self._lock:
            self.current_time = 0.0
            if self.queue_manager.has_next():
                self.next()
                return
            self.status = PlaybackStatus.IDLE
        self._notify()

    def _handle_error(self, error: Optional[Exception]) -> None:
        logger.error(f"Audio output error: {error}")
        with self._lock:
            if self.status is PlaybackStatus.PLAYING:
                self.status = PlaybackStatus.PAUSED
        self._notify()
