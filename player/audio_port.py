"""
Playback port: the narrow interface the playback controller drives.

Implementations wrap a native audio output (mpv in player.mpv_port). The
controller only ever talks to this interface, which keeps the state machine
testable without an audio backend.
"""

from abc import ABC, abstractmethod
from typing import Callable, List, Optional


class AudioPort(ABC):
    """Transport commands plus event callbacks."""

    def __init__(self):
        self._on_time_update: List[Callable[[float], None]] = []
        self._on_loaded_metadata: List[Callable[[float], None]] = []
        self._on_ended: List[Callable[[], None]] = []
        self._on_error: List[Callable[[Exception], None]] = []

    @abstractmethod
    def load(self, url: str) -> None:
        """Point the output at a new source; does not start playback."""

    @abstractmethod
    def play(self) -> None:
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def stop(self) -> None:
        pass

    @abstractmethod
    def seek(self, position: float) -> None:
        """Absolute position in seconds."""

    @abstractmethod
    def set_volume(self, volume: float) -> None:
        """Volume in [0, 1]."""

    # Callback registration
    def on_time_update(self, callback: Callable[[float], None]) -> None:
        self._on_time_update.append(callback)

    def on_loaded_metadata(self, callback: Callable[[float], None]) -> None:
        self._on_loaded_metadata.append(callback)

    def on_ended(self, callback: Callable[[], None]) -> None:
        self._on_ended.append(callback)

    def on_error(self, callback: Callable[[Exception], None]) -> None:
        self._on_error.append(callback)

    # Emitters for implementations
    def _emit_time_update(self, position: float) -> None:
        for callback in list(self._on_time_update):
            callback(position)

    def _emit_loaded_metadata(self, duration: float) -> None:
        for callback in list(self._on_loaded_metadata):
            callback(duration)

    def _emit_ended(self) -> None:
        for callback in list(self._on_ended):
            callback()

    def _emit_error(self, error: Optional[Exception]) -> None:
        for callback in list(self._on_error):
            callback(error)
