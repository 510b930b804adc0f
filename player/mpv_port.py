"""
AudioPort backed by python-mpv.
Handles the low-level details of streaming preview clips and relaying events.
"""

import logging
import time

import mpv

from .audio_port import AudioPort

logger = logging.getLogger(__name__)


class MpvAudioPort(AudioPort):
    """Wrapper around MPV for preview playback."""

    TIME_UPDATE_INTERVAL = 0.25

    def __init__(self, player=None):
        super().__init__()
        # vo='null' because we are audio-only; keep_open so eof-reached fires
        self.player = player or mpv.MPV(vo='null', ytdl=False, keep_open='yes')
        self._url = None
        self._last_time_update = 0.0
        self._duration_reported = False
        self._eof = False
        self._started = False

        self.player.observe_property('time-pos', self._handle_time_update)
        self.player.observe_property('duration', self._handle_duration)
        self.player.observe_property('eof-reached', self._handle_eof)
        self.player.observe_property('idle-active', self._handle_idle)

    def load(self, url: str) -> None:
        self._url = url
        self._duration_reported = False
        self._eof = False
        self.player.pause = True
        self.player.play(url)

    def play(self) -> None:
        if self._url is None:
            return
        self.player.pause = False

    def pause(self) -> None:
        self.player.pause = True

    def stop(self) -> None:
        self._url = None
        self.player.stop()

    def seek(self, position: float) -> None:
        if self._url is None:
            return
        try:
            self.player.seek(position, reference='absolute')
        except Exception as e:
            logger.warning(f"Error seeking: {e}")
            self._emit_error(e)

    def set_volume(self, volume: float) -> None:
        # mpv works in 0-100
        self.player.volume = max(0, min(100, int(round(volume * 100))))

    def close(self) -> None:
        self.player.terminate()

    # Event handlers (called on mpv's event thread)
    def _handle_time_update(self, name, value):
        if value is None:
            return
        now = time.monotonic()
        if now - self._last_time_update >= self.TIME_UPDATE_INTERVAL:
            self._last_time_update = now
            self._emit_time_update(float(value))

    def _handle_duration(self, name, value):
        if value and not self._duration_reported:
            self._duration_reported = True
            self._emit_loaded_metadata(float(value))

    def _handle_eof(self, name, value):
        if value:
            self._eof = True
            logger.debug("mpv eof-reached")
            self._emit_ended()

    def _handle_idle(self, name, value):
        # mpv reports idle-active once at startup, before anything is loaded.
        if not value:
            self._started = True
            return
        if self._url is None or self._eof or not self._started:
            return
        # Went idle without reaching EOF: the source failed to load or decode.
        url, self._url = self._url, None
        logger.warning(f"mpv went idle before the end of {url}")
        self._emit_error(RuntimeError(f"Playback stopped before end of stream: {url}"))
        self._emit_ended()
