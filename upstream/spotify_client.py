"""Per-request Spotify Web API client built on spotipy."""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

import requests
import spotipy
from spotipy.exceptions import SpotifyException

from shared.constants import DEFAULT_NETWORK_TIMEOUT, DEFAULT_SEARCH_TYPES
from shared.errors import UpstreamError

logger = logging.getLogger(__name__)


class SpotifyClient:
    """
    Thin wrapper around spotipy bound to one bearer token.

    Built once per incoming request so concurrent requests never share
    authorization state. Every method makes exactly one upstream call and
    returns the parsed body unchanged; there is no retry or backoff.
    """

    def __init__(self, access_token: str, timeout: float = DEFAULT_NETWORK_TIMEOUT,
                 spotify: Optional[spotipy.Spotify] = None):
        self._sp = spotify or spotipy.Spotify(
            auth=access_token,
            requests_timeout=timeout,
            retries=0,
            status_retries=0,
        )

    def _call(self, label: str, fn: Callable[..., Any], *args, **kwargs) -> Any:
        try:
            return fn(*args, **kwargs)
        except SpotifyException as e:
            logger.warning(f"Spotify {label} failed with HTTP {e.http_status}: {e.msg}")
            raise UpstreamError(f"Spotify {label} failed", upstream_status=e.http_status) from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Spotify {label} request failed: {e}")
            raise UpstreamError(f"Spotify {label} request failed") from e

    def current_user(self) -> Dict[str, Any]:
        return self._call("profile", self._sp.me)

    def search(self, query: str, types: Optional[Sequence[str]] = None,
               limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        type_str = ",".join(types or DEFAULT_SEARCH_TYPES)
        return self._call("search", self._sp.search, q=query, type=type_str, limit=limit, offset=offset)

    def get_track(self, track_id: str) -> Dict[str, Any]:
        return self._call("track lookup", self._sp.track, track_id)

    def get_album(self, album_id: str) -> Dict[str, Any]:
        return self._call("album lookup", self._sp.album, album_id)

    def get_artist(self, artist_id: str) -> Dict[str, Any]:
        return self._call("artist lookup", self._sp.artist, artist_id)

    def recently_played(self, limit: int = 20) -> Dict[str, Any]:
        return self._call("recently played", self._sp.current_user_recently_played, limit=limit)

    def top_tracks(self, limit: int = 20) -> Dict[str, Any]:
        return self._call("top tracks", self._sp.current_user_top_tracks, limit=limit)

    def recommendations(self, seed_tracks: List[str], limit: int = 20) -> Dict[str, Any]:
        return self._call("recommendations", self._sp.recommendations, seed_tracks=list(seed_tracks), limit=limit)

    def check_saved_track(self, track_id: str) -> List[bool]:
        return self._call("saved-track check", self._sp.current_user_saved_tracks_contains, tracks=[track_id])

    def save_track(self, track_id: str) -> None:
        self._call("save track", self._sp.current_user_saved_tracks_add, tracks=[track_id])

    def remove_track(self, track_id: str) -> None:
        self._call("remove track", self._sp.current_user_saved_tracks_delete, tracks=[track_id])
