"""
Front-end client for the Tunebridge proxy, plus the auth-status monitor.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Sequence

import requests

from shared.constants import (
    AUTH_STATUS_POLL_INTERVAL_SEC,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_PROXY_URL,
    SESSION_COOKIE_NAME,
)
from shared.errors import ApiError, AuthRequired, NotFound, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

_STATUS_ERRORS = {400: ValidationError, 401: AuthRequired, 404: NotFound}


class ProxyClient:
    """One method per proxy route. Carries the session cookie between calls."""

    def __init__(self, base_url: str = DEFAULT_PROXY_URL, session_cookie: Optional[str] = None,
                 timeout: float = DEFAULT_NETWORK_TIMEOUT, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if session_cookie:
            self._session.cookies.set(SESSION_COOKIE_NAME, session_cookie)

    @property
    def login_url(self) -> str:
        return f"{self.base_url}/auth/login"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        url = f"{self.base_url}{path}"
        clean = {k: v for k, v in (params or {}).items() if v is not None}
        try:
            resp = self._session.request(method, url, params=clean or None, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            raise UpstreamError(f"Proxy request failed: {e}") from e

        if resp.status_code >= 400:
            try:
                message = (resp.json() or {}).get("error") or resp.reason
            except ValueError:
                message = resp.text or resp.reason
            error_cls = _STATUS_ERRORS.get(resp.status_code)
            if error_cls is not None:
                raise error_cls(message)
            raise UpstreamError(message, upstream_status=resp.status_code)

        if not resp.content:
            return {}
        return resp.json()

    # Auth
    def auth_status(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/status")

    def refresh(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/refresh")

    def logout(self) -> Dict[str, Any]:
        return self._request("GET", "/auth/logout")

    # API
    def me(self) -> Dict[str, Any]:
        return self._request("GET", "/api/me")

    def search(self, query: str, types: Optional[Sequence[str]] = None,
               limit: int = 20, offset: int = 0) -> Dict[str, Any]:
        params = {"q": query, "limit": limit, "offset": offset}
        if types:
            params["type"] = ",".join(types)
        return self._request("GET", "/api/search", params=params)

    def get_track(self, track_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/tracks/{track_id}")

    def get_album(self, album_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/albums/{album_id}")

    def get_artist(self, artist_id: str) -> Dict[str, Any]:
        return self._request("GET", f"/api/artists/{artist_id}")

    def recently_played(self, limit: int = 20) -> Dict[str, Any]:
        return self._request("GET", "/api/recently-played", params={"limit": limit})

    def top_tracks(self, limit: int = 20) -> Dict[str, Any]:
        return self._request("GET", "/api/top-tracks", params={"limit": limit})

    def recommendations(self, seed_tracks: List[str], limit: int = 20) -> Dict[str, Any]:
        return self._request("GET", "/api/recommendations",
                             params={"seed_tracks": ",".join(seed_tracks), "limit": limit})

    def check_saved(self, track_id: str) -> bool:
        return bool(self._request("GET", f"/api/tracks/{track_id}/save").get("saved"))

    def save_track(self, track_id: str) -> Dict[str, Any]:
        return self._request("PUT", f"/api/tracks/{track_id}/save")

    def remove_track(self, track_id: str) -> Dict[str, Any]:
        return self._request("DELETE", f"/api/tracks/{track_id}/save")


class AuthMonitor:
    """
    Tracks whether the proxy session is usable.

    While authenticated, re-validates every `interval` seconds on a daemon
    timer; the timer is not re-armed once the session turns unauthenticated.
    """

    def __init__(self, client: ProxyClient, interval: float = AUTH_STATUS_POLL_INTERVAL_SEC):
        self.client = client
        self.interval = interval
        self.is_authenticated = False
        self.user: Optional[Dict[str, Any]] = None
        self._timer: Optional[threading.Timer] = None
        self._running = False
        self._lock = threading.Lock()

    def check_status(self) -> bool:
        try:
            status = self.client.auth_status()
            authenticated = bool(status.get("authenticated"))
            user = None
            if authenticated:
                try:
                    user = self.client.me()
                except ApiError as e:
                    # Profile failure usually means the token expired.
                    logger.warning(f"Failed to fetch user profile: {e}")
                    authenticated = False
        except ApiError as e:
            logger.error(f"Failed to check auth status: {e}")
            authenticated, user = False, None

        with self._lock:
            self.is_authenticated = authenticated
            self.user = user
        return authenticated

    def refresh_auth(self) -> bool:
        try:
            self.client.refresh()
        except ApiError as e:
            logger.error(f"Failed to refresh auth: {e}")
            with self._lock:
                self.is_authenticated = False
                self.user = None
            return False
        ok = self.check_status()
        if ok and self._running and self._timer is None:
            self._schedule()
        return ok

    def logout(self) -> None:
        try:
            self.client.logout()
        except ApiError as e:
            logger.error(f"Logout error: {e}")
        finally:
            with self._lock:
                self.is_authenticated = False
                self.user = None
            self.stop()

    def start(self) -> None:
        """Check once now, then keep polling while authenticated."""
        self._running = True
        self._tick()

    def stop(self) -> None:
        self._running = False
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        self._timer = None
        if not self._running:
            return
        if self.check_status() and self._running:
            self._schedule()
