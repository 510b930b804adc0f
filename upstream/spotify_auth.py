import logging
from typing import Any, Dict, Iterable, Optional

import requests
from spotipy.cache_handler import MemoryCacheHandler
from spotipy.oauth2 import SpotifyOAuth, SpotifyOauthError

from shared.config import AppConfig
from shared.constants import SPOTIFY_SCOPES
from shared.errors import ApiError, UpstreamAuthError
from shared.models import TokenInfo

logger = logging.getLogger(__name__)


class SpotifyAuth:
    """Handles the Spotify authorization-code flow (client secret, server side)."""

    def __init__(self, config: AppConfig, scopes: Optional[Iterable[str]] = None):
        self.client_id = config.client_id
        self.client_secret = config.client_secret
        self.redirect_uri = config.redirect_uri
        self.scope = " ".join(scopes if scopes is not None else SPOTIFY_SCOPES)
        self.timeout = config.upstream_timeout

    def _oauth(self) -> SpotifyOAuth:
        # A fresh manager with an in-memory cache per call: tokens belong to
        # the visitor's session, never to this process.
        return SpotifyOAuth(
            client_id=self.client_id,
            client_secret=self.client_secret,
            redirect_uri=self.redirect_uri,
            scope=self.scope,
            cache_handler=MemoryCacheHandler(),
            show_dialog=True,
            open_browser=False,
            requests_timeout=self.timeout,
        )

    def generate_auth_url(self, state: Optional[str] = None) -> str:
        """Build the upstream authorize URL for the fixed scope set."""
        try:
            oauth = self._oauth()
        except SpotifyOauthError as e:
            # spotipy refuses to build the manager without client credentials
            logger.error(f"Spotify OAuth is not configured: {e}")
            raise ApiError(f"Spotify OAuth is not configured: {e}", status_code=500) from e
        return oauth.get_authorize_url(state=state)

    def exchange_code_for_tokens(self, code: str) -> TokenInfo:
        """Trade an authorization code for an access/refresh token pair."""
        payload = self._token_call("code exchange", lambda oauth: oauth.get_access_token(
            code, as_dict=True, check_cache=False
        ))
        token = TokenInfo.from_token_response(payload)
        if not token.access_token:
            raise UpstreamAuthError("Spotify token exchange returned no access token")
        return token

    def refresh_access_token(self, refresh_token: str) -> TokenInfo:
        """
        Use the refresh grant to obtain a new access token.

        Spotify may omit refresh_token on refresh; the old one is kept.
        """
        if not refresh_token:
            raise UpstreamAuthError("No refresh token available")
        payload = self._token_call("token refresh", lambda oauth: oauth.refresh_access_token(refresh_token))
        token = TokenInfo.from_token_response(payload).with_refresh_fallback(refresh_token)
        if not token.access_token:
            raise UpstreamAuthError("Spotify token refresh returned no access token")
        return token

    def _token_call(self, label: str, call) -> Dict[str, Any]:
        try:
            payload = call(self._oauth())
        except SpotifyOauthError as e:
            logger.warning(f"Spotify {label} rejected: {e}")
            raise UpstreamAuthError(f"Spotify {label} failed: {e}") from e
        except requests.exceptions.RequestException as e:
            logger.error(f"Spotify {label} request failed: {e}")
            raise UpstreamAuthError(f"Spotify {label} request failed: {e}") from e

        if not isinstance(payload, dict):
            raise UpstreamAuthError(f"Spotify {label} response was not an object: {payload!r}")
        return payload
