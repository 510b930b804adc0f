"""
Auth flow controller.

Drives the three-step OAuth dance (redirect, code exchange, refresh) and
owns every mutation of the session token tuple. The session store is always
passed in explicitly; nothing here reaches for request globals.
"""

import logging
import time
from typing import Any, Callable, Dict, MutableMapping, Optional
from urllib.parse import urlencode

from shared.constants import (
    DEFAULT_FRONTEND_URL,
    LOGIN_ERROR_ACCESS_DENIED,
    LOGIN_ERROR_AUTH_FAILED,
    LOGIN_ERROR_INVALID_CODE,
)
from shared.errors import ApiError, AuthRequired
from shared.models import SessionData
from shared.session import apply_tokens, clear_session, load_session, require_auth, save_session

logger = logging.getLogger(__name__)


def login_error_url(reason: str) -> str:
    return f"/login?{urlencode({'error': reason})}"


class AuthFlowController:
    """
    Args:
        auth: Object exposing generate_auth_url / exchange_code_for_tokens /
            refresh_access_token (upstream.SpotifyAuth in production).
        client_factory: Builds an upstream client from an access token.
        frontend_url: Where the browser lands after a successful login.
        clock: Returns epoch seconds; injectable for tests.
    """

    def __init__(
        self,
        auth: Any,
        client_factory: Callable[[str], Any],
        frontend_url: str = DEFAULT_FRONTEND_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.auth = auth
        self.client_factory = client_factory
        self.frontend_url = frontend_url
        self.clock = clock

    def login_url(self) -> str:
        return self.auth.generate_auth_url()

    def complete_login(self, store: MutableMapping[str, Any], code: Optional[str],
                       error: Optional[str] = None) -> str:
        """
        Handle the OAuth callback and return the redirect target.

        The session is written only after both the token exchange and the
        profile lookup succeed; a failed login leaves it untouched.
        """
        if error:
            logger.info(f"Spotify authorization denied: {error}")
            return login_error_url(LOGIN_ERROR_ACCESS_DENIED)
        if not code or not isinstance(code, str):
            return login_error_url(LOGIN_ERROR_INVALID_CODE)

        try:
            token = self.auth.exchange_code_for_tokens(code)
            now = self.clock()
            profile = self.client_factory(token.access_token).current_user()
        except ApiError as e:
            logger.error(f"Auth callback error: {e}")
            return login_error_url(LOGIN_ERROR_AUTH_FAILED)

        data = apply_tokens(SessionData(user_id=(profile or {}).get("id")), token, now)
        save_session(store, data)
        logger.info(f"Session established for user {data.user_id}")
        return self.frontend_url

    def refresh(self, store: MutableMapping[str, Any]) -> Dict[str, Any]:
        """
        Refresh the access token held in the session.

        Raises AuthRequired when there is no refresh token and
        UpstreamAuthError when upstream rejects it.
        """
        data = load_session(store)
        if not data.refresh_token:
            raise AuthRequired("No refresh token available")

        token = self.auth.refresh_access_token(data.refresh_token)
        updated = apply_tokens(data, token, self.clock())
        save_session(store, updated)
        return {"access_token": token.access_token, "expires_in": token.expires_in}

    def logout(self, store: MutableMapping[str, Any]) -> None:
        clear_session(store)

    def status(self, store: MutableMapping[str, Any]) -> Dict[str, Any]:
        data = load_session(store)
        return {
            "authenticated": bool(data.access_token and data.user_id),
            "userId": data.user_id,
            "tokenExpiry": data.token_expiry,
            "expired": data.is_expired(self.clock()),
        }

    def authorize(self, store: MutableMapping[str, Any]) -> SessionData:
        """Gate a proxied call; see shared.session.require_auth."""
        return require_auth(store, now=self.clock())

    def client_for(self, data: SessionData) -> Any:
        return self.client_factory(data.access_token)
