"""
Session token store.

The session lives entirely in the signed cookie Flask manages; these helpers
read and write the token tuple on whatever mutable mapping they are handed
(flask.session in the app, a plain dict in tests). Each request works on its
own copy, so the last write wins.
"""
from typing import MutableMapping, Any, Optional

from shared.errors import AuthRequired, TokenExpired
from shared.models import SessionData, TokenInfo

SESSION_KEYS = ("user_id", "access_token", "refresh_token", "token_expiry")


def load_session(store: MutableMapping[str, Any]) -> SessionData:
    return SessionData.from_dict({k: store.get(k) for k in SESSION_KEYS})


def save_session(store: MutableMapping[str, Any], data: SessionData) -> None:
    """Replace the token tuple in one go; absent fields are removed."""
    values = data.to_dict()
    for key in SESSION_KEYS:
        if key in values:
            store[key] = values[key]
        else:
            store.pop(key, None)


def clear_session(store: MutableMapping[str, Any]) -> None:
    store.clear()


def apply_tokens(data: SessionData, token: TokenInfo, now: float) -> SessionData:
    """Return a copy of `data` carrying the new token pair and expiry."""
    token = token.with_refresh_fallback(data.refresh_token)
    return SessionData(
        user_id=data.user_id,
        access_token=token.access_token,
        refresh_token=token.refresh_token,
        token_expiry=token.expiry_ms(now),
    )


def require_auth(store: MutableMapping[str, Any], now: Optional[float] = None) -> SessionData:
    """
    Session gate for proxied calls.

    Authorized iff an access token is present and now < token_expiry.
    Never refreshes; refresh is its own explicit operation.
    """
    data = load_session(store)
    if not data.access_token:
        raise AuthRequired()
    if not data.is_authorized(now):
        raise TokenExpired()
    return data
