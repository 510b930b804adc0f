from unittest.mock import MagicMock

import pytest

from player.audio_port import AudioPort
from shared.api import create_app
from shared.config import AppConfig
from shared.errors import UpstreamAuthError
from shared.models import TokenInfo

NOW = 1_700_000_000.0
PROFILE = {"id": "user42", "display_name": "Test User", "country": "SE", "product": "premium"}


class FakeAuth:
    """Stands in for upstream.SpotifyAuth."""

    def __init__(self):
        self.refresh_result = TokenInfo(access_token="AT2", expires_in=3600)
        self.refresh_calls = []

    def generate_auth_url(self, state=None):
        return "https://accounts.spotify.com/authorize?client_id=test-client&response_type=code"

    def exchange_code_for_tokens(self, code):
        if code != "valid123":
            raise UpstreamAuthError("invalid_grant")
        return TokenInfo(access_token="AT1", expires_in=3600, refresh_token="RT1")

    def refresh_access_token(self, refresh_token):
        self.refresh_calls.append(refresh_token)
        if refresh_token == "revoked":
            raise UpstreamAuthError("invalid_grant")
        return self.refresh_result.with_refresh_fallback(refresh_token)


class ClientFactory:
    """Hands out one MagicMock upstream client per token, recording the tokens."""

    def __init__(self):
        self.tokens = []
        self.client = MagicMock()
        self.client.current_user.return_value = dict(PROFILE)

    def __call__(self, token):
        self.tokens.append(token)
        return self.client


class FakeAudioPort(AudioPort):
    """Records transport commands; tests fire events by hand."""

    def __init__(self):
        super().__init__()
        self.calls = []
        self.volume = None

    def load(self, url):
        self.calls.append(("load", url))

    def play(self):
        self.calls.append(("play",))

    def pause(self):
        self.calls.append(("pause",))

    def stop(self):
        self.calls.append(("stop",))

    def seek(self, position):
        self.calls.append(("seek", position))

    def set_volume(self, volume):
        self.volume = volume
        self.calls.append(("set_volume", volume))

    def close(self):
        self.calls.append(("close",))

    def fire_time_update(self, position):
        self._emit_time_update(position)

    def fire_loaded_metadata(self, duration):
        self._emit_loaded_metadata(duration)

    def fire_ended(self):
        self._emit_ended()

    def fire_error(self, error):
        self._emit_error(error)


@pytest.fixture
def fake_auth():
    return FakeAuth()


@pytest.fixture
def client_factory():
    return ClientFactory()


@pytest.fixture
def clock():
    return MagicMock(return_value=NOW)


@pytest.fixture
def app(fake_auth, client_factory, clock):
    config = AppConfig(
        client_id="test-client",
        client_secret="test-secret",
        session_secret="test-secret-key",
        cors_origins=["http://localhost:5173"],
    )
    app = create_app(config, auth=fake_auth, client_factory=client_factory, clock=clock)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def http(app):
    return app.test_client()


@pytest.fixture
def logged_in(http):
    """A test client whose session holds a live token."""
    with http.session_transaction() as sess:
        sess.update({
            "user_id": "user42",
            "access_token": "AT1",
            "refresh_token": "RT1",
            "token_expiry": int(NOW * 1000) + 3_600_000,
        })
    return http


@pytest.fixture
def port():
    return FakeAudioPort()
