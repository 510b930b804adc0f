"""
Tests for the spotipy-backed upstream client and auth helper.
spotipy itself is replaced by mocks; nothing here touches the network.
"""

import unittest
from unittest.mock import MagicMock, patch

import requests
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOauthError

from shared.config import AppConfig
from shared.errors import ApiError, UpstreamAuthError, UpstreamError
from upstream.spotify_auth import SpotifyAuth
from upstream.spotify_client import SpotifyClient


class TestSpotifyClient(unittest.TestCase):

    def setUp(self):
        self.sp = MagicMock()
        self.client = SpotifyClient("AT1", spotify=self.sp)

    def test_search_joins_types(self):
        self.sp.search.return_value = {"tracks": {"items": []}}
        result = self.client.search("abba", ["track", "album"], limit=5, offset=10)
        self.sp.search.assert_called_once_with(q="abba", type="track,album", limit=5, offset=10)
        self.assertEqual(result, {"tracks": {"items": []}})

    def test_search_default_types(self):
        self.client.search("abba")
        self.assertEqual(self.sp.search.call_args.kwargs["type"], "track,album,artist")

    def test_body_is_returned_unchanged(self):
        payload = {"id": "t1", "preview_url": None, "extra": {"nested": [1, 2]}}
        self.sp.track.return_value = payload
        self.assertIs(self.client.get_track("t1"), payload)

    def test_library_calls_wrap_single_id(self):
        self.sp.current_user_saved_tracks_contains.return_value = [False]
        self.assertEqual(self.client.check_saved_track("t1"), [False])
        self.client.save_track("t1")
        self.client.remove_track("t1")
        self.sp.current_user_saved_tracks_add.assert_called_once_with(tracks=["t1"])
        self.sp.current_user_saved_tracks_delete.assert_called_once_with(tracks=["t1"])

    def test_recommendations_and_history(self):
        self.client.recommendations(("t1", "t2"), limit=40)
        self.client.recently_played(limit=3)
        self.client.top_tracks(limit=4)
        self.sp.recommendations.assert_called_once_with(seed_tracks=["t1", "t2"], limit=40)
        self.sp.current_user_recently_played.assert_called_once_with(limit=3)
        self.sp.current_user_top_tracks.assert_called_once_with(limit=4)

    def test_not_found_passes_through(self):
        self.sp.album.side_effect = SpotifyException(404, -1, "non existing id")
        with self.assertRaises(UpstreamError) as ctx:
            self.client.get_album("nope")
        self.assertEqual(ctx.exception.status_code, 404)
        self.assertEqual(ctx.exception.upstream_status, 404)

    def test_rate_limit_passes_through(self):
        self.sp.me.side_effect = SpotifyException(429, -1, "rate limited")
        with self.assertRaises(UpstreamError) as ctx:
            self.client.current_user()
        self.assertEqual(ctx.exception.status_code, 429)

    def test_server_error_collapses_to_500(self):
        self.sp.artist.side_effect = SpotifyException(503, -1, "unavailable")
        with self.assertRaises(UpstreamError) as ctx:
            self.client.get_artist("a1")
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.upstream_status, 503)

    def test_network_failure_is_upstream_error(self):
        self.sp.track.side_effect = requests.exceptions.ReadTimeout("timed out")
        with self.assertRaises(UpstreamError) as ctx:
            self.client.get_track("t1")
        self.assertEqual(ctx.exception.status_code, 500)

    @patch("upstream.spotify_client.spotipy.Spotify")
    def test_builds_spotipy_without_retries(self, spotify_cls):
        SpotifyClient("AT9", timeout=4)
        spotify_cls.assert_called_once_with(auth="AT9", requests_timeout=4, retries=0, status_retries=0)


class TestSpotifyAuth(unittest.TestCase):

    def setUp(self):
        self.config = AppConfig(
            client_id="cid",
            client_secret="secret",
            redirect_uri="http://localhost:3001/auth/callback",
        )
        patcher = patch("upstream.spotify_auth.SpotifyOAuth")
        self.oauth_cls = patcher.start()
        self.addCleanup(patcher.stop)
        self.oauth = self.oauth_cls.return_value
        self.auth = SpotifyAuth(self.config)

    def test_authorize_url_uses_fixed_scopes_and_dialog(self):
        self.oauth.get_authorize_url.return_value = "https://accounts.spotify.com/authorize?x=1"

        url = self.auth.generate_auth_url()

        self.assertEqual(url, "https://accounts.spotify.com/authorize?x=1")
        kwargs = self.oauth_cls.call_args.kwargs
        self.assertTrue(kwargs["show_dialog"])
        self.assertIn("user-read-private", kwargs["scope"].split())
        self.assertIn("user-library-modify", kwargs["scope"].split())
        self.assertEqual(kwargs["redirect_uri"], "http://localhost:3001/auth/callback")

    def test_missing_client_credentials_is_a_config_error(self):
        self.oauth_cls.side_effect = SpotifyOauthError("No client_id. Pass it or set a SPOTIPY_CLIENT_ID environment variable.")

        with self.assertRaises(ApiError) as ctx:
            self.auth.generate_auth_url()

        self.assertEqual(ctx.exception.status_code, 500)
        self.assertIn("not configured", ctx.exception.message)

    def test_exchange_code(self):
        self.oauth.get_access_token.return_value = {
            "access_token": "AT1", "token_type": "Bearer", "expires_in": 3600, "refresh_token": "RT1",
        }

        token = self.auth.exchange_code_for_tokens("abc")

        self.oauth.get_access_token.assert_called_once_with("abc", as_dict=True, check_cache=False)
        self.assertEqual((token.access_token, token.refresh_token, token.expires_in), ("AT1", "RT1", 3600))

    def test_exchange_rejected_code(self):
        self.oauth.get_access_token.side_effect = SpotifyOauthError("invalid_grant")
        with self.assertRaises(UpstreamAuthError):
            self.auth.exchange_code_for_tokens("bad")

    def test_exchange_network_failure(self):
        self.oauth.get_access_token.side_effect = requests.exceptions.ConnectionError("down")
        with self.assertRaises(UpstreamAuthError):
            self.auth.exchange_code_for_tokens("abc")

    def test_refresh_keeps_old_refresh_token(self):
        self.oauth.refresh_access_token.return_value = {"access_token": "AT2", "expires_in": 3600}

        token = self.auth.refresh_access_token("RT1")

        self.oauth.refresh_access_token.assert_called_once_with("RT1")
        self.assertEqual(token.access_token, "AT2")
        self.assertEqual(token.refresh_token, "RT1")

    def test_refresh_takes_rotated_token(self):
        self.oauth.refresh_access_token.return_value = {
            "access_token": "AT2", "expires_in": 3600, "refresh_token": "RT2",
        }
        self.assertEqual(self.auth.refresh_access_token("RT1").refresh_token, "RT2")

    def test_refresh_without_token(self):
        with self.assertRaises(UpstreamAuthError):
            self.auth.refresh_access_token("")
        self.oauth.refresh_access_token.assert_not_called()

    def test_empty_access_token_is_rejected(self):
        self.oauth.get_access_token.return_value = {"expires_in": 3600}
        with self.assertRaises(UpstreamAuthError):
            self.auth.exchange_code_for_tokens("abc")


if __name__ == '__main__':
    unittest.main()
