"""Spotify integration: OAuth token endpoint and Web API client."""

from .spotify_auth import SpotifyAuth
from .spotify_client import SpotifyClient

__all__ = ["SpotifyAuth", "SpotifyClient"]
