"""
Shared constants used across the proxy and the player.
"""

# OAuth scopes requested at login
SPOTIFY_SCOPES = [
    "user-read-private",
    "user-read-email",
    "user-read-recently-played",
    "user-top-read",
    "playlist-read-private",
    "playlist-read-collaborative",
    "user-library-read",
    "user-library-modify",
    "user-follow-read",
]

# Server settings
DEFAULT_PORT = 3001
DEFAULT_REDIRECT_URI = f"http://localhost:{DEFAULT_PORT}/auth/callback"
DEFAULT_FRONTEND_URL = "/"
DEFAULT_DEV_CORS_ORIGINS = ["http://localhost:5173", "http://127.0.0.1:5173"]
FALLBACK_SESSION_SECRET = "fallback-secret-key"

# Session cookie
SESSION_COOKIE_NAME = "spotify_session"
SESSION_MAX_AGE_SEC = 24 * 60 * 60

# Network Settings
DEFAULT_NETWORK_TIMEOUT = 10  # seconds

# Search / listing limits
SEARCH_TYPES = ["track", "album", "artist", "playlist", "show", "episode", "audiobook"]
DEFAULT_SEARCH_TYPES = ["track", "album", "artist"]
DEFAULT_LIST_LIMIT = 20
MAX_LIST_LIMIT = 50
MAX_RECOMMENDATION_LIMIT = 100
MAX_SEED_TRACKS = 5

# Login error redirect codes
LOGIN_ERROR_ACCESS_DENIED = "access_denied"
LOGIN_ERROR_INVALID_CODE = "invalid_code"
LOGIN_ERROR_AUTH_FAILED = "auth_failed"

# Client side
AUTH_STATUS_POLL_INTERVAL_SEC = 5 * 60
DEFAULT_VOLUME = 0.7
DEFAULT_PROXY_URL = f"http://localhost:{DEFAULT_PORT}"
