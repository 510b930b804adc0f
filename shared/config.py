import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from dotenv import load_dotenv

from .constants import (
    DEFAULT_DEV_CORS_ORIGINS,
    DEFAULT_FRONTEND_URL,
    DEFAULT_NETWORK_TIMEOUT,
    DEFAULT_PORT,
    DEFAULT_REDIRECT_URI,
    FALLBACK_SESSION_SECRET,
)


def _split_csv(value: Optional[str]) -> List[str]:
    return [part.strip() for part in (value or "").split(",") if part.strip()]


@dataclass
class AppConfig:
    """Server configuration, normally read from the environment / .env."""

    client_id: str = ""
    client_secret: str = ""
    redirect_uri: str = DEFAULT_REDIRECT_URI
    session_secret: str = FALLBACK_SESSION_SECRET
    environment: str = "development"
    port: int = DEFAULT_PORT
    frontend_url: str = DEFAULT_FRONTEND_URL
    cors_origins: List[str] = field(default_factory=lambda: list(DEFAULT_DEV_CORS_ORIGINS))
    upstream_timeout: float = DEFAULT_NETWORK_TIMEOUT
    log_level: str = "INFO"

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "AppConfig":
        if load_env_file:
            load_dotenv()

        environment = os.getenv("APP_ENV") or os.getenv("FLASK_ENV") or "development"
        origins = _split_csv(os.getenv("CORS_ORIGINS"))
        if not origins and environment != "production":
            origins = list(DEFAULT_DEV_CORS_ORIGINS)

        return cls(
            client_id=os.getenv("SPOTIFY_CLIENT_ID", "").strip(),
            client_secret=os.getenv("SPOTIFY_CLIENT_SECRET", "").strip(),
            redirect_uri=os.getenv("SPOTIFY_REDIRECT_URI", "").strip() or DEFAULT_REDIRECT_URI,
            session_secret=os.getenv("SESSION_SECRET") or FALLBACK_SESSION_SECRET,
            environment=environment,
            port=int(os.getenv("PORT", DEFAULT_PORT)),
            frontend_url=os.getenv("FRONTEND_URL", "").strip() or DEFAULT_FRONTEND_URL,
            cors_origins=origins,
            upstream_timeout=float(os.getenv("UPSTREAM_TIMEOUT", DEFAULT_NETWORK_TIMEOUT)),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )

    def check_credentials(self) -> Dict[str, Any]:
        """Validate the OAuth settings and return a structured status dict."""
        missing = [
            name
            for name, value in (
                ("SPOTIFY_CLIENT_ID", self.client_id),
                ("SPOTIFY_CLIENT_SECRET", self.client_secret),
                ("SPOTIFY_REDIRECT_URI", self.redirect_uri),
            )
            if not value
        ]
        warnings = []
        if self.session_secret == FALLBACK_SESSION_SECRET:
            warnings.append("SESSION_SECRET is not set; using the insecure fallback secret.")

        if missing:
            message = "Missing " + ", ".join(missing) + " in the environment (.env)."
        else:
            message = "Spotify credentials look OK."

        return {
            "ok": not missing,
            "missing": missing,
            "warnings": warnings,
            "redirect_uri": self.redirect_uri,
            "message": message,
        }
