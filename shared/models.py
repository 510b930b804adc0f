"""
Data models for sessions, tokens, tracks and playback state.

This module defines the core data structures shared by the proxy server
and the player. Upstream payloads stay opaque: Track only lifts the few
fields the player needs and keeps the rest under `raw`.
"""

from dataclasses import dataclass, asdict, field
from typing import List, Dict, Optional, Any
from enum import Enum
import dataclasses
import time


@dataclass(frozen=True)
class TokenInfo:
    """
    Result of one call to the upstream token endpoint.

    Attributes:
        access_token: Bearer token for API calls
        expires_in: Lifetime of the access token in seconds
        refresh_token: Long-lived token; upstream may omit it on refresh
        token_type: Usually "Bearer"
        scope: Space-delimited granted scopes
    """
    access_token: str
    expires_in: int
    refresh_token: Optional[str] = None
    token_type: str = "Bearer"
    scope: Optional[str] = None

    @staticmethod
    def from_token_response(payload: Dict[str, Any]) -> "TokenInfo":
        """Convert token endpoint JSON into TokenInfo."""
        return TokenInfo(
            access_token=str(payload.get("access_token") or ""),
            expires_in=int(payload.get("expires_in") or 0),
            refresh_token=payload.get("refresh_token") or None,
            token_type=str(payload.get("token_type") or "Bearer"),
            scope=payload.get("scope"),
        )

    def with_refresh_fallback(self, refresh_token: Optional[str]) -> "TokenInfo":
        """Keep the previous refresh token when upstream did not send a new one."""
        if self.refresh_token or not refresh_token:
            return self
        return dataclasses.replace(self, refresh_token=refresh_token)

    def expiry_ms(self, now: float) -> int:
        """Absolute expiry in epoch milliseconds, given `now` in epoch seconds."""
        return int(now * 1000) + self.expires_in * 1000


@dataclass
class SessionData:
    """
    Per-visitor token record held in the signed session cookie.

    token_expiry is epoch milliseconds.
    """
    user_id: Optional[str] = None
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    token_expiry: Optional[int] = None

    def is_expired(self, now: Optional[float] = None) -> bool:
        if self.token_expiry is None:
            return False
        now_ms = int((time.time() if now is None else now) * 1000)
        return now_ms >= int(self.token_expiry)

    def is_authorized(self, now: Optional[float] = None) -> bool:
        """An access token is present and not past its expiry."""
        return bool(self.access_token) and self.token_expiry is not None and not self.is_expired(now)

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "SessionData":
        """Create SessionData from a mapping, ignoring unknown keys."""
        data = data or {}
        field_names = {f.name for f in dataclasses.fields(cls)}
        filtered = {k: v for k, v in data.items() if k in field_names}
        return cls(**filtered)


@dataclass
class Track:
    """
    Playable view of an upstream track.

    Attributes:
        id: Upstream track id
        name: Track title
        artists: Artist display names
        album: Album display name
        duration_ms: Full track length in milliseconds
        preview_url: Short playable clip, or None when upstream has none
        uri: Upstream URI
        raw: The untouched upstream payload
    """
    id: str
    name: str = ""
    artists: List[str] = field(default_factory=list)
    album: str = ""
    duration_ms: int = 0
    preview_url: Optional[str] = None
    uri: Optional[str] = None
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    @property
    def artist(self) -> str:
        return ", ".join(self.artists)

    @property
    def has_preview(self) -> bool:
        return bool(self.preview_url)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Track":
        """Create a Track from an upstream track object."""
        artists = [a.get("name", "") for a in (data.get("artists") or []) if isinstance(a, dict)]
        album = data.get("album") or {}
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            artists=[a for a in artists if a],
            album=album.get("name", "") if isinstance(album, dict) else str(album),
            duration_ms=int(data.get("duration_ms") or 0),
            preview_url=data.get("preview_url") or None,
            uri=data.get("uri"),
            raw=dict(data),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "artists": list(self.artists),
            "album": self.album,
            "duration_ms": self.duration_ms,
            "preview_url": self.preview_url,
            "uri": self.uri,
        }


class PlaybackStatus(Enum):
    """Transport states of the playback controller."""
    IDLE = "idle"
    LOADED = "loaded"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class PlaybackState:
    """Immutable snapshot of the playback controller, handed to listeners."""
    status: PlaybackStatus
    current_track: Optional[Track]
    is_playing: bool
    current_time: float
    duration: float
    volume: float
    queue: List[Track]
    current_index: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "current_track": self.current_track.to_dict() if self.current_track else None,
            "is_playing": self.is_playing,
            "current_time": self.current_time,
            "duration": self.duration,
            "volume": self.volume,
            "queue": [t.to_dict() for t in self.queue],
            "current_index": self.current_index,
        }
