"""
Query/path parameter validation for the proxy routes.

Every helper raises ValidationError before anything reaches upstream.
"""

import re
from typing import Any, Dict, List, Mapping, Optional

from shared.constants import (
    DEFAULT_LIST_LIMIT,
    DEFAULT_SEARCH_TYPES,
    MAX_LIST_LIMIT,
    MAX_SEED_TRACKS,
    SEARCH_TYPES,
)
from shared.errors import ValidationError

_ID_RE = re.compile(r"^[A-Za-z0-9]+$")


def validate_id(value: Optional[str], kind: str = "Track") -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(f"{kind} ID is required")
    if not _ID_RE.match(value):
        raise ValidationError(f"Invalid {kind.lower()} ID", details={"id": value})
    return value


def parse_int(args: Mapping[str, Any], name: str, default: int,
              minimum: int, maximum: Optional[int] = None) -> int:
    raw = args.get(name)
    if raw is None or str(raw).strip() == "":
        return default
    try:
        value = int(str(raw).strip())
    except ValueError:
        raise ValidationError(f"{name} must be an integer", details={name: raw})
    if value < minimum or (maximum is not None and value > maximum):
        bounds = f">= {minimum}" if maximum is None else f"between {minimum} and {maximum}"
        raise ValidationError(f"{name} must be {bounds}", details={name: value})
    return value


def parse_limit(args: Mapping[str, Any], maximum: int = MAX_LIST_LIMIT) -> int:
    return parse_int(args, "limit", DEFAULT_LIST_LIMIT, 1, maximum)


def parse_csv(raw: Optional[str]) -> List[str]:
    return [part.strip() for part in (raw or "").split(",") if part.strip()]


def parse_search_query(args: Mapping[str, Any]) -> Dict[str, Any]:
    """Validate /api/search parameters into q, types, limit, offset."""
    query = (args.get("q") or "").strip()
    if not query:
        raise ValidationError("Search query is required")

    types = parse_csv(args.get("type")) or list(DEFAULT_SEARCH_TYPES)
    unknown = [t for t in types if t not in SEARCH_TYPES]
    if unknown:
        raise ValidationError("Invalid search type", details={"type": unknown, "allowed": SEARCH_TYPES})

    return {
        "query": query,
        "types": types,
        "limit": parse_limit(args),
        "offset": parse_int(args, "offset", 0, 0),
    }


def parse_seed_tracks(raw: Optional[str]) -> List[str]:
    seeds = parse_csv(raw)
    if not seeds:
        raise ValidationError("seed_tracks parameter is required")
    if len(seeds) > MAX_SEED_TRACKS:
        raise ValidationError(f"At most {MAX_SEED_TRACKS} seed tracks are allowed",
                              details={"seed_tracks": len(seeds)})
    return [validate_id(s) for s in seeds]
