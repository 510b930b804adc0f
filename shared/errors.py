"""
Error taxonomy shared by the proxy routes, the upstream layer and the client.

Every error carries the HTTP status it maps to, so the Flask error handler in
shared.api can render it without knowing where it came from.
"""

from typing import Any, Dict, Optional


class ApiError(Exception):
    """Base class for errors that end up as a JSON error body."""

    status_code = 500

    def __init__(self, message: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        self.details = details

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.message}
        if self.details is not None:
            body["details"] = self.details
        return body


class ValidationError(ApiError):
    """Bad input shape or query parameters."""
    status_code = 400


class AuthRequired(ApiError):
    """No usable access token in the session."""
    status_code = 401

    def __init__(self, message: str = "Authentication required", **kwargs):
        super().__init__(message, **kwargs)


class TokenExpired(AuthRequired):
    """Access token present but past its expiry."""

    def __init__(self, message: str = "Token expired", **kwargs):
        super().__init__(message, **kwargs)


class NotFound(ApiError):
    status_code = 404

    def __init__(self, message: str = "Route not found", **kwargs):
        super().__init__(message, **kwargs)


class UpstreamError(ApiError):
    """
    Non-2xx answer, network failure or timeout from the upstream service.

    Statuses the caller can act on (401, 403, 404, 429) pass through;
    everything else collapses to 500.
    """

    PASS_THROUGH_STATUSES = (401, 403, 404, 429)

    def __init__(self, message: str, upstream_status: Optional[int] = None, **kwargs):
        self.upstream_status = upstream_status
        status = upstream_status if upstream_status in self.PASS_THROUGH_STATUSES else 500
        kwargs.setdefault("status_code", status)
        super().__init__(message, **kwargs)


class UpstreamAuthError(ApiError):
    """The token endpoint rejected a code or refresh token."""
    status_code = 401
