"""
Error taxonomy for the discovery engine.

InvalidRequest, UpstreamUnavailable and QuotaExceeded reach the caller as
HTTP errors. CacheUnavailable, RateLimitUnavailable and AnalyticsFailure are
logged and absorbed: the pipeline fails open around them.
"""

from typing import Optional


class DiscoveryError(Exception):
    """Base class for discovery engine errors."""

    status_code = 500
    code = "DISCOVERY_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Error body in the API's ``{"message", "code"}`` shape."""
        return {"message": self.message, "code": self.code}


class InvalidRequest(DiscoveryError):
    """A request parameter is missing or malformed."""

    status_code = 400
    code = "INVALID_REQUEST"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["field"] = self.field
        return body


class InvalidFilter(InvalidRequest):
    """A filter value violates its shape constraints."""

    code = "INVALID_FILTER"


class UpstreamUnavailable(DiscoveryError):
    """The catalog store timed out or failed."""

    status_code = 503
    code = "UPSTREAM_UNAVAILABLE"


class QuotaExceeded(DiscoveryError):
    """The caller exhausted its request quota for the current window."""

    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, limit: int, remaining: int, reset_at: int, retry_after: int):
        super().__init__("Too many requests, slow down")
        self.limit = limit
        self.remaining = remaining
        self.reset_at = reset_at
        self.retry_after = retry_after

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["remaining"] = self.remaining
        body["resetAt"] = self.reset_at
        return body


class CacheUnavailable(DiscoveryError):
    """The cache store could not be reached. Never surfaced."""

    code = "CACHE_UNAVAILABLE"


class RateLimitUnavailable(DiscoveryError):
    """The rate-limit store could not be reached. Never surfaced."""

    code = "RATE_LIMIT_UNAVAILABLE"


class AnalyticsFailure(DiscoveryError):
    """A search analytics write failed. Never surfaced."""

    code = "ANALYTICS_FAILURE"

    def __init__(self, message: str, term: Optional[str] = None):
        super().__init__(message)
        self.term = term
