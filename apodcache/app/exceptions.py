"""Custom exceptions for the APOD cache service."""

import math
from datetime import timedelta


class ApodCacheException(Exception):
    """Base class for service exceptions with HTTP status code.

    All custom exceptions should inherit from this class and define
    their specific status_code and error code for consistent HTTP
    response handling.
    """
    status_code: int = 500
    error: str = "internal_error"

    def __init__(self, message: str = "APOD cache error"):
        self.message = message
        super().__init__(message)

    def to_response(self) -> dict:
        """Convert to API response body."""
        return {"error": self.error, "message": self.message}


class ParseError(ApodCacheException):
    """Raised when a date string is not a valid YYYY-MM-DD calendar date.

    Covers both request parameters and corrupt cache entries.
    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error = "invalid_date"

    def __init__(self, value: str, field: str | None = None):
        self.value = value
        self.field = field
        prefix = f"{field}: " if field else ""
        super().__init__(f"{prefix}invalid date {value!r}, expected YYYY-MM-DD")


class InvalidRangeError(ApodCacheException):
    """Raised when a requested range starts after it ends.

    Maps to HTTP 400 Bad Request.
    """
    status_code = 400
    error = "invalid_range"

    def __init__(self, detail: str = "Start date must be before end date!"):
        super().__init__(detail)


class RateLimitExceeded(ApodCacheException):
    """Raised when the local view of the upstream quota is exhausted.

    Maps to HTTP 429 Too Many Requests.
    """
    status_code = 429
    error = "rate_limited"

    def __init__(self, retry_after: timedelta):
        self.retry_after = retry_after
        minutes = retry_after.total_seconds() / 60
        super().__init__(
            f"Reached request limit. Try again in {minutes:.1f} minutes"
        )

    @property
    def retry_after_seconds(self) -> int:
        """Whole seconds to wait, rounded up, never below 1."""
        return max(1, math.ceil(self.retry_after.total_seconds()))

    def to_response(self) -> dict:
        body = super().to_response()
        body["retry_after_seconds"] = self.retry_after_seconds
        return body


class FetchError(ApodCacheException):
    """Raised when a call to the upstream APOD API fails.

    ``response_received`` tells whether upstream answered at all; when it
    did, ``rate_limit_remaining`` carries its quota header (None if absent)
    so the tracker can record the call.

    Maps to HTTP 502 Bad Gateway.
    """
    status_code = 502
    error = "upstream_error"
    response_received = False

    def __init__(
        self,
        message: str = "Upstream request failed",
        rate_limit_remaining: int | None = None,
    ):
        self.rate_limit_remaining = rate_limit_remaining
        super().__init__(message)


class FetchTimeoutError(FetchError):
    """Upstream call exceeded its fixed timeout.

    Maps to HTTP 504 Gateway Timeout.
    """
    status_code = 504
    error = "upstream_timeout"


class TransportError(FetchError):
    """Network or connection failure talking to upstream."""
    error = "upstream_unreachable"


class MalformedResponseError(FetchError):
    """Upstream body or headers do not have the expected shape."""
    error = "upstream_malformed"
    response_received = True


class UpstreamStatusError(FetchError):
    """Upstream answered with a non-success HTTP status."""
    error = "upstream_status"
    response_received = True

    def __init__(
        self,
        status: int,
        detail: str = "",
        rate_limit_remaining: int | None = None,
    ):
        self.upstream_status = status
        message = f"Upstream returned HTTP {status}"
        if detail:
            message += f": {detail}"
        super().__init__(message, rate_limit_remaining)

    def to_response(self) -> dict:
        body = super().to_response()
        body["upstream_status"] = self.upstream_status
        return body


class StoreError(ApodCacheException):
    """Raised when the persistent cache cannot be read or written.

    Maps to HTTP 500 Internal Server Error.
    """
    status_code = 500
    error = "store_error"
