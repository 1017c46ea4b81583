"""Custom exceptions for the bucketgate limiter."""

import math


class BucketGateError(Exception):
    """Base class for bucketgate exceptions with HTTP status code.

    All custom exceptions inherit from this class and define their
    specific status_code so HTTP callers can map them consistently.
    """
    status_code: int = 500

    def __init__(self, message: str = "Rate limiter error"):
        self.message = message
        super().__init__(message)


class ConfigurationError(BucketGateError):
    """Raised when a limiter cannot be constructed from its configuration.

    Covers a missing client, an empty bucket list and any bucket that
    resolves to a non-positive flow or burst. Raised before any call
    reaches the backing store.
    """
    status_code = 500

    def __init__(self, detail: str = "Invalid rate limiter configuration"):
        self.detail = detail
        super().__init__(f"limiter: {detail}")


class ProtocolError(BucketGateError):
    """Raised when the atomic evaluator returns a malformed response.

    Maps to HTTP 502 Bad Gateway. A malformed response is never read as
    an allow or a deny.
    """
    status_code = 502

    def __init__(self, raw: object = None, detail: str | None = None):
        self.raw = raw
        message = detail or f"invalid type returned from eval: {raw!r}"
        super().__init__(f"limiter: {message}")


class RateLimitExceededError(BucketGateError):
    """Raised by callers that turn a denial into an exception.

    Maps to HTTP 429 Too Many Requests. The limiter itself returns
    denials as results and never raises this.
    """
    status_code = 429

    def __init__(self, wait: float, detail: str | None = None):
        self.wait = wait
        self.retry_after = max(1, math.ceil(wait))
        message = detail or (
            f"Rate limit exceeded. Retry after {self.retry_after} seconds."
        )
        super().__init__(message)
