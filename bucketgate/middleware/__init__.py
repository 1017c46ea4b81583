"""Middleware package for ASGI applications."""

from bucketgate.middleware.rate_limit import RateLimitMiddleware, get_client_key

__all__ = [
    "RateLimitMiddleware",
    "get_client_key",
]
