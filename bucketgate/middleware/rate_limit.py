"""Rate limiting middleware for ASGI applications.

Applies a Limiter to every request, keyed per API key if available,
otherwise per client IP. Denied requests get 429 with Retry-After; when
the limiter itself fails the request is refused with 503 rather than let
through unchecked.
"""

import hashlib
from typing import Callable, Optional

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from bucketgate.core.config import settings
from bucketgate.core.logging import get_log_context, get_logger
from bucketgate.exceptions import RateLimitExceededError
from bucketgate.limiter.service import Limiter, get_limiter

logger = get_logger(__name__)

MAX_API_KEY_LENGTH = 512


def get_client_key(request: Request) -> str:
    """Get rate limit key for the request.

    Uses API key if available, otherwise falls back to IP address.
    Both are hashed with SHA-256 so raw keys never reach the store.

    Args:
        request: Incoming request

    Returns:
        Rate limit key string (hashed, no sensitive data exposed)
    """
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        api_key = auth[7:].strip()[:MAX_API_KEY_LENGTH]
        # 32 hex chars (128 bits) for collision resistance
        key_hash = hashlib.sha256(api_key.encode()).hexdigest()[:32]
        return f"apikey:{key_hash}"

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        client_ip = forwarded.split(",")[0].strip()
    else:
        client_ip = request.client.host if request.client else "unknown"

    ip_hash = hashlib.sha256(client_ip.encode()).hexdigest()[:32]
    return f"ip:{ip_hash}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware to enforce rate limits on requests."""

    def __init__(
        self,
        app,
        limiter: Optional[Limiter] = None,
        cost: Optional[float] = None,
        key_func: Callable[[Request], str] = get_client_key,
    ):
        super().__init__(app)
        self.limiter = limiter or get_limiter()
        self.cost = cost if cost is not None else settings.rate_limit_cost
        self.key_func = key_func

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint
    ) -> Response:
        """Process request with rate limiting."""
        key = self.key_func(request)
        try:
            result = await self.limiter.test(key, self.cost)
        except Exception:
            logger.exception(
                "Rate limit check failed, refusing request",
                extra=get_log_context(
                    rate_key=key,
                    cost=self.cost,
                    path=request.url.path,
                    method=request.method,
                    status_code=503,
                ),
            )
            return JSONResponse(
                status_code=503,
                content={
                    "error": "rate_limit_unavailable",
                    "message": "Rate limit check failed. Please try again later.",
                },
            )

        if not result.allow:
            error = RateLimitExceededError(result.wait)
            logger.info(
                "Rate limit exceeded",
                extra=get_log_context(
                    rate_key=key,
                    cost=self.cost,
                    path=request.url.path,
                    method=request.method,
                    status_code=error.status_code,
                ),
            )
            return JSONResponse(
                status_code=error.status_code,
                content={
                    "error": "rate_limit_exceeded",
                    "message": error.message,
                    "retry_after": error.retry_after,
                },
                headers={
                    "X-RateLimit-Remaining": "0",
                    "Retry-After": str(error.retry_after),
                },
            )

        response = await call_next(request)
        response.headers["X-RateLimit-Remaining"] = str(int(result.free))
        return response
