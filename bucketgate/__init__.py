"""Redis-backed leaky-bucket rate limiter.

Admission is decided by a Lua script that reads, drains, tests and
commits every bucket of a key in one atomic step, so limits hold across
any number of processes sharing the same Redis.
"""

from bucketgate.exceptions import (
    BucketGateError,
    ConfigurationError,
    ProtocolError,
    RateLimitExceededError,
)
from bucketgate.limiter import (
    Backoff,
    Capacity,
    Constant,
    Custom,
    Exponential,
    InMemoryScriptBackend,
    Limiter,
    LimiterConfig,
    Linear,
    Power,
    Rate,
    RedisScriptBackend,
    Result,
    ScriptBackend,
    create_limiter,
    new_limiter,
)

__all__ = [
    "BucketGateError",
    "ConfigurationError",
    "ProtocolError",
    "RateLimitExceededError",
    "Rate",
    "Capacity",
    "Backoff",
    "Constant",
    "Linear",
    "Power",
    "Exponential",
    "Custom",
    "ScriptBackend",
    "RedisScriptBackend",
    "InMemoryScriptBackend",
    "LimiterConfig",
    "Result",
    "Limiter",
    "new_limiter",
    "create_limiter",
]
