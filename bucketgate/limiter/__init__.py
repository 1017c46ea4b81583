"""Leaky-bucket rate limiting with atomic multi-tier admission.

This package provides the bucket model, tier consolidation, backoff
curves, the admission step (as a Redis Lua script and in Python) and the
Limiter facade tying them together.
"""

from .backends import InMemoryScriptBackend, RedisScriptBackend, ScriptBackend
from .backoff import Backoff, Constant, Custom, Exponential, Linear, Power, backoff_from_name
from .bucket import Bucket, Capacity, Rate
from .consolidate import consolidate
from .evaluator import Evaluation, TierState, evaluate
from .models import LimiterConfig, Result
from .redis_lua import BUCKET_SCRIPT, BUCKET_SCRIPT_SHA1
from .service import Limiter, create_limiter, get_limiter, new_limiter, reset_limiter

__all__ = [
    # Buckets
    "Bucket",
    "Rate",
    "Capacity",
    "consolidate",
    # Backoff
    "Backoff",
    "Constant",
    "Linear",
    "Power",
    "Exponential",
    "Custom",
    "backoff_from_name",
    # Admission step
    "TierState",
    "Evaluation",
    "evaluate",
    "BUCKET_SCRIPT",
    "BUCKET_SCRIPT_SHA1",
    # Backends
    "ScriptBackend",
    "RedisScriptBackend",
    "InMemoryScriptBackend",
    # Limiter
    "LimiterConfig",
    "Result",
    "Limiter",
    "new_limiter",
    "create_limiter",
    "get_limiter",
    "reset_limiter",
]
