"""Stores that run the admission step atomically per key.

Two backends are provided:
- RedisScriptBackend: runs the Lua script on Redis, shared by every
  process and host using the same Redis.
- InMemoryScriptBackend: runs the same step in Python under a lock,
  suitable for single-process deployments and tests.

Both return the Lua script's reply shape, ``[allow, value, index]``.
"""

import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional, Sequence

from redis.exceptions import NoScriptError, ResponseError

from bucketgate.core.logging import get_logger
from bucketgate.limiter.bucket import Rate
from bucketgate.limiter.evaluator import TierState, drain_time, evaluate, tier_field
from bucketgate.limiter.redis_lua import BUCKET_SCRIPT, BUCKET_SCRIPT_SHA1

logger = get_logger(__name__)


class ScriptBackend(ABC):
    """Abstract base class for admission step backends."""

    @abstractmethod
    async def execute(self, key: str, args: Sequence[float]) -> Any:
        """Run one admission step for ``key``.

        Args:
            key: Subject key, prefix included
            args: ``[cost, flow_1, burst_1, ..., flow_n, burst_n]``

        Returns:
            Raw reply, decoded and validated by the limiter
        """
        pass


def _is_noscript(error: ResponseError) -> bool:
    return isinstance(error, NoScriptError) or "NOSCRIPT" in str(error)


class RedisScriptBackend(ScriptBackend):
    """Runs the admission script on Redis.

    The script is invoked by its SHA1 first. If Redis does not know the
    script yet, it is sent once in full, which also caches it on the
    server for later calls. Any other error is raised unchanged.
    """

    def __init__(self, redis_client: Any):
        """Initialize the backend.

        Args:
            redis_client: Async Redis client exposing ``eval`` and,
                optionally, ``evalsha`` with redis-py signatures
        """
        self._redis = redis_client

    @property
    def client(self) -> Any:
        return self._redis

    async def execute(self, key: str, args: Sequence[float]) -> Any:
        evalsha = getattr(self._redis, "evalsha", None)
        if evalsha is not None:
            try:
                return await evalsha(BUCKET_SCRIPT_SHA1, 1, key, *args)
            except ResponseError as e:
                if not _is_noscript(e):
                    raise
                logger.info(f"Admission script not cached on Redis, sending full body: {e}")
        return await self._redis.eval(BUCKET_SCRIPT, 1, key, *args)

    async def close(self) -> None:
        """Close the underlying Redis client."""
        close = getattr(self._redis, "aclose", None) or getattr(self._redis, "close", None)
        if close is not None:
            await close()


@dataclass
class _KeyState:
    """Stored tier states of one key and when they have all drained."""
    tiers: Dict[str, TierState] = field(default_factory=dict)
    expires_at: float = 0.0


def _parse_args(args: Sequence[float]) -> tuple[float, list[Rate]]:
    if len(args) < 3 or len(args) % 2 == 0:
        raise ValueError(f"expected cost followed by flow/burst pairs, got {len(args)} values")
    values = [float(a) for a in args]
    rates = [Rate(flow=values[i], burst=values[i + 1]) for i in range(1, len(values), 2)]
    return values[0], rates


class InMemoryScriptBackend(ScriptBackend):
    """Runs the admission step in-process.

    A single lock makes each step atomic across threads and coroutines.
    Keys are dropped once all their tiers have drained, matching the
    expiry the Lua script sets on Redis.
    """

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        """Initialize the backend.

        Args:
            clock: Source of the current time in seconds, ``time.time``
                by default
        """
        self._clock = clock or time.time
        self._storage: Dict[str, _KeyState] = {}
        self._lock = threading.Lock()

    async def execute(self, key: str, args: Sequence[float]) -> Any:
        cost, rates = _parse_args(args)
        fields = [tier_field(rate) for rate in rates]

        with self._lock:
            now = self._clock()
            entry = self._storage.get(key)
            if entry is not None and now >= entry.expires_at:
                del self._storage[key]
                entry = None

            states = [entry.tiers.get(f) if entry else None for f in fields]
            result = evaluate(cost, rates, states, now)

            if result.committed is not None:
                if entry is None:
                    entry = self._storage[key] = _KeyState()
                entry.tiers.update(zip(fields, result.committed))
                entry.expires_at = max(entry.expires_at, now + drain_time(rates, result.committed))

        return result.to_reply()

    async def cleanup(self) -> int:
        """Drop keys whose tiers have all drained.

        Returns:
            Number of keys removed
        """
        with self._lock:
            now = self._clock()
            expired = [k for k, entry in self._storage.items() if now >= entry.expires_at]
            for k in expired:
                del self._storage[k]
        if expired:
            logger.debug(f"Removed {len(expired)} drained keys")
        return len(expired)

    def reset(self) -> None:
        """Forget all stored state."""
        with self._lock:
            self._storage.clear()

    def __len__(self) -> int:
        return len(self._storage)
