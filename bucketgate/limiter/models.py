"""Data models for the limiter."""

import math
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence, Union

from bucketgate.limiter.backoff import Backoff
from bucketgate.limiter.bucket import Bucket


@dataclass(frozen=True)
class Result:
    """Result of an admission test.

    Attributes:
        allow: Whether the call should proceed
        free: Capacity left on the tightest tier after admission (only
            meaningful when allowed)
        wait: Seconds the caller should wait before trying again (only
            meaningful when denied)
    """
    allow: bool
    free: float = 0.0
    wait: float = 0.0

    @property
    def retry_after(self) -> int:
        """Wait rounded up to whole seconds, for Retry-After headers."""
        if self.allow:
            return 0
        return max(1, math.ceil(self.wait))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "allow": self.allow,
            "free": self.free,
            "wait": self.wait,
        }


@dataclass
class LimiterConfig:
    """Configuration for creating a Limiter.

    Attributes:
        client: Redis client or ScriptBackend running the admission step
        buckets: Rate limits applied together; at least one is required
        prefix: String prepended to every subject key
        backoff: Backoff curve or plain function, Linear(2) when None
    """
    client: Any = None
    buckets: Sequence[Bucket] = field(default_factory=list)
    prefix: str = ""
    backoff: Optional[Union[Backoff, Callable[[float], float]]] = None
