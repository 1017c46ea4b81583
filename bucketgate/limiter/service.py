"""Rate limiter facade over the atomic admission step.

The Limiter validates and consolidates its buckets once, then for every
test builds the script arguments, runs the step on its backend and turns
the reply into a Result. It holds no mutable state of its own, so one
instance can be shared by any number of concurrent callers.
"""

import math
import time
from datetime import timedelta
from typing import Any, Callable, Optional, Union

from bucketgate.core.config import Settings, settings as default_settings
from bucketgate.core.logging import get_log_context, get_logger
from bucketgate.exceptions import ConfigurationError, ProtocolError
from bucketgate.limiter.backends import InMemoryScriptBackend, RedisScriptBackend, ScriptBackend
from bucketgate.limiter.backoff import Backoff, as_backoff, backoff_from_name
from bucketgate.limiter.bucket import Bucket, Capacity, Rate
from bucketgate.limiter.consolidate import consolidate
from bucketgate.limiter.models import LimiterConfig, Result

logger = get_logger(__name__)


class Limiter:
    """A rate limiter applying one or more leaky buckets per subject key.

    Example:
        >>> limiter = new_limiter(redis_client, Capacity(timedelta(minutes=1), 10, 20))
        >>> result = await limiter.test("user-1", 1)
        >>> if not result.allow:
        ...     await asyncio.sleep(result.wait)
    """

    def __init__(self, config: LimiterConfig) -> None:
        """Validate the configuration and freeze the tier arguments.

        Raises:
            ConfigurationError: If the client is missing, no buckets are
                given or any bucket resolves to a non-positive rate
        """
        if config.client is None:
            raise ConfigurationError("must have a redis client")
        if not config.buckets:
            raise ConfigurationError("must have at least one bucket")

        rates = [bucket.resolve() for bucket in config.buckets]
        for rate in rates:
            if not (rate.flow > 0 and rate.burst > 0):
                raise ConfigurationError(
                    f"rate parameters must be positive (flow={rate.flow}, burst={rate.burst})"
                )

        self._rates: tuple[Rate, ...] = consolidate(rates)
        self._args: tuple[float, ...] = tuple(
            value for rate in self._rates for value in (rate.flow, rate.burst)
        )
        self._backend = _as_backend(config.client)
        self._prefix = config.prefix
        self._backoff = as_backoff(config.backoff)

        logger.debug(
            f"Limiter created with {len(self._rates)} of {len(rates)} buckets "
            f"(prefix={self._prefix!r}, backoff={self._backoff!r})"
        )

    @property
    def rates(self) -> tuple[Rate, ...]:
        """Consolidated tiers, slowest flow first."""
        return self._rates

    @property
    def prefix(self) -> str:
        return self._prefix

    @property
    def backoff(self) -> Backoff:
        return self._backoff

    @property
    def backend(self) -> ScriptBackend:
        return self._backend

    async def test(self, key: str, cost: float = 1.0) -> Result:
        """Test whether a call of ``cost`` by ``key`` should be allowed.

        Admitted calls consume their cost on every tier; denied calls
        have no effect on the stored state.

        Args:
            key: Subject key, without the prefix
            cost: Capacity the call consumes; must be positive

        Returns:
            Result with ``free`` when allowed and ``wait`` when denied

        Raises:
            ValueError: If cost is not positive
            ProtocolError: If the backend reply is malformed
        """
        if not cost > 0:
            raise ValueError(f"cost must be positive, got {cost}")

        rate_key = self._prefix + key
        args = [float(cost), *self._args]

        started = time.perf_counter()
        raw = await self._backend.execute(rate_key, args)
        allow, value, index = self._decode(raw)
        duration_ms = (time.perf_counter() - started) * 1000

        if allow:
            logger.debug(
                f"Admitted {cost} for {rate_key}, {value} free",
                extra=get_log_context(rate_key=rate_key, cost=cost, duration_ms=duration_ms),
            )
            return Result(allow=True, free=value)

        flow = self._args[2 * index - 2]
        wait = (cost / flow) * self._backoff(value / cost)
        logger.debug(
            f"Denied {cost} for {rate_key} on tier {index}, excess {value}, wait {wait:.3f}s",
            extra=get_log_context(rate_key=rate_key, cost=cost, duration_ms=duration_ms),
        )
        return Result(allow=False, wait=wait)

    def _decode(self, raw: Any) -> tuple[bool, float, int]:
        """Validate a reply of the form ``[allow, value, index]``."""
        if not isinstance(raw, (list, tuple)) or len(raw) != 3:
            raise ProtocolError(raw)
        allow, value, index = raw

        if not _is_int(allow) or allow not in (0, 1):
            raise ProtocolError(raw)
        if not _is_int(index):
            raise ProtocolError(raw)

        if isinstance(value, bytes):
            try:
                value = value.decode("ascii")
            except UnicodeDecodeError:
                raise ProtocolError(raw) from None
        if not isinstance(value, str):
            raise ProtocolError(raw)
        try:
            number = float(value)
        except ValueError:
            raise ProtocolError(raw) from None
        if not math.isfinite(number):
            raise ProtocolError(raw)

        if allow == 0 and not 1 <= index <= len(self._rates):
            raise ProtocolError(raw, f"tier index {index} out of range")
        return allow == 1, number, index


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _as_backend(client: Any) -> ScriptBackend:
    if isinstance(client, ScriptBackend):
        return client
    return RedisScriptBackend(client)


def new_limiter(
    client: Any,
    *buckets: Bucket,
    prefix: str = "",
    backoff: Optional[Union[Backoff, Callable[[float], float]]] = None,
) -> Limiter:
    """Create a limiter applying all of ``buckets``.

    Args:
        client: Async Redis client or ScriptBackend
        *buckets: Rate and/or Capacity specifications
        prefix: String prepended to every subject key
        backoff: Backoff curve or plain function, Linear(2) by default

    Raises:
        ConfigurationError: If the configuration is invalid
    """
    return Limiter(LimiterConfig(client=client, buckets=list(buckets), prefix=prefix, backoff=backoff))


def create_limiter(
    settings: Optional[Settings] = None,
    client: Optional[Any] = None,
) -> Limiter:
    """Create a limiter from settings.

    Uses Redis when ``redis_enabled`` is set, otherwise an in-process
    backend. The single bucket is a Capacity of ``rate_limit_min`` to
    ``rate_limit_max`` calls per ``rate_limit_window_seconds``.
    """
    settings = settings or default_settings
    if client is None:
        if settings.redis_enabled:
            import redis.asyncio as aioredis
            client = aioredis.from_url(settings.redis_url)
            logger.info("Using Redis limiter backend")
        else:
            client = InMemoryScriptBackend()
            logger.info("Using in-memory limiter backend")

    capacity = Capacity(
        window=timedelta(seconds=settings.rate_limit_window_seconds),
        min=settings.rate_limit_min,
        max=settings.rate_limit_max,
    )
    return new_limiter(
        client,
        capacity,
        prefix=settings.limiter_key_prefix,
        backoff=backoff_from_name(settings.limiter_backoff, settings.limiter_backoff_factor),
    )


_limiter: Optional[Limiter] = None


def get_limiter(settings: Optional[Settings] = None, client: Optional[Any] = None) -> Limiter:
    """Get the global limiter instance, creating it from settings once."""
    global _limiter
    if _limiter is None:
        _limiter = create_limiter(settings, client)
    return _limiter


def reset_limiter() -> None:
    """Reset the global limiter instance."""
    global _limiter
    _limiter = None
