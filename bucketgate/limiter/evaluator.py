"""Multi-tier leaky-bucket admission step.

This is the same state transition the Redis Lua script performs, written
out for stores that provide atomicity by other means. Callers must run
``evaluate`` and apply its committed states as one indivisible step per
subject key.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from bucketgate.limiter.bucket import Rate


@dataclass
class TierState:
    """Used capacity of one tier and the time it was last updated."""
    level: float = 0.0
    last_update: float = 0.0


@dataclass
class Evaluation:
    """Outcome of one admission step.

    Attributes:
        allow: Whether the cost was admitted
        value: Remaining headroom on the tightest tier when admitted,
            otherwise the excess on the controlling tier
        index: 1-based index of the controlling tier when denied, else 0
        committed: New tier states to store when admitted, else None
    """
    allow: bool
    value: float
    index: int = 0
    committed: Optional[list[TierState]] = None

    def to_reply(self) -> list:
        """Encode in the reply shape of the Lua script."""
        return [int(self.allow), repr(self.value), self.index]


def tier_field(rate: Rate) -> str:
    """Name under which a tier's state is stored for a key."""
    return f"{rate.flow!r}:{rate.burst!r}"


def drain_time(rates: Sequence[Rate], states: Sequence[TierState]) -> float:
    """Seconds until every tier has fully drained from ``states``."""
    return max(state.level / rate.flow for rate, state in zip(rates, states))


def evaluate(
    cost: float,
    rates: Sequence[Rate],
    states: Sequence[Optional[TierState]],
    now: float,
) -> Evaluation:
    """Test ``cost`` against every tier at time ``now``.

    Args:
        cost: Capacity the call consumes
        rates: Consolidated tiers, slowest flow first
        states: Stored state per tier, None where nothing is stored
        now: Current time in seconds from the store's clock

    Returns:
        Evaluation; on denial nothing is committed and the controlling
        tier is the one needing the longest drain, ties going to the
        lowest index
    """
    projected = []
    free = None
    denied = 0
    excess = 0.0
    longest = -1.0

    for i, (rate, state) in enumerate(zip(rates, states), start=1):
        level = state.level if state is not None else 0.0
        last = state.last_update if state is not None else now
        # Backward clock steps must never add to the level
        elapsed = max(0.0, now - last)
        used = max(0.0, level - rate.flow * elapsed) + cost
        projected.append(used)

        if used > rate.burst:
            over = used - rate.burst
            wait = over / rate.flow
            if wait > longest:
                longest = wait
                denied = i
                excess = over
        else:
            headroom = rate.burst - used
            free = headroom if free is None else min(free, headroom)

    if denied:
        return Evaluation(allow=False, value=excess, index=denied)

    committed = [TierState(level=used, last_update=now) for used in projected]
    return Evaluation(allow=True, value=free, committed=committed)
