"""Reduction of a set of rates to the ones that can ever bind."""

from typing import Iterable

from bucketgate.exceptions import ConfigurationError
from bucketgate.limiter.bucket import Rate


def consolidate(rates: Iterable[Rate]) -> tuple[Rate, ...]:
    """Sort rates and drop the ones that can never be the binding limit.

    Rates are ordered from the slowest to the fastest flow, and by burst
    where flows are equal. A rate is kept only when its burst is strictly
    smaller than the burst of the last kept rate: a faster flow with an
    equal or larger burst is never more restrictive than the slower one.

    Args:
        rates: Resolved rates, in any order

    Returns:
        The binding rates, slowest flow first

    Raises:
        ConfigurationError: If no rates are given
    """
    ordered = sorted(rates, key=lambda r: (r.flow, r.burst))
    if not ordered:
        raise ConfigurationError("must have at least one bucket")

    kept = [ordered[0]]
    for rate in ordered[1:]:
        if rate.burst < kept[-1].burst:
            kept.append(rate)
    return tuple(kept)
