"""Bucket specifications and their reduction to leaky-bucket rates.

A bucket is described either directly, as a flow (capacity returned per
second) and a burst (capacity that may be used before limiting applies),
or as a guaranteed minimum and absolute maximum over a time window.
Both shapes resolve to a ``Rate``.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Protocol, Union, runtime_checkable


@runtime_checkable
class Bucket(Protocol):
    """Anything that can describe itself as a leaky-bucket rate."""

    def resolve(self) -> "Rate":
        ...


@dataclass(frozen=True)
class Rate:
    """A bucket described by raw flow and burst values.

    Attributes:
        flow: Capacity that becomes available again per second. Under
            sustained load, calls are limited to exactly this rate.
        burst: Capacity that can be used before limiting applies. Must be
            at least the highest cost that will be tested.
    """
    flow: float
    burst: float

    def resolve(self) -> "Rate":
        return self


@dataclass(frozen=True)
class Capacity:
    """A bucket described by a minimum and maximum over a window.

    Attributes:
        window: Time window the limits apply to, as a timedelta or seconds.
        min: Capacity guaranteed over the window for a uniform call pattern.
        max: Absolute capacity over the window. Must exceed ``min`` by at
            least the highest cost that will be tested.
    """
    window: Union[timedelta, float]
    min: float
    max: float

    @property
    def window_seconds(self) -> float:
        if isinstance(self.window, timedelta):
            return self.window.total_seconds()
        return float(self.window)

    def resolve(self) -> Rate:
        seconds = self.window_seconds
        # A zero window is reported as a non-positive flow by the limiter
        flow = self.min / seconds if seconds else 0.0
        return Rate(flow=flow, burst=self.max - self.min)
