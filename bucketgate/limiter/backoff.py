"""Backoff curves turning the severity of a denial into a wait factor.

The limiter computes ``ratio = excess / cost`` for a denied call and scales
the time one cost unit takes to drain by ``backoff(ratio)``.
"""

from abc import ABC, abstractmethod
from typing import Callable


class Backoff(ABC):
    """Abstract base class for backoff curves."""

    @abstractmethod
    def backoff(self, ratio: float) -> float:
        """Map a denial ratio to a multiplier of the base wait."""
        pass

    def __call__(self, ratio: float) -> float:
        return self.backoff(ratio)


class Constant(Backoff):
    """Always wait the same multiple of the base wait."""

    def __init__(self, factor: float):
        self.factor = factor

    def backoff(self, ratio: float) -> float:
        return self.factor

    def __repr__(self) -> str:
        return f"Constant({self.factor!r})"


class Linear(Backoff):
    """Wait proportionally to the denial ratio."""

    def __init__(self, factor: float):
        self.factor = factor

    def backoff(self, ratio: float) -> float:
        return self.factor * ratio

    def __repr__(self) -> str:
        return f"Linear({self.factor!r})"


class Power(Backoff):
    """Raise the denial ratio to a fixed power."""

    def __init__(self, factor: float):
        self.factor = factor

    def backoff(self, ratio: float) -> float:
        return ratio ** self.factor

    def __repr__(self) -> str:
        return f"Power({self.factor!r})"


class Exponential(Backoff):
    """Raise a fixed base to the denial ratio."""

    def __init__(self, factor: float):
        self.factor = factor

    def backoff(self, ratio: float) -> float:
        return self.factor ** ratio

    def __repr__(self) -> str:
        return f"Exponential({self.factor!r})"


class Custom(Backoff):
    """Wrap a caller-supplied function as a backoff curve."""

    def __init__(self, func: Callable[[float], float]):
        self.func = func

    def backoff(self, ratio: float) -> float:
        return self.func(ratio)

    def __repr__(self) -> str:
        return f"Custom({self.func!r})"


DEFAULT_BACKOFF = Linear(2.0)

_BACKOFFS: dict[str, type[Backoff]] = {
    "constant": Constant,
    "linear": Linear,
    "power": Power,
    "exponential": Exponential,
}


def as_backoff(value: Backoff | Callable[[float], float] | None) -> Backoff:
    """Return ``value`` as a Backoff, defaulting to ``Linear(2)``."""
    if value is None:
        return DEFAULT_BACKOFF
    if isinstance(value, Backoff):
        return value
    if callable(value):
        return Custom(value)
    raise TypeError(f"backoff must be a Backoff or a callable, not {type(value).__name__}")


def backoff_from_name(name: str, factor: float) -> Backoff:
    """Build a built-in backoff from its configuration name.

    Raises:
        ValueError: If the name is not one of the built-in curves
    """
    try:
        cls = _BACKOFFS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unknown backoff '{name}'. Available: {', '.join(sorted(_BACKOFFS))}"
        ) from None
    return cls(factor)
