"""Shared fixtures for bucketgate tests."""

import pytest

from bucketgate.limiter import InMemoryScriptBackend
from bucketgate.limiter.service import reset_limiter


class FakeClock:
    """Manually advanced clock, in seconds."""

    def __init__(self, start: float = 1.0):
        self.seconds = start

    def __call__(self) -> float:
        return self.seconds

    def now(self) -> float:
        return self.seconds

    def sleep(self, seconds: float) -> None:
        self.seconds += seconds


@pytest.fixture(autouse=True)
def reset_globals():
    """Reset the global limiter before and after each test."""
    reset_limiter()
    yield
    reset_limiter()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def backend(clock):
    """In-process backend driven by the fake clock."""
    return InMemoryScriptBackend(clock=clock)
