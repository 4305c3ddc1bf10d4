"""Pytest configuration and fixtures shared across all test modules.

WINDOWLIMIT_ENV is set before any library import so settings never pick up a
developer's .env.development file.
"""

import os

os.environ["WINDOWLIMIT_ENV"] = "testing"

import pytest

from windowlimit.services.rate_limit import RateLimitRegistry


class FakeTime:
    """Deterministic clock used to test window expiry."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture
def registry() -> RateLimitRegistry:
    """Isolated registry so tests never share limiter names."""
    return RateLimitRegistry()
