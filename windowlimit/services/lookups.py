"""Name-qualified operations on the process default registry.

Convenience for code that shares limiters by name instead of passing
instances around::

    from windowlimit import lookups

    lookups.get_or_create("login", 3, 60)
    result = lookups.attempt("login", username)
    if not result.allow:
        ...

All functions except ``get`` raise ``UnknownNameError`` for unknown names.
"""

from __future__ import annotations

import time
from typing import Callable

from windowlimit.services.rate_limit import (
    AttemptResult,
    CreateResult,
    RateLimit,
    default_registry,
)


def get(name: str) -> RateLimit | None:
    return default_registry.get(name)


def create(
    name: str,
    limit: int,
    time_window: int,
    *,
    clock: Callable[[], float] = time.time,
) -> RateLimit:
    return default_registry.create(name, limit, time_window, clock=clock)


def try_create(
    name: str,
    limit: int,
    time_window: int,
    *,
    clock: Callable[[], float] = time.time,
) -> CreateResult:
    return default_registry.try_create(name, limit, time_window, clock=clock)


def get_or_create(
    name: str,
    limit: int | None = None,
    time_window: int | None = None,
    *,
    clock: Callable[[], float] = time.time,
) -> RateLimit:
    return default_registry.get_or_create(name, limit, time_window, clock=clock)


def check(name: str, source: str) -> AttemptResult:
    return default_registry.check(name, source)


def attempt(name: str, source: str, weight: int = 1) -> AttemptResult:
    return default_registry.attempt(name, source, weight)


def reset(name: str, source: str) -> None:
    default_registry.reset(name, source)


def set_remaining(name: str, source: str, remaining: int) -> None:
    default_registry.set_remaining(name, source, remaining)


def clear(name: str) -> None:
    default_registry.clear(name)


def cleanup(name: str | None = None) -> int:
    return default_registry.cleanup(name)


def delete(name: str) -> None:
    default_registry.delete(name)
