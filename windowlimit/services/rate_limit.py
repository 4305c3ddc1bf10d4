"""Named fixed-window rate limiters and the registry that indexes them.

A ``RateLimit`` counts attempts per source inside fixed windows of
``time_window`` seconds. Windows roll over lazily: nothing runs in the
background, an expired window is only replaced when the next ``attempt`` for
that source arrives. ``cleanup`` exists purely to reclaim memory held by
sources that never came back.

Rejection is advisory. ``attempt`` always records the charge, even past the
limit, and reports the decision in ``AttemptResult.allow``.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterator

from windowlimit.adapters.counter_store.base import AbstractCounterStore, CounterEntry
from windowlimit.adapters.counter_store.in_memory import InMemoryCounterStore
from windowlimit.core.config import settings
from windowlimit.core.errors import DeletedInstanceError, DuplicateNameError, UnknownNameError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptResult:
    """Outcome of a check or attempt.

    Attributes:
        limit: Attempts allowed per window.
        remaining: ``limit - count``; negative once the source is over limit.
        reset: Seconds until the current window ends.
        rate_limit: Limiter that produced this result.
        allow: For ``attempt``, whether the charge just made fits the limit.
            For ``check``, whether one more unit would still fit. The two can
            differ: an attempt that uses the last unit reports True while a
            ``check`` right after it reports False.
    """

    limit: int
    remaining: int
    reset: int
    rate_limit: RateLimit = field(compare=False, repr=False)
    allow: bool


@dataclass(frozen=True)
class CreateResult:
    """Result of ``RateLimitRegistry.try_create``.

    Exactly one of ``limiter`` and ``error`` is set.
    """

    limiter: RateLimit | None = None
    error: DuplicateNameError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> RateLimit:
        """Return the limiter or raise the stored error."""
        if self.error is not None:
            raise self.error
        if self.limiter is None:
            raise ValueError("CreateResult holds neither a limiter nor an error")
        return self.limiter


class RateLimit:
    """A named rate limit with its own per-source counters.

    Constructing an instance registers it under ``name``; a second instance
    with the same name in the same registry raises ``DuplicateNameError``.
    Once ``delete`` is called the instance is inert and every method raises
    ``DeletedInstanceError``.
    """

    def __init__(
        self,
        name: str,
        limit: int,
        time_window: int,
        *,
        registry: RateLimitRegistry | None = None,
        clock: Callable[[], float] = time.time,
        store: AbstractCounterStore | None = None,
    ) -> None:
        """Create and register a rate limit.

        Args:
            name: Unique name within the registry.
            limit: Attempts allowed per window (e.g. 60).
            time_window: Window size in seconds (e.g. 60).
            registry: Registry to join; the process default when omitted.
            clock: Time source returning UNIX time in seconds.
            store: Counter storage; a fresh in-memory store when omitted.

        Raises:
            ValueError: If limit or time_window are invalid.
            DuplicateNameError: If name is already registered.
        """
        self._name = name
        self.limit = limit
        self.time_window = time_window
        self._clock = clock
        self._store = store if store is not None else InMemoryCounterStore()
        self._lock = threading.RLock()
        self._deleted = False
        self._registry = registry if registry is not None else default_registry
        self._registry._register(self)

        logger.debug(
            "rate_limit.created",
            extra={"rate_limit": name, "limit": limit, "time_window_s": time_window},
        )

    def __repr__(self) -> str:
        state = "deleted" if self._deleted else "active"
        return (
            f"RateLimit(name={self._name!r}, limit={self._limit}, "
            f"time_window={self._time_window}, state={state})"
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def limit(self) -> int:
        return self._limit

    @limit.setter
    def limit(self, value: int) -> None:
        if value < 1:
            raise ValueError("limit must be >= 1")
        self._limit = value

    @property
    def time_window(self) -> int:
        return self._time_window

    @time_window.setter
    def time_window(self, value: int) -> None:
        if value < 1:
            raise ValueError("time_window must be >= 1")
        self._time_window = value

    @property
    def is_deleted(self) -> bool:
        return self._deleted

    def _ensure_active(self) -> None:
        if self._deleted:
            raise DeletedInstanceError(self._name)

    def _build_result(
        self, entry: CounterEntry, now: float, *, charged: bool = False
    ) -> AttemptResult:
        remaining = self._limit - entry.count
        # a charged attempt may use the last unit; a check asks for one more
        allow = remaining >= 0 if charged else remaining > 0
        reset = math.ceil(entry.window_start + self._time_window - now)
        return AttemptResult(
            limit=self._limit,
            remaining=remaining,
            reset=reset,
            rate_limit=self,
            allow=allow,
        )

    def check(self, source: str) -> AttemptResult:
        """Report the state of source without charging it.

        Never rolls the window over and never stores a new entry; an unknown
        source reports a full, freshly started window.

        Args:
            source: Unique source identifier (e.g. username, IP).

        Raises:
            DeletedInstanceError: If this limiter has been deleted.
        """
        with self._lock:
            self._ensure_active()
            now = self._clock()
            entry = self._store.get_or_create(source, now)
            return self._build_result(entry, now)

    def attempt(self, source: str, weight: int = 1) -> AttemptResult:
        """Charge source for an attempt and report the new state.

        If the source's window has elapsed it restarts at zero before the
        charge is applied. Charges past the limit are still recorded.

        Args:
            source: Unique source identifier (e.g. username, IP).
            weight: Units to charge (default 1).

        Raises:
            DeletedInstanceError: If this limiter has been deleted.
        """
        with self._lock:
            self._ensure_active()
            now = self._clock()
            entry = self._store.get_or_create(source, now)
            self._store.roll_window_if_expired(entry, self._time_window, now)
            entry.count += weight
            self._store.put(source, entry)
            return self._build_result(entry, now, charged=True)

    def reset(self, source: str) -> None:
        """Forget source; its next reference starts a new window."""
        with self._lock:
            self._ensure_active()
            self._store.delete(source)

    def set_remaining(self, source: str, remaining: int) -> None:
        """Set the remaining attempts of source in its current window.

        Warning:
            Discouraged. ``remaining`` is stored as ``limit - remaining`` so it
            goes stale if ``limit`` changes afterwards.
        """
        with self._lock:
            self._ensure_active()
            entry = self._store.get_or_create(source, self._clock())
            entry.count = self._limit - remaining
            self._store.put(source, entry)

    def clear(self) -> None:
        """Drop the counters of every source of this limiter."""
        with self._lock:
            self._ensure_active()
            self._store.clear()

    def cleanup(self) -> int:
        """Remove sources whose window has already elapsed.

        Returns:
            Number of sources removed.
        """
        with self._lock:
            self._ensure_active()
            purged = self._store.purge_expired(self._time_window, self._clock())

        if purged:
            logger.debug(
                "rate_limit.cleanup",
                extra={"rate_limit": self._name, "purged": purged},
            )
        return purged

    def delete(self) -> None:
        """Clear, deactivate and unregister this limiter.

        Not idempotent: a second call raises ``DeletedInstanceError``.
        """
        with self._lock:
            self._ensure_active()
            self._store.clear()
            self._deleted = True
        self._registry._unregister(self)

        logger.info("rate_limit.deleted", extra={"rate_limit": self._name})


class RateLimitRegistry:
    """Name index of live ``RateLimit`` instances.

    Name-qualified operations resolve the name and delegate to the instance,
    raising ``UnknownNameError`` when nothing is registered under it.
    """

    def __init__(self) -> None:
        self._limiters: dict[str, RateLimit] = {}
        self._lock = threading.RLock()

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"RateLimitRegistry(names={sorted(self._limiters)})"

    def __contains__(self, name: object) -> bool:
        return name in self._limiters

    def __len__(self) -> int:
        return len(self._limiters)

    def __iter__(self) -> Iterator[RateLimit]:
        with self._lock:
            return iter(list(self._limiters.values()))

    def _register(self, limiter: RateLimit) -> None:
        with self._lock:
            if limiter.name in self._limiters:
                raise DuplicateNameError(limiter.name)
            self._limiters[limiter.name] = limiter

    def _unregister(self, limiter: RateLimit) -> None:
        with self._lock:
            if self._limiters.get(limiter.name) is limiter:
                del self._limiters[limiter.name]

    def resolve(self, name: str) -> RateLimit:
        """Return the limiter registered under name.

        Raises:
            UnknownNameError: If nothing is registered under name.
        """
        limiter = self.get(name)
        if limiter is None:
            raise UnknownNameError(name)
        return limiter

    def names(self) -> list[str]:
        with self._lock:
            return list(self._limiters)

    def get(self, name: str) -> RateLimit | None:
        return self._limiters.get(name)

    def create(
        self,
        name: str,
        limit: int,
        time_window: int,
        *,
        clock: Callable[[], float] = time.time,
    ) -> RateLimit:
        """Create and register a new limiter.

        Raises:
            DuplicateNameError: If name is already registered.
        """
        return RateLimit(name, limit, time_window, registry=self, clock=clock)

    def try_create(
        self,
        name: str,
        limit: int,
        time_window: int,
        *,
        clock: Callable[[], float] = time.time,
    ) -> CreateResult:
        """Like ``create`` but returns the duplicate-name failure instead of raising."""
        try:
            return CreateResult(limiter=self.create(name, limit, time_window, clock=clock))
        except DuplicateNameError as exc:
            return CreateResult(error=exc)

    def get_or_create(
        self,
        name: str,
        limit: int | None = None,
        time_window: int | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> RateLimit:
        """Return the limiter registered under name, creating it if needed.

        An existing limiter is returned as is: ``limit`` and ``time_window``
        only apply when a new one is created. Omitted values fall back to
        ``settings.rate_limit``.
        """
        with self._lock:
            existing = self.get(name)
            if existing is not None:
                if (limit is not None and limit != existing.limit) or (
                    time_window is not None and time_window != existing.time_window
                ):
                    logger.warning(
                        "rate_limit.reuse_mismatch",
                        extra={
                            "rate_limit": name,
                            "limit": existing.limit,
                            "time_window_s": existing.time_window,
                            "requested_limit": limit,
                            "requested_time_window_s": time_window,
                        },
                    )
                return existing

            return self.create(
                name,
                limit if limit is not None else settings.rate_limit.default_limit,
                time_window if time_window is not None else settings.rate_limit.default_time_window,
                clock=clock,
            )

    def check(self, name: str, source: str) -> AttemptResult:
        return self.resolve(name).check(source)

    def attempt(self, name: str, source: str, weight: int = 1) -> AttemptResult:
        return self.resolve(name).attempt(source, weight)

    def reset(self, name: str, source: str) -> None:
        self.resolve(name).reset(source)

    def set_remaining(self, name: str, source: str, remaining: int) -> None:
        self.resolve(name).set_remaining(source, remaining)

    def clear(self, name: str) -> None:
        self.resolve(name).clear()

    def cleanup(self, name: str | None = None) -> int:
        """Purge expired sources of one limiter, or of every limiter when name is None.

        Returns:
            Total number of sources removed.
        """
        if name is not None:
            return self.resolve(name).cleanup()

        purged = 0
        for limiter in self:
            try:
                purged += limiter.cleanup()
            except DeletedInstanceError:
                # deleted after the snapshot was taken
                continue
        return purged

    def delete(self, name: str) -> None:
        self.resolve(name).delete()


# Process-wide registry used when no registry is passed explicitly
default_registry = RateLimitRegistry()
