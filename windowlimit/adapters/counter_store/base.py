"""Counter store interfaces.

Limiters depend on this abstraction (not the concrete implementation). Window
rollover is defined here once so every backend expires entries the same way.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass
class CounterEntry:
    """Attempt count for one source inside its current window.

    Attributes:
        count: Units charged in the current window. Never reset except by
            rollover, ``reset`` or ``set_remaining``.
        window_start: UNIX seconds at which the current window opened.
    """

    count: int
    window_start: float

    def is_expired(self, time_window: int, now: float) -> bool:
        return self.window_start + time_window < now


class AbstractCounterStore(ABC):
    """Interface for per-limiter counter storage."""

    @abstractmethod
    def get(self, source: str) -> CounterEntry | None:
        """Return the stored entry for source, if any."""
        raise NotImplementedError

    @abstractmethod
    def put(self, source: str, entry: CounterEntry) -> None:
        """Persist an entry for source, replacing any previous one."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, source: str) -> None:
        """Remove the entry for source. Missing sources are ignored."""
        raise NotImplementedError

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""
        raise NotImplementedError

    @abstractmethod
    def purge_expired(self, time_window: int, now: float) -> int:
        """Remove entries whose window has elapsed.

        Args:
            time_window: Window size in seconds.
            now: Current UNIX time in seconds.

        Returns:
            Number of entries removed.
        """
        raise NotImplementedError

    @abstractmethod
    def __len__(self) -> int:
        raise NotImplementedError

    def __contains__(self, source: object) -> bool:
        return isinstance(source, str) and self.get(source) is not None

    def get_or_create(self, source: str, now: float) -> CounterEntry:
        """Return the stored entry or a fresh ``(0, now)`` one.

        A fresh entry is not persisted; callers ``put`` it once they mutate it.
        """
        entry = self.get(source)
        if entry is None:
            entry = CounterEntry(count=0, window_start=now)
        return entry

    @staticmethod
    def roll_window_if_expired(entry: CounterEntry, time_window: int, now: float) -> bool:
        """Start a new window on entry if the current one has elapsed.

        Returns:
            True when the entry was rolled over.
        """
        if not entry.is_expired(time_window, now):
            return False
        entry.count = 0
        entry.window_start = now
        return True
