"""In-memory counter store.

Notes:
- Per-process only: each worker process keeps independent counters.
- Not locked on its own; the owning limiter serializes access.
"""

from __future__ import annotations

from windowlimit.adapters.counter_store.base import AbstractCounterStore, CounterEntry


class InMemoryCounterStore(AbstractCounterStore):
    """Dict-backed store mapping source to ``CounterEntry``.

    Expired entries stay in memory until a limiter rolls them over on the next
    attempt or ``purge_expired`` removes them.
    """

    def __init__(self) -> None:
        self._entries: dict[str, CounterEntry] = {}

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return f"InMemoryCounterStore(size={len(self._entries)})"

    def get(self, source: str) -> CounterEntry | None:
        return self._entries.get(source)

    def put(self, source: str, entry: CounterEntry) -> None:
        self._entries[source] = entry

    def delete(self, source: str) -> None:
        self._entries.pop(source, None)

    def clear(self) -> None:
        self._entries.clear()

    def purge_expired(self, time_window: int, now: float) -> int:
        expired = [
            source
            for source, entry in self._entries.items()
            if entry.is_expired(time_window, now)
        ]
        for source in expired:
            del self._entries[source]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
