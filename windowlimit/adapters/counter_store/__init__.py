"""Counter store adapters.

A limiter talks to its counters through ``AbstractCounterStore`` so the
in-memory map can be replaced without touching the limiter logic.
"""

from windowlimit.adapters.counter_store.base import AbstractCounterStore, CounterEntry
from windowlimit.adapters.counter_store.in_memory import InMemoryCounterStore

__all__ = ["AbstractCounterStore", "CounterEntry", "InMemoryCounterStore"]
