"""Tests for the limiter registry and name-qualified operations."""

import logging

import pytest

from conftest import FakeTime
from windowlimit import lookups
from windowlimit.adapters.counter_store import InMemoryCounterStore
from windowlimit.core.errors import DuplicateNameError, UnknownNameError
from windowlimit.services.rate_limit import (
    CreateResult,
    RateLimit,
    RateLimitRegistry,
    default_registry,
)


class TestConstruction:
    def test_constructor_registers_instance(self, registry: RateLimitRegistry) -> None:
        limiter = RateLimit("test", 5, 1, registry=registry)

        assert registry.get("test") is limiter
        assert "test" in registry
        assert len(registry) == 1
        assert registry.names() == ["test"]

    def test_duplicate_name_is_rejected(self, registry: RateLimitRegistry) -> None:
        first = RateLimit("test", 5, 1, registry=registry)

        with pytest.raises(DuplicateNameError) as exc_info:
            RateLimit("test", 10, 1, registry=registry)

        assert str(exc_info.value) == 'Rate limit with name "test" already exists'
        assert exc_info.value.code == "duplicate_name"
        assert exc_info.value.details == {"name": "test"}
        assert registry.get("test") is first
        assert first.attempt("u1").remaining == 4

    def test_create_rejects_duplicates(self, registry: RateLimitRegistry) -> None:
        registry.create("test", 5, 1)

        with pytest.raises(DuplicateNameError):
            registry.create("test", 5, 1)

    def test_same_name_in_separate_registries(self) -> None:
        a = RateLimitRegistry()
        b = RateLimitRegistry()

        first = a.create("shared", 1, 60)
        second = b.create("shared", 2, 60)

        assert a.get("shared") is first
        assert b.get("shared") is second

    def test_try_create_returns_result(self, registry: RateLimitRegistry) -> None:
        created = registry.try_create("test", 5, 1)
        assert created.ok is True
        assert created.error is None
        assert created.unwrap() is registry.get("test")

        duplicate = registry.try_create("test", 5, 1)
        assert duplicate.ok is False
        assert duplicate.limiter is None
        assert isinstance(duplicate.error, DuplicateNameError)
        with pytest.raises(DuplicateNameError):
            duplicate.unwrap()

    def test_unwrap_without_limiter_or_error_raises(self) -> None:
        with pytest.raises(ValueError, match="neither a limiter nor an error"):
            CreateResult().unwrap()

    def test_get_or_create_reuses_existing_instance(self, registry: RateLimitRegistry) -> None:
        first = registry.get_or_create("test", 5, 1)

        again = registry.get_or_create("test", 10, 1)

        assert again is first
        assert again.limit == 5

    def test_get_or_create_logs_parameter_mismatch(
        self, registry: RateLimitRegistry, caplog: pytest.LogCaptureFixture
    ) -> None:
        registry.get_or_create("test", 5, 1)

        with caplog.at_level(logging.WARNING, logger="windowlimit.services.rate_limit"):
            registry.get_or_create("test", 5, 1)
            assert caplog.records == []

            registry.get_or_create("test", 10, 1)

        assert [r.getMessage() for r in caplog.records] == ["rate_limit.reuse_mismatch"]
        assert caplog.records[0].requested_limit == 10

    def test_get_or_create_uses_configured_defaults(self, registry: RateLimitRegistry) -> None:
        limiter = registry.get_or_create("defaults")

        assert limiter.limit == 60
        assert limiter.time_window == 60

    def test_get_unknown_returns_none(self, registry: RateLimitRegistry) -> None:
        assert registry.get("missing") is None


class TestNameQualifiedOperations:
    @pytest.fixture
    def limiter(self, registry: RateLimitRegistry, fake_time: FakeTime) -> RateLimit:
        return registry.create("test", 5, 1, clock=fake_time.time)

    def test_attempt_and_check(self, registry: RateLimitRegistry, limiter: RateLimit) -> None:
        assert registry.attempt("test", "source1").remaining == 4
        assert registry.attempt("test", "source1", 2).remaining == 2
        assert registry.check("test", "source1").remaining == 2

    def test_window_rollover(
        self, registry: RateLimitRegistry, limiter: RateLimit, fake_time: FakeTime
    ) -> None:
        registry.attempt("test", "source1", 6)
        assert registry.check("test", "source1").allow is False

        fake_time.advance(1.5)

        assert registry.attempt("test", "source1").allow is True

    def test_reset_and_set_remaining(self, registry: RateLimitRegistry, limiter: RateLimit) -> None:
        registry.attempt("test", "source1", 3)

        registry.reset("test", "source1")
        assert registry.check("test", "source1").remaining == 5

        registry.set_remaining("test", "source1", 3)
        assert registry.check("test", "source1").remaining == 3

    def test_clear(self, registry: RateLimitRegistry, limiter: RateLimit) -> None:
        for source in ("source1", "source2", "source3"):
            registry.attempt("test", source)

        registry.clear("test")

        for source in ("source1", "source2", "source3"):
            assert registry.check("test", source).remaining == 5

    def test_cleanup_by_name(
        self, registry: RateLimitRegistry, limiter: RateLimit, fake_time: FakeTime
    ) -> None:
        registry.attempt("test", "source1")
        fake_time.advance(1.5)

        assert registry.cleanup("test") == 1
        assert registry.check("test", "source1").remaining == 5

    def test_cleanup_all_limiters(
        self, registry: RateLimitRegistry, limiter: RateLimit, fake_time: FakeTime
    ) -> None:
        other = registry.create("test2", 5, 10, clock=fake_time.time)
        registry.attempt("test", "source1")
        other.attempt("source1")
        other.attempt("source2")
        fake_time.advance(1.5)

        assert registry.cleanup() == 1
        assert other.check("source1").remaining == 4

        fake_time.advance(10)
        assert registry.cleanup() == 2

    def test_cleanup_all_skips_limiter_deleted_midway(
        self, registry: RateLimitRegistry, limiter: RateLimit, fake_time: FakeTime
    ) -> None:
        class DeletingStore(InMemoryCounterStore):
            victim: RateLimit | None = None

            def purge_expired(self, time_window: int, now: float) -> int:
                if self.victim is not None and not self.victim.is_deleted:
                    self.victim.delete()
                return super().purge_expired(time_window, now)

        store = DeletingStore()
        first = RateLimit("a", 5, 1, registry=registry, clock=fake_time.time, store=store)
        victim = registry.create("b", 5, 1, clock=fake_time.time)
        last = registry.create("c", 5, 1, clock=fake_time.time)
        store.victim = victim
        for instance in (limiter, first, victim, last):
            instance.attempt("source1")
        fake_time.advance(1.5)

        assert registry.cleanup() == 3

        assert victim.is_deleted
        assert registry.names() == ["test", "a", "c"]
        assert len(store) == 0
        assert last.check("source1").remaining == 5

    def test_delete_unregisters(self, registry: RateLimitRegistry, limiter: RateLimit) -> None:
        registry.attempt("test", "source1")

        registry.delete("test")

        assert registry.get("test") is None
        assert limiter.is_deleted is True

    @pytest.mark.parametrize(
        "operation",
        [
            lambda r: r.check("test", "source1"),
            lambda r: r.attempt("test", "source1"),
            lambda r: r.reset("test", "source1"),
            lambda r: r.set_remaining("test", "source1", 3),
            lambda r: r.clear("test"),
            lambda r: r.cleanup("test"),
            lambda r: r.delete("test"),
        ],
    )
    def test_unknown_name_raises(self, registry: RateLimitRegistry, operation) -> None:
        with pytest.raises(UnknownNameError) as exc_info:
            operation(registry)

        assert str(exc_info.value) == 'Rate limit with name "test" does not exist'
        assert exc_info.value.code == "unknown_name"


class TestDefaultRegistry:
    @pytest.fixture(autouse=True)
    def _cleanup_default_registry(self):
        yield
        for limiter in list(default_registry):
            limiter.delete()

    def test_constructor_uses_default_registry(self) -> None:
        limiter = RateLimit("default-test", 5, 60)

        assert lookups.get("default-test") is limiter
        assert default_registry.get("default-test") is limiter

    def test_lookup_functions_delegate(self, fake_time: FakeTime) -> None:
        lookups.create("login", 3, 60, clock=fake_time.time)

        assert lookups.attempt("login", "u1").remaining == 2
        assert lookups.check("login", "u1").remaining == 2

        lookups.set_remaining("login", "u1", 1)
        assert lookups.check("login", "u1").remaining == 1

        lookups.reset("login", "u1")
        assert lookups.check("login", "u1").remaining == 3

        lookups.attempt("login", "u2")
        lookups.clear("login")
        assert lookups.check("login", "u2").remaining == 3

        lookups.attempt("login", "u3")
        fake_time.advance(61)
        assert lookups.cleanup("login") == 1
        assert lookups.cleanup() == 0

        lookups.delete("login")
        assert lookups.get("login") is None
        with pytest.raises(UnknownNameError):
            lookups.check("login", "u1")

    def test_lookup_factories(self) -> None:
        first = lookups.get_or_create("shared", 5, 60)

        assert lookups.get_or_create("shared", 10, 60) is first
        assert lookups.try_create("shared", 5, 60).ok is False
        with pytest.raises(DuplicateNameError):
            lookups.create("shared", 5, 60)
