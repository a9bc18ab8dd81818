"""Tests for the single-slot ResultCache."""

import pytest

from indicator_system.data_management.result_cache import ResultCache


class FakeClock:
    """Manually advanced clock returning seconds."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return ResultCache(ttl_ms=300_000, clock=clock)


class TestResultCacheLifecycle:
    def test_empty_cache(self, cache):
        assert cache.get() is None
        assert cache.is_valid() is False
        assert cache.age() is None

    def test_set_then_get(self, cache):
        cache.set({"success": True})

        assert cache.get() == {"success": True}
        assert cache.is_valid() is True

    def test_set_replaces_previous_entry(self, cache):
        cache.set({"n": 1})
        cache.set({"n": 2})

        assert cache.get() == {"n": 2}

    def test_clear(self, cache):
        cache.set({"n": 1})
        cache.clear()

        assert cache.get() is None
        assert cache.age() is None


class TestResultCacheExpiry:
    def test_served_at_exact_ttl(self, cache, clock):
        cache.set("payload")
        clock.advance_ms(300_000)

        assert cache.get() == "payload"

    def test_expired_after_ttl(self, cache, clock):
        cache.set("payload")
        clock.advance_ms(300_001)

        assert cache.get() is None

    def test_expired_entry_is_purged(self, cache, clock):
        cache.set("payload")
        clock.advance_ms(400_000)
        cache.get()

        assert cache.age() is None

    def test_age_tracks_clock(self, cache, clock):
        cache.set("payload")
        clock.advance_ms(1_500)

        assert cache.age() == 1_500

    def test_set_resets_age(self, cache, clock):
        cache.set("old")
        clock.advance_ms(250_000)
        cache.set("new")
        clock.advance_ms(100_000)

        assert cache.get() == "new"


class TestResultCacheConfiguration:
    def test_default_ttl_is_five_minutes(self):
        assert ResultCache().ttl_ms == 300_000

    @pytest.mark.parametrize("ttl_ms", [0, -1])
    def test_non_positive_ttl_rejected(self, ttl_ms):
        with pytest.raises(ValueError):
            ResultCache(ttl_ms=ttl_ms)
