"""Tests for TokenBucket and ClientRateLimiter."""

import pytest

from indicator_system.api.rate_limiter import ClientRateLimiter, TokenBucket


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


class TestTokenBucket:
    def test_acquire_until_empty(self, clock):
        bucket = TokenBucket(capacity=2, refill_rate=1.0, clock=clock)

        assert bucket.acquire() is True
        assert bucket.acquire() is True
        assert bucket.acquire() is False

    def test_refills_over_time(self, clock):
        bucket = TokenBucket(capacity=1, refill_rate=0.5, clock=clock)
        bucket.acquire()

        clock.now += 2.0

        assert bucket.acquire() is True

    def test_never_exceeds_capacity(self, clock):
        bucket = TokenBucket(capacity=2, refill_rate=1.0, clock=clock)
        clock.now += 100.0

        assert bucket.acquire(tokens=2) is True
        assert bucket.acquire() is False

    def test_seconds_until_available(self, clock):
        bucket = TokenBucket(capacity=1, refill_rate=0.25, clock=clock)
        bucket.acquire()

        assert bucket.seconds_until_available() == 4


class TestClientRateLimiter:
    def test_sixty_per_hour(self, clock):
        limiter = ClientRateLimiter(max_requests=60, window_ms=3_600_000, clock=clock)

        results = [limiter.check("10.0.0.1") for _ in range(60)]

        assert all(r is None for r in results)
        assert limiter.check("10.0.0.1") == 60

    def test_clients_are_independent(self, clock):
        limiter = ClientRateLimiter(max_requests=1, window_ms=60_000, clock=clock)

        assert limiter.check("10.0.0.1") is None
        assert limiter.check("10.0.0.2") is None
        assert limiter.check("10.0.0.1") == 60

    def test_recovers_after_refill(self, clock):
        limiter = ClientRateLimiter(max_requests=1, window_ms=60_000, clock=clock)
        limiter.check("10.0.0.1")

        clock.now += 60.0

        assert limiter.check("10.0.0.1") is None

    @pytest.mark.parametrize("max_requests,window_ms", [(0, 1000), (1, 0)])
    def test_invalid_configuration(self, max_requests, window_ms):
        with pytest.raises(ValueError):
            ClientRateLimiter(max_requests=max_requests, window_ms=window_ms)


class TestIdleClientEviction:
    def test_idle_clients_dropped_after_window(self, clock):
        limiter = ClientRateLimiter(max_requests=60, window_ms=3_600_000, clock=clock)
        for i in range(10_000):
            limiter.check(f"10.{i // 65536}.{(i // 256) % 256}.{i % 256}")
        assert limiter.tracked_clients == 10_000

        clock.now += 10 * 3600.0
        limiter.check("192.168.0.1")

        assert limiter.tracked_clients == 1

    def test_throttled_client_survives_sweep(self, clock):
        limiter = ClientRateLimiter(max_requests=2, window_ms=60_000, clock=clock)
        limiter.check("10.0.0.1")
        clock.now += 59.0
        limiter.check("10.0.0.2")
        limiter.check("10.0.0.2")

        clock.now += 1.0
        limiter.check("10.0.0.3")

        assert limiter.tracked_clients == 2
        assert limiter.check("10.0.0.2") == 29

    def test_no_sweep_within_window(self, clock):
        limiter = ClientRateLimiter(max_requests=1, window_ms=60_000, clock=clock)
        limiter.check("10.0.0.1")

        clock.now += 30.0
        limiter.check("10.0.0.2")

        assert limiter.tracked_clients == 2
