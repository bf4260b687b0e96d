"""Tests for the in-memory rate limiter."""

from commentguard.api.security import RateLimiter


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class TestRateLimiter:
    def test_limit_and_retry_after(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)

        assert limiter.hit("203.0.113.7", limit=2, window=60).remaining == 1
        assert limiter.hit("203.0.113.7", limit=2, window=60).remaining == 0

        clock.now += 15
        blocked = limiter.hit("203.0.113.7", limit=2, window=60)
        assert not blocked.allowed
        assert blocked.retry_after == 45

    def test_window_slides(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.hit("203.0.113.7", limit=1, window=60)

        clock.now += 60
        assert limiter.hit("203.0.113.7", limit=1, window=60).allowed

    def test_idle_clients_are_forgotten(self):
        """One-off callers do not accumulate in memory."""
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        for i in range(100):
            limiter.hit(f"198.51.100.{i}", limit=5, window=60)
        assert limiter.tracked_keys == 100

        clock.now += 61
        limiter.hit("203.0.113.7", limit=5, window=60)

        assert limiter.tracked_keys == 1

    def test_active_clients_are_kept(self):
        clock = FakeClock()
        limiter = RateLimiter(clock=clock)
        limiter.hit("198.51.100.1", limit=5, window=60)

        clock.now += 30
        limiter.hit("198.51.100.2", limit=5, window=60)
        clock.now += 31
        limiter.hit("198.51.100.3", limit=5, window=60)

        assert limiter.tracked_keys == 2
