from __future__ import annotations

import pytest

from shuffler.cache import RateLimiter, TTLCache


class Ticker:
    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


def test_ttl_cache_expires_entries() -> None:
    ticker = Ticker()
    cache: TTLCache[str] = TTLCache(10.0, ticker)

    cache.set("alice", "stats")
    ticker.now = 9.9
    assert cache.get("alice") == "stats"

    ticker.now = 10.0
    assert cache.get("alice") is None
    assert len(cache) == 0


def test_ttl_cache_invalidate_and_purge() -> None:
    ticker = Ticker()
    cache: TTLCache[int] = TTLCache(5.0, ticker)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.invalidate("a")
    cache.invalidate("missing")

    ticker.now = 3.0
    cache.set("c", 3)
    ticker.now = 6.0

    assert cache.purge() == 1
    assert cache.get("c") == 3
    assert cache.get("a") is None


def test_rate_limiter_sliding_window() -> None:
    ticker = Ticker()
    limiter = RateLimiter(limit=2, window=10.0, clock=ticker)

    assert limiter.allow("alice")
    ticker.now = 4.0
    assert limiter.allow("alice")
    assert not limiter.allow("alice")
    assert limiter.allow("bob")
    assert limiter.remaining("alice") == 0

    ticker.now = 10.0
    assert limiter.remaining("alice") == 1
    assert limiter.allow("alice")
    assert not limiter.allow("alice")


@pytest.mark.parametrize("kwargs", [{"limit": 0, "window": 1.0}, {"limit": 1, "window": 0.0}])
def test_rate_limiter_rejects_bad_parameters(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RateLimiter(**kwargs)


def test_ttl_cache_rejects_bad_ttl() -> None:
    with pytest.raises(ValueError):
        TTLCache(0)


def test_rate_limiter_forgets_idle_keys() -> None:
    ticker = Ticker()
    limiter = RateLimiter(limit=3, window=60.0, clock=ticker)
    for user in range(1000):
        assert limiter.allow(f"user-{user}")
    assert len(limiter) == 1000

    ticker.now = 1000.0
    assert limiter.allow("latecomer")

    assert len(limiter) == 1
    assert limiter.remaining("user-0") == 3


def test_rate_limiter_keeps_keys_active_in_the_window() -> None:
    ticker = Ticker()
    limiter = RateLimiter(limit=2, window=10.0, clock=ticker)
    limiter.allow("alice")
    ticker.now = 8.0
    limiter.allow("bob")

    ticker.now = 12.0
    limiter.allow("carol")

    assert len(limiter) == 2
    assert limiter.remaining("bob") == 1


def test_ttl_cache_set_drops_expired_entries() -> None:
    ticker = Ticker()
    cache: TTLCache[int] = TTLCache(5.0, ticker)
    for user in range(100):
        cache.set(user, user)

    ticker.now = 5.0
    cache.set("fresh", 1)

    assert len(cache) == 1
    assert cache.get("fresh") == 1
