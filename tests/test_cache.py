"""Tests for the TTL price cache."""

from decimal import Decimal

from conftest import BONK_MINT, SOL_MINT, TKN_MINT, FakeOracle
from swap_cycle_tracker.pricing.cache import CachedPriceOracle, CacheEntry, PriceCache


class Clock:
    """Manually advanced time source."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_cache_entry_expiry():
    entry = CacheEntry(Decimal("1"), ttl=10, created_at=100.0)

    assert entry.is_expired(110.0) is False
    assert entry.is_expired(110.5) is True


def test_get_and_set():
    """Stored prices are returned until they expire."""
    clock = Clock()
    cache = PriceCache(default_ttl=60, clock=clock)

    cache.set(SOL_MINT, Decimal("150"))
    assert cache.get(SOL_MINT) == Decimal("150")
    assert cache.get(TKN_MINT) is None

    clock.now += 61
    assert cache.get(SOL_MINT) is None
    assert len(cache) == 0


def test_custom_ttl_overrides_default():
    clock = Clock()
    cache = PriceCache(default_ttl=60, clock=clock)

    cache.set(SOL_MINT, Decimal("150"), ttl=600)
    clock.now += 300

    assert cache.get(SOL_MINT) == Decimal("150")


def test_cleanup_expired():
    """Only stale entries are removed."""
    clock = Clock()
    cache = PriceCache(default_ttl=60, clock=clock)
    cache.set(SOL_MINT, Decimal("150"))
    clock.now += 30
    cache.set(TKN_MINT, Decimal("0.5"))
    clock.now += 40

    assert cache.cleanup_expired() == 1
    assert len(cache) == 1
    assert cache.get(TKN_MINT) == Decimal("0.5")


def test_clear():
    cache = PriceCache()
    cache.set(SOL_MINT, Decimal("150"))

    cache.clear()

    assert len(cache) == 0


class TestCachedPriceOracle:
    """Cache-aware oracle wrapper."""

    def test_hits_skip_the_oracle(self):
        oracle = FakeOracle({SOL_MINT: Decimal("150")})
        cached = CachedPriceOracle(oracle, PriceCache(clock=Clock()))

        assert cached.price_of({SOL_MINT}) == {SOL_MINT: Decimal("150")}
        assert cached.price_of({SOL_MINT}) == {SOL_MINT: Decimal("150")}
        assert oracle.calls == [{SOL_MINT}]

    def test_misses_are_batched(self):
        """Only uncached mints reach the oracle, in one call."""
        oracle = FakeOracle({SOL_MINT: Decimal("150"), TKN_MINT: Decimal("0.5"), BONK_MINT: Decimal("0.00002")})
        cache = PriceCache(clock=Clock())
        cache.set(SOL_MINT, Decimal("149"))
        cached = CachedPriceOracle(oracle, cache)

        prices = cached.price_of({SOL_MINT, TKN_MINT, BONK_MINT})

        assert oracle.calls == [{TKN_MINT, BONK_MINT}]
        assert prices[SOL_MINT] == Decimal("149")
        assert prices[TKN_MINT] == Decimal("0.5")

    def test_unknown_prices_are_not_cached(self):
        oracle = FakeOracle()
        cached = CachedPriceOracle(oracle, PriceCache(clock=Clock()))

        assert cached.price_of({TKN_MINT}) == {}
        assert cached.price_of({TKN_MINT}) == {}
        assert len(oracle.calls) == 2

    def test_expired_prices_are_refetched(self):
        clock = Clock()
        oracle = FakeOracle({SOL_MINT: Decimal("150")})
        cached = CachedPriceOracle(oracle, PriceCache(default_ttl=300, clock=clock))

        cached.price_of({SOL_MINT})
        clock.now += 301
        cached.price_of({SOL_MINT})

        assert len(oracle.calls) == 2

    def test_empty_request(self):
        oracle = FakeOracle()
        cached = CachedPriceOracle(oracle, PriceCache())

        assert cached.price_of(set()) == {}
        assert oracle.calls == []


def test_zero_ttl_is_not_the_default():
    """An explicit zero TTL expires as soon as time moves."""
    clock = Clock()
    cache = PriceCache(default_ttl=300, clock=clock)

    cache.set(SOL_MINT, Decimal("150"), ttl=0)
    clock.now += 1

    assert cache.get(SOL_MINT) is None
