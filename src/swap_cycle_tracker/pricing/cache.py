"""TTL-based caching for token prices."""

import logging
import time
from collections.abc import Callable
from decimal import Decimal

from swap_cycle_tracker.pricing.base import PriceOracle

logger = logging.getLogger(__name__)


class CacheEntry:
    """
    Cache entry with TTL support.

    Parameters
    ----------
    value : Decimal
        Cached price
    ttl : int
        Time-to-live in seconds
    created_at : float
        Creation timestamp

    """

    def __init__(self, value: Decimal, ttl: int, created_at: float) -> None:
        self.value = value
        self.ttl = ttl
        self.created_at = created_at

    def is_expired(self, now: float) -> bool:
        """
        Check if cache entry has expired.

        Parameters
        ----------
        now : float
            Current time in seconds

        Returns
        -------
        bool
            True if expired, False otherwise

        """
        return (now - self.created_at) > self.ttl


class PriceCache:
    """
    In-memory price cache keyed by mint, owned by the caller.

    Parameters
    ----------
    default_ttl : int
        Default time-to-live in seconds for cache entries
    clock : Callable[[], float]
        Time source, injectable for tests

    """

    def __init__(self, default_ttl: int = 300, clock: Callable[[], float] = time.time) -> None:
        self.default_ttl = default_ttl
        self.clock = clock
        self._cache: dict[str, CacheEntry] = {}

    def get(self, mint: str) -> Decimal | None:
        """
        Get cached price if it exists and hasn't expired.

        Parameters
        ----------
        mint : str
            Mint address

        Returns
        -------
        Decimal | None
            Cached price if found and valid, None otherwise

        """
        entry = self._cache.get(mint)

        if entry is None:
            return None

        if entry.is_expired(self.clock()):
            del self._cache[mint]
            return None

        return entry.value

    def set(self, mint: str, price: Decimal, ttl: int | None = None) -> None:
        """
        Store a price with TTL.

        Parameters
        ----------
        mint : str
            Mint address
        price : Decimal
            USD price
        ttl : int | None
            Time-to-live in seconds. Uses default_ttl if None.

        """
        ttl = self.default_ttl if ttl is None else ttl
        self._cache[mint] = CacheEntry(price, ttl, self.clock())

    def clear(self) -> None:
        """Clear all cached entries."""
        self._cache.clear()

    def cleanup_expired(self) -> int:
        """
        Remove all expired entries from cache.

        Returns
        -------
        int
            Number of entries removed

        """
        now = self.clock()
        expired_keys = [key for key, entry in self._cache.items() if entry.is_expired(now)]
        for key in expired_keys:
            del self._cache[key]
        return len(expired_keys)

    def __len__(self) -> int:
        return len(self._cache)


class CachedPriceOracle:
    """
    Price oracle wrapper that serves fresh prices from a ``PriceCache``.

    Only mints missing from the cache reach the wrapped oracle, in a single
    batched call. Unknown prices are not cached.

    Parameters
    ----------
    oracle : PriceOracle
        Underlying price source
    cache : PriceCache
        Cache owned by the caller

    """

    def __init__(self, oracle: PriceOracle, cache: PriceCache) -> None:
        self.oracle = oracle
        self.cache = cache

    def price_of(self, mints: set[str]) -> dict[str, Decimal]:
        """
        Fetch prices, consulting the cache first.

        Parameters
        ----------
        mints : set[str]
            Mint addresses to price

        Returns
        -------
        dict[str, Decimal]
            Mapping of mint to USD price for every mint with a known price

        """
        prices: dict[str, Decimal] = {}
        misses = set()
        for mint in mints:
            cached = self.cache.get(mint)
            if cached is None:
                misses.add(mint)
            else:
                prices[mint] = cached

        if misses:
            logger.debug("Price cache miss for %d of %d mints", len(misses), len(mints))
            fetched = self.oracle.price_of(misses)
            for mint, price in fetched.items():
                self.cache.set(mint, price)
                prices[mint] = price

        return prices
