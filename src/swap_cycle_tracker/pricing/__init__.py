"""Pricing services for swap USD valuation."""

from swap_cycle_tracker.pricing.base import PriceOracle
from swap_cycle_tracker.pricing.cache import CachedPriceOracle, CacheEntry, PriceCache
from swap_cycle_tracker.pricing.jupiter import JupiterPricing

__all__ = [
    "CacheEntry",
    "CachedPriceOracle",
    "JupiterPricing",
    "PriceCache",
    "PriceOracle",
]
