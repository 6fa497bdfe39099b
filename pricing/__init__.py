"""
Pricing Package.

USD valuation of recorded contributions.

Components:
- PricingPort: protocol the recorder depends on
- CoinGeckoPriceSource: Simple Price API client (httpx)
- CachedPriceSource: TTL cache wrapper
"""

from typing import Optional

from core.cache import TTLCache
from core.config import PricingConfig
from pricing.cached import CachedPriceSource
from pricing.coingecko import COINGECKO_IDS, CoinGeckoPriceSource, PricingError
from pricing.ports import PricingPort, StaticPriceSource


def build_price_source(config: PricingConfig) -> Optional[CachedPriceSource]:
    """Cached CoinGecko source, or None when pricing is disabled."""
    if not config.enabled:
        return None
    return CachedPriceSource(
        CoinGeckoPriceSource.from_config(config),
        TTLCache(max_entries=64, ttl_seconds=config.cache_ttl_seconds),
    )


__all__ = [
    "COINGECKO_IDS",
    "CachedPriceSource",
    "CoinGeckoPriceSource",
    "PricingError",
    "PricingPort",
    "StaticPriceSource",
    "build_price_source",
]
