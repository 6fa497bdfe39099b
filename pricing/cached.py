"""
Cached Price Source - TTL cache in front of any PricingPort.

Prices are cached per symbol for the cache TTL. Missing prices
(None) are not cached so a later call can pick them up.
"""

import logging
from decimal import Decimal
from typing import Optional

from core.cache import TTLCache
from pricing.ports import PricingPort


logger = logging.getLogger(__name__)


class CachedPriceSource:
    """Wraps a price source with an injected TTLCache."""

    def __init__(self, source: PricingPort, cache: TTLCache) -> None:
        self._source = source
        self._cache = cache

    async def get_usd_price(self, symbol: str) -> Optional[Decimal]:
        key = symbol.upper()
        cached = self._cache.get(key)
        if cached is not None:
            return cached
        price = await self._source.get_usd_price(key)
        if price is not None:
            self._cache.set(key, price)
        return price

    async def close(self) -> None:
        close = getattr(self._source, "close", None)
        if close is not None:
            await close()
