"""
Pricing Port.

The recorder depends on this protocol only, so any price source
(CoinGecko, a fixed table in tests, a cache wrapper) can be injected.
"""

from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class PricingPort(Protocol):
    """USD price lookup keyed by asset symbol (e.g. "BTC")."""

    async def get_usd_price(self, symbol: str) -> Optional[Decimal]:
        """
        Current USD price of one unit of the asset.

        Returns:
            None when the symbol has no price; errors are raised
        """
        ...


class StaticPriceSource:
    """Fixed symbol -> price table."""

    def __init__(self, prices: dict[str, Decimal]) -> None:
        self._prices = {k.upper(): Decimal(str(v)) for k, v in prices.items()}

    async def get_usd_price(self, symbol: str) -> Optional[Decimal]:
        return self._prices.get(symbol.upper())
