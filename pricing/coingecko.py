"""
Pricing - CoinGecko Price Source.

============================================================
RESPONSIBILITY
============================================================
Fetches USD spot prices from the CoinGecko Simple Price API.

- Maps asset symbols to CoinGecko coin ids
- Parses prices as Decimal (never float)
- Raises PricingError on HTTP or payload errors

============================================================
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Optional

import httpx

from core.config import PricingConfig
from core.exceptions import ContributionEngineError, ErrorClassification


logger = logging.getLogger(__name__)


# Asset symbol -> CoinGecko coin id
COINGECKO_IDS: dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "POL": "polygon-pos",
    "OP": "optimism",
    "ARB": "arbitrum",
    "AVAX": "avalanche-2",
    "DOT": "polkadot",
    "ATOM": "cosmos",
    "XRP": "ripple",
    "SOL": "solana",
    "XLM": "stellar",
    "LTC": "litecoin",
    "DOGE": "dogecoin",
    "TRX": "tron",
    "BSC": "binancecoin",
    "ADA": "cardano",
}


class PricingError(ContributionEngineError):
    """Price source request failed."""

    default_code = "pricing_error"
    default_classification = ErrorClassification.TRANSIENT


class CoinGeckoPriceSource:
    """
    CoinGecko /simple/price client.

    Usage:
        source = CoinGeckoPriceSource(api_key=os.getenv("COINGECKO_API_KEY"))
        price = await source.get_usd_price("BTC")
    """

    def __init__(
        self,
        base_url: str = PricingConfig.base_url,
        api_key: Optional[str] = None,
        timeout_seconds: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = client
        self._owns_client = client is None

    @classmethod
    def from_config(cls, config: PricingConfig) -> "CoinGeckoPriceSource":
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            timeout_seconds=config.timeout_seconds,
        )

    def _headers(self) -> dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            # Pro keys only work against pro-api.coingecko.com
            if "pro-api" in self._base_url:
                headers["x-cg-pro-api-key"] = self._api_key
            else:
                headers["x-cg-demo-api-key"] = self._api_key
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def get_usd_prices(self, symbols: Iterable[str]) -> dict[str, Decimal]:
        """
        USD prices for several symbols in one request.

        Unknown symbols and coins missing from the response are left
        out of the result.

        Raises:
            PricingError: HTTP failure or malformed body
        """
        wanted = {s.upper() for s in symbols}
        ids = sorted({COINGECKO_IDS[s] for s in wanted if s in COINGECKO_IDS})
        if not ids:
            return {}

        url = f"{self._base_url}/simple/price"
        params = {"ids": ",".join(ids), "vs_currencies": "usd", "precision": "full"}

        try:
            response = await self._get_client().get(url, params=params, headers=self._headers())
            response.raise_for_status()
            data: Any = response.json(parse_float=Decimal)
        except httpx.HTTPStatusError as e:
            raise PricingError(
                f"HTTP {e.response.status_code}: {e.response.text[:200]}",
                context={"status_code": e.response.status_code, "ids": ids},
                cause=e,
            ) from e
        except httpx.TimeoutException as e:
            raise PricingError(f"Request timeout: {e}", context={"ids": ids}, cause=e) from e
        except httpx.RequestError as e:
            raise PricingError(f"Request error: {e}", context={"ids": ids}, cause=e) from e
        except ValueError as e:
            raise PricingError(f"Malformed price payload: {e}", context={"ids": ids}, cause=e) from e

        if not isinstance(data, dict):
            raise PricingError("Malformed price payload: expected object", context={"ids": ids})

        id_to_symbol = {v: k for k, v in COINGECKO_IDS.items()}
        prices: dict[str, Decimal] = {}
        for coin_id, entry in data.items():
            symbol = id_to_symbol.get(coin_id)
            usd = entry.get("usd") if isinstance(entry, dict) else None
            if symbol in wanted and usd is not None and not isinstance(usd, bool):
                prices[symbol] = Decimal(str(usd))
        logger.debug(f"Fetched {len(prices)} USD prices from CoinGecko")
        return prices

    async def get_usd_price(self, symbol: str) -> Optional[Decimal]:
        prices = await self.get_usd_prices([symbol])
        return prices.get(symbol.upper())

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
