"""
Coingecko price lookups for the getCryptoPrice action.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx

from ..config import settings
from ..core.errors import DataSourceError


logger = logging.getLogger(__name__)

DEFAULT_COIN_ID = "ethereum"

# Common symbols and names -> Coingecko coin id
CRYPTO_ALIASES: Dict[str, str] = {
    "eth": "ethereum", "ether": "ethereum", "ethereum": "ethereum",
    "btc": "bitcoin", "xbt": "bitcoin", "bitcoin": "bitcoin",
    "bnb": "binancecoin", "binance": "binancecoin",
    "matic": "matic-network", "polygon": "matic-network",
    "pol": "polygon-ecosystem-token",
    "avax": "avalanche-2", "avalanche": "avalanche-2",
    "arb": "arbitrum", "arbitrum": "arbitrum",
    "op": "optimism", "optimism": "optimism",
    "link": "chainlink", "chainlink": "chainlink",
    "dai": "dai",
    "usdc": "usd-coin", "usd-coin": "usd-coin",
    "usdt": "tether", "tether": "tether",
}


def normalize_crypto(raw: Optional[str]) -> Tuple[str, str]:
    """Return ``(coin_id, requested)``; an empty request means ETH."""
    if not raw or not raw.strip():
        return DEFAULT_COIN_ID, ""
    key = raw.strip().lower()
    return CRYPTO_ALIASES.get(key, key), key


class CoingeckoProvider:
    """Coingecko API provider for fiat prices"""

    name = "coingecko"

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.coingecko_api_key
        self.base_url = (base_url or settings.coingecko_base_url).rstrip("/")
        self.timeout_s = timeout_s or settings.http_timeout_seconds
        self._client = client

    def _build_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self.api_key:
            headers["X-CG-Demo-API-Key"] = self.api_key
        return headers

    async def _get(self, path: str, params: Dict[str, Any]) -> Any:
        url = f"{self.base_url}{path}"
        try:
            if self._client is not None:
                response = await self._client.get(
                    url, headers=self._build_headers(), params=params, timeout=self.timeout_s,
                )
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(
                        url, headers=self._build_headers(), params=params, timeout=self.timeout_s,
                    )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DataSourceError(f"Failed to fetch price: {e.response.status_code}")
        except httpx.TransportError as e:
            raise DataSourceError(f"Price service unreachable: {e}")
        return response.json()

    async def get_simple_prices(self, coin_id: str, currencies: List[str]) -> Dict[str, float]:
        """Prices of ``coin_id`` keyed by currency; empty when Coingecko doesn't know the coin."""
        data = await self._get(
            "/simple/price",
            {"ids": coin_id, "vs_currencies": ",".join(currencies)},
        )
        prices = data.get(coin_id) if isinstance(data, dict) else None
        if not prices:
            logger.info(f"Coingecko returned no price for {coin_id}")
            return {}
        return {cur: price for cur, price in prices.items() if isinstance(price, (int, float))}
