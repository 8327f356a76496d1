"""
Block explorer account history over the Etherscan V2 multichain API.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from ..config import settings
from ..core.errors import DataSourceError


logger = logging.getLogger(__name__)

NORMAL_TRANSACTIONS = "txlist"
INTERNAL_TRANSACTIONS = "txlistinternal"


class ExplorerClient:
    """
    Reads recent account transactions from an Etherscan-compatible API.

    One endpoint serves every chain; the target chain goes in ``chainid``.
    Explorer-level failures (bad key, rate limit) come back as a normal
    response with ``status == "0"`` and are left for the caller to report.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout_s: Optional[float] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.etherscan_api_key
        self.base_url = base_url or settings.explorer_api_url
        self.timeout_s = timeout_s or settings.http_timeout_seconds
        self._client = client

    async def account_transactions(
        self,
        chain_id: int,
        address: str,
        action: str = NORMAL_TRANSACTIONS,
        limit: int = 5,
    ) -> Dict[str, Any]:
        params = {
            "chainid": str(chain_id),
            "module": "account",
            "action": action,
            "address": address,
            "startblock": "0",
            "endblock": "99999999",
            "page": "1",
            "offset": str(limit),
            "sort": "desc",
        }
        if self.api_key:
            params["apikey"] = self.api_key

        try:
            if self._client is not None:
                response = await self._client.get(self.base_url, params=params, timeout=self.timeout_s)
            else:
                async with httpx.AsyncClient() as client:
                    response = await client.get(self.base_url, params=params, timeout=self.timeout_s)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise DataSourceError(f"Explorer returned {e.response.status_code} for {action}")
        except httpx.TransportError as e:
            raise DataSourceError(f"Explorer unreachable: {e}")

        data = response.json()
        if not isinstance(data, dict):
            raise DataSourceError("Unexpected explorer response")
        logger.debug(f"Explorer {action} for {address} on chain {chain_id}: status {data.get('status')}")
        return data
