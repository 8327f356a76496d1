"""
JSON-RPC access to EVM nodes.

Read-only provider used for estimation, static calls, balance lookups and
receipt polling.
"""

import asyncio
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..core.chains import ChainInfo
from ..core.errors import NetworkError, UnsupportedChainError


class RpcError(Exception):
    """JSON-RPC error object returned by a node or wallet."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    @classmethod
    def from_response(cls, error: Any) -> "RpcError":
        if isinstance(error, dict):
            return cls(
                message=str(error.get("message", "RPC error")),
                code=error.get("code"),
                data=error.get("data"),
            )
        return cls(str(error))


def _hex(value: Optional[int]) -> Optional[str]:
    return hex(value) if value is not None else None


def build_call_object(
    to: Optional[str] = None,
    data: Optional[str] = None,
    from_address: Optional[str] = None,
    value: Optional[int] = None,
) -> Dict[str, Any]:
    call: Dict[str, Any] = {}
    if from_address:
        call["from"] = from_address
    if to:
        call["to"] = to
    if data:
        call["data"] = data
    if value:
        call["value"] = _hex(value)
    return call


class JsonRpcProvider:
    """Thin async JSON-RPC client bound to one endpoint."""

    def __init__(
        self,
        rpc_url: str,
        chain_id: Optional[int] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
    ):
        self.rpc_url = rpc_url
        self.chain_id = chain_id
        self._client = client or httpx.AsyncClient(timeout=timeout or settings.rpc_timeout_seconds)
        self._owns_client = client is None
        self._poll_interval = poll_interval if poll_interval is not None else settings.receipt_poll_interval_seconds
        self._request_id = 0

    async def request(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """Make a JSON-RPC call and return its ``result``."""
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or [],
            "id": self._request_id,
        }

        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
        except httpx.TransportError as e:
            raise NetworkError(f"RPC transport error calling {method}: {e}")
        except httpx.HTTPStatusError as e:
            raise NetworkError(f"RPC endpoint returned {e.response.status_code} for {method}")

        result = response.json()
        if "error" in result:
            raise RpcError.from_response(result["error"])

        return result.get("result")

    async def estimate_gas(self, tx: Dict[str, Any]) -> int:
        return int(await self.request("eth_estimateGas", [tx]), 16)

    async def get_gas_price(self) -> int:
        return int(await self.request("eth_gasPrice"), 16)

    async def call(self, tx: Dict[str, Any], block: str = "latest") -> str:
        """Static execution; raises :class:`RpcError` when the call reverts."""
        return await self.request("eth_call", [tx, block])

    async def get_balance(self, address: str, block: str = "latest") -> int:
        return int(await self.request("eth_getBalance", [address, block]), 16)

    async def get_chain_id(self) -> int:
        return int(await self.request("eth_chainId"), 16)

    async def get_transaction(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.request("eth_getTransactionByHash", [tx_hash])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[Dict[str, Any]]:
        return await self.request("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_transaction_receipt(self, tx_hash: str) -> Dict[str, Any]:
        """
        Poll until the node returns a receipt.

        No timeout: a transaction that is never mined keeps this waiting.
        Only a missing receipt is polled again; transport and RPC errors
        propagate to the caller.
        """
        while True:
            receipt = await self.get_transaction_receipt(tx_hash)
            if receipt:
                return receipt
            await asyncio.sleep(self._poll_interval)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


class ProviderFactory:
    """Hands out one read-only provider per supported chain."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None):
        self._client = client
        self._providers: Dict[int, JsonRpcProvider] = {}

    def for_chain(self, chain: ChainInfo) -> JsonRpcProvider:
        provider = self._providers.get(chain.chain_id)
        if provider is None:
            rpc_url = chain.rpc_url
            if not rpc_url:
                raise UnsupportedChainError(f"No RPC URL configured for {chain.name}")
            provider = JsonRpcProvider(rpc_url, chain_id=chain.chain_id, client=self._client)
            self._providers[chain.chain_id] = provider
        return provider

    async def close(self) -> None:
        for provider in self._providers.values():
            await provider.close()
        self._providers.clear()
