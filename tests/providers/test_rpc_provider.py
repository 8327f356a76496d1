"""
Tests for the JSON-RPC provider against an in-process transport.
"""

import json

import httpx
import pytest

from chainpilot.core.chains import ChainInfo, get_chain
from chainpilot.core.errors import NetworkError, UnsupportedChainError
from chainpilot.providers.rpc import JsonRpcProvider, ProviderFactory, RpcError, build_call_object


def _provider(handler) -> JsonRpcProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return JsonRpcProvider("http://node.test", chain_id=1337, client=client, poll_interval=0)


def _result(body, result):
    return httpx.Response(200, json={"jsonrpc": "2.0", "id": body["id"], "result": result})


class TestJsonRpcProvider:

    @pytest.mark.asyncio
    async def test_hex_results_are_decoded(self):
        def handler(request):
            body = json.loads(request.content)
            answers = {"eth_gasPrice": "0x4a817c800", "eth_estimateGas": "0x5208", "eth_chainId": "0x539"}
            return _result(body, answers[body["method"]])

        provider = _provider(handler)

        assert await provider.get_gas_price() == 20 * 10**9
        assert await provider.estimate_gas({"to": "0x0"}) == 21000
        assert await provider.get_chain_id() == 1337

    @pytest.mark.asyncio
    async def test_error_object_raises_rpc_error(self):
        def handler(request):
            body = json.loads(request.content)
            return httpx.Response(200, json={
                "jsonrpc": "2.0",
                "id": body["id"],
                "error": {"code": 3, "message": "execution reverted", "data": "0x08c379a0"},
            })

        with pytest.raises(RpcError) as exc:
            await _provider(handler).call({"to": "0x0", "data": "0x"})

        assert exc.value.code == 3
        assert exc.value.data == "0x08c379a0"

    @pytest.mark.asyncio
    async def test_http_failure_is_network_error(self):
        provider = _provider(lambda request: httpx.Response(502))

        with pytest.raises(NetworkError, match="returned 502"):
            await provider.get_balance("0x0")

    @pytest.mark.asyncio
    async def test_transport_failure_is_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(NetworkError, match="RPC transport error"):
            await _provider(handler).get_gas_price()

    @pytest.mark.asyncio
    async def test_receipt_polling(self):
        polls = []

        def handler(request):
            body = json.loads(request.content)
            polls.append(body["method"])
            receipt = {"status": "0x1"} if len(polls) >= 3 else None
            return _result(body, receipt)

        receipt = await _provider(handler).wait_for_transaction_receipt("0xabc")

        assert receipt == {"status": "0x1"}
        assert polls == ["eth_getTransactionReceipt"] * 3

    @pytest.mark.asyncio
    async def test_receipt_polling_stops_on_node_failure(self):
        polls = []

        def handler(request):
            polls.append(request)
            return httpx.Response(503)

        with pytest.raises(NetworkError, match="returned 503"):
            await _provider(handler).wait_for_transaction_receipt("0xabc")

        assert len(polls) == 1


def test_call_object_omits_empty_fields():
    assert build_call_object(to="0xabc", data="0x12", value=0) == {"to": "0xabc", "data": "0x12"}
    assert build_call_object(from_address="0xdef", value=16) == {"from": "0xdef", "value": "0x10"}


class TestProviderFactory:

    def test_one_provider_per_chain(self):
        factory = ProviderFactory(client=httpx.AsyncClient())
        ganache = get_chain("ganache")

        assert factory.for_chain(ganache) is factory.for_chain(ganache)
        assert factory.for_chain(ganache).rpc_url == "http://127.0.0.1:7545"

    def test_chain_without_rpc_url(self):
        factory = ProviderFactory(client=httpx.AsyncClient())

        with pytest.raises(UnsupportedChainError):
            factory.for_chain(ChainInfo("offline", 424242, "ETH", None))
