"""
Tests for the block explorer history client.
"""

import httpx
import pytest

from chainpilot.core.errors import DataSourceError
from chainpilot.providers.explorer import INTERNAL_TRANSACTIONS, ExplorerClient


ADDRESS = "0x1111111111111111111111111111111111111111"


def _client(handler, api_key=None) -> ExplorerClient:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ExplorerClient(api_key=api_key, base_url="https://explorer.test/v2/api", client=client)


class TestExplorerClient:

    @pytest.mark.asyncio
    async def test_query_parameters(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"status": "1", "message": "OK", "result": []})

        data = await _client(handler, api_key="key").account_transactions(11155111, ADDRESS)

        assert data["status"] == "1"
        params = seen[0].url.params
        assert params["chainid"] == "11155111"
        assert params["module"] == "account"
        assert params["action"] == "txlist"
        assert params["address"] == ADDRESS
        assert params["offset"] == "5"
        assert params["sort"] == "desc"
        assert params["apikey"] == "key"

    @pytest.mark.asyncio
    async def test_internal_list_without_key(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"status": "0", "message": "No transactions found", "result": []})

        await _client(handler, api_key="").account_transactions(1, ADDRESS, action=INTERNAL_TRANSACTIONS, limit=10)

        assert seen[0].url.params["action"] == "txlistinternal"
        assert seen[0].url.params["offset"] == "10"
        assert "apikey" not in seen[0].url.params

    @pytest.mark.asyncio
    async def test_http_error(self):
        client = _client(lambda request: httpx.Response(502))

        with pytest.raises(DataSourceError, match="Explorer returned 502 for txlist"):
            await client.account_transactions(1, ADDRESS)

    @pytest.mark.asyncio
    async def test_unreachable(self):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(DataSourceError, match="Explorer unreachable"):
            await _client(handler).account_transactions(1, ADDRESS)

    @pytest.mark.asyncio
    async def test_non_object_response(self):
        client = _client(lambda request: httpx.Response(200, json=["unexpected"]))

        with pytest.raises(DataSourceError, match="Unexpected explorer response"):
            await client.account_transactions(1, ADDRESS)
