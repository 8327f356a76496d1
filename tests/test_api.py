"""
HTTP API tests against the FastAPI app with a faked wallet runtime.
"""

import pytest
from fastapi.testclient import TestClient

from chainpilot.api.deps import get_runtime
from chainpilot.core.execution.cards import CardStatus
from chainpilot.core.execution.models import OperationKind
from chainpilot.main import app


SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ef" * 32


@pytest.fixture
def client(runtime):
    app.dependency_overrides[get_runtime] = lambda: runtime
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


class TestChainPilotAPI:
    """Test suite for the ChainPilot HTTP API"""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "ChainPilot API"

    def test_health_endpoint(self, client):
        response = client.get("/healthz")
        assert response.status_code == 200

        data = response.json()
        assert data["status"] == "healthy"
        assert data["session"]["account"] == SENDER
        assert data["session"]["slot"] == "empty"
        assert data["cards"] == 0

    def test_prepare_transaction(self, client, runtime):
        response = client.post("/actions", json={
            "action": "prepareTransaction",
            "params": {"to": RECIPIENT, "amount": "1.5", "networkName": "ethereum-sepolia"},
        })
        assert response.status_code == 200

        data = response.json()
        assert data["isError"] is False
        assert data["payloadType"] == "nativeTransfer"
        assert data["payload"]["amount"] == "1.5"
        assert data["content"][1]["text"].startswith("__TXDATA__")
        assert runtime.session.slot.is_awaiting

    def test_flow_errors_are_reported_not_raised(self, client):
        response = client.post("/actions", json={"action": "confirmTransaction"})

        assert response.status_code == 200
        data = response.json()
        assert data["isError"] is True
        assert data["messages"] == ["No pending transaction to confirm."]
        assert data["error"]["category"] == "slot"

    def test_sentinel_param(self, client):
        response = client.post("/actions", json={
            "action": "getTransactionDetails",
            "params": {"hash": "error"},
        })

        assert response.json()["messages"] == ["No transaction hash specified for transaction details."]

    def test_accounts_changed(self, client):
        response = client.post("/session/accounts", json={"accounts": []})

        data = response.json()
        assert data["account"] is None
        assert data["notice"] == "All accounts disconnected from the wallet. Please reconnect."

    def test_chain_changed(self, client):
        response = client.post("/session/chain", json={"chainId": "0x1"})

        data = response.json()
        assert data["chainId"] == 1
        assert data["networkName"] == "ethereum-mainnet"

    def test_cards(self, client, runtime):
        runtime.cards.create(TX_HASH, OperationKind.TRANSFER, 11155111)

        listed = client.get("/cards").json()
        assert [c["hash"] for c in listed] == [TX_HASH]
        assert client.get(f"/cards/{TX_HASH}").json()["status"] == "waiting"
        assert client.get("/cards/0xmissing").status_code == 404

        assert client.delete(f"/cards/{TX_HASH}").status_code == 409

        runtime.cards.set_status(TX_HASH, CardStatus.CONFIRMED)
        response = client.delete(f"/cards/{TX_HASH}")
        assert response.status_code == 200
        assert response.json() == {"dismissed": TX_HASH}
        assert client.delete(f"/cards/{TX_HASH}").status_code == 404

    def test_contracts(self, client):
        response = client.post("/contracts", json={
            "abi": [],
            "contractAddress": "0x4444444444444444444444444444444444444444",
            "contractName": "Vault",
            "networkName": "base-sepolia",
            "userAddress": SENDER,
        })
        assert response.status_code == 200
        assert response.json()["networkName"] == "base-sepolia"

        listed = client.get("/contracts", params={"networkName": "base-sepolia"}).json()
        assert [c["contractName"] for c in listed] == ["Vault"]

        everything = client.get("/contracts", params={"userAddress": SENDER}).json()
        assert {c["contractName"] for c in everything} == {"Token", "Vault"}
