"""
Shared fakes for the wallet flow tests.

Fakes stand in for the node, the wallet signer and the Solidity compiler so the
preparation and confirmation flow runs without network access.
"""

import json
from typing import Any, Dict, List, Optional
from unittest.mock import AsyncMock

import pytest

from chainpilot.core.chains import get_chain
from chainpilot.core.execution.signer import WalletSigner
from chainpilot.providers.compiler import CompiledContract
from chainpilot.services.contracts import ContractRecord, FileContractRegistry
from chainpilot.services.wallet import WalletRuntime


SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"
TOKEN_ADDRESS = "0x3333333333333333333333333333333333333333"
TX_HASH = "0x" + "ab" * 32
SEPOLIA_CHAIN_ID = 11155111


class FakeProvider:
    """Read-only node with canned answers; every method is an AsyncMock."""

    def __init__(self):
        self.estimate_gas = AsyncMock(return_value=21000)
        self.get_gas_price = AsyncMock(return_value=20 * 10**9)
        self.call = AsyncMock(return_value="0x")
        self.get_balance = AsyncMock(return_value=10**18)
        self.get_chain_id = AsyncMock(return_value=SEPOLIA_CHAIN_ID)
        self.get_transaction = AsyncMock(return_value=None)
        self.get_transaction_receipt = AsyncMock(return_value=None)
        self.wait_for_transaction_receipt = AsyncMock(
            return_value={"status": "0x1", "blockNumber": "0x10"}
        )
        self.close = AsyncMock()


class FakeProviderFactory:
    """Hands out the same fake provider for every chain."""

    def __init__(self, provider: FakeProvider):
        self.provider = provider
        self.requested: List[int] = []

    def for_chain(self, chain):
        self.requested.append(chain.chain_id)
        return self.provider

    async def close(self) -> None:
        pass


class FakeSigner(WalletSigner):
    """Wallet that records every request and answers with a fixed hash."""

    def __init__(self, chain_id: int = SEPOLIA_CHAIN_ID, accounts: Optional[List[str]] = None):
        super().__init__()
        self.chain_id = chain_id
        self.accounts = accounts if accounts is not None else [SENDER]
        self.tx_hash = TX_HASH
        self.error: Optional[Exception] = None
        self.sent: List[Dict[str, Any]] = []

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        self.sent.append(tx)
        if self.error is not None:
            raise self.error
        return self.tx_hash

    async def get_chain_id(self) -> int:
        return self.chain_id

    async def request_accounts(self) -> List[str]:
        return list(self.accounts)


class FakeCompiler:
    """Returns preset artifacts instead of running solc."""

    def __init__(self, artifacts: Optional[List[CompiledContract]] = None):
        self.artifacts = artifacts or []
        self.error: Optional[Exception] = None
        self.compiled: List[str] = []

    async def compile(self, source: str, file_name: str) -> List[CompiledContract]:
        self.compiled.append(file_name)
        if self.error is not None:
            raise self.error
        return list(self.artifacts)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def token_abi() -> List[Dict[str, Any]]:
    """ERC20-like ABI with view, nonpayable and payable functions."""
    return [
        {
            "type": "constructor",
            "inputs": [{"name": "supply", "type": "uint256"}],
            "stateMutability": "nonpayable",
        },
        {
            "type": "function",
            "name": "totalSupply",
            "inputs": [],
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
        },
        {
            "type": "function",
            "name": "balanceOf",
            "inputs": [{"name": "owner", "type": "address"}],
            "outputs": [{"name": "", "type": "uint256"}],
            "stateMutability": "view",
        },
        {
            "type": "function",
            "name": "transfer",
            "inputs": [
                {"name": "to", "type": "address"},
                {"name": "amount", "type": "uint256"},
            ],
            "outputs": [{"name": "", "type": "bool"}],
            "stateMutability": "nonpayable",
        },
        {
            "type": "function",
            "name": "deposit",
            "inputs": [],
            "outputs": [],
            "stateMutability": "payable",
        },
        {"type": "event", "name": "Transfer", "inputs": [], "anonymous": False},
    ]


@pytest.fixture
def token_record(token_abi) -> ContractRecord:
    return ContractRecord(
        id="1700000000000_token",
        saved_at="2024-01-01T00:00:00+00:00",
        contract_address=TOKEN_ADDRESS,
        contract_name="Token",
        abi=token_abi,
        network_name="ethereum-sepolia",
        user_address=SENDER,
        deploy_tx_hash="0x" + "cd" * 32,
        file_name="Token.sol",
    )


@pytest.fixture
def sepolia():
    return get_chain("ethereum-sepolia")


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def providers(provider) -> FakeProviderFactory:
    return FakeProviderFactory(provider)


@pytest.fixture
def signer() -> FakeSigner:
    return FakeSigner()


@pytest.fixture
def compiler(token_abi) -> FakeCompiler:
    return FakeCompiler([CompiledContract(name="Token", abi=token_abi, bytecode="0x6080604052")])


@pytest.fixture
def registry(tmp_path) -> FileContractRegistry:
    """Empty registry backed by a temporary file."""
    return FileContractRegistry(tmp_path / "contracts.storage.json")


@pytest.fixture
def token_registry(tmp_path, token_record) -> FileContractRegistry:
    """Registry that already knows the Token contract on Sepolia."""
    path = tmp_path / "contracts.storage.json"
    path.write_text(json.dumps([token_record.to_dict()]), encoding="utf-8")
    return FileContractRegistry(path)


@pytest.fixture
def prices() -> AsyncMock:
    """Price source quoting 3000 USD and 2800 EUR for any coin."""
    source = AsyncMock()
    source.get_simple_prices.return_value = {"usd": 3000.0, "eur": 2800.0}
    return source


@pytest.fixture
def explorer() -> AsyncMock:
    """Explorer with an empty history until a test fills it in."""
    client = AsyncMock()
    client.account_transactions.return_value = {"status": "0", "message": "No transactions found", "result": []}
    return client


@pytest.fixture
def runtime(signer, providers, token_registry, compiler, prices, explorer) -> WalletRuntime:
    """Fully wired wallet runtime with every outside collaborator faked."""
    return WalletRuntime(
        signer=signer,
        providers=providers,
        registry=token_registry,
        compiler=compiler,
        account=SENDER,
        chain_id=SEPOLIA_CHAIN_ID,
        prices=prices,
        explorer=explorer,
    )
