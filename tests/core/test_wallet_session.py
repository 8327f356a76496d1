"""
Tests for the wallet session and its signer notifications.
"""

import pytest

from chainpilot.core.execution.models import NativeTransfer
from chainpilot.core.execution.signer import ACCOUNTS_CHANGED, CHAIN_CHANGED
from chainpilot.core.session import WalletSession, parse_chain_id


SENDER = "0x1111111111111111111111111111111111111111"
RECIPIENT = "0x2222222222222222222222222222222222222222"


@pytest.fixture
def session(signer) -> WalletSession:
    return WalletSession(signer, account=SENDER, chain_id=11155111)


def test_parse_chain_id():
    assert parse_chain_id("0xaa36a7") == 11155111
    assert parse_chain_id("137") == 137
    assert parse_chain_id(1) == 1
    assert parse_chain_id("mainnet") is None
    assert parse_chain_id(None) is None


class TestSignerNotifications:

    @pytest.mark.asyncio
    async def test_account_switch(self, session, signer):
        await signer.emit(ACCOUNTS_CHANGED, [RECIPIENT, SENDER])

        assert session.account == RECIPIENT
        assert session.last_notice == f"Active account changed to {RECIPIENT}."

    @pytest.mark.asyncio
    async def test_all_accounts_disconnected(self, session, signer):
        await signer.emit(ACCOUNTS_CHANGED, [])

        assert session.account is None
        assert not session.is_connected
        assert session.last_notice == "All accounts disconnected from the wallet. Please reconnect."

    @pytest.mark.asyncio
    async def test_account_change_keeps_pending_operation(self, session, signer):
        op = NativeTransfer(SENDER, RECIPIENT, "1", 11155111)
        session.slot.prepare(op)

        await signer.emit(ACCOUNTS_CHANGED, [RECIPIENT])

        assert session.slot.operation is op

    @pytest.mark.asyncio
    async def test_chain_change(self, session, signer):
        await signer.emit(CHAIN_CHANGED, "0x89")

        assert session.chain_id == 137
        assert session.last_notice == "Network changed (chainId: 137)."
        assert session.describe()["networkName"] == "polygon-mainnet"


class TestLookups:

    @pytest.mark.asyncio
    async def test_chain_read_from_signer_when_unknown(self, signer):
        signer.chain_id = 43113
        session = WalletSession(signer, account=SENDER, chain_id=None)
        session.chain_id = None

        assert await session.current_chain_id() == 43113

    @pytest.mark.asyncio
    async def test_account_requested_from_signer(self, signer):
        signer.accounts = [RECIPIENT]
        session = WalletSession(signer, chain_id=1)
        session.account = None

        assert await session.current_account() == RECIPIENT

    def test_describe(self, session):
        assert session.describe() == {
            "account": SENDER,
            "chainId": 11155111,
            "networkName": "ethereum-sepolia",
            "slot": "empty",
        }
