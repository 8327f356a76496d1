"""
Wallet Session

The single active wallet session of a running instance: connected account,
connected chain and the pending slot. The session follows the signer's
``accountsChanged`` / ``chainChanged`` notifications.
"""

import logging
from typing import Any, List, Optional

from ..config import settings
from ..logging_config import bind_session
from .chains import get_chain_by_id
from .execution.events import EventStream
from .execution.pending import PendingSlot
from .execution.signer import ACCOUNTS_CHANGED, CHAIN_CHANGED, WalletSigner


logger = logging.getLogger(__name__)


def parse_chain_id(raw: Any) -> Optional[int]:
    """Accept wallet-style hex strings as well as plain integers."""
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw
    text = str(raw).strip().lower()
    try:
        return int(text, 16) if text.startswith("0x") else int(text)
    except ValueError:
        return None


class WalletSession:
    """Owns the pending slot; one per running instance."""

    def __init__(
        self,
        signer: WalletSigner,
        account: Optional[str] = None,
        chain_id: Optional[int] = None,
        events: Optional[EventStream] = None,
    ):
        self.signer = signer
        self.events = events or EventStream()
        self.slot = PendingSlot(self.events)
        self.account = account or settings.default_account
        self.chain_id = chain_id if chain_id is not None else settings.default_chain_id
        self.last_notice: Optional[str] = None

        signer.on(ACCOUNTS_CHANGED, self.handle_accounts_changed)
        signer.on(CHAIN_CHANGED, self.handle_chain_changed)
        bind_session(self.account, self.chain_id)

    @property
    def is_connected(self) -> bool:
        return self.account is not None

    async def handle_accounts_changed(self, accounts: List[str]) -> None:
        if not accounts:
            self.account = None
            self.last_notice = "All accounts disconnected from the wallet. Please reconnect."
        else:
            self.account = accounts[0]
            self.last_notice = f"Active account changed to {self.account}."
        logger.info(f"Wallet account changed: {self.account}")
        bind_session(self.account, self.chain_id)

    async def handle_chain_changed(self, chain_id: Any) -> None:
        self.chain_id = parse_chain_id(chain_id)
        self.last_notice = f"Network changed (chainId: {self.chain_id})."
        logger.info(f"Wallet chain changed: {self.chain_id}")
        bind_session(self.account, self.chain_id)

    async def current_chain_id(self) -> Optional[int]:
        """Connected chain, asking the signer when no notification arrived yet."""
        if self.chain_id is None:
            try:
                self.chain_id = await self.signer.get_chain_id()
                bind_session(self.account, self.chain_id)
            except Exception as e:
                logger.warning(f"Could not read chain from signer: {e}")
        return self.chain_id

    async def current_account(self) -> Optional[str]:
        if self.account is None:
            try:
                accounts = await self.signer.request_accounts()
            except Exception as e:
                logger.warning(f"Could not read accounts from signer: {e}")
                return None
            if accounts:
                self.account = accounts[0]
                bind_session(self.account, self.chain_id)
        return self.account

    def describe(self) -> dict:
        chain = get_chain_by_id(self.chain_id)
        return {
            "account": self.account,
            "chainId": self.chain_id,
            "networkName": chain.name if chain else None,
            "slot": self.slot.state.value,
        }
