"""
Wallet runtime: wires the session, preparer, signer, cards and watcher for the
single wallet session served by this instance.
"""

import logging
from typing import Optional

from ..config import settings
from ..core.chains import get_chain_by_id
from ..core.dispatcher import ActionDispatcher
from ..core.execution.cards import StatusCard, StatusCardRegistry
from ..core.execution.events import EventStream
from ..core.execution.preparer import TransactionPreparer
from ..core.execution.signer import JsonRpcWalletSigner, SigningGateway, WalletSigner
from ..core.execution.watcher import ConfirmationWatcher
from ..core.session import WalletSession
from ..providers.coingecko import CoingeckoProvider
from ..providers.compiler import ContractCompiler, SolcCompiler
from ..providers.explorer import ExplorerClient
from ..providers.rpc import ProviderFactory
from ..telemetry.timings import TimingCollector
from .contracts import ContractRegistry, FileContractRegistry


logger = logging.getLogger(__name__)


class WalletRuntime:
    """Everything one wallet session needs, built from settings by default."""

    def __init__(
        self,
        signer: Optional[WalletSigner] = None,
        providers: Optional[ProviderFactory] = None,
        registry: Optional[ContractRegistry] = None,
        compiler: Optional[ContractCompiler] = None,
        account: Optional[str] = None,
        chain_id: Optional[int] = None,
        prices: Optional[CoingeckoProvider] = None,
        explorer: Optional[ExplorerClient] = None,
    ):
        self.events = EventStream()
        self.timings = TimingCollector()
        self.events.subscribe(self.timings)

        self.signer = signer or JsonRpcWalletSigner()
        self.providers = providers or ProviderFactory()
        self.registry = registry or FileContractRegistry(settings.contracts_file)
        self.compiler = compiler or SolcCompiler()

        self.session = WalletSession(self.signer, account=account, chain_id=chain_id, events=self.events)
        self.cards = StatusCardRegistry(events=self.events)
        self.preparer = TransactionPreparer(self.providers, self.registry, self.compiler)
        self.gateway = SigningGateway(self.signer, self.providers, events=self.events)
        self.watcher = ConfirmationWatcher(self.providers, self.cards, events=self.events)
        self.dispatcher = ActionDispatcher(
            session=self.session,
            preparer=self.preparer,
            gateway=self.gateway,
            watcher=self.watcher,
            cards=self.cards,
            registry=self.registry,
            providers=self.providers,
            on_settled=self.refresh_balance,
            prices=prices,
            explorer=explorer,
        )
        self.last_balance_wei: Optional[int] = None

    async def refresh_balance(self, card: StatusCard) -> None:
        """Re-read the session account's balance once a transaction settles."""
        chain = get_chain_by_id(card.chain_id)
        if chain is None or not self.session.account:
            return
        self.last_balance_wei = await self.providers.for_chain(chain).get_balance(self.session.account)
        logger.info(f"Balance of {self.session.account} on {chain.name} refreshed after {card.hash}")

    async def close(self) -> None:
        await self.watcher.close()
        await self.providers.close()
        close_signer = getattr(self.signer, "close", None)
        if close_signer is not None:
            await close_signer()


# Singleton instance
_runtime: Optional[WalletRuntime] = None


def get_wallet_runtime() -> WalletRuntime:
    """Get the singleton wallet runtime instance."""
    global _runtime
    if _runtime is None:
        _runtime = WalletRuntime()
    return _runtime


async def shutdown_wallet_runtime() -> None:
    global _runtime
    if _runtime is not None:
        await _runtime.close()
        _runtime = None
