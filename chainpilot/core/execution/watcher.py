"""
Confirmation Watcher

Fire-and-forget tasks, one per submitted transaction hash. Each task waits for
exactly one receipt and reports exactly one terminal status to the card
registered under that hash. There is no timeout: a transaction that never gets
mined leaves its card waiting.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Set

from ...providers.rpc import ProviderFactory
from ..chains import get_chain_by_id
from ..errors import UnsupportedChainError
from .cards import CardStatus, StatusCard, StatusCardRegistry
from .events import EventStream
from .models import OperationKind


logger = logging.getLogger(__name__)

SettledCallback = Callable[[StatusCard], Awaitable[None]]
ReceiptCallback = Callable[[Dict[str, Any]], Awaitable[None]]


def receipt_succeeded(receipt: Dict[str, Any]) -> bool:
    status = receipt.get("status")
    if isinstance(status, str):
        return int(status, 16) == 1
    return status == 1


class ConfirmationWatcher:
    """Tracks settlement of submitted transactions."""

    def __init__(
        self,
        providers: ProviderFactory,
        cards: StatusCardRegistry,
        events: Optional[EventStream] = None,
    ):
        self.providers = providers
        self.cards = cards
        self.events = events or EventStream()
        self._inflight: Set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        return len(self._inflight)

    def watch(
        self,
        tx_hash: str,
        chain_id: int,
        on_confirmed: Optional[ReceiptCallback] = None,
        on_settled: Optional[SettledCallback] = None,
    ) -> asyncio.Task:
        """
        Start watching ``tx_hash`` in the background.

        ``on_confirmed`` receives the receipt of a successful transaction;
        ``on_settled`` runs after either terminal status. Failures in either are
        logged and never change the card.
        """
        task = asyncio.create_task(self._run(tx_hash, chain_id, on_confirmed, on_settled))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)
        return task

    async def _await_receipt(self, tx_hash: str, chain_id: int) -> Dict[str, Any]:
        chain = get_chain_by_id(chain_id)
        if chain is None:
            raise UnsupportedChainError(f"Unsupported chainId: {chain_id}")
        provider = self.providers.for_chain(chain)
        return await provider.wait_for_transaction_receipt(tx_hash)

    async def _run(
        self,
        tx_hash: str,
        chain_id: int,
        on_confirmed: Optional[ReceiptCallback],
        on_settled: Optional[SettledCallback],
    ) -> Optional[StatusCard]:
        card = self.cards.get(tx_hash)
        kind = card.kind if card else None
        self.events.emit("watch.started", key=tx_hash, kind=kind.value if kind else None, chain_id=chain_id)

        receipt: Optional[Dict[str, Any]] = None
        contract_address: Optional[str] = None
        try:
            receipt = await self._await_receipt(tx_hash, chain_id)
            if receipt_succeeded(receipt):
                status = CardStatus.CONFIRMED
                contract_address = receipt.get("contractAddress") if kind == OperationKind.DEPLOY else None
                if contract_address:
                    detail = f"Contract deployed at {contract_address}"
                else:
                    block = receipt.get("blockNumber")
                    detail = f"Confirmed in block {int(block, 16)}" if isinstance(block, str) else "Confirmed"
            else:
                status = CardStatus.FAILED
                detail = "Transaction reverted on-chain"
        except asyncio.CancelledError:
            self.events.emit("watch.cancelled", key=tx_hash, kind=kind.value if kind else None)
            raise
        except Exception as e:
            logger.error(f"Error while waiting for {tx_hash}: {e}")
            status = CardStatus.FAILED
            detail = f"Error while waiting for confirmation: {e}"

        logger.info(f"Transaction {tx_hash} settled as {status.value}")
        self.events.emit(
            "watch.completed",
            key=tx_hash,
            kind=kind.value if kind else None,
            ok=status == CardStatus.CONFIRMED,
            status=status.value,
        )

        settled = None
        if tx_hash in self.cards:
            settled = self.cards.set_status(tx_hash, status, detail=detail, contract_address=contract_address)

        if status == CardStatus.CONFIRMED and on_confirmed is not None:
            try:
                await on_confirmed(receipt)
            except Exception as e:
                logger.error(f"Post-confirmation hook failed for {tx_hash}: {e}")

        if on_settled is not None and settled is not None:
            try:
                await on_settled(settled)
            except Exception as e:
                logger.error(f"Settlement callback failed for {tx_hash}: {e}")

        return settled

    async def wait(self) -> None:
        """Wait for every in-flight watcher to finish."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    async def close(self) -> None:
        for task in list(self._inflight):
            task.cancel()
        await asyncio.gather(*list(self._inflight), return_exceptions=True)
