"""
Wallet signer access and the signing gateway.

The signer is whatever holds the user's keys (a browser wallet behind the
front end, or a node with unlocked accounts in development). The gateway
builds the request for a pending operation, hands it over, and classifies
whatever the signer throws back.
"""

import inspect
import logging
import uuid
from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import httpx
from eth_utils import to_wei

from ...config import settings
from ...providers.rpc import JsonRpcProvider, ProviderFactory
from ..chains import get_chain_by_id
from ..errors import (
    ChainMismatchError,
    InsufficientFundsError,
    NetworkError,
    SigningError,
    SimulatedRevertError,
    TransactionFlowError,
    UnsupportedChainError,
    UserRejectedError,
)
from .events import EventStream
from .models import ContractWrite, DeployPayload, NativeTransfer, PendingOperation
from .preparer import simulate_call
from .revert import extract_revert_reason


logger = logging.getLogger(__name__)

ACCOUNTS_CHANGED = "accountsChanged"
CHAIN_CHANGED = "chainChanged"

SignerHandler = Callable[[Any], Union[None, Awaitable[None]]]


class WalletSigner(ABC):
    """Sends transactions on the user's behalf and reports wallet changes."""

    def __init__(self):
        self._handlers: Dict[str, List[SignerHandler]] = {}

    def on(self, event: str, handler: SignerHandler) -> Callable[[], None]:
        """Subscribe to ``accountsChanged`` or ``chainChanged``."""
        self._handlers.setdefault(event, []).append(handler)

        def unsubscribe() -> None:
            handlers = self._handlers.get(event, [])
            if handler in handlers:
                handlers.remove(handler)

        return unsubscribe

    async def emit(self, event: str, payload: Any) -> None:
        """Deliver a wallet notification to subscribers."""
        for handler in list(self._handlers.get(event, [])):
            try:
                result = handler(payload)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Signer {event} handler failed: {e}")

    @abstractmethod
    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        """Ask the wallet to sign and broadcast ``tx``; returns the hash."""

    @abstractmethod
    async def get_chain_id(self) -> int:
        """Chain the wallet is currently connected to."""

    @abstractmethod
    async def request_accounts(self) -> List[str]:
        """Accounts the wallet exposes, active one first."""


class JsonRpcWalletSigner(WalletSigner):
    """Signer backed by a node that manages unlocked accounts (Ganache, Anvil)."""

    def __init__(self, rpc_url: Optional[str] = None, client: Optional[httpx.AsyncClient] = None):
        super().__init__()
        self.rpc = JsonRpcProvider(rpc_url or settings.signer_rpc_url, client=client)

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        node_tx = dict(tx)
        if isinstance(node_tx.get("chainId"), int):
            node_tx["chainId"] = hex(node_tx["chainId"])
        return await self.rpc.request("eth_sendTransaction", [node_tx])

    async def get_chain_id(self) -> int:
        return await self.rpc.get_chain_id()

    async def request_accounts(self) -> List[str]:
        return await self.rpc.request("eth_accounts") or []

    async def close(self) -> None:
        await self.rpc.close()


def _error_code(error: Any) -> Any:
    code = getattr(error, "code", None)
    if code is None and isinstance(error, dict):
        code = error.get("code")
    return code


def _error_message(error: Any) -> str:
    message = getattr(error, "message", None)
    if message is None and isinstance(error, dict):
        message = error.get("message")
    return str(message or error)


def classify_signer_error(error: Any) -> TransactionFlowError:
    """Map a signer failure onto the signing error taxonomy."""
    if isinstance(error, TransactionFlowError):
        return error

    code = _error_code(error)
    message = _error_message(error)
    lowered = message.lower()

    if code == 4001 or code == "ACTION_REJECTED" or "user rejected" in lowered or "user denied" in lowered:
        return UserRejectedError()
    if code == "INSUFFICIENT_FUNDS" or "insufficient funds" in lowered:
        return InsufficientFundsError()
    if code == "NETWORK_ERROR" or isinstance(error, httpx.TransportError):
        return NetworkError()

    reason = extract_revert_reason(error)
    if reason:
        return SimulatedRevertError(f"Transaction would revert: {reason}", reason=reason)

    return SigningError(message or "Transaction failed")


def ether_to_wei(amount_decimal: str) -> int:
    return to_wei(Decimal(amount_decimal), "ether")


class SigningGateway:
    """
    Hands finalized transactions to the wallet signer.

    Contract writes and deployments are checked against the wallet's connected
    chain first, and writes are re-simulated so a revert surfaces before the
    wallet prompt.
    """

    def __init__(
        self,
        signer: WalletSigner,
        providers: ProviderFactory,
        events: Optional[EventStream] = None,
    ):
        self.signer = signer
        self.providers = providers
        self.events = events or EventStream()

    def build_request(self, operation: PendingOperation, sender: Optional[str] = None) -> Dict[str, Any]:
        if isinstance(operation, NativeTransfer):
            return {
                "from": operation.from_address or sender,
                "to": operation.to_address,
                "value": hex(ether_to_wei(operation.amount_decimal)),
                "chainId": operation.chain_id,
            }
        if isinstance(operation, ContractWrite):
            return {
                "from": operation.from_address or sender,
                "to": operation.contract_address,
                "data": operation.encoded_data,
                "value": hex(operation.value_wei),
                "chainId": operation.chain_id,
            }
        raise SigningError(f"Unsupported operation type: {type(operation).__name__}")

    async def ensure_chain(self, expected_chain_id: int) -> None:
        try:
            connected = await self.signer.get_chain_id()
        except Exception as e:
            raise classify_signer_error(e) from e
        if connected is not None and int(connected) != int(expected_chain_id):
            raise ChainMismatchError(connected, expected_chain_id)

    async def _presign_contract_write(self, operation: ContractWrite, sender: Optional[str]) -> None:
        await self.ensure_chain(operation.chain_id)

        chain = get_chain_by_id(operation.chain_id)
        if chain is None:
            raise UnsupportedChainError(f"Unsupported chainId: {operation.chain_id}")
        await simulate_call(
            self.providers.for_chain(chain),
            operation.contract_address,
            operation.encoded_data,
            operation.from_address or sender,
            operation.value_wei,
        )

    async def _submit(self, kind: str, tx: Dict[str, Any]) -> str:
        attempt = uuid.uuid4().hex[:12]
        self.events.emit("signing.started", key=attempt, kind=kind, chain_id=tx.get("chainId"))
        try:
            tx_hash = await self.signer.send_transaction(tx)
        except Exception as e:
            classified = classify_signer_error(e)
            logger.warning(f"Signer refused {kind} transaction: {classified.message}")
            self.events.emit(
                "signing.completed",
                key=attempt,
                kind=kind,
                ok=False,
                error=type(classified).__name__,
            )
            raise classified from e

        logger.info(f"Signer accepted {kind} transaction {tx_hash}")
        self.events.emit("signing.completed", key=attempt, kind=kind, ok=True, hash=tx_hash)
        return tx_hash

    async def send(self, operation: PendingOperation, sender: Optional[str] = None) -> str:
        """Sign and broadcast a pending operation; returns the transaction hash."""
        if isinstance(operation, ContractWrite):
            await self._presign_contract_write(operation, sender)
        tx = self.build_request(operation, sender)
        return await self._submit(operation.kind.value, tx)

    async def deploy(self, payload: DeployPayload, sender: Optional[str]) -> str:
        """Contract-factory path: a transaction with calldata and no recipient."""
        await self.ensure_chain(payload.chain_id)
        tx = {
            "from": sender,
            "data": payload.deploy_data,
            "chainId": payload.chain_id,
        }
        return await self._submit("deploy", tx)
