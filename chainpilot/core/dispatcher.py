"""
Action Dispatcher

Routes one action from the intent layer to a pending-slot transition or a
preparer, and converts every flow error into a user-facing report. Nothing
raised while handling an action escapes :meth:`ActionDispatcher.dispatch`.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

from eth_utils import from_wei, is_address

from ..providers.coingecko import CoingeckoProvider, normalize_crypto
from ..providers.explorer import INTERNAL_TRANSACTIONS, ExplorerClient
from ..providers.rpc import ProviderFactory
from ..services.contracts import ContractRecord, ContractRegistry
from . import actions as A
from .chains import ChainInfo, explorer_tx_url, get_chain, get_chain_by_id
from .errors import AmbiguousTargetError, NotFoundError, TransactionFlowError, UnsupportedChainError, ValidationError
from .execution import abi as abi_utils
from .execution.cards import StatusCard, StatusCardRegistry
from .execution.models import ContractWrite, OperationKind, PayloadType, PreparationResult
from .execution.payloads import text_block, to_content_blocks
from .execution.preparer import TransactionPreparer, format_ether, format_gwei
from .execution.signer import SigningGateway
from .execution.watcher import ConfirmationWatcher
from .session import WalletSession


logger = logging.getLogger(__name__)

CONFIRM_TRANSFER_PROMPT = "Do you want to confirm this transaction?"
CONFIRM_CONTRACT_PROMPT = "Do you want to confirm this contract function transaction?"
READ_ONLY_DONE = "Read-only call completed."
CANCELLED = "Transaction cancelled."
GENERIC_FAILURE = "Something went wrong while processing the action."

FIAT_DISPLAY = {
    "usd": ("🇺🇸", "$"),
    "eur": ("🇪🇺", "€"),
    "jpy": ("🇯🇵", "¥"),
    "gbp": ("🇬🇧", "£"),
    "aud": ("🇦🇺", "A$"),
    "cad": ("🇨🇦", "C$"),
    "chf": ("🇨🇭", "CHF "),
    "cny": ("🇨🇳", "¥"),
    "inr": ("🇮🇳", "₹"),
}

SettledCallback = Callable[[StatusCard], Awaitable[None]]


@dataclass
class DispatchResult:
    """What the user sees for one dispatched action."""
    action: Optional[str]
    messages: List[str] = field(default_factory=list)
    is_error: bool = False
    payload: Optional[Dict[str, Any]] = None
    payload_type: Optional[PayloadType] = None
    content: List[Dict[str, str]] = field(default_factory=list)
    tx_hash: Optional[str] = None
    error: Optional[Dict[str, Any]] = None

    @classmethod
    def text(cls, action: Optional[str], *messages: str) -> "DispatchResult":
        return cls(
            action=action,
            messages=list(messages),
            content=[text_block(m) for m in messages],
        )

    @classmethod
    def failure(cls, action: Optional[str], error: TransactionFlowError) -> "DispatchResult":
        return cls(
            action=action,
            messages=[error.message],
            is_error=True,
            content=[text_block(error.message)],
            error=error.to_dict(),
        )

    @classmethod
    def prepared(cls, action: str, result: PreparationResult, *follow_up: str) -> "DispatchResult":
        return cls(
            action=action,
            messages=[result.preview, *follow_up],
            payload=result.payload,
            payload_type=result.payload_type,
            content=to_content_blocks(result) + [text_block(m) for m in follow_up],
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "action": self.action,
            "messages": self.messages,
            "content": self.content,
            "isError": self.is_error,
            "payload": self.payload,
            "payloadType": self.payload_type.value if self.payload_type else None,
            "txHash": self.tx_hash,
            "error": self.error,
        }


class ActionDispatcher:
    """
    Entry point for actions of the single wallet session.

    Confirm and deny operate on the session's pending slot. Every other action
    first drops a stale unconfirmed operation, then runs its preparer or read.
    """

    def __init__(
        self,
        session: WalletSession,
        preparer: TransactionPreparer,
        gateway: SigningGateway,
        watcher: ConfirmationWatcher,
        cards: StatusCardRegistry,
        registry: ContractRegistry,
        providers: ProviderFactory,
        on_settled: Optional[SettledCallback] = None,
        prices: Optional[CoingeckoProvider] = None,
        explorer: Optional[ExplorerClient] = None,
    ):
        self.session = session
        self.preparer = preparer
        self.gateway = gateway
        self.watcher = watcher
        self.cards = cards
        self.registry = registry
        self.providers = providers
        self.on_settled = on_settled
        self.prices = prices if prices is not None else CoingeckoProvider()
        self.explorer = explorer if explorer is not None else ExplorerClient()

        self._handlers = {
            A.ActionName.PREPARE_TRANSACTION.value: self._prepare_transaction,
            A.ActionName.CONFIRM_TRANSACTION.value: self._confirm_transaction,
            A.ActionName.DENY_TRANSACTION.value: self._deny_transaction,
            A.ActionName.PREPARE_CONTRACT_INTERACTION.value: self._prepare_contract_interaction,
            A.ActionName.DEPLOY_CONTRACT.value: self._deploy_contract,
            A.ActionName.GET_BALANCE.value: self._get_balance,
            A.ActionName.SHOW_ADDRESS.value: self._show_address,
            A.ActionName.GET_GAS_PRICE.value: self._get_gas_price,
            A.ActionName.GET_TRANSACTION_DETAILS.value: self._get_transaction_details,
            A.ActionName.LIST_DEPLOYED_CONTRACTS.value: self._list_deployed_contracts,
            A.ActionName.DESCRIBE_CONTRACTS.value: self._describe_contracts,
            A.ActionName.GET_CRYPTO_PRICE.value: self._get_crypto_price,
            A.ActionName.GET_LAST_TRANSACTIONS.value: self._get_last_transactions,
        }

    @property
    def slot(self):
        return self.session.slot

    async def dispatch(self, name: Optional[str], params: Optional[Dict[str, Any]] = None) -> DispatchResult:
        action_id = uuid.uuid4().hex[:12]
        events = self.session.events
        events.emit("action.started", key=action_id, kind=name)
        logger.info(f"Dispatching action {name}")

        try:
            action = A.parse_action(name, params)
            if name not in (A.ActionName.CONFIRM_TRANSACTION.value, A.ActionName.DENY_TRANSACTION.value):
                self.slot.discard()
            result = await self._handlers[name](action)
        except TransactionFlowError as e:
            logger.info(f"Action {name} failed ({e.category.value}): {e.message}")
            result = DispatchResult.failure(name, e)
        except Exception as e:
            logger.exception(f"Unexpected error while handling {name}: {e}")
            result = DispatchResult(
                action=name,
                messages=[GENERIC_FAILURE],
                is_error=True,
                content=[text_block(GENERIC_FAILURE)],
            )

        events.emit("action.completed", key=action_id, kind=name, ok=not result.is_error)
        return result

    # =========================================================================
    # Parameter normalization
    # =========================================================================

    async def resolve_chain(self, network_name: Optional[str]) -> ChainInfo:
        """Explicit network wins; otherwise the wallet's connected chain."""
        if network_name:
            return get_chain(network_name)

        chain_id = await self.session.current_chain_id()
        chain = get_chain_by_id(chain_id)
        if chain is None:
            raise UnsupportedChainError(f"Unsupported chainId {chain_id}, please specify a supported network")
        return chain

    async def _default_address(self, explicit: Optional[str]) -> Optional[str]:
        if explicit:
            return explicit
        return await self.session.current_account()

    # =========================================================================
    # Pending slot
    # =========================================================================

    async def _prepare_transaction(self, action: A.PrepareTransactionAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        sender = await self._default_address(action.address)
        result = await self.preparer.native_transfer(sender, action.to, action.amount, chain)
        self.slot.prepare(result.operation)
        return DispatchResult.prepared(action.action, result, CONFIRM_TRANSFER_PROMPT)

    async def _confirm_transaction(self, action: A.ConfirmTransactionAction) -> DispatchResult:
        sender = self.session.account
        operation = self.slot.operation
        tx_hash = await self.slot.confirm(lambda op: self.gateway.send(op, sender))

        label = operation.function_name if isinstance(operation, ContractWrite) else None
        self.cards.create(tx_hash, operation.kind, operation.chain_id, label=label)
        self.watcher.watch(tx_hash, operation.chain_id, on_settled=self.on_settled)

        result = DispatchResult.text(action.action, f"Transaction sent. Hash: {tx_hash}")
        result.tx_hash = tx_hash
        return result

    async def _deny_transaction(self, action: A.DenyTransactionAction) -> DispatchResult:
        self.slot.deny()
        return DispatchResult.text(action.action, CANCELLED)

    # =========================================================================
    # Contracts
    # =========================================================================

    async def _prepare_contract_interaction(self, action: A.PrepareContractInteractionAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        user = await self._default_address(action.user_address)
        result = await self.preparer.contract_interaction(
            chain,
            action.function_name,
            contract_address=action.contract_address,
            contract_name=action.contract_name,
            function_args=action.function_args,
            value_eth=action.value_eth,
            user_address=user,
        )
        if result.operation is None:
            return DispatchResult.prepared(action.action, result, READ_ONLY_DONE)

        self.slot.prepare(result.operation)
        return DispatchResult.prepared(action.action, result, CONFIRM_CONTRACT_PROMPT)

    async def _deploy_contract(self, action: A.DeployContractAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        user = await self._default_address(action.user_address)
        result = await self.preparer.deploy(
            chain,
            action.source,
            action.file_name,
            constructor_args=action.constructor_args,
            contract_name=action.contract_name,
            sender=user,
        )
        deployment = result.deployment

        # The wallet prompt is the confirmation step for deployments
        try:
            tx_hash = await self.gateway.deploy(deployment, user)
        except TransactionFlowError as e:
            logger.info(f"Deployment of {deployment.contract_name} not sent: {e.message}")
            failed = DispatchResult.prepared(action.action, result, e.message)
            failed.is_error = True
            failed.error = e.to_dict()
            return failed

        self.cards.create(tx_hash, OperationKind.DEPLOY, chain.chain_id, label=deployment.contract_name)

        async def register(receipt: Dict[str, Any]) -> None:
            await self.registry.save_contract(
                abi=deployment.abi,
                contract_address=receipt.get("contractAddress"),
                contract_name=deployment.contract_name,
                network_name=chain.name,
                user_address=user,
                deploy_tx_hash=tx_hash,
                file_name=deployment.file_name,
                bytecode=deployment.bytecode,
                constructor_args=deployment.constructor_args,
            )

        self.watcher.watch(tx_hash, chain.chain_id, on_confirmed=register, on_settled=self.on_settled)

        sent = DispatchResult.prepared(action.action, result, f"Deployment sent. Hash: {tx_hash}")
        sent.tx_hash = tx_hash
        return sent

    async def _list_deployed_contracts(self, action: A.ListDeployedContractsAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        user = await self._default_address(action.user_address)
        records = await self.registry.list_contracts(user_address=user, network_name=chain.name)
        if not records:
            return DispatchResult.text(action.action, "No deployed contracts found for the specified filters.")

        lines = "\n".join(f"{r.summary_line()} (tx: {r.deploy_tx_hash})" for r in records)
        return DispatchResult.text(action.action, f"Deployed Contracts:\n{lines}")

    async def _describe_contracts(self, action: A.DescribeContractsAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        user = await self._default_address(action.user_address)
        records = await self.preparer.matching_contracts(
            chain, action.contract_address, action.contract_name, user,
        )
        if not records:
            raise NotFoundError("No contract has been found.")
        if len(records) > 1:
            lines = "\n".join(r.summary_line() for r in records)
            raise AmbiguousTargetError(
                f"More contracts fulfil the request ({len(records)}). Specify the contract address.\n{lines}",
                candidates=[{"contractName": r.contract_name, "contractAddress": r.contract_address} for r in records],
            )
        record = records[0]
        if not record.abi:
            raise NotFoundError("No ABI found for this contract.")
        return DispatchResult.text(action.action, describe_contract(record))

    # =========================================================================
    # Reads
    # =========================================================================

    async def _get_balance(self, action: A.GetBalanceAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        address = await self._default_address(action.address)
        if not address or not is_address(address):
            raise ValidationError(f"Invalid address: {address}")

        balance = await self.providers.for_chain(chain).get_balance(address)
        return DispatchResult.text(
            action.action,
            f"Balance of {address} on {chain.name}: {format_ether(balance)} {chain.symbol}",
        )

    async def _show_address(self, action: A.ShowAddressAction) -> DispatchResult:
        account = await self.session.current_account()
        if not account:
            return DispatchResult.text(action.action, "No wallet account is connected.")
        return DispatchResult.text(action.action, f"Your address is {account}")

    async def _get_gas_price(self, action: A.GetGasPriceAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        gas_price = await self.providers.for_chain(chain).get_gas_price()
        gwei = from_wei(gas_price, "gwei")
        text = "\n".join([
            f"Current gas price on {chain.name}:",
            f"- {float(gwei):.2f} gwei",
            f"- {format_ether(gas_price)} {chain.symbol}",
        ])
        return DispatchResult.text(action.action, text)

    async def _get_transaction_details(self, action: A.GetTransactionDetailsAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        provider = self.providers.for_chain(chain)

        tx = await provider.get_transaction(action.hash)
        if not tx:
            raise NotFoundError(f"No transaction found with hash: {action.hash} on {chain.name}")
        receipt = await provider.get_transaction_receipt(action.hash)

        return DispatchResult.text(action.action, describe_transaction(chain, tx, receipt))

    # =========================================================================
    # Market data and history
    # =========================================================================

    async def _get_crypto_price(self, action: A.GetCryptoPriceAction) -> DispatchResult:
        coin_id, requested = normalize_crypto(action.crypto)
        currencies = [c for c in action.currencies if c in A.SUPPORTED_FIAT]
        if not currencies:
            raise ValidationError("No valid currency found for this request.")

        prices = await self.prices.get_simple_prices(coin_id, currencies)
        if not prices:
            raise NotFoundError(
                f"Unsupported crypto: {requested or coin_id}. Try a symbol like ETH, BTC or MATIC, "
                "or the full Coingecko id (e.g. 'ethereum', 'bitcoin')."
            )

        lines = [f"Current {coin_id.upper()} Price:"]
        lines.extend(format_price_line(cur, prices[cur]) for cur in currencies if cur in prices)
        return DispatchResult.text(action.action, "\n".join(lines))

    async def _get_last_transactions(self, action: A.GetLastTransactionsAction) -> DispatchResult:
        chain = await self.resolve_chain(action.network_name)
        if not chain.api_url:
            return DispatchResult.text(action.action, f"Transaction history not supported on {chain.name}.")

        address = await self._default_address(action.address)
        if not address or not is_address(address):
            raise ValidationError(f"Invalid address: {address}")

        data = await self.explorer.account_transactions(chain.chain_id, address)
        if data.get("status") != "1" or not data.get("result"):
            # Wallets funded only by contracts show up in the internal list
            data = await self.explorer.account_transactions(
                chain.chain_id, address, action=INTERNAL_TRANSACTIONS,
            )

        rows = data.get("result")
        if data.get("status") != "1" or not isinstance(rows, list) or not rows:
            return DispatchResult.text(action.action, describe_empty_history(chain, address, data))
        return DispatchResult.text(action.action, describe_history(chain, address, rows))


def _hex_int(value: Any) -> Optional[int]:
    if isinstance(value, str):
        return int(value, 16)
    return value


def describe_transaction(chain: ChainInfo, tx: Dict[str, Any], receipt: Optional[Dict[str, Any]]) -> str:
    block = _hex_int(tx.get("blockNumber"))
    if receipt:
        status = "Success" if _hex_int(receipt.get("status")) == 1 else "Failed"
        gas_used = str(_hex_int(receipt.get("gasUsed")))
    else:
        status, gas_used = "Pending", "N/A"

    return "\n".join([
        f"Transaction Details on {chain.name}",
        f"Hash: {tx.get('hash')}",
        f"From: {tx.get('from')}",
        f"To: {tx.get('to') or 'Contract creation'}",
        f"Value: {format_ether(_hex_int(tx.get('value')) or 0)} {chain.symbol}",
        f"Gas Price: {format_gwei(_hex_int(tx.get('gasPrice')))} gwei",
        f"Gas Limit: {_hex_int(tx.get('gas'))}",
        f"Gas Used: {gas_used}",
        f"Block: {block if block is not None else 'Pending'}",
        f"Status: {status}",
    ])


def format_price_line(currency: str, price: float) -> str:
    flag, symbol = FIAT_DISPLAY.get(currency, ("", ""))
    return f"{flag} {currency.upper()}: {symbol}{price:,.2f}".strip()


def describe_history(chain: ChainInfo, address: str, rows: List[Dict[str, Any]]) -> str:
    lines = [f"Last {len(rows)} transactions for {address} on {chain.name}:"]
    for row in rows:
        stamp = datetime.fromtimestamp(int(row.get("timeStamp") or 0), tz=timezone.utc)
        to = row.get("to") or row.get("contractAddress") or "Contract creation"
        status = "Failed" if str(row.get("isError")) == "1" else "Success"
        lines.append(
            f"- {stamp:%Y-%m-%d %H:%M} UTC | {format_ether(int(row.get('value') or 0))} {chain.symbol} "
            f"| to {to} | {status}"
        )
        link = explorer_tx_url(chain.chain_id, row.get("hash", ""))
        if link:
            lines.append(f"  {link}")
    return "\n".join(lines)


def describe_empty_history(chain: ChainInfo, address: str, data: Dict[str, Any]) -> str:
    # status "0" responses carry the reason in ``result`` and a summary in ``message``
    result = data.get("result")
    reason = result if isinstance(result, str) and result else data.get("message")

    lines = [f"No transactions found for {address} on {chain.name}."]
    if reason:
        lines.append(f"Explorer message: {reason}")
        lowered = reason.lower()
        if "invalid api key" in lowered:
            lines.append("Check that ETHERSCAN_API_KEY is set to a valid key.")
        elif "rate limit" in lowered:
            lines.append("The explorer is rate limiting requests, try again in a few seconds.")
    if chain.explorer_url:
        lines.append(f"View on explorer: {chain.explorer_url}/address/{address}")
    return "\n".join(lines)


def describe_contract(record: ContractRecord, max_functions: int = 10) -> str:
    functions = abi_utils.list_functions(record.abi)
    shown = functions[:max_functions]
    suffix = f" (shown first {max_functions})" if len(functions) > max_functions else ""

    lines = [
        record.contract_name or "(Unnamed Contract)",
        f"Address: {record.contract_address or 'N/A'}",
        f"Network: {record.network_name or 'N/A'}",
        f"Owner/User: {record.user_address or 'N/A'}",
        f"Functions: {len(functions)}{suffix}",
        "",
        "Arguments must be provided in strict positional order when calling functions.",
    ]
    if not shown:
        lines.append("No public functions found.")
        return "\n".join(lines)

    lines.append("")
    for fragment in shown:
        mutability = abi_utils.state_mutability(fragment)
        flags = ""
        if abi_utils.is_read_only(fragment):
            flags = " (read-only)"
        elif abi_utils.is_payable(fragment):
            flags = " (value needed)"
        outputs = ", ".join(o.get("type", "") for o in fragment.get("outputs", [])) or "-"
        lines.extend([
            f"- {abi_utils.function_signature(fragment)}",
            f"  Parameters: {abi_utils.format_inputs(fragment) or '-'}",
            f"  Returns: {outputs}",
            f"  Mutability: {mutability}{flags}",
            f"  Positional order: ({', '.join(i.get('name') or '_' for i in fragment.get('inputs', [])) or '-'})",
        ])
    return "\n".join(lines)
