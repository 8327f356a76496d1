"""
Transaction Preparer

Turns validated action parameters into a human-readable preview plus, where
the user still has to confirm, a pending operation. Preparers never touch the
pending slot; the dispatcher decides what to do with the result.

Variants:
- native_transfer: value transfer of the chain's native token
- contract_interaction: routed to a static read or a simulated write by the
  target function's mutability
- deploy: compile, validate constructor arguments, estimate deployment gas
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Tuple

from eth_abi.exceptions import DecodingError
from eth_utils import from_wei, is_address, to_checksum_address, to_wei

from ...config import settings
from ...providers.compiler import CompiledContract, ContractCompiler
from ...providers.rpc import JsonRpcProvider, ProviderFactory, RpcError, build_call_object
from ...services.contracts import ContractRecord, ContractRegistry
from ..chains import ChainInfo
from ..errors import (
    AmbiguousTargetError,
    ArityError,
    NotFoundError,
    PayabilityError,
    SimulatedRevertError,
    ValidationError,
)
from . import abi as abi_utils
from .models import (
    ContractCallPlan,
    ContractWrite,
    DeployPayload,
    GasQuote,
    NativeTransfer,
    PayloadType,
    PreparationResult,
)
from .revert import extract_revert_reason


logger = logging.getLogger(__name__)

NOT_AVAILABLE = "n/a"


def format_decimal(value: Any) -> str:
    """Plain (non-scientific) decimal text without trailing zeros."""
    return format(Decimal(value).normalize(), "f")


def format_gwei(wei: Optional[int]) -> str:
    if wei is None:
        return NOT_AVAILABLE
    return format_decimal(from_wei(wei, "gwei"))


def format_ether(wei: Optional[int]) -> str:
    if wei is None:
        return NOT_AVAILABLE
    return format_decimal(from_wei(wei, "ether"))


def parse_ether_amount(raw: Any) -> Optional[Decimal]:
    """Decimal ether amount or None when the value cannot be parsed."""
    if isinstance(raw, bool) or raw is None:
        return None
    try:
        amount = Decimal(str(raw).strip())
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    # More than 18 decimals cannot be represented in wei
    if amount.as_tuple().exponent < -18:
        return None
    return amount


async def simulate_call(
    provider: JsonRpcProvider,
    to: str,
    data: str,
    from_address: Optional[str],
    value_wei: int,
) -> None:
    """Static-call a write; raises :class:`SimulatedRevertError` on revert."""
    try:
        await provider.call(build_call_object(to=to, data=data, from_address=from_address, value=value_wei))
    except RpcError as e:
        reason = extract_revert_reason(e) or e.message
        logger.info(f"Simulation of call to {to} reverted: {reason}")
        raise SimulatedRevertError(f"Contract call would revert: {reason}", reason=reason)


class TransactionPreparer:
    """
    Validates, resolves, encodes, simulates and estimates operations.

    Collaborators are injected so tests can swap the provider, registry and
    compiler for fakes.
    """

    def __init__(
        self,
        providers: ProviderFactory,
        registry: ContractRegistry,
        compiler: ContractCompiler,
        enable_gas_estimation: Optional[bool] = None,
    ):
        self.providers = providers
        self.registry = registry
        self.compiler = compiler
        self.enable_gas_estimation = (
            settings.enable_gas_estimation if enable_gas_estimation is None else enable_gas_estimation
        )

    # =========================================================================
    # Gas estimation
    # =========================================================================

    async def _quote_gas(self, provider: JsonRpcProvider, tx: Dict[str, Any]) -> GasQuote:
        """Best-effort gas limit and price; failures degrade to missing fields."""
        quote = GasQuote()
        if not self.enable_gas_estimation:
            return quote

        try:
            quote.gas_limit = await provider.estimate_gas(tx)
        except Exception as e:
            logger.warning(f"Gas estimation failed: {e}")

        try:
            quote.gas_price_wei = await provider.get_gas_price()
        except Exception as e:
            logger.warning(f"Gas price lookup failed: {e}")

        return quote

    # =========================================================================
    # Native transfer
    # =========================================================================

    async def native_transfer(
        self,
        sender: Optional[str],
        recipient: Optional[str],
        amount: Any,
        chain: ChainInfo,
    ) -> PreparationResult:
        if not sender or not is_address(sender):
            raise ValidationError(f"Invalid sender address: {sender}")
        if not recipient or not is_address(recipient):
            raise ValidationError(f"Invalid recipient address: {recipient}")

        parsed = parse_ether_amount(amount)
        if parsed is None or parsed <= 0:
            raise ValidationError(f"Invalid amount: {amount}")

        amount_text = str(amount).strip()
        value_wei = to_wei(parsed, "ether")

        provider = self.providers.for_chain(chain)
        quote = await self._quote_gas(
            provider,
            build_call_object(to=recipient, from_address=sender, value=value_wei),
        )

        operation = NativeTransfer(
            from_address=sender,
            to_address=recipient,
            amount_decimal=amount_text,
            chain_id=chain.chain_id,
            network_name=chain.name,
            symbol=chain.symbol,
        )

        gas_text = str(quote.gas_limit) if quote.gas_limit is not None else NOT_AVAILABLE
        preview = "\n".join([
            "Transaction prepared:",
            f"Send {amount_text} {chain.symbol} from {sender} to {recipient} on {chain.name}.",
            "",
            f"Estimated gas: {gas_text} units",
            f"Gas price: {format_gwei(quote.gas_price_wei)} gwei",
            f"Estimated fee: {format_ether(quote.cost_wei)} {chain.symbol}",
            "",
            "Your wallet will be used to sign and confirm it.",
        ])

        payload = {
            "type": PayloadType.NATIVE_TRANSFER.value,
            "address": sender,
            "to": recipient,
            "amount": amount_text,
            "networkName": chain.name,
            "chainId": chain.chain_id,
            "symbol": chain.symbol,
            "gasEstimate": str(quote.gas_limit) if quote.gas_limit is not None else None,
            "gasPriceGwei": format_gwei(quote.gas_price_wei),
            "estimatedFeeEth": format_ether(quote.cost_wei),
        }

        logger.info(f"Prepared native transfer of {amount_text} {chain.symbol} on {chain.name}")
        return PreparationResult(
            preview=preview,
            payload_type=PayloadType.NATIVE_TRANSFER,
            payload=payload,
            operation=operation,
        )

    # =========================================================================
    # Contract interaction
    # =========================================================================

    async def matching_contracts(
        self,
        chain: ChainInfo,
        contract_address: Optional[str] = None,
        contract_name: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> List[ContractRecord]:
        records = await self.registry.list_contracts(
            user_address=user_address,
            network_name=chain.name,
        )
        if contract_address:
            wanted = contract_address.strip().lower()
            records = [r for r in records if (r.contract_address or "").lower() == wanted]
        if contract_name:
            wanted = contract_name.strip().lower()
            records = [r for r in records if (r.contract_name or "").lower() == wanted]
        return records

    async def resolve_contract(
        self,
        chain: ChainInfo,
        contract_address: Optional[str] = None,
        contract_name: Optional[str] = None,
        user_address: Optional[str] = None,
    ) -> ContractRecord:
        """Find exactly one registry record for the requested contract."""
        records = await self.matching_contracts(chain, contract_address, contract_name, user_address)

        if not records:
            raise AmbiguousTargetError("No contract matching the provided filters.", candidates=[])

        if len(records) > 1:
            lines = "\n".join(r.summary_line() for r in records)
            raise AmbiguousTargetError(
                f"More than one contract matches. Please specify a unique contractAddress.\n{lines}",
                candidates=[
                    {
                        "contractName": r.contract_name,
                        "contractAddress": r.contract_address,
                        "networkName": r.network_name,
                    }
                    for r in records
                ],
            )

        record = records[0]
        if not record.contract_address:
            raise NotFoundError("Selected contract has no on-chain address saved.")
        if not record.abi:
            raise NotFoundError("ABI not available for this contract.")
        return record

    def _parse_value(self, fragment: Dict[str, Any], function_name: str, value_eth: Any) -> int:
        supplied = value_eth not in (None, "", 0)
        if not abi_utils.is_payable(fragment):
            if supplied:
                raise PayabilityError(f"Function '{function_name}' is not payable; omit valueEth.")
            return 0
        if not supplied:
            return 0
        parsed = parse_ether_amount(value_eth)
        if parsed is None or parsed < 0:
            raise PayabilityError("Invalid valueEth (must be numeric/parseable)")
        return to_wei(parsed, "ether")

    def plan_call(
        self,
        record: ContractRecord,
        function_name: str,
        function_args: Any = None,
        value_eth: Any = None,
    ) -> Tuple[Dict[str, Any], ContractCallPlan]:
        """Resolve the ABI fragment, check arity and payability, and encode calldata."""
        args = abi_utils.parse_json_array(function_args, "functionArgs")
        fragment = abi_utils.find_function(record.abi, function_name, len(args))

        expected = len(fragment.get("inputs", []))
        if expected != len(args):
            raise ArityError(
                f"Function '{function_name}' expects {expected} arguments, received {len(args)}.",
                expected=expected,
                received=len(args),
            )

        value_wei = self._parse_value(fragment, function_name, value_eth)
        encoded = abi_utils.encode_function_call(fragment, args)

        plan = ContractCallPlan(
            contract_address=to_checksum_address(record.contract_address),
            function_name=fragment.get("name", function_name),
            args=args,
            encoded_data=encoded,
            value_wei=value_wei,
            read_only=abi_utils.is_read_only(fragment),
        )
        return fragment, plan

    def _call_summary(
        self,
        chain: ChainInfo,
        fragment: Dict[str, Any],
        plan: ContractCallPlan,
    ) -> List[str]:
        mutability = abi_utils.state_mutability(fragment)
        inputs = fragment.get("inputs", [])
        rendered_args = ", ".join(
            f"{(inputs[i].get('name') if i < len(inputs) else None) or i}={a}"
            for i, a in enumerate(plan.args)
        )
        lines = [
            f"Preparing call to {plan.function_name} on contract {plan.contract_address}",
            f"Network: {chain.name} | Mutability: {mutability}",
            f"Args ({len(plan.args)}): {rendered_args or '-'}",
            f"Expected order: {abi_utils.expected_order(fragment) or '-'}",
            "Arguments must be provided in strict positional order.",
        ]
        if plan.value_wei > 0:
            lines.append(f"Value: {format_ether(plan.value_wei)} {chain.symbol}")
        return lines

    async def contract_interaction(
        self,
        chain: ChainInfo,
        function_name: str,
        contract_address: Optional[str] = None,
        contract_name: Optional[str] = None,
        function_args: Any = None,
        value_eth: Any = None,
        user_address: Optional[str] = None,
    ) -> PreparationResult:
        """Read immediately for view/pure functions, otherwise simulate and stage a write."""
        if not function_name:
            raise ValidationError("Missing functionName")

        record = await self.resolve_contract(chain, contract_address, contract_name, user_address)
        fragment, plan = self.plan_call(record, function_name, function_args, value_eth)
        provider = self.providers.for_chain(chain)

        if plan.read_only:
            return await self._contract_read(provider, chain, fragment, plan)
        return await self._contract_write(provider, chain, fragment, plan, user_address)

    async def _contract_read(
        self,
        provider: JsonRpcProvider,
        chain: ChainInfo,
        fragment: Dict[str, Any],
        plan: ContractCallPlan,
    ) -> PreparationResult:
        try:
            raw = await provider.call(build_call_object(to=plan.contract_address, data=plan.encoded_data))
            outputs = abi_utils.decode_function_result(fragment, raw or "0x")
        except (RpcError, DecodingError, ValueError) as e:
            reason = extract_revert_reason(e) or str(e)
            raise SimulatedRevertError(f"Static call failed: {reason}", reason=reason)

        result_text = "\n".join(f"[#{i}] {v}" for i, v in enumerate(outputs)) or "-"
        preview = "\n".join(
            self._call_summary(chain, fragment, plan)
            + ["Read-only function executed.", "Result:", result_text]
        )
        payload = {
            "type": PayloadType.CONTRACT_READ.value,
            "contractAddress": plan.contract_address,
            "networkName": chain.name,
            "function": plan.function_name,
            "args": plan.args,
            "data": plan.encoded_data,
            "outputs": outputs,
            "readOnly": True,
        }

        logger.info(f"Read {plan.function_name}() on {plan.contract_address} ({chain.name})")
        return PreparationResult(
            preview=preview,
            payload_type=PayloadType.CONTRACT_READ,
            payload=payload,
        )

    async def _contract_write(
        self,
        provider: JsonRpcProvider,
        chain: ChainInfo,
        fragment: Dict[str, Any],
        plan: ContractCallPlan,
        user_address: Optional[str],
    ) -> PreparationResult:
        await simulate_call(provider, plan.contract_address, plan.encoded_data, user_address, plan.value_wei)

        quote = await self._quote_gas(
            provider,
            build_call_object(
                to=plan.contract_address,
                data=plan.encoded_data,
                from_address=user_address,
                value=plan.value_wei,
            ),
        )
        plan.gas_estimate = quote.gas_limit
        plan.gas_price_wei = quote.gas_price_wei

        lines = self._call_summary(chain, fragment, plan)
        lines.append(f"Estimated gas: {plan.gas_estimate if plan.gas_estimate is not None else NOT_AVAILABLE}")
        if plan.gas_price_wei is not None:
            lines.append(f"Gas price: {format_gwei(plan.gas_price_wei)} gwei")
        if quote.cost_wei is not None:
            lines.append(f"Estimated cost: {format_ether(quote.cost_wei)} {chain.symbol}")
        lines.append("Your wallet will be required to sign and send the transaction.")

        operation = ContractWrite(
            contract_address=plan.contract_address,
            chain_id=chain.chain_id,
            function_name=plan.function_name,
            encoded_data=plan.encoded_data,
            value_wei=plan.value_wei,
            gas_estimate=plan.gas_estimate,
            gas_price_wei=plan.gas_price_wei,
            from_address=user_address,
            network_name=chain.name,
        )
        payload = {
            "type": PayloadType.CONTRACT_WRITE.value,
            "contractAddress": plan.contract_address,
            "networkName": chain.name,
            "chainId": chain.chain_id,
            "function": plan.function_name,
            "args": plan.args,
            "data": plan.encoded_data,
            "valueWei": str(plan.value_wei),
            "gasEstimate": str(plan.gas_estimate) if plan.gas_estimate is not None else None,
            "gasPriceWei": str(plan.gas_price_wei) if plan.gas_price_wei is not None else None,
            "readOnly": False,
        }

        logger.info(f"Prepared write {plan.function_name}() on {plan.contract_address} ({chain.name})")
        return PreparationResult(
            preview="\n".join(lines),
            payload_type=PayloadType.CONTRACT_WRITE,
            payload=payload,
            operation=operation,
        )

    # =========================================================================
    # Deployment
    # =========================================================================

    def _select_artifact(
        self,
        artifacts: List[CompiledContract],
        file_name: str,
        contract_name: Optional[str],
    ) -> CompiledContract:
        if not artifacts:
            raise NotFoundError(f"No contracts found in {file_name}")
        if not contract_name:
            return artifacts[0]
        for artifact in artifacts:
            if artifact.name == contract_name:
                return artifact
        raise NotFoundError(f"Contract {contract_name} not found in {file_name}")

    async def deploy(
        self,
        chain: ChainInfo,
        source: str,
        file_name: str,
        constructor_args: Any = None,
        contract_name: Optional[str] = None,
        sender: Optional[str] = None,
    ) -> PreparationResult:
        """Compile and validate a deployment; the signer's factory path sends it."""
        if not source:
            raise ValidationError("Missing contract source")
        if not file_name:
            raise ValidationError("Missing fileName")

        artifacts = await self.compiler.compile(source, file_name)
        artifact = self._select_artifact(artifacts, file_name, contract_name)
        if not artifact.bytecode:
            raise NotFoundError(f"Contract {artifact.name} has no deployable bytecode")

        args = abi_utils.parse_json_array(constructor_args, "constructorArgs")
        encoded_args = abi_utils.encode_constructor_args(artifact.abi, args)

        bytecode = artifact.bytecode[2:] if artifact.bytecode.startswith("0x") else artifact.bytecode
        deploy_data = "0x" + bytecode + encoded_args

        provider = self.providers.for_chain(chain)
        quote = await self._quote_gas(provider, build_call_object(data=deploy_data, from_address=sender))

        deployment = DeployPayload(
            file_name=file_name,
            contract_name=artifact.name,
            abi=artifact.abi,
            bytecode=bytecode,
            constructor_args=args,
            network_name=chain.name,
            chain_id=chain.chain_id,
            deploy_data=deploy_data,
            gas_estimate=quote.gas_limit,
            gas_cost_eth=format_ether(quote.cost_wei),
        )

        gas_text = str(quote.gas_limit) if quote.gas_limit is not None else NOT_AVAILABLE
        preview = "\n".join([
            f"Contract {artifact.name} compiled successfully.",
            f"Network: {chain.name}",
            f"Estimated gas: {gas_text} units",
            f"~ Cost at current gas price: {deployment.gas_cost_eth} {chain.symbol}",
            "Your wallet will be used to confirm the deploy.",
        ])

        logger.info(f"Prepared deployment of {artifact.name} from {file_name} on {chain.name}")
        return PreparationResult(
            preview=preview,
            payload_type=PayloadType.DEPLOY,
            payload=deployment.to_dict(),
            deployment=deployment,
        )
