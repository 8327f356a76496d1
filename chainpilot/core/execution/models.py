"""
Transaction preparation and confirmation models.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union


class OperationKind(str, Enum):
    """What a pending operation or status card represents."""
    TRANSFER = "transfer"
    CONTRACT = "contract"
    DEPLOY = "deploy"


class PayloadType(str, Enum):
    """Discriminator for structured preparation payloads."""
    NATIVE_TRANSFER = "nativeTransfer"
    CONTRACT_READ = "contractRead"
    CONTRACT_WRITE = "contractWrite"
    DEPLOY = "deploy"


@dataclass(frozen=True)
class NativeTransfer:
    """A native-token transfer awaiting confirmation."""
    from_address: str
    to_address: str
    amount_decimal: str
    chain_id: int
    network_name: str = ""
    symbol: str = "ETH"

    kind = OperationKind.TRANSFER


@dataclass(frozen=True)
class ContractWrite:
    """A state-changing contract call awaiting confirmation."""
    contract_address: str
    chain_id: int
    function_name: str
    encoded_data: str
    value_wei: int = 0
    gas_estimate: Optional[int] = None
    gas_price_wei: Optional[int] = None
    from_address: Optional[str] = None
    network_name: str = ""

    kind = OperationKind.CONTRACT


PendingOperation = Union[NativeTransfer, ContractWrite]


@dataclass
class ContractCallPlan:
    """Resolved, encoded contract call; consumed once by the preparer."""
    contract_address: str
    function_name: str
    args: List[Any]
    encoded_data: str
    value_wei: int
    read_only: bool
    gas_estimate: Optional[int] = None
    gas_price_wei: Optional[int] = None


@dataclass
class GasQuote:
    """Best-effort gas figures; any field may be missing when estimation failed."""
    gas_limit: Optional[int] = None
    gas_price_wei: Optional[int] = None

    @property
    def cost_wei(self) -> Optional[int]:
        if self.gas_limit is None or self.gas_price_wei is None:
            return None
        return self.gas_limit * self.gas_price_wei


@dataclass
class DeployPayload:
    """Everything the signer's contract-factory path needs to deploy."""
    file_name: str
    contract_name: str
    abi: List[Dict[str, Any]]
    bytecode: str
    constructor_args: List[Any]
    network_name: str
    chain_id: int
    deploy_data: str
    gas_estimate: Optional[int] = None
    gas_cost_eth: str = "n/a"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "fileName": self.file_name,
            "contractName": self.contract_name,
            "abi": self.abi,
            "bytecode": self.bytecode,
            "constructorArgs": self.constructor_args,
            "networkName": self.network_name,
            "chainId": self.chain_id,
            "gasEstimate": str(self.gas_estimate) if self.gas_estimate is not None else None,
            "gasCostEth": self.gas_cost_eth,
        }


@dataclass
class PreparationResult:
    """
    Outcome of a preparer variant.

    ``operation`` is set only when the result must wait for user confirmation;
    ``payload`` is the machine-readable view of the same result.
    """
    preview: str
    payload_type: PayloadType
    payload: Dict[str, Any] = field(default_factory=dict)
    operation: Optional[PendingOperation] = None
    deployment: Optional[DeployPayload] = None

    @property
    def needs_confirmation(self) -> bool:
        return self.operation is not None


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
