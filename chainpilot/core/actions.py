"""
Action models produced by the intent layer.

Each action name maps to its own pydantic model. The intent layer marks a
parameter it could not fill with the literal ``"error"``; such values are
rejected while the model is built, before any preparer runs.
"""

import re
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError

from .chains import supported_network_names
from .errors import ValidationError

SENTINEL = "error"

TX_HASH_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")

SUPPORTED_FIAT = ["usd", "eur", "jpy", "gbp", "aud", "cad", "chf", "cny", "inr"]
DEFAULT_FIAT = ["usd", "eur"]


def _sentinel_messages() -> Dict[str, str]:
    return {
        "networkName": (
            "Unsupported network specified. Supported networks are: "
            + ", ".join(supported_network_names())
        ),
        "crypto": "No cryptocurrency specified for price check.",
        "currencies": (
            "Unsupported fiat currencies specified. Supported fiat currencies are: ["
            + ", ".join(SUPPORTED_FIAT)
            + "]"
        ),
        "hash": "No transaction hash specified for transaction details.",
        "to": "No recipient address specified for the transaction.",
        "amount": "No amount specified for the transaction.",
    }


class ActionName(str, Enum):
    PREPARE_TRANSACTION = "prepareTransaction"
    CONFIRM_TRANSACTION = "confirmTransaction"
    DENY_TRANSACTION = "denyTransaction"
    PREPARE_CONTRACT_INTERACTION = "prepareContractInteraction"
    DEPLOY_CONTRACT = "deploySC"
    GET_BALANCE = "getBalance"
    SHOW_ADDRESS = "showAddress"
    GET_GAS_PRICE = "getGasPrice"
    GET_TRANSACTION_DETAILS = "getTransactionDetails"
    LIST_DEPLOYED_CONTRACTS = "listDeployedContracts"
    DESCRIBE_CONTRACTS = "describeContracts"
    GET_CRYPTO_PRICE = "getCryptoPrice"
    GET_LAST_TRANSACTIONS = "getLastTransactions"


class BaseAction(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    action: str

    @model_validator(mode="before")
    @classmethod
    def reject_sentinels(cls, data: Any) -> Any:
        if isinstance(data, dict):
            for key, message in _sentinel_messages().items():
                value = data.get(key)
                if isinstance(value, str) and value.strip().lower() == SENTINEL:
                    raise ValueError(message)
        return data


class NetworkScopedAction(BaseAction):
    """Actions that run against a network; a missing one means the wallet's chain."""
    network_name: Optional[str] = Field(default=None, alias="networkName")


class PrepareTransactionAction(NetworkScopedAction):
    action: Literal["prepareTransaction"] = "prepareTransaction"
    address: Optional[str] = None
    to: str
    amount: Union[str, int, float]


class ConfirmTransactionAction(BaseAction):
    action: Literal["confirmTransaction"] = "confirmTransaction"


class DenyTransactionAction(BaseAction):
    action: Literal["denyTransaction"] = "denyTransaction"


class PrepareContractInteractionAction(NetworkScopedAction):
    action: Literal["prepareContractInteraction"] = "prepareContractInteraction"
    function_name: str = Field(alias="functionName")
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")
    contract_name: Optional[str] = Field(default=None, alias="contractName")
    function_args: Any = Field(default=None, alias="functionArgs")
    value_eth: Optional[Union[str, int, float]] = Field(default=None, alias="valueEth")
    user_address: Optional[str] = Field(default=None, alias="userAddress")


class DeployContractAction(NetworkScopedAction):
    action: Literal["deploySC"] = "deploySC"
    file_name: str = Field(alias="fileName")
    source: str
    contract_name: Optional[str] = Field(default=None, alias="contractName")
    constructor_args: Any = Field(default=None, alias="constructorArgs")
    user_address: Optional[str] = Field(default=None, alias="userAddress")


class GetBalanceAction(NetworkScopedAction):
    action: Literal["getBalance"] = "getBalance"
    address: Optional[str] = None


class ShowAddressAction(BaseAction):
    action: Literal["showAddress"] = "showAddress"


class GetGasPriceAction(NetworkScopedAction):
    action: Literal["getGasPrice"] = "getGasPrice"


class GetTransactionDetailsAction(NetworkScopedAction):
    action: Literal["getTransactionDetails"] = "getTransactionDetails"
    hash: str

    @model_validator(mode="after")
    def check_hash(self) -> "GetTransactionDetailsAction":
        if not TX_HASH_RE.match(self.hash.strip()):
            raise ValueError("Invalid transaction hash format.")
        self.hash = self.hash.strip()
        return self


class ListDeployedContractsAction(NetworkScopedAction):
    action: Literal["listDeployedContracts"] = "listDeployedContracts"
    user_address: Optional[str] = Field(default=None, alias="userAddress")


class DescribeContractsAction(NetworkScopedAction):
    action: Literal["describeContracts"] = "describeContracts"
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")
    contract_name: Optional[str] = Field(default=None, alias="contractName")
    user_address: Optional[str] = Field(default=None, alias="userAddress")


class GetCryptoPriceAction(BaseAction):
    action: Literal["getCryptoPrice"] = "getCryptoPrice"
    crypto: Optional[str] = Field(default=None, description="Symbol, name or Coingecko id; defaults to ETH")
    currencies: List[str] = Field(default_factory=lambda: list(DEFAULT_FIAT))

    @field_validator("currencies", mode="before")
    @classmethod
    def split_currencies(cls, value: Any) -> List[str]:
        if value is None:
            return list(DEFAULT_FIAT)
        if isinstance(value, str):
            value = value.split(",")
        cleaned = [str(c).strip().lower() for c in value if str(c).strip()]
        return cleaned or list(DEFAULT_FIAT)


class GetLastTransactionsAction(NetworkScopedAction):
    action: Literal["getLastTransactions"] = "getLastTransactions"
    address: Optional[str] = None


Action = Union[
    PrepareTransactionAction,
    ConfirmTransactionAction,
    DenyTransactionAction,
    PrepareContractInteractionAction,
    DeployContractAction,
    GetBalanceAction,
    ShowAddressAction,
    GetGasPriceAction,
    GetTransactionDetailsAction,
    ListDeployedContractsAction,
    DescribeContractsAction,
    GetCryptoPriceAction,
    GetLastTransactionsAction,
]

ACTION_MODELS: Dict[str, Type[BaseAction]] = {
    ActionName.PREPARE_TRANSACTION.value: PrepareTransactionAction,
    ActionName.CONFIRM_TRANSACTION.value: ConfirmTransactionAction,
    ActionName.DENY_TRANSACTION.value: DenyTransactionAction,
    ActionName.PREPARE_CONTRACT_INTERACTION.value: PrepareContractInteractionAction,
    ActionName.DEPLOY_CONTRACT.value: DeployContractAction,
    ActionName.GET_BALANCE.value: GetBalanceAction,
    ActionName.SHOW_ADDRESS.value: ShowAddressAction,
    ActionName.GET_GAS_PRICE.value: GetGasPriceAction,
    ActionName.GET_TRANSACTION_DETAILS.value: GetTransactionDetailsAction,
    ActionName.LIST_DEPLOYED_CONTRACTS.value: ListDeployedContractsAction,
    ActionName.DESCRIBE_CONTRACTS.value: DescribeContractsAction,
    ActionName.GET_CRYPTO_PRICE.value: GetCryptoPriceAction,
    ActionName.GET_LAST_TRANSACTIONS.value: GetLastTransactionsAction,
}


def _describe(exc: PydanticValidationError) -> str:
    parts = []
    for err in exc.errors():
        msg = err.get("msg", "")
        if msg.startswith("Value error, "):
            parts.append(msg[len("Value error, "):])
            continue
        loc = ".".join(str(p) for p in err.get("loc", ()) if p != "__root__")
        parts.append(f"{loc}: {msg}" if loc else msg)
    return "; ".join(parts) or "Invalid action parameters"


def parse_action(name: Optional[str], params: Optional[Dict[str, Any]] = None) -> Action:
    """Build the typed action for ``name``; raises :class:`ValidationError`."""
    model = ACTION_MODELS.get(name or "")
    if model is None:
        raise ValidationError(f"Unknown action: {name}")

    data = dict(params or {})
    data["action"] = name
    try:
        return model.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_describe(e), details={"action": name})
