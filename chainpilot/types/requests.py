from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ActionRequest(BaseModel):
    action: str = Field(description="Action name produced by the intent layer")
    params: Dict[str, Any] = Field(default_factory=dict, description="Action parameters")


class AccountsChangedRequest(BaseModel):
    accounts: List[str] = Field(default_factory=list, description="Accounts reported by the wallet, active first")


class ChainChangedRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    chain_id: Union[str, int] = Field(alias="chainId", description="Chain id as reported by the wallet (hex or int)")


class RegisterContractRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    abi: List[Dict[str, Any]] = Field(description="Contract ABI")
    contract_address: Optional[str] = Field(default=None, alias="contractAddress")
    contract_name: Optional[str] = Field(default=None, alias="contractName")
    network_name: Optional[str] = Field(default=None, alias="networkName")
    user_address: Optional[str] = Field(default=None, alias="userAddress")
    deploy_tx_hash: Optional[str] = Field(default=None, alias="deployTxHash")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    bytecode: Optional[str] = Field(default=None, description="Deployed bytecode (hex)")
    constructor_args: List[Any] = Field(default_factory=list, alias="constructorArgs")
