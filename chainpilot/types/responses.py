from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ActionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    action: Optional[str] = Field(default=None, description="Dispatched action name")
    messages: List[str] = Field(default_factory=list, description="User-facing messages, in order")
    content: List[Dict[str, str]] = Field(
        default_factory=list,
        description="Text blocks including sentinel-prefixed structured payloads",
    )
    is_error: bool = Field(default=False, alias="isError")
    payload: Optional[Dict[str, Any]] = Field(default=None, description="Structured preparation payload")
    payload_type: Optional[str] = Field(default=None, alias="payloadType")
    tx_hash: Optional[str] = Field(default=None, alias="txHash")
    error: Optional[Dict[str, Any]] = Field(default=None, description="Error category and details")


class SessionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    account: Optional[str] = Field(default=None, description="Active wallet account")
    chain_id: Optional[int] = Field(default=None, alias="chainId")
    network_name: Optional[str] = Field(default=None, alias="networkName")
    slot: str = Field(description="Pending slot state")
    notice: Optional[str] = Field(default=None, description="Message for the user about the change")
