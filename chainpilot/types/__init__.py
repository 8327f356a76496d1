from .requests import AccountsChangedRequest, ActionRequest, ChainChangedRequest, RegisterContractRequest
from .responses import ActionResponse, SessionResponse

__all__ = [
    "ActionRequest",
    "AccountsChangedRequest",
    "ChainChangedRequest",
    "RegisterContractRequest",
    "ActionResponse",
    "SessionResponse",
]
