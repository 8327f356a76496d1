from fastapi import APIRouter, Depends

from ..core.execution.signer import ACCOUNTS_CHANGED, CHAIN_CHANGED
from ..services.wallet import WalletRuntime
from ..types.requests import AccountsChangedRequest, ChainChangedRequest
from ..types.responses import SessionResponse
from .deps import get_runtime

router = APIRouter()


def _session_response(runtime: WalletRuntime) -> SessionResponse:
    return SessionResponse(**runtime.session.describe(), notice=runtime.session.last_notice)


@router.get("/session", response_model=SessionResponse)
async def get_session(runtime: WalletRuntime = Depends(get_runtime)) -> SessionResponse:
    return _session_response(runtime)


@router.post("/session/accounts", response_model=SessionResponse)
async def accounts_changed(req: AccountsChangedRequest, runtime: WalletRuntime = Depends(get_runtime)) -> SessionResponse:
    """Wallet reported a new set of accounts."""
    await runtime.signer.emit(ACCOUNTS_CHANGED, req.accounts)
    return _session_response(runtime)


@router.post("/session/chain", response_model=SessionResponse)
async def chain_changed(req: ChainChangedRequest, runtime: WalletRuntime = Depends(get_runtime)) -> SessionResponse:
    """Wallet switched networks."""
    await runtime.signer.emit(CHAIN_CHANGED, req.chain_id)
    return _session_response(runtime)
