from typing import Any, Dict

from fastapi import APIRouter, Depends

from ..services.wallet import WalletRuntime
from .deps import get_runtime

router = APIRouter()


@router.get("/healthz")
async def health_check(runtime: WalletRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    """Health check with a snapshot of the wallet session"""
    session = runtime.session.describe()
    return {
        "status": "healthy",
        "session": session,
        "cards": len(runtime.cards),
        "watchers_in_flight": runtime.watcher.in_flight,
    }
