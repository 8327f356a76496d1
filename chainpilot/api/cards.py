from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException

from ..core.errors import CardTransitionError
from ..services.wallet import WalletRuntime
from .deps import get_runtime

router = APIRouter()


@router.get("/cards")
async def list_cards(runtime: WalletRuntime = Depends(get_runtime)) -> List[Dict[str, Any]]:
    return [card.to_dict() for card in runtime.cards.list()]


@router.get("/cards/{tx_hash}")
async def get_card(tx_hash: str, runtime: WalletRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    card = runtime.cards.get(tx_hash)
    if card is None:
        raise HTTPException(status_code=404, detail="Status card not found")
    return card.to_dict()


@router.delete("/cards/{tx_hash}")
async def dismiss_card(tx_hash: str, runtime: WalletRuntime = Depends(get_runtime)) -> Dict[str, Any]:
    """Dismiss a card once its transaction has settled."""
    if runtime.cards.get(tx_hash) is None:
        raise HTTPException(status_code=404, detail="Status card not found")
    try:
        card = runtime.cards.dismiss(tx_hash)
    except CardTransitionError as e:
        raise HTTPException(status_code=409, detail=e.message)
    return {"dismissed": card.hash}
