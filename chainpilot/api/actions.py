from fastapi import APIRouter, Depends

from ..services.wallet import WalletRuntime
from ..types.requests import ActionRequest
from ..types.responses import ActionResponse
from .deps import get_runtime

router = APIRouter()


@router.post("/actions", response_model=ActionResponse)
async def dispatch_action(req: ActionRequest, runtime: WalletRuntime = Depends(get_runtime)) -> ActionResponse:
    """
    Run one action from the intent layer.

    Flow errors come back as a 200 with ``isError`` set; the session keeps going.
    """
    result = await runtime.dispatcher.dispatch(req.action, req.params)
    return ActionResponse.model_validate(result.to_dict())
