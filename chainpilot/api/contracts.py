from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, Query

from ..services.wallet import WalletRuntime
from ..types.requests import RegisterContractRequest
from .deps import get_runtime

router = APIRouter()


@router.get("/contracts")
async def list_contracts(
    user_address: Optional[str] = Query(None, alias="userAddress"),
    network_name: Optional[str] = Query(None, alias="networkName"),
    runtime: WalletRuntime = Depends(get_runtime),
) -> List[Dict[str, Any]]:
    records = await runtime.registry.list_contracts(user_address=user_address, network_name=network_name)
    return [r.to_dict() for r in records]


@router.post("/contracts")
async def register_contract(
    req: RegisterContractRequest,
    runtime: WalletRuntime = Depends(get_runtime),
) -> Dict[str, Any]:
    """Save a contract deployed outside the session so it can be called by name."""
    record = await runtime.registry.save_contract(
        abi=req.abi,
        contract_address=req.contract_address,
        contract_name=req.contract_name,
        network_name=req.network_name,
        user_address=req.user_address,
        deploy_tx_hash=req.deploy_tx_hash,
        file_name=req.file_name,
        bytecode=req.bytecode,
        constructor_args=req.constructor_args,
    )
    return record.to_dict()
