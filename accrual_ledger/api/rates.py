"""
Global rate endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_caller, get_ledger_system
from .schemas import GlobalRateRequest
from ..system import LedgerSystem


router = APIRouter()


@router.get("/global")
async def get_global_rate(system: LedgerSystem = Depends(get_ledger_system)):
    return {"rate": str(system.ledger.global_rate())}


@router.post("/global")
async def set_global_rate(
    request: GlobalRateRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    previous = system.ledger.set_global_rate(caller, int(request.rate))
    return {"previous_rate": str(previous), "rate": request.rate}


@router.get("/global/history")
async def get_rate_history(system: LedgerSystem = Depends(get_ledger_system)):
    return {"history": [str(rate) for rate in system.rate_registry.rate_history()]}
