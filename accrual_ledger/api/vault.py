"""
Vault endpoints: deposit the external asset, redeem it back
"""

from fastapi import APIRouter, Depends

from .dependencies import get_caller, get_ledger_system
from .schemas import DepositRequest, RedeemRequest
from ..system import LedgerSystem


router = APIRouter()


@router.post("/deposit")
async def deposit(
    request: DepositRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    amount = request.amount_value()
    system.vault.deposit(caller, amount)
    return {"account": caller, "deposited": str(amount),
            "balance": str(system.ledger.balance_of(caller))}


@router.post("/redeem")
async def redeem(
    request: RedeemRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    redeemed = system.vault.redeem(caller, request.amount_value())
    return {"account": caller, "redeemed": str(redeemed),
            "balance": str(system.ledger.balance_of(caller))}
