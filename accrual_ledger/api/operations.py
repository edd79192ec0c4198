"""
Ledger mutation endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_caller, get_ledger_system
from .schemas import (
    ApproveRequest, BurnRequest, MintRequest, TransferFromRequest, TransferRequest
)
from ..system import LedgerSystem


router = APIRouter()


@router.post("/mint")
async def mint(
    request: MintRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    amount = request.amount_value()
    system.ledger.mint(caller, request.account, amount)
    return {
        "account": request.account,
        "minted": str(amount),
        "balance": str(system.ledger.balance_of(request.account))
    }


@router.post("/burn")
async def burn(
    request: BurnRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    burned = system.ledger.burn(caller, request.account, request.amount_value())
    return {
        "account": request.account,
        "burned": str(burned),
        "balance": str(system.ledger.balance_of(request.account))
    }


@router.post("/transfer")
async def transfer(
    request: TransferRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    moved = system.ledger.transfer(caller, request.to, request.amount_value())
    return {"from": caller, "to": request.to, "amount": str(moved)}


@router.post("/transfer-from")
async def transfer_from(
    request: TransferFromRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    moved = system.ledger.transfer_from(caller, request.owner, request.to, request.amount_value())
    return {"from": request.owner, "to": request.to, "amount": str(moved)}


@router.post("/approve")
async def approve(
    request: ApproveRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    system.ledger.approve(caller, request.spender, request.amount_value())
    return {"owner": caller, "spender": request.spender, "allowance": request.amount}


@router.post("/{account_id}/crystallize")
async def crystallize(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    interest = system.ledger.crystallize(account_id)
    return {
        "account": account_id,
        "interest": str(interest),
        "principal": str(system.ledger.principal_balance_of(account_id))
    }
