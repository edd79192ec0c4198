"""
Account read endpoints
"""

from fastapi import APIRouter, Depends

from .dependencies import get_ledger_system
from .schemas import AccountResponse
from ..system import LedgerSystem


router = APIRouter()


@router.get("/{account_id}", response_model=AccountResponse)
async def get_account(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    """Computed balance next to the stored principal"""
    ledger = system.ledger
    record = ledger.get_account(account_id)
    return AccountResponse(
        account=account_id,
        balance=str(ledger.balance_of(account_id)),
        principal=str(ledger.principal_balance_of(account_id)),
        assigned_rate=str(ledger.assigned_rate(account_id)),
        last_accrual_at=record.last_accrual_at if record else None
    )


@router.get("/{account_id}/balance")
async def get_balance(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    return {"account": account_id, "balance": str(system.ledger.balance_of(account_id))}


@router.get("/{owner}/allowances/{spender}")
async def get_allowance(
    owner: str,
    spender: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    return {
        "owner": owner,
        "spender": spender,
        "allowance": str(system.ledger.allowance(owner, spender))
    }
