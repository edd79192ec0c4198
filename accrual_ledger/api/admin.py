"""
Administrative endpoints: capabilities and audit integrity
"""

from fastapi import APIRouter, Depends, status

from .dependencies import get_caller, get_ledger_system
from .schemas import CapabilityRequest
from ..system import LedgerSystem


router = APIRouter()


@router.post("/capabilities", status_code=status.HTTP_201_CREATED)
async def grant_mint_and_burn(
    request: CapabilityRequest,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    granted = system.ledger.grant_mint_and_burn_capability(caller, request.account)
    return {"account": request.account, "capability": "mint_and_burn", "newly_granted": granted}


@router.delete("/capabilities/{account_id}")
async def revoke_mint_and_burn(
    account_id: str,
    caller: str = Depends(get_caller),
    system: LedgerSystem = Depends(get_ledger_system)
):
    revoked = system.ledger.revoke_mint_and_burn_capability(caller, account_id)
    return {"account": account_id, "capability": "mint_and_burn", "revoked": revoked}


@router.get("/capabilities/{account_id}")
async def list_capabilities(
    account_id: str,
    system: LedgerSystem = Depends(get_ledger_system)
):
    capabilities = sorted(cap.value for cap in system.access.capabilities_of(account_id))
    return {"account": account_id, "capabilities": capabilities}


@router.get("/audit/verify")
async def verify_audit(system: LedgerSystem = Depends(get_ledger_system)):
    return system.audit_trail.verify_integrity()
