"""
Shared API dependencies: the ledger system and the calling account
"""

from typing import Optional

from fastapi import Header, HTTPException

from ..system import LedgerSystem


_system: Optional[LedgerSystem] = None


def get_ledger_system() -> LedgerSystem:
    global _system
    if _system is None:
        _system = LedgerSystem()
    return _system


def set_ledger_system(system: Optional[LedgerSystem]) -> None:
    """Install a specific system instance (tests, embedding)"""
    global _system
    _system = system


def get_caller(x_account: Optional[str] = Header(default=None)) -> str:
    """Account on whose behalf the request is made"""
    if not x_account:
        raise HTTPException(status_code=401, detail="X-Account header required")
    return x_account
