"""
Ledger Error Taxonomy

Every rejected ledger operation raises one of these. All of them abort the
whole operation before any stored state changes, and none are retried by the
ledger itself.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass(eq=False)
class LedgerError(Exception):
    """Base error for all ledger failures"""
    reason: str
    details: Optional[Dict[str, Any]] = field(default=None)

    code = "ledger_error"

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}: {self.reason}"
        return f"{self.code}: {self.reason} {self.details}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API responses and logs"""
        return {
            "error": self.code,
            "reason": self.reason,
            "details": self.details or {}
        }


class RateIncreaseRejected(LedgerError):
    """Global rate update attempted to raise the rate"""
    code = "rate_increase_rejected"


class InsufficientBalance(LedgerError):
    """Burn or transfer exceeds the computed balance"""
    code = "insufficient_balance"


class Unauthorized(LedgerError):
    """Capability or ownership check failed"""
    code = "unauthorized"


class RedeemTransferFailed(LedgerError):
    """External payout failed after the burn was computed"""
    code = "redeem_transfer_failed"


class InvalidAmount(LedgerError):
    """Amount is not an unsigned integer in range"""
    code = "invalid_amount"


class ArithmeticOverflow(LedgerError):
    """Checked arithmetic left the unsigned 256-bit range"""
    code = "arithmetic_overflow"
