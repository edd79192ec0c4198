"""
Pydantic schemas for API requests and responses
"""

from typing import Optional
from pydantic import BaseModel, Field, field_validator

from ..accrual import MAX_AMOUNT


def _parse_amount(value: str, allow_max: bool) -> int:
    if allow_max and value.lower() == "max":
        return MAX_AMOUNT
    if not (value.isascii() and value.isdigit()):
        raise ValueError("amount must be a non-negative integer string")
    return int(value)


class AmountRequest(BaseModel):
    amount: str = Field(..., description="Integer amount as string")

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: str) -> str:
        _parse_amount(value, allow_max=False)
        return value

    def amount_value(self) -> int:
        return _parse_amount(self.amount, allow_max=False)


class MaxableAmountRequest(BaseModel):
    amount: str = Field(..., description='Integer amount as string, or "max" for the whole balance')

    @field_validator("amount")
    @classmethod
    def check_amount(cls, value: str) -> str:
        _parse_amount(value, allow_max=True)
        return value

    def amount_value(self) -> int:
        return _parse_amount(self.amount, allow_max=True)


class MintRequest(AmountRequest):
    account: str


class BurnRequest(MaxableAmountRequest):
    account: str


class TransferRequest(MaxableAmountRequest):
    to: str


class TransferFromRequest(MaxableAmountRequest):
    owner: str
    to: str


class ApproveRequest(AmountRequest):
    spender: str


class GlobalRateRequest(BaseModel):
    rate: str = Field(..., description="Per-second rate scaled by 1e18, as string")

    @field_validator("rate")
    @classmethod
    def check_rate(cls, value: str) -> str:
        _parse_amount(value, allow_max=False)
        return value


class CapabilityRequest(BaseModel):
    account: str


class DepositRequest(AmountRequest):
    pass


class RedeemRequest(MaxableAmountRequest):
    pass


class AccountResponse(BaseModel):
    account: str
    balance: str
    principal: str
    assigned_rate: str
    last_accrual_at: Optional[int] = None
