"""
Accrual Engine Module

Pure functions that turn a stored principal, an assigned rate and an elapsed
time into a balance. Growth is simple (linear) interest with no compounding
between crystallizations.

Rate convention: a rate is a per-second figure scaled by PRECISION. A rate of
``r`` grows a balance by ``principal * r / PRECISION`` for every elapsed
second. There is no annualized rate anywhere in the ledger.

All arithmetic is on unsigned integers bounded by UINT256_MAX and division
always truncates, so a computed balance never pays out more than is owed.
"""

from typing import Optional

from .errors import ArithmeticOverflow, InvalidAmount


PRECISION = 10 ** 18
UINT256_MAX = 2 ** 256 - 1

# Reserved amount meaning "the caller's entire computed balance"
MAX_AMOUNT = UINT256_MAX


def _check_range(value: int, operation: str) -> int:
    if value < 0 or value > UINT256_MAX:
        raise ArithmeticOverflow(
            f"{operation} result out of range",
            {"operation": operation}
        )
    return value


def checked_add(a: int, b: int) -> int:
    """Add two unsigned integers, failing on overflow"""
    return _check_range(a + b, "add")


def checked_sub(a: int, b: int) -> int:
    """Subtract two unsigned integers, failing on underflow"""
    return _check_range(a - b, "sub")


def checked_mul(a: int, b: int) -> int:
    """Multiply two unsigned integers, failing on overflow"""
    return _check_range(a * b, "mul")


def validate_amount(amount: int) -> int:
    """
    Validate that an amount is an unsigned integer within range

    Raises:
        InvalidAmount: If amount is not an int, is a bool, is negative or
            exceeds UINT256_MAX
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmount(f"Amount must be an integer, got {type(amount).__name__}")
    if amount < 0:
        raise InvalidAmount("Amount must not be negative", {"amount": str(amount)})
    if amount > UINT256_MAX:
        raise InvalidAmount("Amount exceeds UINT256_MAX", {"amount": str(amount)})
    return amount


def elapsed_time(last_accrual_at: Optional[int], now: int) -> int:
    """
    Seconds since the last accrual

    An account that has never accrued has no elapsed time, so nothing is
    back-dated. A clock reading before the last accrual also counts as zero.
    """
    if last_accrual_at is None or now <= last_accrual_at:
        return 0
    return now - last_accrual_at


def growth_factor(rate: int, elapsed: int) -> int:
    """
    Linear growth factor scaled by PRECISION

    factor = PRECISION + rate * elapsed
    """
    return checked_add(PRECISION, checked_mul(rate, elapsed))


def compute_balance(principal: int, rate: int, elapsed: int) -> int:
    """
    Balance after `elapsed` seconds at `rate`, rounded down

    Args:
        principal: Stored principal balance
        rate: Per-second rate scaled by PRECISION
        elapsed: Seconds since last accrual

    Returns:
        principal * growth_factor(rate, elapsed) // PRECISION
    """
    if principal == 0 or elapsed == 0 or rate == 0:
        return principal
    return checked_mul(principal, growth_factor(rate, elapsed)) // PRECISION


def accrued_interest(principal: int, rate: int, elapsed: int) -> int:
    """Interest owed but not yet folded into principal"""
    return compute_balance(principal, rate, elapsed) - principal
