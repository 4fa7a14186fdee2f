"""
Checked integer arithmetic in the fixed-point domain.

- Amounts (balances, supplies, action parameters) live in the u64 range.
- Values and prices live in the u128 range; signed values in the i128 range.
- Every helper raises ComputationError instead of wrapping when a result
  leaves its domain. Python integers never overflow on their own, so the
  bounds are enforced explicitly here.
- Rounding: floor by default; `round_up=True` rounds away from zero.

# Alignment notes:
# - `market_token_amount_to_usd` / `usd_to_market_token_amount` follow the
#   ledger's own conversion (including the first-deposit branch where the
#   supply is zero but the pool already holds value).
"""

from __future__ import annotations

from decimal import Decimal, localcontext

from .constants import (
    MARKET_USD_UNIT,
    U64_MAX,
    U128_MAX,
    I128_MAX,
    I128_MIN,
)
from .exc import AmountDomainError, ComputationError


# ----------------------------
# Integer rounding helpers (centralised)
# ----------------------------

def _ceil_div(a: int, b: int) -> int:
    if a < 0 or b <= 0:
        raise AmountDomainError("_ceil_div expects a>=0 and b>0")
    return 0 if a == 0 else -(-a // b)


def _floor_div(a: int, b: int) -> int:
    if a < 0 or b <= 0:
        raise AmountDomainError("_floor_div expects a>=0 and b>0")
    return a // b


# ----------------------------
# Domain guards
# ----------------------------

def to_u64(x: int, what: str = "amount") -> int:
    if x < 0 or x > U64_MAX:
        raise ComputationError(f"{what} out of u64 range: {x}")
    return x


def to_u128(x: int, what: str = "value") -> int:
    if x < 0 or x > U128_MAX:
        raise ComputationError(f"{what} out of u128 range: {x}")
    return x


def to_i128(x: int, what: str = "signed value") -> int:
    if x < I128_MIN or x > I128_MAX:
        raise ComputationError(f"{what} out of i128 range: {x}")
    return x


def checked_add(a: int, b: int, *, bound: int = U128_MAX, what: str = "addition") -> int:
    r = a + b
    if r < 0 or r > bound:
        raise ComputationError(f"{what} overflow: {a} + {b}")
    return r


def checked_sub(a: int, b: int, *, what: str = "subtraction") -> int:
    if b > a:
        raise ComputationError(f"{what} underflow: {a} - {b}")
    return a - b


def checked_mul(a: int, b: int, *, bound: int = U128_MAX, what: str = "multiplication") -> int:
    r = a * b
    if r < 0 or r > bound:
        raise ComputationError(f"{what} overflow: {a} * {b}")
    return r


def checked_signed_add(a: int, b: int, *, what: str = "signed addition") -> int:
    return to_i128(a + b, what)


def mul_div(a: int, b: int, c: int, *, round_up: bool = False, what: str = "mul_div") -> int:
    """Return a * b / c for non-negative operands, floored (or ceiled).

    The intermediate product is exact; only the result is range-checked
    against u128.
    """
    if a < 0 or b < 0:
        raise AmountDomainError(f"{what} expects non-negative operands")
    if c <= 0:
        raise ComputationError(f"{what}: division by zero")
    num = a * b
    r = _ceil_div(num, c) if round_up else _floor_div(num, c)
    return to_u128(r, what)


def signed_mul_div(a: int, b: int, c: int, *, what: str = "signed mul_div") -> int:
    """Return a * b / c truncated toward zero, for a signed `a`."""
    if c <= 0 or b < 0:
        raise ComputationError(f"{what}: invalid divisor or multiplier")
    mag = abs(a) * b // c
    return to_i128(-mag if a < 0 else mag, what)


# ----------------------------
# Factors
# ----------------------------

def apply_factor(value: int, factor: int, *, round_up: bool = False) -> int:
    """Scale `value` by a MARKET_USD_UNIT-based factor."""
    return mul_div(value, factor, MARKET_USD_UNIT, round_up=round_up, what="apply_factor")


def apply_factor_signed(value: int, factor: int) -> int:
    return signed_mul_div(value, factor, MARKET_USD_UNIT, what="apply_factor")


def div_to_factor(value: int, divisor: int, *, round_up: bool = False) -> int:
    """Express value / divisor as a MARKET_USD_UNIT-based factor."""
    if divisor == 0:
        raise ComputationError("div_to_factor: division by zero")
    return mul_div(value, MARKET_USD_UNIT, divisor, round_up=round_up, what="div_to_factor")


def apply_exponent_factor(value: int, exponent: int) -> int:
    """Raise a USD value to a factor-encoded exponent, keeping USD scaling.

    Returns UNIT * (value / UNIT) ** (exponent / UNIT). Integral exponents are
    computed exactly; fractional ones via Decimal and floored.
    """
    if value < 0 or exponent < 0:
        raise AmountDomainError("apply_exponent_factor expects non-negative inputs")
    if value == 0:
        return 0
    if exponent % MARKET_USD_UNIT == 0:
        n = exponent // MARKET_USD_UNIT
        if n == 0:
            return MARKET_USD_UNIT
        return value ** n // MARKET_USD_UNIT ** (n - 1)
    # Fractional exponents are not representable exactly in the integer domain
    with localcontext() as ctx:
        ctx.prec = 60
        base = Decimal(value) / Decimal(MARKET_USD_UNIT)
        r = base ** (Decimal(exponent) / Decimal(MARKET_USD_UNIT))
        return int(r * MARKET_USD_UNIT)


# ----------------------------
# Market token conversions
# ----------------------------

def market_token_amount_to_usd(amount: int, pool_value: int, supply: int) -> int:
    """Value of `amount` market tokens given the pool value and supply."""
    if supply == 0:
        raise ComputationError("market token supply is zero")
    return mul_div(amount, pool_value, supply, what="market token amount to usd")


def usd_to_market_token_amount(usd_value: int, pool_value: int, supply: int, divisor: int) -> int:
    """Market tokens to mint for `usd_value` of deposit.

    - Empty pool with zero supply: one token per `divisor` of value.
    - Non-empty pool with zero supply: the stranded pool value is folded into
      the first depositor's share.
    """
    if supply == 0 and pool_value == 0:
        return _floor_div(usd_value, divisor)
    if supply == 0:
        return _floor_div(checked_add(pool_value, usd_value), divisor)
    if pool_value == 0:
        raise ComputationError("pool value is zero while supply is not")
    return mul_div(supply, usd_value, pool_value, what="usd to market token amount")


__all__ = [
    "to_u64",
    "to_u128",
    "to_i128",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "checked_signed_add",
    "mul_div",
    "signed_mul_div",
    "apply_factor",
    "apply_factor_signed",
    "div_to_factor",
    "apply_exponent_factor",
    "market_token_amount_to_usd",
    "usd_to_market_token_amount",
]
