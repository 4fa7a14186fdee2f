"""
Formatting helpers and Decimal bridges (non-core arithmetic).

Core arithmetic uses integers. Decimal here is only for display and for the
logarithms the market graph needs to add exchange rates along a path.
"""

from decimal import Decimal, getcontext, ROUND_DOWN

from .constants import MARKET_DECIMALS, FACTOR_QUANTUM
from .exc import AmountDomainError


# ---------------------------------------------------------------------------
# Global Decimal precision (formatting only)
# ---------------------------------------------------------------------------

#: Default global precision (number of significant digits) for Decimal-based
#: formatting. This does not affect core arithmetic which uses integers.
#: Large enough to hold a u128 value with 20 fractional digits.
DEFAULT_DECIMAL_PRECISION: int = 60
getcontext().prec = DEFAULT_DECIMAL_PRECISION


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------

def fmt_dec(x: Decimal, places: int = 18) -> str:
    """Format a Decimal in scientific notation with fixed fractional digits.

    The output is stable for logs and tests, e.g.:
      Decimal('1')        -> '1.000000000000000000E+0'
      Decimal('123456')   -> '1.234560000000000000E+5'
    """
    return format(x, f".{places}E")


def unsigned_value_to_decimal(value: int, decimals: int = MARKET_DECIMALS) -> Decimal:
    """Fixed-point integer -> Decimal (exact)."""
    if value < 0:
        raise AmountDomainError("unsigned value must be >= 0")
    return Decimal(value).scaleb(-decimals)


def signed_value_to_decimal(value: int, decimals: int = MARKET_DECIMALS) -> Decimal:
    return Decimal(value).scaleb(-decimals)


def decimal_to_value(x: Decimal, decimals: int = MARKET_DECIMALS) -> int:
    """Decimal -> fixed-point integer, rounding toward zero."""
    return int(x.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))


def quantize_factor(x: Decimal) -> Decimal:
    """Round a Decimal to the factor grid (MARKET_DECIMALS places, down)."""
    return x.quantize(FACTOR_QUANTUM, rounding=ROUND_DOWN)


def fmt_usd(value: int, places: int = 2) -> str:
    """Render a USD value (MARKET_USD_UNIT-scaled) as `$1,234.56`."""
    d = signed_value_to_decimal(value).quantize(Decimal(1).scaleb(-places), rounding=ROUND_DOWN)
    sign = "-" if d < 0 else ""
    return f"{sign}${abs(d):,.{places}f}"


__all__ = [
    "DEFAULT_DECIMAL_PRECISION",
    "fmt_dec",
    "fmt_usd",
    "unsigned_value_to_decimal",
    "signed_value_to_decimal",
    "decimal_to_value",
    "quantize_factor",
]
