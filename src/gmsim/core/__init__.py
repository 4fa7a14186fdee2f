"""
gmsim Core
==========

Unified exports for the integer fixed-point primitives shared by every
model: constants, checked arithmetic, prices, copy-on-write handles,
reports and the error taxonomy. Decimal helpers are provided *only* for
formatting and exchange-rate logarithms.
"""

# NOTE:
#   All amounts, values, prices and factors are plain ints scaled by
#   MARKET_USD_UNIT. Checked helpers raise ComputationError when a result
#   leaves its u64 / u128 / i128 domain; nothing wraps silently.

# Fixed-point constants
from .constants import (
    MARKET_DECIMALS,
    MARKET_USD_UNIT,
    MARKET_TOKEN_DECIMALS,
    MARKET_USD_TO_AMOUNT_DIVISOR,
    U64_MAX,
    U128_MAX,
    I128_MAX,
    I128_MIN,
    DEFAULT_LIMIT_SWAP_SLIPPAGE,
    DEFAULT_GRAPH_ESTIMATION_VALUE,
    DEFAULT_GRAPH_MAX_STEPS,
    FACTOR_QUANTUM,
)

# Decimal formatting helpers (non-core arithmetic)
from .fmt import (
    DEFAULT_DECIMAL_PRECISION,
    fmt_dec,
    fmt_usd,
    unsigned_value_to_decimal,
    signed_value_to_decimal,
    decimal_to_value,
    quantize_factor,
)

# Checked integer arithmetic
from .amounts import (
    to_u64,
    to_u128,
    to_i128,
    checked_add,
    checked_sub,
    checked_mul,
    mul_div,
    apply_factor,
    div_to_factor,
    apply_exponent_factor,
    market_token_amount_to_usd,
    usd_to_market_token_amount,
)

# Prices and value pairs
from .price import Price, Prices, Value, SignedValue

# Copy-on-write handle
from .cow import Shared

# Reports
from .datatypes import (
    Fees,
    SwapReport,
    DepositReport,
    WithdrawReport,
    SwapOutput,
    GlvValueForMarket,
    IncreasePositionReport,
    DecreasePositionReport,
)

# Core exceptions
from .exc import (
    EngineError,
    NotFoundError,
    NotReadyError,
    InvalidInputError,
    ComputationError,
    InsufficientOutputAmount,
    InsufficientLiquidity,
    ValidationError,
)

__all__ = [
    # constants
    "MARKET_DECIMALS",
    "MARKET_USD_UNIT",
    "MARKET_TOKEN_DECIMALS",
    "MARKET_USD_TO_AMOUNT_DIVISOR",
    "U64_MAX",
    "U128_MAX",
    "I128_MAX",
    "I128_MIN",
    "DEFAULT_LIMIT_SWAP_SLIPPAGE",
    "DEFAULT_GRAPH_ESTIMATION_VALUE",
    "DEFAULT_GRAPH_MAX_STEPS",
    "FACTOR_QUANTUM",
    # fmt
    "DEFAULT_DECIMAL_PRECISION",
    "fmt_dec",
    "fmt_usd",
    "unsigned_value_to_decimal",
    "signed_value_to_decimal",
    "decimal_to_value",
    "quantize_factor",
    # amounts
    "to_u64",
    "to_u128",
    "to_i128",
    "checked_add",
    "checked_sub",
    "checked_mul",
    "mul_div",
    "apply_factor",
    "div_to_factor",
    "apply_exponent_factor",
    "market_token_amount_to_usd",
    "usd_to_market_token_amount",
    # prices
    "Price",
    "Prices",
    "Value",
    "SignedValue",
    # cow
    "Shared",
    # datatypes
    "Fees",
    "SwapReport",
    "DepositReport",
    "WithdrawReport",
    "SwapOutput",
    "GlvValueForMarket",
    "IncreasePositionReport",
    "DecreasePositionReport",
    # exceptions
    "EngineError",
    "NotFoundError",
    "NotReadyError",
    "InvalidInputError",
    "ComputationError",
    "InsufficientOutputAmount",
    "InsufficientLiquidity",
    "ValidationError",
]
