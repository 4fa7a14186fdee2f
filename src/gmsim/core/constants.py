"""
Integer-domain constants for the pricing engine.

All USD values, prices and factors share one fixed-point scale
(MARKET_USD_UNIT). Token amounts are raw integers in the token's own
smallest unit.
"""

from decimal import Decimal

# ---------------------------------------------------------------------------
# Fixed-point scale
# ---------------------------------------------------------------------------

#: Number of decimals of USD values, prices and factors.
MARKET_DECIMALS: int = 20

#: $1 (and factor 1.0) in the fixed-point domain.
MARKET_USD_UNIT: int = 10 ** MARKET_DECIMALS

#: Decimals of market tokens and GLV tokens.
MARKET_TOKEN_DECIMALS: int = 9

#: Converts a USD value into an amount of a 9-decimal token priced at $1.
MARKET_USD_TO_AMOUNT_DIVISOR: int = 10 ** (MARKET_DECIMALS - MARKET_TOKEN_DECIMALS)

# ---------------------------------------------------------------------------
# Integer domains
# ---------------------------------------------------------------------------

U64_MAX: int = 2 ** 64 - 1
U128_MAX: int = 2 ** 128 - 1
I128_MAX: int = 2 ** 127 - 1
I128_MIN: int = -(2 ** 127)

# ---------------------------------------------------------------------------
# Defaults
# ---------------------------------------------------------------------------

#: Default slippage used when rewriting prices for limit swaps (0.5%).
DEFAULT_LIMIT_SWAP_SLIPPAGE: int = MARKET_USD_UNIT * 5 // 1000

#: Default USD value used to estimate edge rates in the market graph ($1000).
DEFAULT_GRAPH_ESTIMATION_VALUE: int = 1000 * MARKET_USD_UNIT

#: Default maximum number of hops searched by the market graph.
DEFAULT_GRAPH_MAX_STEPS: int = 5

# Decimal quantum used when presenting factors (formatting only)
FACTOR_QUANTUM: Decimal = Decimal(1).scaleb(-MARKET_DECIMALS)

__all__ = [
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
]
