"""
Report datatypes produced by market actions.

Reports are plain dataclasses so they can be compared field by field with
the ledger's own execution reports; `to_dict()` gives a JSON-friendly view
(integers stay integers, prices become {min,max} dicts).

Notes:
- Amounts are raw token units; values are MARKET_USD_UNIT-scaled USD.
- Signed fields (price impact) are negative when the action paid impact.
"""

from __future__ import annotations

from dataclasses import dataclass, asdict, field
from typing import Optional

from .price import Prices


class _Report:
    def to_dict(self) -> dict:
        return asdict(self)


# ---------------------------------------------------------------------------
# Fees
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Fees(_Report):
    """Fee split of one token leg.

    - fee_amount_for_receiver: sent to the claimable fee pool.
    - fee_amount_for_pool: stays in the liquidity pool (LP income).
    """

    fee_amount_for_receiver: int = 0
    fee_amount_for_pool: int = 0

    def total(self) -> int:
        return self.fee_amount_for_receiver + self.fee_amount_for_pool


# ---------------------------------------------------------------------------
# Swap / deposit / withdrawal
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SwapReport(_Report):
    """Execution report of one swap hop."""

    market_token: str
    is_token_in_long: bool
    token_in_amount: int
    token_out_amount: int
    price_impact_value: int
    price_impact_amount: int
    token_in_fees: Fees
    prices: Prices

    @property
    def token_in_fee_amount(self) -> int:
        return self.token_in_fees.total()


@dataclass(frozen=True)
class DepositReport(_Report):
    market_token: str
    long_token_amount: int
    short_token_amount: int
    minted: int
    price_impact_value: int
    long_token_fees: Fees
    short_token_fees: Fees
    prices: Prices


@dataclass(frozen=True)
class WithdrawReport(_Report):
    market_token: str
    market_token_amount: int
    long_token_output: int
    short_token_output: int
    long_token_fees: Fees
    short_token_fees: Fees
    prices: Prices


# ---------------------------------------------------------------------------
# Swap path output
# ---------------------------------------------------------------------------

@dataclass
class SwapOutput(_Report):
    """Result of walking a swap path: final token, amount and per-hop reports."""

    output_token: str
    amount: int
    reports: list = field(default_factory=list)

    def is_identity(self) -> bool:
        return not self.reports


@dataclass(frozen=True)
class GlvValueForMarket(_Report):
    """Contribution of one member market balance to a GLV."""

    market_token_value_in_glv: int
    pool_value: int
    supply: int


@dataclass(frozen=True)
class IncreasePositionReport(_Report):
    market_token: str
    is_long: bool
    collateral_increment: int
    size_delta_usd: int
    size_delta_in_tokens: int
    execution_price: int
    price_impact_value: int
    order_fees: Fees
    borrowing_fee_value: int
    prices: Prices


@dataclass(frozen=True)
class DecreasePositionReport(_Report):
    market_token: str
    is_long: bool
    size_delta_usd: int
    size_delta_in_tokens: int
    execution_price: int
    price_impact_value: int
    realized_pnl: int
    order_fees: Fees
    borrowing_fee_value: int
    output_amount: int
    collateral_withdrawal_amount: int
    is_full_close: bool
    prices: Prices
    insolvent_close_value: Optional[int] = None


__all__ = [
    "Fees",
    "SwapReport",
    "DepositReport",
    "WithdrawReport",
    "SwapOutput",
    "GlvValueForMarket",
    "IncreasePositionReport",
    "DecreasePositionReport",
]
