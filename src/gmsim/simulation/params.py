"""Action parameter structs consumed by the simulations.

These mirror the parameters a client puts into the corresponding ledger
instruction; swap paths and token overrides are passed to the simulation
itself, not here.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class CreateDepositParams:
    initial_long_token_amount: int = 0
    initial_short_token_amount: int = 0
    min_market_token_amount: int = 0
    should_unwrap_native_token: bool = True


@dataclass(frozen=True)
class CreateWithdrawalParams:
    market_token_amount: int = 0
    min_long_token_amount: int = 0
    min_short_token_amount: int = 0
    should_unwrap_native_token: bool = True


@dataclass(frozen=True)
class CreateShiftParams:
    from_market_token_amount: int = 0
    min_to_market_token_amount: int = 0


@dataclass(frozen=True)
class CreateGlvDepositParams:
    initial_long_token_amount: int = 0
    initial_short_token_amount: int = 0
    market_token_amount: int = 0
    min_market_token_amount: int = 0
    min_glv_token_amount: int = 0
    should_unwrap_native_token: bool = True


@dataclass(frozen=True)
class CreateGlvWithdrawalParams:
    glv_token_amount: int = 0
    min_final_long_token_amount: int = 0
    min_final_short_token_amount: int = 0
    should_unwrap_native_token: bool = True


class OrderKind(enum.Enum):
    MARKET_SWAP = "market_swap"
    LIMIT_SWAP = "limit_swap"
    MARKET_INCREASE = "market_increase"
    LIMIT_INCREASE = "limit_increase"
    MARKET_DECREASE = "market_decrease"
    LIMIT_DECREASE = "limit_decrease"
    STOP_LOSS_DECREASE = "stop_loss_decrease"

    def is_increase(self) -> bool:
        return self in (OrderKind.MARKET_INCREASE, OrderKind.LIMIT_INCREASE)

    def is_decrease(self) -> bool:
        return self in (OrderKind.MARKET_DECREASE, OrderKind.LIMIT_DECREASE, OrderKind.STOP_LOSS_DECREASE)

    def is_swap(self) -> bool:
        return self in (OrderKind.MARKET_SWAP, OrderKind.LIMIT_SWAP)


@dataclass(frozen=True)
class CreateOrderParams:
    """Order parameters.

    - size: USD size delta (increase/decrease); ignored for swaps.
    - amount: pay amount (increase/swap) or collateral withdrawal (decrease).
    - min_output: minimum output amount (swaps).
    """
    market_token: str
    is_long: bool
    size: int = 0
    amount: int = 0
    min_output: int = 0
    trigger_price: Optional[int] = None
    acceptable_price: Optional[int] = None


__all__ = [
    "CreateDepositParams",
    "CreateWithdrawalParams",
    "CreateShiftParams",
    "CreateGlvDepositParams",
    "CreateGlvWithdrawalParams",
    "CreateOrderParams",
    "OrderKind",
]
