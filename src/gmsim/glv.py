"""GLV (basket vault) model and per-market GLV pricing.

A GLV holds balances of several market tokens that share the same long and
short tokens, and issues its own GLV token against them. The model keeps the
snapshot behind a copy-on-write handle, like MarketModel does.

Alignment notes:
# - A member's value in the GLV is priced with the MaxAfterDeposit pool
#   value; converting a GLV value back into market tokens uses
#   MaxAfterWithdrawal. Both reject a negative pool value.
# - Minting follows the market token formula (`usd_to_market_token_amount`)
#   with the GLV value as pool value and the GLV supply as supply.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List

from .core.amounts import (
    market_token_amount_to_usd,
    to_u64,
    usd_to_market_token_amount,
)
from .core.constants import MARKET_USD_TO_AMOUNT_DIVISOR, U64_MAX
from .core.cow import Shared
from .core.datatypes import GlvValueForMarket
from .core.exc import (
    ComputationError,
    EmptyGlvDeposit,
    GlvTokenSupplyOverflow,
    GlvTokenSupplyUnderflow,
    InvalidArgument,
    InvalidPoolValue,
    MarketTokenBalanceOverflow,
    MarketTokenBalanceUnderflow,
)
from .core.price import Prices, Value
from .market import MarketModel, PnlFactorKind

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Per-market pricing
# ---------------------------------------------------------------------------

def get_glv_value_for_market(prices: Prices, market: MarketModel, balance: int,
                             maximize: bool) -> GlvValueForMarket:
    """USD value of `balance` market tokens of `market` for GLV pricing."""
    value = market.pool_value(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, maximize)
    supply = market.supply
    if balance == 0:
        return GlvValueForMarket(0, value, supply)
    if value < 0:
        raise InvalidPoolValue("GLV pricing: negative pool value")
    try:
        in_glv = market_token_amount_to_usd(balance, value, supply)
    except ComputationError as e:
        raise ComputationError(f"GLV pricing: failed to convert market token into GLV value ({e})") from e
    return GlvValueForMarket(in_glv, value, supply)


def get_market_token_amount_for_glv_value(prices: Prices, market: MarketModel, glv_value: int,
                                          maximize: bool,
                                          divisor: int = MARKET_USD_TO_AMOUNT_DIVISOR) -> int:
    """Market token amount of `market` worth `glv_value`."""
    value = market.pool_value(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, maximize)
    if value < 0:
        raise InvalidPoolValue("GLV pricing: negative pool value")
    try:
        return usd_to_market_token_amount(glv_value, value, market.supply, divisor)
    except ComputationError as e:
        raise ComputationError(f"GLV pricing: failed to convert GLV value into market tokens ({e})") from e


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass
class GlvMarketConfig:
    balance: int = 0
    is_deposit_allowed: bool = True


@dataclass
class GlvState:
    """Decoded GLV snapshot. `markets` preserves member order."""

    glv_token: str
    long_token: str
    short_token: str
    markets: Dict[str, GlvMarketConfig] = field(default_factory=dict)

    def market_tokens(self) -> List[str]:
        return list(self.markets)


@dataclass(frozen=True)
class GlvStatus:
    max_sellable_value: int
    total_value: Value


class GlvModel:
    """GLV snapshot (copy-on-write) + GLV token supply."""

    def __init__(self, glv: GlvState | Shared, supply: int):
        self._glv: Shared = glv if isinstance(glv, Shared) else Shared(glv)
        self.supply = to_u64(supply, "GLV token supply")

    @property
    def state(self) -> GlvState:
        return self._glv.get()

    @property
    def glv_token(self) -> str:
        return self.state.glv_token

    def market_tokens(self) -> Iterator[str]:
        return iter(self.state.market_tokens())

    def market_config(self, market_token: str) -> GlvMarketConfig:
        try:
            return self.state.markets[market_token]
        except KeyError:
            raise InvalidArgument(
                f"[sim] the given GLV does not include the specified market token: {market_token}"
            ) from None

    def balance(self, market_token: str) -> int:
        return self.market_config(market_token).balance

    def copy(self) -> "GlvModel":
        return GlvModel(self._glv.clone(), self.supply)

    def is_shared(self) -> bool:
        return self._glv.is_shared()

    def deposit(self, market_token: str, amount: int, received_value: int, glv_value: int) -> int:
        """Add `amount` market tokens worth `received_value`; return GLV tokens minted.

        Balance, supply and minted advance together or not at all.
        """
        current = self.balance(market_token)
        next_balance = current + amount
        if next_balance > U64_MAX:
            raise MarketTokenBalanceOverflow(market_token, current, amount)
        if glv_value == 0 and self.supply != 0:
            raise ComputationError("[GLV] GLV value is zero while supply is not")
        minted = usd_to_market_token_amount(received_value, glv_value, self.supply, MARKET_USD_TO_AMOUNT_DIVISOR)
        if minted == 0:
            raise EmptyGlvDeposit(f"[GLV] zero GLV tokens minted for value {received_value}")
        next_supply = self.supply + minted
        if next_supply > U64_MAX:
            raise GlvTokenSupplyOverflow(self.glv_token, self.supply, minted)

        glv = self._glv.make_mut()
        glv.markets[market_token].balance = next_balance
        self.supply = next_supply
        logger.debug(
            "GLV %s deposit: market=%s amount=%s value=%s minted=%s",
            self.glv_token, market_token, amount, received_value, minted,
        )
        return minted

    def withdraw_from_glv(self, market_token: str, amount: int, glv_token_amount: int) -> None:
        """Remove `amount` market tokens and burn `glv_token_amount` GLV tokens."""
        current = self.balance(market_token)
        if amount > current:
            raise MarketTokenBalanceUnderflow(market_token, current, amount)
        if glv_token_amount > self.supply:
            raise GlvTokenSupplyUnderflow(self.glv_token, self.supply, glv_token_amount)
        glv = self._glv.make_mut()
        glv.markets[market_token].balance = current - amount
        self.supply -= glv_token_amount

    def __repr__(self) -> str:
        return f"GlvModel(glv_token={self.glv_token!r}, supply={self.supply}, markets={len(self.state.markets)})"


__all__ = [
    "GlvMarketConfig",
    "GlvState",
    "GlvStatus",
    "GlvModel",
    "get_glv_value_for_market",
    "get_market_token_amount_for_glv_value",
]
