"""Market model: one pool's snapshot plus its liquidity-token supply.

The snapshot (MarketState) is held through a copy-on-write handle, so
cloning a MarketModel is cheap and clones never observe each other's
mutations. Pricing (pool value, market token price, max sellable value,
status) is read-only; actions (swap, deposit, withdraw) live in
:mod:`gmsim.actions` and mutate through `MarketModel.make_state_mut()`.

Alignment notes:
# - pool value = long/short pool value + pending borrowing fees for LPs
#   - position impact pool value - capped trader PnL of each side.
# - trader PnL is evaluated with the price that is worse for LPs
#   (`not maximize`) and capped at pool_value_for_side * max_pnl_factor.
# - Pure markets (long token == short token) keep both halves in the
#   liquidity pool but are never swappable.
"""
from __future__ import annotations

import enum
import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional

from .core.amounts import (
    apply_factor,
    checked_add,
    checked_mul,
    checked_sub,
    div_to_factor,
    mul_div,
    to_i128,
    to_u64,
)
from .core.constants import (
    MARKET_TOKEN_DECIMALS,
    MARKET_USD_UNIT,
    MARKET_USD_TO_AMOUNT_DIVISOR,
    U64_MAX,
    U128_MAX,
)
from .core.cow import Shared
from .core.exc import (
    InsufficientLiquidity,
    InvalidArgument,
    InvalidPoolValue,
    ValidationError,
)
from .core.price import Prices, SignedValue, Value
from .pricing import FeeParams, PriceImpactParams
from .virtual_inventory import VirtualInventoryModel

logger = logging.getLogger(__name__)


class PnlFactorKind(enum.Enum):
    """Stress scenario used to cap trader PnL when valuing a pool."""

    MAX_AFTER_DEPOSIT = "max_after_deposit"
    MAX_AFTER_WITHDRAWAL = "max_after_withdrawal"
    MAX_FOR_TRADER = "max_for_trader"
    FOR_ADL = "for_adl"


class SwapPricingKind(enum.Enum):
    SWAP = "swap"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    SHIFT = "shift"


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MarketMeta:
    """Token triple of a market, keyed by its market token."""

    market_token: str
    index_token: str
    long_token: str
    short_token: str

    def token_side(self, token: str) -> bool:
        """Return True if `token` is the long token, False if it is the short token."""
        if token == self.long_token:
            return True
        if token == self.short_token:
            return False
        raise InvalidArgument(f"token `{token}` is not a collateral token of `{self.market_token}`")

    def is_pure(self) -> bool:
        return self.long_token == self.short_token

    def is_swappable(self) -> bool:
        return not self.is_pure()

    def opposite_token(self, token: str) -> str:
        return self.short_token if self.token_side(token) else self.long_token


@dataclass(frozen=True)
class MarketConfig:
    """Market configuration. Factors use the MARKET_USD_UNIT scale."""

    swap_impact_exponent: int = MARKET_USD_UNIT
    swap_impact_positive_factor: int = 0
    swap_impact_negative_factor: int = 0
    swap_fee_factor_for_positive_impact: int = 0
    swap_fee_factor_for_negative_impact: int = 0
    swap_fee_receiver_factor: int = 0
    position_impact_exponent: int = MARKET_USD_UNIT
    position_impact_positive_factor: int = 0
    position_impact_negative_factor: int = 0
    order_fee_factor_for_positive_impact: int = 0
    order_fee_factor_for_negative_impact: int = 0
    order_fee_receiver_factor: int = 0
    borrowing_fee_receiver_factor: int = 0
    min_collateral_factor: int = MARKET_USD_UNIT // 100
    min_collateral_value: int = 0
    reserve_factor: int = MARKET_USD_UNIT
    open_interest_reserve_factor: int = MARKET_USD_UNIT
    max_pnl_factor_for_long_deposit: int = MARKET_USD_UNIT
    max_pnl_factor_for_short_deposit: int = MARKET_USD_UNIT
    max_pnl_factor_for_long_withdrawal: int = MARKET_USD_UNIT
    max_pnl_factor_for_short_withdrawal: int = MARKET_USD_UNIT
    max_pnl_factor_for_long_trader: int = MARKET_USD_UNIT
    max_pnl_factor_for_short_trader: int = MARKET_USD_UNIT
    max_pnl_factor_for_long_adl: int = MARKET_USD_UNIT
    max_pnl_factor_for_short_adl: int = MARKET_USD_UNIT
    max_pool_amount_for_long_token: int = U64_MAX
    max_pool_amount_for_short_token: int = U64_MAX
    max_pool_value_for_deposit_for_long_token: int = U128_MAX
    max_pool_value_for_deposit_for_short_token: int = U128_MAX
    max_open_interest_for_long: int = U128_MAX
    max_open_interest_for_short: int = U128_MAX

    def pnl_factor(self, kind: PnlFactorKind, is_long: bool) -> int:
        side = "long" if is_long else "short"
        name = {
            PnlFactorKind.MAX_AFTER_DEPOSIT: f"max_pnl_factor_for_{side}_deposit",
            PnlFactorKind.MAX_AFTER_WITHDRAWAL: f"max_pnl_factor_for_{side}_withdrawal",
            PnlFactorKind.MAX_FOR_TRADER: f"max_pnl_factor_for_{side}_trader",
            PnlFactorKind.FOR_ADL: f"max_pnl_factor_for_{side}_adl",
        }[kind]
        return getattr(self, name)

    def max_pool_amount(self, is_long_token: bool) -> int:
        return self.max_pool_amount_for_long_token if is_long_token else self.max_pool_amount_for_short_token

    def max_pool_value_for_deposit(self, is_long_token: bool) -> int:
        if is_long_token:
            return self.max_pool_value_for_deposit_for_long_token
        return self.max_pool_value_for_deposit_for_short_token

    def max_open_interest(self, is_long: bool) -> int:
        return self.max_open_interest_for_long if is_long else self.max_open_interest_for_short

    def swap_impact_params(self) -> PriceImpactParams:
        return PriceImpactParams(
            exponent=self.swap_impact_exponent,
            positive_factor=self.swap_impact_positive_factor,
            negative_factor=self.swap_impact_negative_factor,
        )

    def position_impact_params(self) -> PriceImpactParams:
        return PriceImpactParams(
            exponent=self.position_impact_exponent,
            positive_factor=self.position_impact_positive_factor,
            negative_factor=self.position_impact_negative_factor,
        )

    def order_fee_params(self) -> FeeParams:
        return FeeParams(
            positive_impact_fee_factor=self.order_fee_factor_for_positive_impact,
            negative_impact_fee_factor=self.order_fee_factor_for_negative_impact,
            fee_receiver_factor=self.order_fee_receiver_factor,
        )


@dataclass
class Pool:
    """A long/short pair of non-negative integers."""

    long_amount: int = 0
    short_amount: int = 0

    def amount(self, is_long: bool) -> int:
        return self.long_amount if is_long else self.short_amount

    def apply_delta(self, is_long: bool, delta: int, *, bound: int = U128_MAX, what: str = "pool") -> None:
        current = self.amount(is_long)
        if delta >= 0:
            nxt = checked_add(current, delta, bound=bound, what=what)
        else:
            nxt = checked_sub(current, -delta, what=what)
        if is_long:
            self.long_amount = nxt
        else:
            self.short_amount = nxt


@dataclass
class MarketState:
    """Ledger-derived market snapshot.

    Pools:
    - liquidity: token amounts backing the market token (u64).
    - swap_impact: token amounts collected from / reserved for swap impact.
    - claimable_fee: receiver fees, not part of pool value.
    - open_interest: USD size of open positions per side.
    - open_interest_in_tokens: index-token size of open positions per side.
    - collateral_sum: collateral token amounts held for positions per side.
    - total_borrowing_fees: pending borrowing fees (USD) owed to the pool.
    """

    meta: MarketMeta
    config: MarketConfig = field(default_factory=MarketConfig)
    enabled: bool = True
    liquidity: Pool = field(default_factory=Pool)
    swap_impact: Pool = field(default_factory=Pool)
    claimable_fee: Pool = field(default_factory=Pool)
    position_impact_amount: int = 0
    open_interest: Pool = field(default_factory=Pool)
    open_interest_in_tokens: Pool = field(default_factory=Pool)
    collateral_sum: Pool = field(default_factory=Pool)
    total_borrowing_fees: Pool = field(default_factory=Pool)
    cumulative_borrowing_factor: Pool = field(default_factory=Pool)
    long_token_balance: int = 0
    short_token_balance: int = 0
    virtual_inventory_for_swaps: Optional[str] = None
    virtual_inventory_for_positions: Optional[str] = None

    def record_transferred_in(self, is_long_token: bool, amount: int) -> None:
        if self.meta.is_pure() or is_long_token:
            self.long_token_balance = checked_add(self.long_token_balance, amount, bound=U64_MAX,
                                                  what="increasing long token balance")
        else:
            self.short_token_balance = checked_add(self.short_token_balance, amount, bound=U64_MAX,
                                                   what="increasing short token balance")

    def record_transferred_out(self, is_long_token: bool, amount: int) -> None:
        if self.meta.is_pure() or is_long_token:
            self.long_token_balance = checked_sub(self.long_token_balance, amount,
                                                  what="decreasing long token balance")
        else:
            self.short_token_balance = checked_sub(self.short_token_balance, amount,
                                                   what="decreasing short token balance")


@dataclass(frozen=True)
class MarketStatus:
    """Aggregate market figures for display."""

    max_sellable_value: int
    total_value: Value
    pool_value_without_pnl_for_long: Value
    pool_value_without_pnl_for_short: Value
    pending_pnl_for_long: SignedValue
    pending_pnl_for_short: SignedValue
    reserved_value_for_long: int
    reserved_value_for_short: int
    open_interest_for_long: int
    open_interest_for_short: int


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------

class MarketModel:
    """Market snapshot (copy-on-write) + market token supply + pricing mode."""

    def __init__(self, state: MarketState | Shared, supply: int):
        self._state: Shared = state if isinstance(state, Shared) else Shared(state)
        self.supply = to_u64(supply, "market token supply")
        self.swap_pricing = SwapPricingKind.SWAP
        self.disable_vis = False
        self.vi_for_swaps: Optional[VirtualInventoryModel] = None

    # ---- snapshot access ----

    @property
    def state(self) -> MarketState:
        return self._state.get()

    @property
    def meta(self) -> MarketMeta:
        return self.state.meta

    @property
    def config(self) -> MarketConfig:
        return self.state.config

    @property
    def market_token(self) -> str:
        return self.meta.market_token

    def is_pure(self) -> bool:
        return self.meta.is_pure()

    def is_shared(self) -> bool:
        return self._state.is_shared()

    def make_state_mut(self) -> MarketState:
        """Mutable snapshot; clones it first if another model shares it."""
        return self._state.make_mut()

    def copy(self) -> "MarketModel":
        other = MarketModel(self._state.clone(), self.supply)
        other.swap_pricing = self.swap_pricing
        other.disable_vis = self.disable_vis
        other.vi_for_swaps = self.vi_for_swaps.copy() if self.vi_for_swaps is not None else None
        return other

    __copy__ = copy

    @contextmanager
    def _atomic(self) -> Iterator["MarketModel"]:
        """Restore snapshot and supply if the body raises."""
        saved_state = self._state.clone()
        saved_supply = self.supply
        saved_vi = self.vi_for_swaps.copy() if self.vi_for_swaps is not None else None
        try:
            yield self
        except Exception as e:
            logger.debug("rolling back %s: %s", self.market_token, e)
            self._state = saved_state
            self.supply = saved_supply
            self.vi_for_swaps = saved_vi
            raise
        saved_state.drop()
        if saved_vi is not None:
            saved_vi.release()

    # ---- pricing modes ----

    @contextmanager
    def with_swap_pricing(self, kind: SwapPricingKind) -> Iterator["MarketModel"]:
        original = self.swap_pricing
        self.swap_pricing = kind
        try:
            yield self
        finally:
            self.swap_pricing = original

    @contextmanager
    def with_vis_disabled(self) -> Iterator["MarketModel"]:
        original = self.disable_vis
        self.disable_vis = True
        try:
            yield self
        finally:
            self.disable_vis = original

    @contextmanager
    def with_vi_models(self, vi_map: Dict[str, VirtualInventoryModel]) -> Iterator["MarketModel"]:
        """Borrow this market's virtual inventory from `vi_map` and hand it back afterwards."""
        key = self.state.virtual_inventory_for_swaps
        taken = False
        if self.vi_for_swaps is None and key is not None and key in vi_map:
            self.vi_for_swaps = vi_map.pop(key)
            taken = True
        try:
            yield self
        finally:
            if taken:
                vi_map[key] = self.vi_for_swaps
                self.vi_for_swaps = None

    def swap_fee_params(self) -> FeeParams:
        cfg = self.config
        if self.swap_pricing is SwapPricingKind.SHIFT:
            return FeeParams(0, 0, cfg.swap_fee_receiver_factor)
        return FeeParams(
            positive_impact_fee_factor=cfg.swap_fee_factor_for_positive_impact,
            negative_impact_fee_factor=cfg.swap_fee_factor_for_negative_impact,
            fee_receiver_factor=cfg.swap_fee_receiver_factor,
        )

    def virtual_inventory_for_swaps(self) -> Optional[VirtualInventoryModel]:
        """Attached virtual inventory, or None when absent or disabled."""
        if self.disable_vis:
            return None
        key = self.state.virtual_inventory_for_swaps
        if key is not None and self.vi_for_swaps is None:
            raise InvalidArgument("virtual inventory for swaps should be present but is missing")
        if key is None and self.vi_for_swaps is not None:
            raise InvalidArgument("virtual inventory for swaps should not be present but is provided")
        return self.vi_for_swaps

    # ---- pool figures ----

    def pool_value_for_side(self, prices: Prices, is_long: bool, maximize: bool) -> int:
        amount = self.state.liquidity.amount(is_long)
        price = prices.collateral_token_price(is_long).pick_price(maximize)
        return checked_mul(amount, price, what="pool value")

    def pool_value_without_pnl(self, prices: Prices, maximize: bool) -> int:
        return checked_add(
            self.pool_value_for_side(prices, True, maximize),
            self.pool_value_for_side(prices, False, maximize),
            what="pool value",
        )

    def pnl(self, prices: Prices, is_long: bool, maximize: bool) -> int:
        """Net trader PnL of one side (positive means traders are in profit)."""
        st = self.state
        oi = st.open_interest.amount(is_long)
        oi_in_tokens = st.open_interest_in_tokens.amount(is_long)
        if oi == 0 and oi_in_tokens == 0:
            return 0
        index = prices.index_token_price
        if is_long:
            value = oi_in_tokens * index.pick_price(maximize)
            return to_i128(value - oi, "pnl")
        value = oi_in_tokens * index.pick_price(not maximize)
        return to_i128(oi - value, "pnl")

    def capped_pnl(self, prices: Prices, kind: PnlFactorKind, is_long: bool, maximize: bool) -> int:
        """Trader PnL as seen by a pool valuation with the given `maximize`.

        PnL is taken with the opposite price pick so the pool value is the
        worse one for LPs; a profit is capped at the side value times the
        max pnl factor of `kind`.
        """
        pnl = self.pnl(prices, is_long, not maximize)
        if pnl <= 0:
            return pnl
        side_value = self.pool_value_for_side(prices, is_long, maximize)
        cap = apply_factor(side_value, self.config.pnl_factor(kind, is_long))
        return min(pnl, cap)

    def pending_borrowing_fee_value_for_pool(self) -> int:
        st = self.state
        total = checked_add(st.total_borrowing_fees.long_amount, st.total_borrowing_fees.short_amount)
        return apply_factor(total, MARKET_USD_UNIT - self.config.borrowing_fee_receiver_factor)

    def pool_value(self, prices: Prices, kind: PnlFactorKind, maximize: bool) -> int:
        """Signed USD value of the pool net of capped trader PnL."""
        value = self.pool_value_without_pnl(prices, maximize)
        value = checked_add(value, self.pending_borrowing_fee_value_for_pool(), what="pool value")
        impact_value = checked_mul(
            self.state.position_impact_amount,
            prices.index_token_price.pick_price(not maximize),
            what="position impact pool value",
        )
        signed = value - impact_value
        for is_long in (True, False):
            signed -= self.capped_pnl(prices, kind, is_long, maximize)
        return to_i128(signed, "pool value")

    def market_token_price(self, prices: Prices, kind: PnlFactorKind, maximize: bool) -> int:
        """USD price of one whole market token (10**MARKET_TOKEN_DECIMALS units)."""
        value = self.pool_value(prices, kind, maximize)
        if self.supply == 0:
            if value == 0:
                return MARKET_USD_UNIT
            raise InvalidPoolValue(f"market token supply is zero but pool value is {value}")
        if value < 0:
            raise InvalidPoolValue(f"negative pool value: {value}")
        return mul_div(value, 10 ** MARKET_TOKEN_DECIMALS, self.supply, what="market token price")

    def reserved_value(self, prices: Prices, is_long: bool) -> int:
        st = self.state
        if is_long:
            return checked_mul(
                st.open_interest_in_tokens.long_amount,
                prices.index_token_price.max,
                what="reserved value",
            )
        return st.open_interest.short_amount

    def max_sellable_value(self, prices: Prices) -> int:
        """USD value of market tokens that can be sold back without breaching reserves."""
        reserve_factor = self.config.reserve_factor
        sides = []
        for is_long in (True, False):
            side_value = self.pool_value_for_side(prices, is_long, False)
            reserved = self.reserved_value(prices, is_long)
            if reserve_factor == 0:
                locked = side_value if reserved > 0 else 0
            else:
                locked = mul_div(reserved, MARKET_USD_UNIT, reserve_factor, round_up=True)
            sides.append((side_value, max(side_value - locked, 0)))
        total = sum(v for v, _ in sides)
        if total == 0:
            return 0
        ceiling = None
        for side_value, withdrawable in sides:
            if side_value == 0:
                continue
            limit = mul_div(withdrawable, total, side_value, what="max sellable value")
            ceiling = limit if ceiling is None else min(ceiling, limit)
        value = min(ceiling or 0, max(self.pool_value(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, False), 0))
        return max(value, 0)

    def status(self, prices: Prices) -> MarketStatus:
        kind = PnlFactorKind.MAX_AFTER_DEPOSIT
        return MarketStatus(
            max_sellable_value=self.max_sellable_value(prices),
            total_value=Value(
                min=max(self.pool_value(prices, kind, False), 0),
                max=max(self.pool_value(prices, kind, True), 0),
            ),
            pool_value_without_pnl_for_long=Value(
                min=self.pool_value_for_side(prices, True, False),
                max=self.pool_value_for_side(prices, True, True),
            ),
            pool_value_without_pnl_for_short=Value(
                min=self.pool_value_for_side(prices, False, False),
                max=self.pool_value_for_side(prices, False, True),
            ),
            pending_pnl_for_long=SignedValue(
                min=self.pnl(prices, True, False), max=self.pnl(prices, True, True)
            ),
            pending_pnl_for_short=SignedValue(
                min=self.pnl(prices, False, False), max=self.pnl(prices, False, True)
            ),
            reserved_value_for_long=self.reserved_value(prices, True),
            reserved_value_for_short=self.reserved_value(prices, False),
            open_interest_for_long=self.state.open_interest.long_amount,
            open_interest_for_short=self.state.open_interest.short_amount,
        )

    # ---- validations ----

    def validate_pool_amount(self, is_long_token: bool) -> None:
        amount = self.state.liquidity.amount(is_long_token)
        cap = self.config.max_pool_amount(is_long_token)
        if amount > cap:
            raise ValidationError(f"max pool amount exceeded: {amount} > {cap}")

    def validate_pool_value_for_deposit(self, prices: Prices, is_long_token: bool) -> None:
        value = self.pool_value_for_side(prices, is_long_token, True)
        cap = self.config.max_pool_value_for_deposit(is_long_token)
        if value > cap:
            raise ValidationError(f"max pool value for deposit exceeded: {value} > {cap}")

    def validate_reserve(self, prices: Prices, is_long: bool) -> None:
        side_value = self.pool_value_for_side(prices, is_long, False)
        max_reserved = apply_factor(side_value, self.config.reserve_factor)
        reserved = self.reserved_value(prices, is_long)
        if reserved > max_reserved:
            raise ValidationError(f"insufficient reserve: reserved={reserved} > max={max_reserved}")

    def validate_max_pnl(self, prices: Prices, long_kind: PnlFactorKind, short_kind: PnlFactorKind) -> None:
        for is_long, kind in ((True, long_kind), (False, short_kind)):
            pnl = self.pnl(prices, is_long, True)
            if pnl <= 0:
                continue
            side_value = self.pool_value_for_side(prices, is_long, False)
            max_factor = self.config.pnl_factor(kind, is_long)
            if side_value == 0:
                raise ValidationError(f"pnl exceeded: positive pnl={pnl} with empty pool")
            factor = div_to_factor(pnl, side_value)
            if factor > max_factor:
                raise ValidationError(f"pnl exceeded: factor={factor} > max={max_factor}")

    def validate_liquidity_out(self, is_long_token: bool, amount: int) -> None:
        available = self.state.liquidity.amount(is_long_token)
        if amount > available:
            raise InsufficientLiquidity(amount, available, what=f"{self.market_token} liquidity pool")

    # ---- actions ----

    def swap(self, is_token_in_long: bool, amount_in: int, prices: Prices):
        from .actions import Swap
        return Swap(self, is_token_in_long, amount_in, prices)

    def deposit(self, long_token_amount: int, short_token_amount: int, prices: Prices):
        from .actions import Deposit
        return Deposit(self, long_token_amount, short_token_amount, prices)

    def withdraw(self, market_token_amount: int, prices: Prices):
        from .actions import Withdrawal
        return Withdrawal(self, market_token_amount, prices)

    def mint(self, amount: int) -> None:
        self.supply = checked_add(self.supply, amount, bound=U64_MAX, what="market token supply")

    def burn(self, amount: int) -> None:
        self.supply = checked_sub(self.supply, amount, what="market token supply")

    def usd_to_amount_divisor(self) -> int:
        return MARKET_USD_TO_AMOUNT_DIVISOR

    def __repr__(self) -> str:
        st = self.state
        return (
            f"MarketModel(market_token={self.market_token!r}, supply={self.supply}, "
            f"long={st.liquidity.long_amount}, short={st.liquidity.short_amount})"
        )


__all__ = [
    "PnlFactorKind",
    "SwapPricingKind",
    "MarketMeta",
    "MarketConfig",
    "Pool",
    "MarketState",
    "MarketStatus",
    "MarketModel",
]
