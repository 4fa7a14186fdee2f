"""Position model: a trader position evaluated against a market model.

Covers what the order simulation needs: status (PnL, fees, leverage,
liquidation price), increase and decrease. PnL and collateral are settled in
the position's collateral token. Funding fees are not modelled.

Alignment notes:
# - Increase uses the max index price for longs and the min for shorts;
#   decrease the opposite (the side worse for the trader).
# - Position price impact is measured on the open-interest imbalance and
#   settled against the position impact pool (index tokens).
# - Order fees use the order fee factor picked by the impact sign; borrowing
#   fees accrue as size * (cumulative factor - position factor).
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional

from .core.amounts import (
    _ceil_div,
    _floor_div,
    apply_factor,
    checked_add,
    checked_sub,
    div_to_factor,
    mul_div,
    to_u64,
)
from .core.constants import U64_MAX
from .core.cow import Shared
from .core.datatypes import DecreasePositionReport, Fees, IncreasePositionReport
from .core.exc import InvalidArgument, ValidationError
from .core.price import Prices
from .market import MarketModel
from .pricing import balance_impact_value

logger = logging.getLogger(__name__)


@dataclass
class PositionState:
    """Decoded position snapshot."""

    owner: str
    market_token: str
    collateral_token: str
    is_long: bool
    size_in_usd: int = 0
    size_in_tokens: int = 0
    collateral_amount: int = 0
    borrowing_factor: int = 0


@dataclass(frozen=True)
class DecreasePositionFlags:
    is_insolvent_close_allowed: bool = False
    is_liquidation_order: bool = False
    is_cap_size_delta_usd_allowed: bool = False


@dataclass(frozen=True)
class PositionStatus:
    entry_price: Optional[int]
    collateral_value: int
    pending_pnl: int
    pending_borrowing_fee_value: int
    close_order_fee_value: int
    net_value: int
    leverage: Optional[int]
    liquidation_price: Optional[int]


class PositionModel:
    """Position snapshot (copy-on-write) bound to a market model."""

    def __init__(self, market: MarketModel, position: PositionState | Shared):
        self._position: Shared = position if isinstance(position, Shared) else Shared(position)
        pos = self.position
        if pos.market_token != market.market_token:
            raise InvalidArgument(
                f"position market `{pos.market_token}` does not match `{market.market_token}`"
            )
        market.meta.token_side(pos.collateral_token)
        self._market = market

    @classmethod
    def empty(cls, market: MarketModel, is_long: bool, collateral_token: str, owner: str = "") -> "PositionModel":
        """A zero-sized position, used for the first increase."""
        state = PositionState(
            owner=owner,
            market_token=market.market_token,
            collateral_token=collateral_token,
            is_long=is_long,
            borrowing_factor=market.state.cumulative_borrowing_factor.amount(is_long),
        )
        return cls(market, state)

    @property
    def position(self) -> PositionState:
        return self._position.get()

    @property
    def market_model(self) -> MarketModel:
        return self._market

    def set_market_model(self, market: MarketModel) -> None:
        self._market = market.copy()

    @property
    def is_long(self) -> bool:
        return self.position.is_long

    @property
    def is_collateral_long(self) -> bool:
        return self._market.meta.token_side(self.position.collateral_token)

    def copy(self) -> "PositionModel":
        return PositionModel(self._market.copy(), self._position.clone())

    # ---- figures ----

    def _pick_pnl_price(self, prices: Prices, maximize: bool) -> int:
        index = prices.index_token_price
        return index.pick_price(maximize if self.is_long else not maximize)

    def pnl_value(self, prices: Prices, maximize: bool = False) -> int:
        pos = self.position
        value = pos.size_in_tokens * self._pick_pnl_price(prices, maximize)
        if self.is_long:
            return value - pos.size_in_usd
        return pos.size_in_usd - value

    def pending_borrowing_fee_value(self) -> int:
        pos = self.position
        current = self._market.state.cumulative_borrowing_factor.amount(self.is_long)
        if current <= pos.borrowing_factor:
            return 0
        return apply_factor(pos.size_in_usd, current - pos.borrowing_factor, round_up=True)

    def collateral_value(self, prices: Prices) -> int:
        price = prices.collateral_token_price(self.is_collateral_long)
        return self.position.collateral_amount * price.min

    def min_collateral_value(self, size_in_usd: int) -> int:
        cfg = self._market.config
        return max(cfg.min_collateral_value, apply_factor(size_in_usd, cfg.min_collateral_factor))

    def status(self, prices: Prices) -> PositionStatus:
        pos = self.position
        collateral_value = self.collateral_value(prices)
        pnl = self.pnl_value(prices, False)
        borrowing = self.pending_borrowing_fee_value()
        close_fee = apply_factor(pos.size_in_usd, self._market.config.order_fee_factor_for_negative_impact)
        net_value = max(collateral_value + pnl - borrowing - close_fee, 0)
        entry_price = None
        if pos.size_in_tokens:
            entry_price = _floor_div(pos.size_in_usd, pos.size_in_tokens)
        leverage = None
        if pos.size_in_usd and net_value:
            leverage = div_to_factor(pos.size_in_usd, net_value)
        return PositionStatus(
            entry_price=entry_price,
            collateral_value=collateral_value,
            pending_pnl=pnl,
            pending_borrowing_fee_value=borrowing,
            close_order_fee_value=close_fee,
            net_value=net_value,
            leverage=leverage,
            liquidation_price=self._liquidation_price(collateral_value, borrowing + close_fee),
        )

    def _liquidation_price(self, collateral_value: int, fees_value: int) -> Optional[int]:
        pos = self.position
        if pos.size_in_tokens == 0:
            return None
        min_collateral = self.min_collateral_value(pos.size_in_usd)
        if self.is_long:
            num = min_collateral + pos.size_in_usd + fees_value - collateral_value
        else:
            num = collateral_value + pos.size_in_usd - fees_value - min_collateral
        if num <= 0:
            return None
        return _floor_div(num, pos.size_in_tokens)

    def _impact_value(self, prices: Prices, size_delta_usd: int) -> int:
        """Signed impact of moving this side's open interest by `size_delta_usd`."""
        st = self._market.state
        long_oi = st.open_interest.long_amount
        short_oi = st.open_interest.short_amount
        params = self._market.config.position_impact_params()
        if self.is_long:
            impact = balance_impact_value(params, long_oi, short_oi, size_delta_usd, 0)
        else:
            impact = balance_impact_value(params, long_oi, short_oi, 0, size_delta_usd)
        if impact > 0:
            # Positive impact is bounded by what the impact pool holds.
            cap = st.position_impact_amount * prices.index_token_price.min
            impact = min(impact, cap)
        return impact

    @contextmanager
    def _atomic(self) -> Iterator[PositionState]:
        """Yield a private mutable position; restore position and market if the body raises."""
        saved = self._position.clone()
        try:
            with self._market._atomic():
                yield self._position.make_mut()
        except Exception:
            self._position = saved
            raise
        saved.drop()

    def _fee_amount(self, value: int, prices: Prices) -> int:
        price = prices.collateral_token_price(self.is_collateral_long)
        return _ceil_div(value, price.min)

    # ---- increase ----

    def increase(self, prices: Prices, collateral_increment: int, size_delta_usd: int,
                 acceptable_price: Optional[int] = None) -> IncreasePositionReport:
        prices.validate()
        to_u64(collateral_increment, "collateral increment")
        if collateral_increment == 0 and size_delta_usd == 0:
            raise InvalidArgument("empty position increase")

        market = self._market
        pos = self.position
        is_long = self.is_long
        index = prices.index_token_price

        impact = self._impact_value(prices, size_delta_usd)
        price = index.max if is_long else index.min
        size_delta_in_tokens = 0
        execution_price = price
        impact_amount = 0
        if size_delta_usd:
            impact_amount = _impact_to_tokens(impact, price, price)
            if is_long:
                base = _floor_div(size_delta_usd, price)
                size_delta_in_tokens = base + impact_amount
            else:
                base = _ceil_div(size_delta_usd, price)
                size_delta_in_tokens = base - impact_amount
            if size_delta_in_tokens <= 0:
                raise ValidationError("position increase yields no size in tokens")
            execution_price = _floor_div(size_delta_usd, size_delta_in_tokens)
            if acceptable_price is not None:
                if is_long and execution_price > acceptable_price:
                    raise ValidationError(
                        f"execution price {execution_price} > acceptable price {acceptable_price}"
                    )
                if not is_long and execution_price < acceptable_price:
                    raise ValidationError(
                        f"execution price {execution_price} < acceptable price {acceptable_price}"
                    )

        fee_value = apply_factor(size_delta_usd, market.config.order_fee_params().fee_factor(impact > 0))
        fee_amount = self._fee_amount(fee_value, prices)
        fee_for_receiver = apply_factor(fee_amount, market.config.order_fee_receiver_factor)
        borrowing_value = self.pending_borrowing_fee_value()
        borrowing_amount = self._fee_amount(borrowing_value, prices)
        borrowing_for_receiver = apply_factor(borrowing_amount, market.config.borrowing_fee_receiver_factor)

        gross = pos.collateral_amount + collateral_increment
        total_fee_amount = fee_amount + borrowing_amount
        if total_fee_amount > gross:
            raise ValidationError(f"insufficient collateral for fees: {gross} < {total_fee_amount}")
        next_collateral = to_u64(gross - total_fee_amount, "collateral amount")
        is_collateral_long = self.is_collateral_long

        with self._atomic() as new_pos:
            state = market.make_state_mut()
            state.open_interest.apply_delta(is_long, size_delta_usd, what="open interest")
            state.open_interest_in_tokens.apply_delta(is_long, size_delta_in_tokens, what="open interest in tokens")
            state.collateral_sum.apply_delta(is_collateral_long, next_collateral - pos.collateral_amount)
            state.liquidity.apply_delta(
                is_collateral_long,
                fee_amount - fee_for_receiver + borrowing_amount - borrowing_for_receiver,
                bound=U64_MAX,
            )
            state.claimable_fee.apply_delta(is_collateral_long, fee_for_receiver + borrowing_for_receiver)
            _settle_borrowing(state, is_long, borrowing_value)
            if impact_amount:
                state.position_impact_amount = checked_sub(
                    checked_add(state.position_impact_amount, max(-impact_amount, 0)),
                    max(impact_amount, 0),
                    what="position impact pool",
                )
            state.record_transferred_in(is_collateral_long, collateral_increment)
            new_pos.collateral_amount = next_collateral
            new_pos.size_in_usd = checked_add(pos.size_in_usd, size_delta_usd)
            new_pos.size_in_tokens = checked_add(pos.size_in_tokens, size_delta_in_tokens)
            new_pos.borrowing_factor = state.cumulative_borrowing_factor.amount(is_long)
            self._validate_after_increase(prices)

        logger.debug(
            "increase %s position on %s: size_delta=%s tokens_delta=%s impact=%s",
            "long" if is_long else "short", market.market_token, size_delta_usd, size_delta_in_tokens, impact,
        )
        return IncreasePositionReport(
            market_token=market.market_token,
            is_long=is_long,
            collateral_increment=collateral_increment,
            size_delta_usd=size_delta_usd,
            size_delta_in_tokens=size_delta_in_tokens,
            execution_price=execution_price,
            price_impact_value=impact,
            order_fees=Fees(fee_for_receiver, fee_amount - fee_for_receiver),
            borrowing_fee_value=borrowing_value,
            prices=prices,
        )

    def _validate_after_increase(self, prices: Prices) -> None:
        market = self._market
        is_long = self.is_long
        oi = market.state.open_interest.amount(is_long)
        cap = market.config.max_open_interest(is_long)
        if oi > cap:
            raise ValidationError(f"max open interest exceeded: {oi} > {cap}")
        market.validate_reserve(prices, is_long)
        self._validate_collateral(prices)

    def _validate_collateral(self, prices: Prices) -> None:
        pos = self.position
        if pos.size_in_usd == 0:
            return
        collateral_value = self.collateral_value(prices)
        pnl = min(self.pnl_value(prices, False), 0)
        remaining = collateral_value + pnl
        required = self.min_collateral_value(pos.size_in_usd)
        if remaining < required:
            raise ValidationError(
                f"insufficient collateral: remaining value {remaining} < required {required}"
            )

    # ---- decrease ----

    def decrease(self, prices: Prices, size_delta_usd: int, acceptable_price: Optional[int] = None,
                 collateral_withdrawal_amount: int = 0,
                 flags: DecreasePositionFlags | None = None) -> DecreasePositionReport:
        prices.validate()
        flags = flags or DecreasePositionFlags()
        market = self._market
        pos = self.position
        is_long = self.is_long
        if pos.size_in_usd == 0:
            raise InvalidArgument("cannot decrease an empty position")
        if size_delta_usd > pos.size_in_usd:
            if not flags.is_cap_size_delta_usd_allowed:
                raise InvalidArgument(
                    f"size delta {size_delta_usd} exceeds position size {pos.size_in_usd}"
                )
            size_delta_usd = pos.size_in_usd
        is_full_close = size_delta_usd == pos.size_in_usd
        if is_full_close:
            size_delta_in_tokens = pos.size_in_tokens
        else:
            size_delta_in_tokens = mul_div(pos.size_in_tokens, size_delta_usd, pos.size_in_usd, round_up=is_long)

        index = prices.index_token_price
        price = index.min if is_long else index.max
        impact = self._impact_value(prices, -size_delta_usd) if size_delta_usd else 0
        execution_price = price
        if size_delta_usd:
            adjusted = size_delta_usd + impact if is_long else size_delta_usd - impact
            execution_price = mul_div(price, max(adjusted, 0), size_delta_usd)
            if acceptable_price is not None and not flags.is_liquidation_order:
                if is_long and execution_price < acceptable_price:
                    raise ValidationError(
                        f"execution price {execution_price} < acceptable price {acceptable_price}"
                    )
                if not is_long and execution_price > acceptable_price:
                    raise ValidationError(
                        f"execution price {execution_price} > acceptable price {acceptable_price}"
                    )

        if is_long:
            total_pnl = pos.size_in_tokens * price - pos.size_in_usd
        else:
            total_pnl = pos.size_in_usd - pos.size_in_tokens * price
        if pos.size_in_tokens:
            mag = abs(total_pnl) * size_delta_in_tokens // pos.size_in_tokens
            realized_pnl = mag if total_pnl >= 0 else -mag
        else:
            realized_pnl = 0
        pnl_value = realized_pnl + impact

        collateral_price = prices.collateral_token_price(self.is_collateral_long)
        if pnl_value >= 0:
            pnl_amount = _floor_div(pnl_value, collateral_price.max)
        else:
            pnl_amount = -_ceil_div(-pnl_value, collateral_price.min)

        fee_value = apply_factor(size_delta_usd, market.config.order_fee_params().fee_factor(impact > 0))
        fee_amount = self._fee_amount(fee_value, prices)
        fee_for_receiver = apply_factor(fee_amount, market.config.order_fee_receiver_factor)
        borrowing_value = self.pending_borrowing_fee_value()
        borrowing_amount = self._fee_amount(borrowing_value, prices)
        borrowing_for_receiver = apply_factor(borrowing_amount, market.config.borrowing_fee_receiver_factor)

        remaining = pos.collateral_amount - fee_amount - borrowing_amount + min(pnl_amount, 0)
        profit = max(pnl_amount, 0)
        insolvent_close_value = None
        if remaining < 0:
            profit += remaining
            remaining = 0
            if profit < 0:
                if not (flags.is_insolvent_close_allowed and is_full_close):
                    raise ValidationError(f"insolvent position: shortfall of {-profit} collateral tokens")
                insolvent_close_value = -profit * collateral_price.min
                profit = 0

        if is_full_close:
            withdrawn = remaining
        else:
            withdrawn = min(collateral_withdrawal_amount, remaining)
        output_amount = to_u64(profit + withdrawn, "decrease output")
        next_collateral = remaining - withdrawn if not is_full_close else 0
        is_collateral_long = self.is_collateral_long
        # Net flow of collateral tokens between the position and the liquidity pool.
        pool_delta = (pos.collateral_amount - next_collateral - output_amount) - fee_for_receiver - borrowing_for_receiver

        with self._atomic() as new_pos:
            state = market.make_state_mut()
            state.open_interest.apply_delta(is_long, -size_delta_usd, what="open interest")
            state.open_interest_in_tokens.apply_delta(is_long, -size_delta_in_tokens, what="open interest in tokens")
            state.collateral_sum.apply_delta(is_collateral_long, next_collateral - pos.collateral_amount,
                                             what="collateral sum")
            if pool_delta < 0:
                market.validate_liquidity_out(is_collateral_long, -pool_delta)
            state.liquidity.apply_delta(is_collateral_long, pool_delta, bound=U64_MAX, what="liquidity pool")
            state.claimable_fee.apply_delta(is_collateral_long, fee_for_receiver + borrowing_for_receiver)
            _settle_borrowing(state, is_long, borrowing_value)
            impact_amount = _impact_to_tokens(impact, index.min, index.max)
            state.position_impact_amount = max(state.position_impact_amount - impact_amount, 0)
            state.record_transferred_out(is_collateral_long, output_amount)
            new_pos.size_in_usd = pos.size_in_usd - size_delta_usd
            new_pos.size_in_tokens = pos.size_in_tokens - size_delta_in_tokens
            new_pos.collateral_amount = next_collateral
            new_pos.borrowing_factor = state.cumulative_borrowing_factor.amount(is_long)
            if not is_full_close:
                self._validate_collateral(prices)

        logger.debug(
            "decrease %s position on %s: size_delta=%s pnl=%s output=%s full_close=%s",
            "long" if is_long else "short", market.market_token, size_delta_usd, pnl_value,
            output_amount, is_full_close,
        )
        return DecreasePositionReport(
            market_token=market.market_token,
            is_long=is_long,
            size_delta_usd=size_delta_usd,
            size_delta_in_tokens=size_delta_in_tokens,
            execution_price=execution_price,
            price_impact_value=impact,
            realized_pnl=realized_pnl,
            order_fees=Fees(fee_for_receiver, fee_amount - fee_for_receiver),
            borrowing_fee_value=borrowing_value,
            output_amount=output_amount,
            collateral_withdrawal_amount=withdrawn,
            is_full_close=is_full_close,
            prices=prices,
            insolvent_close_value=insolvent_close_value,
        )

    def __repr__(self) -> str:
        pos = self.position
        return (
            f"PositionModel(market_token={pos.market_token!r}, is_long={pos.is_long}, "
            f"size_in_usd={pos.size_in_usd}, collateral={pos.collateral_amount})"
        )


def _impact_to_tokens(impact: int, price_for_positive: int, price_for_negative: int) -> int:
    """Signed impact value -> signed index-token amount (rounded against the trader)."""
    if impact > 0:
        return _floor_div(impact, price_for_positive)
    if impact < 0:
        return -_ceil_div(-impact, price_for_negative)
    return 0


def _settle_borrowing(state, is_long: bool, value: int) -> None:
    """Move realized borrowing fees out of the pending total (saturating)."""
    pending = state.total_borrowing_fees.amount(is_long)
    state.total_borrowing_fees.apply_delta(is_long, -min(pending, value))


__all__ = [
    "PositionState",
    "PositionStatus",
    "DecreasePositionFlags",
    "PositionModel",
]
