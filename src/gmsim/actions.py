"""Market actions: swap, deposit and withdrawal.

Each action is created from a MarketModel (`market.swap(...)`,
`market.deposit(...)`, `market.withdraw(...)`), validates its inputs on
construction and applies its effect on `execute()`, returning a report.
`execute()` is atomic per market: if a post-condition fails, the market
snapshot, supply and virtual inventory are restored before the error
propagates.

Alignment notes:
# - Swap: impact measured on the two pool sides moved by +in_value/-in_value
#   (mid prices). Fees are charged on the input before impact. Negative impact
#   is taken from the input into the swap impact pool; positive impact is
#   paid out of the swap impact pool in the output token.
# - Deposit: minted = usd_to_market_token_amount(value, pool value
#   (MaxAfterDeposit, maximize), supply, divisor), with the pool value read
#   before the deposit mutates the pool.
# - Withdrawal: outputs split by pool value (max prices) of each side, both
#   sides charged the negative-impact fee factor.
"""
from __future__ import annotations

import logging

from .core.amounts import (
    _ceil_div,
    _floor_div,
    checked_add,
    market_token_amount_to_usd,
    mul_div,
    to_u64,
    usd_to_market_token_amount,
)
from .core.constants import U64_MAX
from .core.datatypes import DepositReport, Fees, SwapReport, WithdrawReport
from .core.exc import (
    ComputationError,
    EmptyDeposit,
    EmptyWithdrawal,
    InvalidArgument,
    InvalidPoolValue,
)
from .core.price import Prices
from .market import MarketModel, PnlFactorKind
from .pricing import balance_impact_value, split_by_value, worse_impact

logger = logging.getLogger(__name__)


def _impact_value(market: MarketModel, prices: Prices, delta_long_value: int, delta_short_value: int) -> int:
    """Impact on the market pools, made worse by the virtual inventory if one is attached."""
    params = market.config.swap_impact_params()
    liquidity = market.state.liquidity
    long_mid = prices.long_token_price.mid()
    short_mid = prices.short_token_price.mid()
    impact = balance_impact_value(
        params,
        liquidity.long_amount * long_mid,
        liquidity.short_amount * short_mid,
        delta_long_value,
        delta_short_value,
    )
    vi = market.virtual_inventory_for_swaps()
    vi_impact = None
    if vi is not None:
        vi_impact = balance_impact_value(
            params,
            vi.long_amount * long_mid,
            vi.short_amount * short_mid,
            delta_long_value,
            delta_short_value,
        )
    return worse_impact(impact, vi_impact)


def _apply_vi_delta(market: MarketModel, is_long: bool, delta: int) -> None:
    vi = market.virtual_inventory_for_swaps()
    if vi is not None and delta != 0:
        vi.apply_delta(is_long, delta)


# ---------------------------------------------------------------------------
# Swap
# ---------------------------------------------------------------------------

class Swap:
    """Swap `amount_in` of one collateral token for the other."""

    def __init__(self, market: MarketModel, is_token_in_long: bool, amount_in: int, prices: Prices):
        if not market.meta.is_swappable():
            raise InvalidArgument(f"[swap] `{market.market_token}` is not a swappable market")
        to_u64(amount_in, "swap amount")
        prices.validate()
        self.market = market
        self.is_token_in_long = is_token_in_long
        self.amount_in = amount_in
        self.prices = prices

    def execute(self) -> SwapReport:
        market, prices = self.market, self.prices
        is_in_long = self.is_token_in_long
        is_out_long = not is_in_long
        price_in = prices.collateral_token_price(is_in_long)
        price_out = prices.collateral_token_price(is_out_long)

        in_value_mid = self.amount_in * price_in.mid()
        if is_in_long:
            impact = _impact_value(market, prices, in_value_mid, -in_value_mid)
        else:
            impact = _impact_value(market, prices, -in_value_mid, in_value_mid)

        amount_after_fees, fees = market.swap_fee_params().apply_fees(impact > 0, self.amount_in)

        negative_impact_amount = 0
        positive_impact_amount = 0
        if impact < 0:
            negative_impact_amount = _ceil_div(-impact, price_in.min)
            if negative_impact_amount > amount_after_fees:
                raise ComputationError(
                    f"[swap] price impact {negative_impact_amount} exceeds amount after fees {amount_after_fees}"
                )
            amount_after_fees -= negative_impact_amount
        elif impact > 0:
            positive_impact_amount = min(
                _floor_div(impact, price_out.max),
                market.state.swap_impact.amount(is_out_long),
            )

        out_from_pool = _floor_div(amount_after_fees * price_in.min, price_out.max)
        token_out_amount = checked_add(out_from_pool, positive_impact_amount, bound=U64_MAX,
                                       what="swap output")

        with market._atomic():
            market.validate_liquidity_out(is_out_long, out_from_pool)
            state = market.make_state_mut()
            state.liquidity.apply_delta(is_in_long, amount_after_fees + fees.fee_amount_for_pool,
                                        bound=U64_MAX, what="liquidity pool")
            state.liquidity.apply_delta(is_out_long, -out_from_pool, what="liquidity pool")
            state.claimable_fee.apply_delta(is_in_long, fees.fee_amount_for_receiver, bound=U64_MAX)
            state.swap_impact.apply_delta(is_in_long, negative_impact_amount, bound=U64_MAX)
            state.swap_impact.apply_delta(is_out_long, -positive_impact_amount)
            state.record_transferred_in(is_in_long, self.amount_in)
            state.record_transferred_out(is_out_long, token_out_amount)
            _apply_vi_delta(market, is_in_long, amount_after_fees + fees.fee_amount_for_pool)
            _apply_vi_delta(market, is_out_long, -out_from_pool)
            market.validate_pool_amount(is_in_long)
            market.validate_reserve(prices, is_out_long)

        logger.debug(
            "swap on %s: in=%s (long=%s) out=%s impact=%s",
            market.market_token, self.amount_in, is_in_long, token_out_amount, impact,
        )
        return SwapReport(
            market_token=market.market_token,
            is_token_in_long=is_in_long,
            token_in_amount=self.amount_in,
            token_out_amount=token_out_amount,
            price_impact_value=impact,
            price_impact_amount=positive_impact_amount if impact > 0 else negative_impact_amount,
            token_in_fees=fees,
            prices=prices,
        )


# ---------------------------------------------------------------------------
# Deposit
# ---------------------------------------------------------------------------

class Deposit:
    """Deposit long and/or short tokens and mint market tokens."""

    def __init__(self, market: MarketModel, long_token_amount: int, short_token_amount: int, prices: Prices):
        if long_token_amount == 0 and short_token_amount == 0:
            raise EmptyDeposit("empty deposit")
        to_u64(long_token_amount, "long token amount")
        to_u64(short_token_amount, "short token amount")
        prices.validate()
        self.market = market
        self.long_token_amount = long_token_amount
        self.short_token_amount = short_token_amount
        self.prices = prices

    def _leg(self, is_long: bool, amount: int, impact_share: int, fee_params) -> tuple[int, int, int, Fees]:
        """Return (pool_delta, value, impact_pool_delta, fees) of one deposit leg."""
        if amount == 0:
            return 0, 0, 0, Fees()
        price = self.prices.collateral_token_price(is_long)
        amount_after_fees, fees = fee_params.apply_fees(impact_share > 0, amount)
        value = amount_after_fees * price.min
        impact_pool_delta = 0
        if impact_share > 0:
            impact_amount = min(
                _floor_div(impact_share, price.max),
                self.market.state.swap_impact.amount(is_long),
            )
            impact_pool_delta = -impact_amount
            amount_after_fees += impact_amount
            value += impact_amount * price.max
        elif impact_share < 0:
            impact_amount = _ceil_div(-impact_share, price.min)
            if impact_amount > amount_after_fees:
                raise ComputationError(
                    f"deposit price impact {impact_amount} exceeds amount after fees {amount_after_fees}"
                )
            impact_pool_delta = impact_amount
            amount_after_fees -= impact_amount
            value = max(value + impact_share, 0)
        return amount_after_fees + fees.fee_amount_for_pool, value, impact_pool_delta, fees

    def execute(self) -> DepositReport:
        market, prices = self.market, self.prices
        long_value = self.long_token_amount * prices.long_token_price.mid()
        short_value = self.short_token_amount * prices.short_token_price.mid()
        impact = _impact_value(market, prices, long_value, short_value)
        long_share = split_by_value(impact, long_value, long_value + short_value)
        short_share = impact - long_share

        pool_value = market.pool_value(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)
        if pool_value < 0:
            raise InvalidPoolValue(f"deposit: current pool value is negative: {pool_value}")

        fee_params = market.swap_fee_params()
        long_leg = self._leg(True, self.long_token_amount, long_share, fee_params)
        short_leg = self._leg(False, self.short_token_amount, short_share, fee_params)
        value = long_leg[1] + short_leg[1]
        minted = usd_to_market_token_amount(value, pool_value, market.supply, market.usd_to_amount_divisor())
        minted = to_u64(minted, "minted market tokens")

        with market._atomic():
            state = market.make_state_mut()
            for is_long, amount, (pool_delta, _, impact_delta, fees) in (
                (True, self.long_token_amount, long_leg),
                (False, self.short_token_amount, short_leg),
            ):
                if amount == 0:
                    continue
                state.liquidity.apply_delta(is_long, pool_delta, bound=U64_MAX, what="liquidity pool")
                state.claimable_fee.apply_delta(is_long, fees.fee_amount_for_receiver, bound=U64_MAX)
                state.swap_impact.apply_delta(is_long, impact_delta, bound=U64_MAX)
                state.record_transferred_in(is_long, amount)
                _apply_vi_delta(market, is_long, pool_delta)
            market.mint(minted)
            for is_long, amount in ((True, self.long_token_amount), (False, self.short_token_amount)):
                if amount:
                    market.validate_pool_amount(is_long)
                    market.validate_pool_value_for_deposit(prices, is_long)
            market.validate_max_pnl(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, PnlFactorKind.MAX_AFTER_DEPOSIT)

        logger.debug(
            "deposit on %s: long=%s short=%s minted=%s impact=%s",
            market.market_token, self.long_token_amount, self.short_token_amount, minted, impact,
        )
        return DepositReport(
            market_token=market.market_token,
            long_token_amount=self.long_token_amount,
            short_token_amount=self.short_token_amount,
            minted=minted,
            price_impact_value=impact,
            long_token_fees=long_leg[3],
            short_token_fees=short_leg[3],
            prices=prices,
        )


# ---------------------------------------------------------------------------
# Withdrawal
# ---------------------------------------------------------------------------

class Withdrawal:
    """Burn market tokens for a pro-rata share of both pool sides."""

    def __init__(self, market: MarketModel, market_token_amount: int, prices: Prices):
        if market_token_amount == 0:
            raise EmptyWithdrawal("empty withdrawal")
        to_u64(market_token_amount, "market token amount")
        prices.validate()
        self.market = market
        self.market_token_amount = market_token_amount
        self.prices = prices

    def output_amounts(self) -> tuple[int, int]:
        market, prices = self.market, self.prices
        pool_value = market.pool_value(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, False)
        if pool_value < 0:
            raise InvalidPoolValue("withdrawal: current pool value is negative")
        if pool_value == 0:
            raise InvalidPoolValue("withdrawal: current pool value is zero")
        market_token_value = market_token_amount_to_usd(self.market_token_amount, pool_value, market.supply)

        long_pool_value = market.pool_value_for_side(prices, True, True)
        short_pool_value = market.pool_value_for_side(prices, False, True)
        total = long_pool_value + short_pool_value
        if total == 0:
            raise InvalidPoolValue("withdrawal: liquidity pool is empty")
        long_value = mul_div(market_token_value, long_pool_value, total)
        short_value = mul_div(market_token_value, short_pool_value, total)
        return (
            _floor_div(long_value, prices.long_token_price.max),
            _floor_div(short_value, prices.short_token_price.max),
        )

    def execute(self) -> WithdrawReport:
        market, prices = self.market, self.prices
        long_amount, short_amount = self.output_amounts()
        fee_params = market.swap_fee_params()
        long_output, long_fees = fee_params.apply_fees(False, long_amount)
        short_output, short_fees = fee_params.apply_fees(False, short_amount)

        with market._atomic():
            state = market.make_state_mut()
            for is_long, output, fees in ((True, long_output, long_fees), (False, short_output, short_fees)):
                taken = output + fees.fee_amount_for_receiver
                market.validate_liquidity_out(is_long, taken)
                state.liquidity.apply_delta(is_long, -taken, what="liquidity pool")
                state.claimable_fee.apply_delta(is_long, fees.fee_amount_for_receiver, bound=U64_MAX)
                state.record_transferred_out(is_long, output)
            market.burn(self.market_token_amount)
            market.validate_reserve(prices, True)
            market.validate_reserve(prices, False)
            market.validate_max_pnl(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, PnlFactorKind.MAX_AFTER_WITHDRAWAL)

        logger.debug(
            "withdraw from %s: burned=%s long_out=%s short_out=%s",
            market.market_token, self.market_token_amount, long_output, short_output,
        )
        return WithdrawReport(
            market_token=market.market_token,
            market_token_amount=self.market_token_amount,
            long_token_output=long_output,
            short_token_output=short_output,
            long_token_fees=long_fees,
            short_token_fees=short_fees,
            prices=prices,
        )


__all__ = ["Swap", "Deposit", "Withdrawal"]
