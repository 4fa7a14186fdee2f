"""Order simulation: increase, decrease and swap orders.

Increase: swap the pay token into the collateral token, then increase the
position. Decrease: decrease the position, then swap the output into the
receive token. Swap: a plain multi-hop swap, with a min-output check for
limit swaps.

Limit and stop orders check the current index price against the trigger
price unless `SimulationOptions.skip_limit_price_validation` is set.
`update_prices()` rewrites the simulator's prices so that a limit order
would execute.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.amounts import _ceil_div, mul_div
from ..core.constants import DEFAULT_LIMIT_SWAP_SLIPPAGE, MARKET_USD_UNIT
from ..core.datatypes import DecreasePositionReport, IncreasePositionReport, SwapOutput
from ..core.exc import (
    InsufficientOutputAmount,
    InvalidArgument,
    InvalidSwapPath,
    TriggerPriceRequired,
    ValidationError,
)
from ..core.price import Price, Prices
from ..position import DecreasePositionFlags, PositionModel
from .options import SimulationOptions, UpdatePriceOptions
from .params import CreateOrderParams, OrderKind
from .simulator import Simulator

logger = logging.getLogger(__name__)


@dataclass
class IncreaseOrderOutput:
    swap: SwapOutput
    report: IncreasePositionReport
    position: PositionModel


@dataclass
class DecreaseOrderOutput:
    report: DecreasePositionReport
    swap: SwapOutput
    position: PositionModel


@dataclass
class SwapOrderOutput:
    swap: SwapOutput

    @property
    def output_amount(self) -> int:
        return self.swap.amount


@dataclass
class OrderSimulation:
    """Simulate an order of `kind`.

    `collateral_or_swap_out_token` is the position's collateral token for
    increase/decrease orders and the final output token for swap orders.
    `pay_token` (increase/swap) defaults to it; `receive_token` (decrease)
    defaults to it as well. `position` is required for decrease orders.
    """
    simulator: Simulator
    kind: OrderKind
    params: CreateOrderParams
    collateral_or_swap_out_token: str
    pay_token: Optional[str] = None
    receive_token: Optional[str] = None
    swap_path: Sequence[str] = field(default_factory=tuple)
    position: Optional[PositionModel] = None

    # ---- price rewriting ----

    def update_prices(self, options: Optional[UpdatePriceOptions] = None) -> "OrderSimulation":
        """Rewrite simulator prices so that this order's limit condition holds."""
        options = options or UpdatePriceOptions()
        sim = self.simulator
        params = self.params
        kind = self.kind
        if kind in (OrderKind.LIMIT_INCREASE, OrderKind.LIMIT_DECREASE, OrderKind.STOP_LOSS_DECREASE):
            trigger_price = self._trigger_price()
            market, _ = sim.get_market_with_prices(params.market_token)
            sim.insert_price(market.meta.index_token, Price.fixed(trigger_price))
        elif kind is OrderKind.LIMIT_SWAP:
            slippage = options.limit_swap_slippage
            if slippage is None:
                slippage = DEFAULT_LIMIT_SWAP_SLIPPAGE
            if params.amount == 0 or params.min_output == 0:
                raise InvalidArgument("[sim] limit swap requires non-zero amount and min_output")
            swap_in = self.pay_token or self.collateral_or_swap_out_token
            swap_out = self.collateral_or_swap_out_token
            if options.prefer_swap_in_token_update:
                out_price = self._require_price(swap_out)
                price = _ceil_div(params.min_output * out_price.max, params.amount)
                price = mul_div(price, MARKET_USD_UNIT + slippage, MARKET_USD_UNIT)
                sim.insert_price(swap_in, Price.fixed(price))
            else:
                in_price = self._require_price(swap_in)
                price = _ceil_div(params.amount * in_price.min, params.min_output)
                price = mul_div(price, MARKET_USD_UNIT - slippage, MARKET_USD_UNIT)
                sim.insert_price(swap_out, Price.fixed(price))
        return self

    def _require_price(self, token: str) -> Price:
        price = self.simulator.get_price(token)
        if price is None:
            raise InvalidArgument(f"[sim] price for {token} is not ready")
        return price

    def _trigger_price(self) -> int:
        if self.params.trigger_price is None:
            raise TriggerPriceRequired()
        return self.params.trigger_price

    def _validate_trigger(self, prices: Prices, options: SimulationOptions) -> None:
        kind = self.kind
        if options.skip_limit_price_validation:
            return
        if kind not in (OrderKind.LIMIT_INCREASE, OrderKind.LIMIT_DECREASE, OrderKind.STOP_LOSS_DECREASE):
            return
        trigger = self._trigger_price()
        index = prices.index_token_price
        is_long = self.params.is_long
        if kind is OrderKind.LIMIT_INCREASE:
            ok = index.max <= trigger if is_long else index.min >= trigger
        elif kind is OrderKind.LIMIT_DECREASE:
            ok = index.min >= trigger if is_long else index.max <= trigger
        else:
            ok = index.min <= trigger if is_long else index.max >= trigger
        if not ok:
            raise ValidationError(
                f"[sim] trigger price {trigger} not reached by index price {index.min}..{index.max}"
            )

    # ---- execution ----

    def execute(self, options: Optional[SimulationOptions] = None):
        options = options or SimulationOptions()
        if self.kind.is_increase():
            return self._increase(options)
        if self.kind.is_decrease():
            return self._decrease(options)
        return self._swap(options)

    def _increase(self, options: SimulationOptions) -> IncreaseOrderOutput:
        sim = self.simulator
        params = self.params
        collateral_token = self.collateral_or_swap_out_token
        _, prices = sim.get_market_with_prices(params.market_token)
        self._validate_trigger(prices, options)

        swap = sim.swap_along_path(
            self.swap_path, self.pay_token or collateral_token, params.amount, options
        )
        if swap.output_token != collateral_token:
            raise InvalidSwapPath("[sim] collateral token mismatched")

        market, prices = sim.get_market_with_prices(params.market_token)
        if self.position is not None:
            position = self._check_position(self.position.copy())
            position.set_market_model(market)
        else:
            position = PositionModel.empty(market.copy(), params.is_long, collateral_token)
        report = position.increase(prices, swap.amount, params.size, params.acceptable_price)
        sim.insert_market(position.market_model)
        logger.debug("increase order on %s: size=%s collateral=%s", params.market_token, params.size, swap.amount)
        return IncreaseOrderOutput(swap, report, position)

    def _decrease(self, options: SimulationOptions) -> DecreaseOrderOutput:
        sim = self.simulator
        params = self.params
        if self.position is None:
            raise InvalidArgument("[sim] position must be provided for decrease order")
        collateral_token = self.collateral_or_swap_out_token
        market, prices = sim.get_market_with_prices(params.market_token)
        self._validate_trigger(prices, options)

        position = self._check_position(self.position.copy())
        position.set_market_model(market)
        report = position.decrease(
            prices, params.size, params.acceptable_price, params.amount, DecreasePositionFlags()
        )
        sim.insert_market(position.market_model)

        receive_token = self.receive_token or collateral_token
        if report.output_amount > 0:
            swap = sim.swap_along_path(self.swap_path, collateral_token, report.output_amount, options)
            if swap.output_token != receive_token:
                raise InvalidSwapPath("[sim] invalid swap path")
        else:
            swap = SwapOutput(receive_token, 0)
        # The swap path may have run through this market.
        position.set_market_model(sim.get_market(params.market_token))
        logger.debug("decrease order on %s: size=%s output=%s", params.market_token, params.size, swap.amount)
        return DecreaseOrderOutput(report, swap, position)

    def _swap(self, options: SimulationOptions) -> SwapOrderOutput:
        sim = self.simulator
        params = self.params
        swap_out_token = self.collateral_or_swap_out_token
        swap = sim.swap_along_path(
            self.swap_path, self.pay_token or swap_out_token, params.amount, options
        )
        if swap.output_token != swap_out_token:
            raise InvalidSwapPath("[sim] invalid swap path")
        if (
            self.kind is OrderKind.LIMIT_SWAP
            and not options.skip_limit_price_validation
            and swap.amount < params.min_output
        ):
            raise InsufficientOutputAmount(
                swap.amount,
                params.min_output,
                msg=(
                    f"[sim] the limit swap output is too low, {swap.amount} < "
                    f"min_output = {params.min_output}. Has the limit price been reached?"
                ),
            )
        return SwapOrderOutput(swap)

    def _check_position(self, position: PositionModel) -> PositionModel:
        pos = position.position
        if pos.market_token != self.params.market_token or pos.is_long != self.params.is_long:
            raise InvalidArgument("[sim] position does not match the order")
        if pos.collateral_token != self.collateral_or_swap_out_token:
            raise InvalidArgument("[sim] collateral token mismatched")
        return position


__all__ = [
    "OrderSimulation",
    "IncreaseOrderOutput",
    "DecreaseOrderOutput",
    "SwapOrderOutput",
]
