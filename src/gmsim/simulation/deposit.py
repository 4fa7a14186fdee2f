"""Deposit simulation: swap pay tokens into the pool tokens, then deposit."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.datatypes import DepositReport, SwapOutput
from ..core.exc import EmptyDeposit, InsufficientOutputAmount, InvalidSwapPath
from .options import SimulationOptions
from .params import CreateDepositParams
from .simulator import Simulator

logger = logging.getLogger(__name__)


@dataclass
class DepositSimulationOutput:
    long_swap: SwapOutput
    short_swap: SwapOutput
    report: DepositReport

    @property
    def minted(self) -> int:
        return self.report.minted


@dataclass
class DepositSimulation:
    """Deposit into `market_token`.

    Pay tokens default to the market's long / short token; swap paths
    default to empty.
    """
    simulator: Simulator
    market_token: str
    params: CreateDepositParams
    long_pay_token: Optional[str] = None
    long_swap_path: Sequence[str] = field(default_factory=tuple)
    short_pay_token: Optional[str] = None
    short_swap_path: Sequence[str] = field(default_factory=tuple)

    def _swap_in(self, path, pay_token, pool_token, amount, side, options) -> SwapOutput:
        if amount == 0:
            return SwapOutput(pool_token, 0)
        out = self.simulator.swap_along_path(path, pay_token or pool_token, amount, options)
        if out.output_token != pool_token:
            raise InvalidSwapPath(f"[sim] invalid {side} swap path")
        return out

    def execute(self, options: Optional[SimulationOptions] = None) -> DepositSimulationOutput:
        options = options or SimulationOptions()
        params = self.params
        if params.initial_long_token_amount == 0 and params.initial_short_token_amount == 0:
            raise EmptyDeposit()

        sim = self.simulator
        market, _ = sim.get_market_with_prices(self.market_token)
        meta = market.meta
        long_swap = self._swap_in(
            self.long_swap_path, self.long_pay_token, meta.long_token,
            params.initial_long_token_amount, "long", options,
        )
        short_swap = self._swap_in(
            self.short_swap_path, self.short_pay_token, meta.short_token,
            params.initial_short_token_amount, "short", options,
        )

        # Prices are read again: the swap paths may have touched this market.
        market, prices = sim.get_market_with_prices(self.market_token)
        with sim.vi_context(market, options.disable_vis):
            report = market.deposit(long_swap.amount, short_swap.amount, prices).execute()

        if report.minted < params.min_market_token_amount:
            raise InsufficientOutputAmount(report.minted, params.min_market_token_amount)
        logger.debug("deposit into %s minted %s", self.market_token, report.minted)
        return DepositSimulationOutput(long_swap, short_swap, report)


__all__ = ["DepositSimulation", "DepositSimulationOutput"]
