"""Shift simulation: move liquidity between two markets with the same collateral pair."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.datatypes import DepositReport, WithdrawReport
from ..core.exc import EmptyShift, InsufficientOutputAmount, ShiftImpossible
from ..market import SwapPricingKind
from .options import SimulationOptions
from .params import CreateShiftParams
from .simulator import Simulator

logger = logging.getLogger(__name__)


@dataclass
class ShiftSimulationOutput:
    withdraw: WithdrawReport
    deposit: DepositReport

    @property
    def to_market_token_amount(self) -> int:
        return self.deposit.minted


@dataclass
class ShiftSimulation:
    """Withdraw from `from_market_token` and deposit the outputs into `to_market_token`.

    Both legs are priced with the Shift swap pricing kind (no impact fees).
    """
    simulator: Simulator
    from_market_token: str
    to_market_token: str
    params: CreateShiftParams

    def execute(self, options: Optional[SimulationOptions] = None) -> ShiftSimulationOutput:
        options = options or SimulationOptions()
        params = self.params
        if params.from_market_token_amount == 0:
            raise EmptyShift()

        sim = self.simulator
        from_market, from_prices = sim.get_market_with_prices(self.from_market_token)
        to_market, _ = sim.get_market_with_prices(self.to_market_token)
        src, dst = from_market.meta, to_market.meta
        if src.long_token != dst.long_token or src.short_token != dst.short_token:
            raise ShiftImpossible(self.from_market_token, self.to_market_token)

        with from_market.with_swap_pricing(SwapPricingKind.SHIFT):
            withdraw = from_market.withdraw(params.from_market_token_amount, from_prices).execute()
        if withdraw.long_token_output == 0 and withdraw.short_token_output == 0:
            raise EmptyShift("[sim] shift cannot be completed due to empty withdrawal output")

        to_market, to_prices = sim.get_market_with_prices(self.to_market_token)
        with to_market.with_swap_pricing(SwapPricingKind.SHIFT), sim.vi_context(to_market, options.disable_vis):
            deposit = to_market.deposit(
                withdraw.long_token_output, withdraw.short_token_output, to_prices
            ).execute()

        if deposit.minted < params.min_to_market_token_amount:
            raise InsufficientOutputAmount(deposit.minted, params.min_to_market_token_amount)
        logger.debug(
            "shift %s -> %s: burned %s, minted %s",
            self.from_market_token, self.to_market_token,
            params.from_market_token_amount, deposit.minted,
        )
        return ShiftSimulationOutput(withdraw, deposit)


__all__ = ["ShiftSimulation", "ShiftSimulationOutput"]
