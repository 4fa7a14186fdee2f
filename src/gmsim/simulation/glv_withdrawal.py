"""GLV withdrawal simulation.

GLV tokens are valued at the current (minimized) GLV value, converted into
market tokens of one member market, removed from the GLV and withdrawn
from that market; the outputs are then swapped like a plain withdrawal,
except that the output swaps always ignore virtual inventories.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Optional, Sequence

from ..core.amounts import market_token_amount_to_usd
from ..core.datatypes import SwapOutput, WithdrawReport
from ..core.exc import ComputationError, EmptyGlvWithdrawal
from ..glv import get_market_token_amount_for_glv_value
from .options import SimulationOptions
from .params import CreateGlvWithdrawalParams
from .simulator import Simulator
from .withdrawal import swap_withdrawal_outputs

logger = logging.getLogger(__name__)


@dataclass
class GlvWithdrawalSimulationOutput:
    glv_value: int
    withdrawn_value: int
    market_token_amount: int
    report: WithdrawReport
    long_swap: SwapOutput
    short_swap: SwapOutput


@dataclass
class GlvWithdrawalSimulation:
    simulator: Simulator
    glv_token: str
    market_token: str
    params: CreateGlvWithdrawalParams
    long_receive_token: Optional[str] = None
    long_swap_path: Sequence[str] = field(default_factory=tuple)
    short_receive_token: Optional[str] = None
    short_swap_path: Sequence[str] = field(default_factory=tuple)

    def execute(self, options: Optional[SimulationOptions] = None) -> GlvWithdrawalSimulationOutput:
        options = options or SimulationOptions()
        sim = self.simulator
        params = self.params
        if params.glv_token_amount == 0:
            raise EmptyGlvWithdrawal()

        glv = sim.require_glv_model(self.glv_token)
        glv.market_config(self.market_token)
        glv_value = sim.get_glv_value(self.glv_token, False)
        try:
            value = market_token_amount_to_usd(params.glv_token_amount, glv_value, glv.supply)
        except ComputationError as e:
            raise ComputationError(
                f"[sim] failed to calculate market token value for GLV withdrawal ({e})"
            ) from e

        market, prices = sim.get_market_with_prices(self.market_token)
        market_token_amount = get_market_token_amount_for_glv_value(
            prices, market, value, True, market.usd_to_amount_divisor()
        )
        glv.withdraw_from_glv(self.market_token, market_token_amount, params.glv_token_amount)
        report = market.withdraw(market_token_amount, prices).execute()

        long_swap, short_swap = swap_withdrawal_outputs(
            sim, market.meta, report,
            self.long_swap_path, self.long_receive_token,
            self.short_swap_path, self.short_receive_token,
            params.min_final_long_token_amount, params.min_final_short_token_amount,
            replace(options, disable_vis=True),
        )
        logger.debug(
            "GLV withdrawal from %s via %s: glv tokens=%s market tokens=%s",
            self.glv_token, self.market_token, params.glv_token_amount, market_token_amount,
        )
        return GlvWithdrawalSimulationOutput(
            glv_value=glv_value,
            withdrawn_value=value,
            market_token_amount=market_token_amount,
            report=report,
            long_swap=long_swap,
            short_swap=short_swap,
        )


__all__ = ["GlvWithdrawalSimulation", "GlvWithdrawalSimulationOutput"]
