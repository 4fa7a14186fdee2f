"""GLV deposit simulation.

An optional market deposit (skipped when both pay amounts are zero) turns
long/short tokens into market tokens; those plus any market tokens paid
directly are priced into the GLV and minted as GLV tokens.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.datatypes import DepositReport, SwapOutput
from ..core.exc import EmptyGlvDeposit, InsufficientOutputAmount, InvalidArgument
from ..glv import get_glv_value_for_market
from ..market import PnlFactorKind
from .deposit import DepositSimulation
from .options import SimulationOptions
from .params import CreateDepositParams, CreateGlvDepositParams
from .simulator import Simulator

logger = logging.getLogger(__name__)


@dataclass
class GlvDepositSimulationOutput:
    long_swap: Optional[SwapOutput]
    short_swap: Optional[SwapOutput]
    deposit: Optional[DepositReport]
    market_token_amount: int
    glv_value: int
    received_value: int
    minted: int


@dataclass
class GlvDepositSimulation:
    simulator: Simulator
    glv_token: str
    market_token: str
    params: CreateGlvDepositParams
    long_pay_token: Optional[str] = None
    long_swap_path: Sequence[str] = field(default_factory=tuple)
    short_pay_token: Optional[str] = None
    short_swap_path: Sequence[str] = field(default_factory=tuple)

    def execute(self, options: Optional[SimulationOptions] = None) -> GlvDepositSimulationOutput:
        options = options or SimulationOptions()
        sim = self.simulator
        params = self.params
        glv = sim.require_glv_model(self.glv_token)
        config = glv.market_config(self.market_token)
        if not config.is_deposit_allowed:
            raise InvalidArgument(f"[sim] deposit into `{self.market_token}` is not allowed for this GLV")

        if params.market_token_amount != 0:
            market, prices = sim.get_market_with_prices(self.market_token)
            market.validate_max_pnl(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, PnlFactorKind.MAX_AFTER_WITHDRAWAL)

        is_deposit_empty = params.initial_long_token_amount == 0 and params.initial_short_token_amount == 0
        long_swap = short_swap = deposit = None
        minted_market_tokens = 0
        if not is_deposit_empty:
            out = DepositSimulation(
                sim,
                self.market_token,
                CreateDepositParams(
                    initial_long_token_amount=params.initial_long_token_amount,
                    initial_short_token_amount=params.initial_short_token_amount,
                    min_market_token_amount=params.min_market_token_amount,
                ),
                long_pay_token=self.long_pay_token,
                long_swap_path=self.long_swap_path,
                short_pay_token=self.short_pay_token,
                short_swap_path=self.short_swap_path,
            ).execute(options)
            long_swap, short_swap, deposit = out.long_swap, out.short_swap, out.report
            minted_market_tokens = deposit.minted

        total = params.market_token_amount + minted_market_tokens
        if total == 0:
            if is_deposit_empty:
                raise InsufficientOutputAmount(0, 1, msg="[sim] insufficient deposit output amount")
            raise EmptyGlvDeposit()

        glv_value = sim.get_glv_value(self.glv_token, True)
        market, prices = sim.get_market_with_prices(self.market_token)
        received_value = get_glv_value_for_market(prices, market, total, False).market_token_value_in_glv
        minted = glv.deposit(self.market_token, total, received_value, glv_value)
        if minted < params.min_glv_token_amount:
            raise InsufficientOutputAmount(minted, params.min_glv_token_amount)
        logger.debug(
            "GLV deposit into %s via %s: market tokens=%s value=%s minted=%s",
            self.glv_token, self.market_token, total, received_value, minted,
        )
        return GlvDepositSimulationOutput(
            long_swap=long_swap,
            short_swap=short_swap,
            deposit=deposit,
            market_token_amount=total,
            glv_value=glv_value,
            received_value=received_value,
            minted=minted,
        )


__all__ = ["GlvDepositSimulation", "GlvDepositSimulationOutput"]
