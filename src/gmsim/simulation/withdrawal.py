"""Withdrawal simulation: burn market tokens, then swap the outputs."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ..core.datatypes import SwapOutput, WithdrawReport
from ..core.exc import EmptyWithdrawal, InsufficientOutputAmount, InvalidSwapPath
from ..market import MarketMeta
from .options import SimulationOptions
from .params import CreateWithdrawalParams
from .simulator import Simulator

logger = logging.getLogger(__name__)


@dataclass
class WithdrawalSimulationOutput:
    report: WithdrawReport
    long_swap: SwapOutput
    short_swap: SwapOutput

    @property
    def long_token_amount(self) -> int:
        return self.long_swap.amount

    @property
    def short_token_amount(self) -> int:
        return self.short_swap.amount


def swap_withdrawal_outputs(sim: Simulator, meta: MarketMeta, report: WithdrawReport,
                            long_swap_path: Sequence[str], long_receive_token: Optional[str],
                            short_swap_path: Sequence[str], short_receive_token: Optional[str],
                            min_long: int, min_short: int,
                            options: SimulationOptions) -> tuple[SwapOutput, SwapOutput]:
    """Swap each withdrawn side along its path and check token and minimum per side.

    A missing receive token means the side's own pool token. A side with zero
    output is not swapped.
    """
    sides = (
        (meta.long_token, report.long_token_output, long_swap_path, long_receive_token, min_long, "long"),
        (meta.short_token, report.short_token_output, short_swap_path, short_receive_token, min_short, "short"),
    )
    outputs = []
    for token, amount, path, receive_token, minimum, side in sides:
        expected = receive_token or token
        if amount > 0:
            out = sim.swap_along_path(path, token, amount, options)
            if out.output_token != expected:
                raise InvalidSwapPath(
                    f"[sim] invalid {side} swap path: expected `{expected}`, got `{out.output_token}`"
                )
        else:
            out = SwapOutput(expected, 0)
        if out.amount < minimum:
            raise InsufficientOutputAmount(out.amount, minimum, side=side)
        outputs.append(out)
    return outputs[0], outputs[1]


@dataclass
class WithdrawalSimulation:
    """Withdraw from `market_token`.

    Receive tokens default to the market's long / short token; a swap path
    must end in the receive token of its side.
    """
    simulator: Simulator
    market_token: str
    params: CreateWithdrawalParams
    long_receive_token: Optional[str] = None
    long_swap_path: Sequence[str] = field(default_factory=tuple)
    short_receive_token: Optional[str] = None
    short_swap_path: Sequence[str] = field(default_factory=tuple)

    def execute(self, options: Optional[SimulationOptions] = None) -> WithdrawalSimulationOutput:
        options = options or SimulationOptions()
        params = self.params
        if params.market_token_amount == 0:
            raise EmptyWithdrawal()

        sim = self.simulator
        market, prices = sim.get_market_with_prices(self.market_token)
        report = market.withdraw(params.market_token_amount, prices).execute()
        logger.debug(
            "withdrawal from %s: long=%s short=%s",
            self.market_token, report.long_token_output, report.short_token_output,
        )
        long_swap, short_swap = swap_withdrawal_outputs(
            sim, market.meta, report,
            self.long_swap_path, self.long_receive_token,
            self.short_swap_path, self.short_receive_token,
            params.min_long_token_amount, params.min_short_token_amount,
            options,
        )
        return WithdrawalSimulationOutput(report, long_swap, short_swap)


__all__ = ["WithdrawalSimulation", "WithdrawalSimulationOutput", "swap_withdrawal_outputs"]
