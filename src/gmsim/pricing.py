"""Price impact and fee primitives shared by swaps, deposits and positions.

Price impact follows the pool-balance model: the USD imbalance between the
two sides is measured before and after the action, each raised to the
configured exponent. Moving toward balance earns positive impact, moving
away pays negative impact. When the action flips the heavier side the two
halves are priced separately (positive factor on the initial imbalance,
negative factor on the resulting one).

Fees are charged on the input amount with the factor picked by the sign of
the impact; a receiver share goes to the claimable fee pool and the rest
stays with liquidity providers.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

from .core.amounts import apply_exponent_factor, apply_factor, checked_sub, to_i128
from .core.datatypes import Fees

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PriceImpactParams:
    exponent: int
    positive_factor: int
    negative_factor: int


@dataclass(frozen=True)
class FeeParams:
    positive_impact_fee_factor: int
    negative_impact_fee_factor: int
    fee_receiver_factor: int

    def fee_factor(self, is_positive_impact: bool) -> int:
        return self.positive_impact_fee_factor if is_positive_impact else self.negative_impact_fee_factor

    def apply_fees(self, is_positive_impact: bool, amount: int) -> tuple[int, Fees]:
        """Charge fees on `amount`; return (amount_after_fees, Fees)."""
        fee_amount = apply_factor(amount, self.fee_factor(is_positive_impact))
        for_receiver = apply_factor(fee_amount, self.fee_receiver_factor)
        fees = Fees(
            fee_amount_for_receiver=for_receiver,
            fee_amount_for_pool=fee_amount - for_receiver,
        )
        return checked_sub(amount, fee_amount, what="amount after fees"), fees


# ---------------------------------------------------------------------------
# Impact
# ---------------------------------------------------------------------------

def _diff_impact(params: PriceImpactParams, initial_diff: int, next_diff: int) -> int:
    initial = apply_exponent_factor(initial_diff, params.exponent)
    nxt = apply_exponent_factor(next_diff, params.exponent)
    if next_diff < initial_diff:
        return apply_factor(initial - nxt, params.positive_factor)
    return -apply_factor(nxt - initial, params.negative_factor)


def _crossover_impact(params: PriceImpactParams, initial_diff: int, next_diff: int) -> int:
    positive = apply_factor(apply_exponent_factor(initial_diff, params.exponent), params.positive_factor)
    negative = apply_factor(apply_exponent_factor(next_diff, params.exponent), params.negative_factor)
    return positive - negative


def balance_impact_value(
    params: PriceImpactParams,
    long_value: int,
    short_value: int,
    delta_long_value: int,
    delta_short_value: int,
) -> int:
    """Signed USD impact of moving pool side values by the given deltas."""
    next_long = long_value + delta_long_value
    next_short = short_value + delta_short_value
    if next_long < 0 or next_short < 0:
        # The out side cannot go below zero; liquidity checks report it later.
        next_long, next_short = max(next_long, 0), max(next_short, 0)
    initial_diff = abs(long_value - short_value)
    next_diff = abs(next_long - next_short)
    same_side = (long_value <= short_value) == (next_long <= next_short)
    if same_side:
        impact = _diff_impact(params, initial_diff, next_diff)
    else:
        impact = _crossover_impact(params, initial_diff, next_diff)
    return to_i128(impact, "price impact value")


def worse_impact(market_impact: int, vi_impact: int | None) -> int:
    """Pick the impact less favourable to the trader."""
    if vi_impact is None:
        return market_impact
    chosen = min(market_impact, vi_impact)
    if chosen != market_impact:
        logger.debug("virtual inventory impact %s overrides market impact %s", vi_impact, market_impact)
    return chosen


def split_by_value(total: int, part_value: int, whole_value: int) -> int:
    """Share of a signed `total` proportional to part_value / whole_value (toward zero)."""
    if whole_value == 0:
        return 0
    mag = abs(total) * part_value // whole_value
    return -mag if total < 0 else mag


__all__ = [
    "PriceImpactParams",
    "FeeParams",
    "balance_impact_value",
    "worse_impact",
    "split_by_value",
]
