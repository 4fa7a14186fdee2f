"""Configuration structs for simulations (frozen dataclasses with defaults)."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SimulationOptions:
    """Simulation options.

    skip_limit_price_validation: if True, limit/stop orders execute even when
    the current index price has not reached the trigger price, and limit
    swaps skip the min-output check.
    disable_vis: if True, virtual inventories are ignored for every swap and
    deposit of the simulation.
    """
    skip_limit_price_validation: bool = False
    disable_vis: bool = False


@dataclass(frozen=True)
class UpdatePriceOptions:
    """Options for rewriting prices so that a limit order would execute.

    prefer_swap_in_token_update: for limit swaps, move the swap-in token price
    instead of the swap-out token price.
    limit_swap_slippage: slippage factor applied to the rewritten price
    (defaults to DEFAULT_LIMIT_SWAP_SLIPPAGE).
    """
    prefer_swap_in_token_update: bool = False
    limit_swap_slippage: Optional[int] = None


__all__ = ["SimulationOptions", "UpdatePriceOptions"]
