"""
Action simulations over an in-memory Simulator.

Every simulation is a configuration dataclass with an `execute(options)`
method returning a plain output dataclass. The Simulator instance is
mutated in place; discard it after a failed simulation.
"""

from __future__ import annotations

from .options import SimulationOptions, UpdatePriceOptions
from .params import (
    CreateDepositParams,
    CreateWithdrawalParams,
    CreateShiftParams,
    CreateGlvDepositParams,
    CreateGlvWithdrawalParams,
    CreateOrderParams,
    OrderKind,
)
from .errors import SimulationError, SimulationErrorCode
from .simulator import Simulator, TokenState
from .deposit import DepositSimulation, DepositSimulationOutput
from .withdrawal import WithdrawalSimulation, WithdrawalSimulationOutput
from .shift import ShiftSimulation, ShiftSimulationOutput
from .order import (
    OrderSimulation,
    IncreaseOrderOutput,
    DecreaseOrderOutput,
    SwapOrderOutput,
)
from .glv_deposit import GlvDepositSimulation, GlvDepositSimulationOutput
from .glv_withdrawal import GlvWithdrawalSimulation, GlvWithdrawalSimulationOutput

__all__ = [
    # options and parameters
    "SimulationOptions",
    "UpdatePriceOptions",
    "CreateDepositParams",
    "CreateWithdrawalParams",
    "CreateShiftParams",
    "CreateGlvDepositParams",
    "CreateGlvWithdrawalParams",
    "CreateOrderParams",
    "OrderKind",
    # errors
    "SimulationError",
    "SimulationErrorCode",
    # simulator
    "Simulator",
    "TokenState",
    # simulations
    "DepositSimulation",
    "DepositSimulationOutput",
    "WithdrawalSimulation",
    "WithdrawalSimulationOutput",
    "ShiftSimulation",
    "ShiftSimulationOutput",
    "OrderSimulation",
    "IncreaseOrderOutput",
    "DecreaseOrderOutput",
    "SwapOrderOutput",
    "GlvDepositSimulation",
    "GlvDepositSimulationOutput",
    "GlvWithdrawalSimulation",
    "GlvWithdrawalSimulationOutput",
]
