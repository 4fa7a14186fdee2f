# Top-level API for gmsim (integer fixed-point pricing and simulation).
"""
Top-level API for gmsim.

This module exposes the stable interface of the pricing and simulation engine:
  - MarketModel / PositionModel / GlvModel: snapshot models with copy-on-write sharing
  - Simulator: in-memory registry on which deposit, withdrawal, shift, order and
    GLV simulations run
  - MarketGraph: best swap paths and arbitrage detection across markets

All arithmetic is integer fixed-point (MARKET_USD_UNIT = 10**20); Decimal is
used only for formatting and exchange-rate logarithms.
"""

from __future__ import annotations


# Models
from .market import (
    MarketConfig,
    MarketMeta,
    MarketModel,
    MarketState,
    MarketStatus,
    PnlFactorKind,
    Pool,
    SwapPricingKind,
)
from .position import DecreasePositionFlags, PositionModel, PositionState, PositionStatus
from .glv import GlvMarketConfig, GlvModel, GlvState, GlvStatus
from .virtual_inventory import VirtualInventory, VirtualInventoryModel
from .calculator import GlvCalculator, MarketCalculator

# Simulation
from .simulation import (
    CreateDepositParams,
    CreateGlvDepositParams,
    CreateGlvWithdrawalParams,
    CreateOrderParams,
    CreateShiftParams,
    CreateWithdrawalParams,
    OrderKind,
    SimulationError,
    SimulationErrorCode,
    SimulationOptions,
    Simulator,
    TokenState,
    UpdatePriceOptions,
)

# Routing
from .market_graph import (
    BestSwapPaths,
    CreateGraphSimulatorOptions,
    MarketGraph,
    MarketGraphConfig,
    UpdateGraphWithSimulatorOptions,
)

# Core data types
from .core import (
    MARKET_USD_UNIT,
    EngineError,
    Price,
    Prices,
    SwapOutput,
    Value,
)

__all__ = [
    # models
    "MarketConfig",
    "MarketMeta",
    "MarketModel",
    "MarketState",
    "MarketStatus",
    "PnlFactorKind",
    "Pool",
    "SwapPricingKind",
    "DecreasePositionFlags",
    "PositionModel",
    "PositionState",
    "PositionStatus",
    "GlvMarketConfig",
    "GlvModel",
    "GlvState",
    "GlvStatus",
    "VirtualInventory",
    "VirtualInventoryModel",
    "GlvCalculator",
    "MarketCalculator",
    # simulation
    "CreateDepositParams",
    "CreateGlvDepositParams",
    "CreateGlvWithdrawalParams",
    "CreateOrderParams",
    "CreateShiftParams",
    "CreateWithdrawalParams",
    "OrderKind",
    "SimulationError",
    "SimulationErrorCode",
    "SimulationOptions",
    "Simulator",
    "TokenState",
    "UpdatePriceOptions",
    # routing
    "BestSwapPaths",
    "CreateGraphSimulatorOptions",
    "MarketGraph",
    "MarketGraphConfig",
    "UpdateGraphWithSimulatorOptions",
    # core
    "MARKET_USD_UNIT",
    "EngineError",
    "Price",
    "Prices",
    "SwapOutput",
    "Value",
]
