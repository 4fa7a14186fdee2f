from __future__ import annotations

from typing import Optional, Tuple

import pytest

from gmsim.core import MARKET_USD_UNIT, Price, Prices
from gmsim.glv import GlvMarketConfig, GlvModel, GlvState
from gmsim.market import MarketConfig, MarketMeta, MarketModel, MarketState, Pool
from gmsim.simulation import Simulator
from gmsim.virtual_inventory import VirtualInventory, VirtualInventoryModel


# -----------------------------
# Test helpers (pure functions)
# -----------------------------

UNIT = MARKET_USD_UNIT
#: One whole token (9 decimals) in raw units.
ONE = 10 ** 9
#: Price of a $1 token with 9 decimals.
USD = 10 ** 11


def make_market(
    market_token: str,
    *,
    long_token: str = "LONG",
    short_token: str = "SHORT",
    index_token: str = "INDEX",
    long_amount: int = 10 ** 15,
    short_amount: int = 10 ** 15,
    supply: int = 2 * 10 ** 15,
    config: Optional[MarketConfig] = None,
    swap_impact: Tuple[int, int] = (0, 0),
    vi: Optional[str] = None,
) -> MarketModel:
    """Market with token balances matching its pools (1M tokens a side by default)."""
    state = MarketState(
        meta=MarketMeta(market_token, index_token, long_token, short_token),
        config=config or MarketConfig(),
        liquidity=Pool(long_amount, short_amount),
        swap_impact=Pool(*swap_impact),
        virtual_inventory_for_swaps=vi,
    )
    if long_token == short_token:
        state.long_token_balance = long_amount + short_amount + sum(swap_impact)
    else:
        state.long_token_balance = long_amount + swap_impact[0]
        state.short_token_balance = short_amount + swap_impact[1]
    return MarketModel(state, supply)


def make_prices(index: int = USD, long: int = USD, short: int = USD) -> Prices:
    return Prices(Price.fixed(index), Price.fixed(long), Price.fixed(short))


def impact_config(factor: int = UNIT // 100, exponent: int = UNIT) -> MarketConfig:
    return MarketConfig(
        swap_impact_exponent=exponent,
        swap_impact_positive_factor=factor,
        swap_impact_negative_factor=factor,
    )


def make_impact_market(market_token: str = "MKT_A") -> MarketModel:
    """Long-heavy market (2M long vs 1M short) with a funded swap impact pool and 1% linear impact."""
    return make_market(
        market_token,
        long_amount=2 * 10 ** 15,
        short_amount=10 ** 15,
        supply=3 * 10 ** 15,
        config=impact_config(),
        swap_impact=(10 ** 14, 10 ** 14),
    )


def make_glv(balance: int = 10 ** 15, supply: int = 10 ** 15) -> GlvModel:
    state = GlvState(
        glv_token="GLV",
        long_token="LONG",
        short_token="SHORT",
        markets={
            "MKT_B": GlvMarketConfig(balance=balance),
            "MKT_D": GlvMarketConfig(balance=0),
        },
    )
    return GlvModel(state, supply)


ALL_PRICES = {token: Price.fixed(USD) for token in ("LONG", "SHORT", "INDEX", "OTHER")}


# -----------------------------
# Pytest fixtures
# -----------------------------

@pytest.fixture()
def prices() -> Prices:
    return make_prices()


@pytest.fixture()
def market() -> MarketModel:
    return make_market("MKT_B")


@pytest.fixture()
def impact_market() -> MarketModel:
    return make_impact_market()


@pytest.fixture()
def glv() -> GlvModel:
    return make_glv()


@pytest.fixture()
def simulator() -> Simulator:
    """Markets:
    - MKT_B, MKT_D: LONG/SHORT, balanced, no fees or impact
    - MKT_C: OTHER/SHORT, balanced
    - MKT_P: pure LONG market (not swappable)
    - GLV over MKT_B and MKT_D
    """
    markets = [
        make_market("MKT_B"),
        make_market("MKT_D"),
        make_market("MKT_C", long_token="OTHER", index_token="OTHER"),
        make_market("MKT_P", short_token="LONG"),
    ]
    return Simulator.from_markets(markets, ALL_PRICES, glvs=[make_glv()])


@pytest.fixture()
def vi_simulator() -> Simulator:
    """One balanced market attached to a long-heavy virtual inventory, quadratic impact."""
    config = impact_config(factor=10 ** 10, exponent=2 * UNIT)
    market = make_market("MKT_V", config=config, vi="VI")
    vi = VirtualInventoryModel(VirtualInventory("VI", long_amount=2 * 10 ** 15, short_amount=10 ** 15))
    return Simulator.from_markets([market], ALL_PRICES, vis=[vi])


@pytest.fixture()
def glv_vi_simulator() -> Simulator:
    """The GLV over MKT_B and MKT_D, plus MKT_V routed through a long-heavy virtual inventory."""
    markets = [
        make_market("MKT_B"),
        make_market("MKT_D"),
        make_market("MKT_V", config=impact_config(factor=10 ** 10, exponent=2 * UNIT), vi="VI"),
    ]
    vi = VirtualInventoryModel(VirtualInventory("VI", long_amount=2 * 10 ** 15, short_amount=10 ** 15))
    return Simulator.from_markets(markets, ALL_PRICES, glvs=[make_glv()], vis=[vi])


@pytest.fixture()
def market_factory():
    return make_market


@pytest.fixture()
def prices_factory():
    return make_prices


@pytest.fixture()
def token_prices():
    return dict(ALL_PRICES)
