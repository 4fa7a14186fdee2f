from decimal import Decimal

import pytest

from gmsim.core import MARKET_USD_UNIT as UNIT, Price
from gmsim.core.exc import InvalidArgument
from gmsim.market import MarketConfig
from gmsim.market_graph import (
    CreateGraphSimulatorOptions,
    MarketGraph,
    MarketGraphConfig,
    UpdateGraphWithSimulatorOptions,
)
from gmsim.virtual_inventory import VirtualInventory, VirtualInventoryModel

USD = 10 ** 11


def _graph(markets, prices=("LONG", "SHORT", "INDEX", "OTHER"), config=None):
    graph = MarketGraph(config)
    for market in markets:
        graph.insert_market(market)
    for token in prices:
        graph.update_token_price(token, Price.fixed(USD))
    return graph


@pytest.fixture()
def other_market(market_factory):
    return market_factory("MKT_C", long_token="OTHER", index_token="OTHER")


@pytest.fixture()
def graph(impact_market, market, other_market):
    """SHORT -> LONG through MKT_A pays a 2% bonus; MKT_B and MKT_C trade at par."""
    return _graph([impact_market, market, other_market])


# -----------------------------
# Structure and estimates
# -----------------------------

def test_nodes_edges_and_estimates(graph):
    print(f"\n===== MARKET GRAPH =====\n    {graph!r}")
    assert set(graph.tokens()) == {"LONG", "SHORT", "OTHER"}
    assert set(graph.index_tokens()) == {"INDEX", "OTHER"}
    assert set(graph.market_tokens()) == {"MKT_A", "MKT_B", "MKT_C"}

    a_long_in = graph.edge_estimate("MKT_A", True)
    a_short_in = graph.edge_estimate("MKT_A", False)
    print(f"    MKT_A long->short={a_long_in.rate} short->long={a_short_in.rate}")
    assert a_long_in.rate == Decimal("0.98")
    assert a_short_in.rate == Decimal("1.02")
    assert a_short_in.ln == Decimal("1.02").ln()
    assert graph.edge_estimate("MKT_B", True).rate == Decimal(1)


def test_estimation_does_not_touch_markets(graph):
    assert graph.get_market("MKT_A").state.liquidity.short_amount == 10 ** 15


def test_insert_market_reports_new_or_replaced(graph, market_factory):
    assert graph.insert_market(market_factory("MKT_B")) is False
    assert graph.insert_market(market_factory("MKT_D")) is True


def test_pure_market_adds_no_edges(graph, market_factory):
    graph.insert_market(market_factory("MKT_P", short_token="LONG"))
    assert graph.edge_estimate("MKT_P", True) is None
    assert graph.best_swap_paths("LONG").to("SHORT") == (Decimal(1), ["MKT_B"])


def test_missing_prices_leave_edges_unestimated(impact_market):
    graph = _graph([impact_market], prices=("LONG", "SHORT"))
    assert graph.edge_estimate("MKT_A", True) is None
    graph.update_token_price("INDEX", Price.fixed(USD))
    assert graph.edge_estimate("MKT_A", True) is not None


def test_failed_estimation_disables_edge(graph):
    graph.update_token_price("LONG", Price.fixed(0))
    assert graph.edge_estimate("MKT_A", True) is None
    assert graph.edge_estimate("MKT_A", False) is None
    assert graph.best_swap_paths("SHORT").to("LONG") == (None, [])


def test_zero_estimation_value_disables_all_edges(graph):
    graph.update_value(0)
    assert graph.config.value == 0
    assert all(graph.edge_estimate(m, True) is None for m in ("MKT_A", "MKT_B", "MKT_C"))


def test_virtual_inventory_worsens_estimate(market_factory):
    config = MarketConfig(
        swap_impact_exponent=2 * UNIT,
        swap_impact_positive_factor=10 ** 10,
        swap_impact_negative_factor=10 ** 10,
    )
    graph = _graph([market_factory("MKT_V", config=config, vi="VI")])
    before = graph.edge_estimate("MKT_V", True).rate
    graph.insert_virtual_inventory(VirtualInventoryModel(VirtualInventory("VI", 2 * 10 ** 15, 10 ** 15)))
    after = graph.edge_estimate("MKT_V", True).rate
    print(f"\n    VI estimate: {before} -> {after}")
    assert before == Decimal("0.9999996")
    assert after == Decimal("0.9995996")
    # Estimation swaps against a private copy of the inventory.
    assert graph.to_simulator().vis()["VI"].long_amount == 2 * 10 ** 15


# -----------------------------
# Best paths
# -----------------------------

def test_arbitrage_is_detected(graph):
    paths = graph.best_swap_paths("SHORT")
    rate, path = paths.to("LONG")
    print(f"\n===== BEST PATHS =====\n    {paths!r}\n    SHORT->LONG rate={rate} path={path}")
    assert paths.arbitrage_exists is True
    assert rate == Decimal("1.02")
    assert path == ["MKT_A"]
    assert paths.to("OTHER") == (Decimal(1), ["MKT_C"])
    assert paths.to("SHORT") == (Decimal(1), [])


def test_multi_hop_path_without_arbitrage(market, other_market):
    graph = _graph([market, other_market])
    paths = graph.best_swap_paths("OTHER")
    assert paths.arbitrage_exists is False
    assert paths.to("LONG") == (Decimal(1), ["MKT_C", "MKT_B"])


def test_max_steps_bounds_paths(market, other_market):
    graph = _graph([market, other_market], config=MarketGraphConfig(max_steps=1))
    assert graph.best_swap_paths("OTHER").to("LONG") == (None, [])
    graph.update_max_steps(2)
    assert graph.best_swap_paths("OTHER").to("LONG")[1] == ["MKT_C", "MKT_B"]


def test_base_cost_removes_arbitrage(graph):
    graph.update_base_cost(UNIT // 10)
    paths = graph.best_swap_paths("SHORT")
    assert paths.arbitrage_exists is False
    assert paths.to("LONG")[1] == ["MKT_A"]


def test_skip_bellman_ford_enumerates_paths(graph):
    paths = graph.best_swap_paths("SHORT", skip_bellman_ford=True)
    assert paths.arbitrage_exists is None
    assert paths.to("LONG") == (Decimal("1.02"), ["MKT_A"])
    assert paths.to("OTHER") == (Decimal(1), ["MKT_C"])


@pytest.mark.parametrize("source", ["INDEX", "NOPE"])
def test_unknown_source(graph, source):
    print(f"[case] source={source}")
    with pytest.raises(InvalidArgument):
        graph.best_swap_paths(source)


# -----------------------------
# Simulator bridge
# -----------------------------

def test_to_simulator_is_isolated(graph):
    sim = graph.to_simulator()
    assert set(sim.tokens()) == {"LONG", "SHORT", "INDEX", "OTHER"}
    out = sim.swap_along_path(["MKT_A"], "SHORT", 10 ** 12)
    assert out.amount == 102 * 10 ** 10
    assert graph.get_market("MKT_A").state.liquidity.short_amount == 10 ** 15


def test_to_simulator_price_overrides_and_glvs(graph, glv):
    graph.insert_glv(glv)
    sim = graph.to_simulator(CreateGraphSimulatorOptions(prices={"LONG": Price.fixed(2 * USD)}))
    assert sim.get_price("LONG") == Price.fixed(2 * USD)
    assert graph.get_token_price("LONG") == Price.fixed(USD)
    assert sim.get_glv("GLV") is not glv
    assert sim.get_glv("GLV").balance("MKT_B") == glv.balance("MKT_B")


def test_update_with_simulator(graph, market_factory):
    sim = graph.to_simulator()
    sim.swap_along_path(["MKT_A"], "SHORT", 10 ** 12)
    sim.insert_price("OTHER", Price.fixed(2 * USD))
    sim.insert_market(market_factory("MKT_N", long_token="NEW", index_token="NEW"))

    graph.update_with_simulator(sim)
    assert graph.get_market("MKT_A").state.liquidity.short_amount == 10 ** 15 + 10 ** 12
    assert graph.get_token_price("OTHER") == Price.fixed(USD)
    assert graph.get_market("MKT_N") is None

    graph.update_with_simulator(sim, UpdateGraphWithSimulatorOptions(prices=True))
    assert graph.get_token_price("OTHER") == Price.fixed(2 * USD)
    # Two SHORT per OTHER is still par by value.
    assert graph.edge_estimate("MKT_C", True).rate == Decimal(1)
    assert graph.best_swap_paths("OTHER").to("SHORT")[0] == Decimal(1)
