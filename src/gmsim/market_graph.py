"""Market graph: swap routing and arbitrage detection over a set of markets.

Nodes are collateral tokens; every swappable market contributes two directed
edges (long -> short and short -> long) keyed by its market token. Index
tokens carry a price but no edges. Each edge holds an estimated exchange
rate obtained by swapping `config.value` USD worth of the input token on a
private copy of the market, so estimates include fees and price impact at
that size.

Alignment notes:
# - edge cost = -ln(rate) + base_cost / MARKET_USD_UNIT; summing costs
#   along a path multiplies rates, so the cheapest path has the best rate.
# - Relaxation is bounded by `max_steps` rounds and paths never revisit a
#   token; a relaxation that would close a negative-cost cycle is reported
#   as an arbitrage instead of being applied.
# - Estimation failures leave the edge unusable; they are logged, not raised.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal
from typing import Dict, Iterator, List, Mapping, Optional, Set, Tuple

import networkx as nx

from .calculator import GlvCalculator
from .core.amounts import div_to_factor
from .core.constants import DEFAULT_GRAPH_ESTIMATION_VALUE, DEFAULT_GRAPH_MAX_STEPS
from .core.exc import EngineError, InvalidArgument
from .core.fmt import quantize_factor, unsigned_value_to_decimal
from .core.price import Price
from .glv import GlvModel
from .market import MarketModel
from .simulation.simulator import Simulator, TokenState
from .virtual_inventory import VirtualInventoryModel

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MarketGraphConfig:
    """Graph parameters.

    value: USD value (MARKET_USD_UNIT-scaled) swapped to estimate each edge.
    base_cost: per-hop cost as a factor, added to every edge's -ln(rate).
    max_steps: maximum number of hops of a returned path.
    """
    value: int = DEFAULT_GRAPH_ESTIMATION_VALUE
    base_cost: int = 0
    max_steps: int = DEFAULT_GRAPH_MAX_STEPS


@dataclass(frozen=True)
class Estimated:
    """Estimated exchange rate of one edge (output value / input value)."""

    rate: Decimal
    ln: Decimal


@dataclass(frozen=True)
class CreateGraphSimulatorOptions:
    """prices: overrides applied on top of the graph prices.
    glvs: extra GLV models to insert into the simulator."""
    prices: Mapping[str, Price] = field(default_factory=dict)
    glvs: Tuple[GlvModel, ...] = ()


@dataclass(frozen=True)
class UpdateGraphWithSimulatorOptions:
    """prices: also fold the simulator's token prices back into the graph."""
    prices: bool = False


@dataclass(frozen=True)
class _Route:
    tokens: Tuple[str, ...]
    path: Tuple[str, ...]
    costs: Tuple[Decimal, ...]
    rate: Decimal

    @property
    def cost(self) -> Decimal:
        return self.costs[-1]

    def extend(self, token: str, market_token: str, cost: Decimal, rate: Decimal) -> "_Route":
        return _Route(
            self.tokens + (token,),
            self.path + (market_token,),
            self.costs + (self.cost + cost,),
            self.rate * rate,
        )


class BestSwapPaths:
    """Best paths from one source token, as computed by `MarketGraph.best_swap_paths`."""

    def __init__(self, source: str, params: MarketGraphConfig, routes: Dict[str, _Route],
                 arbitrage_exists: Optional[bool]):
        self.source = source
        self.params = params
        self.arbitrage_exists = arbitrage_exists
        self._routes = routes

    def to(self, target: str) -> Tuple[Optional[Decimal], List[str]]:
        """(estimated rate, market token path) to `target`; (None, []) when unreachable."""
        if target == self.source:
            return Decimal(1), []
        route = self._routes.get(target)
        if route is None:
            return None, []
        return quantize_factor(route.rate), list(route.path)

    def __repr__(self) -> str:
        return (
            f"BestSwapPaths(source={self.source!r}, reachable={len(self._routes) - 1}, "
            f"arbitrage_exists={self.arbitrage_exists})"
        )


class MarketGraph(GlvCalculator):
    """Token graph over markets, with per-edge rate estimates."""

    def __init__(self, config: Optional[MarketGraphConfig] = None):
        self._config = config or MarketGraphConfig()
        self._graph = nx.MultiDiGraph()
        self._markets: Dict[str, MarketModel] = {}
        self._index_tokens: Dict[str, Set[str]] = {}
        self._prices: Dict[str, Price] = {}
        self._glvs: Dict[str, GlvModel] = {}
        self._vis: Dict[str, VirtualInventoryModel] = {}

    @property
    def config(self) -> MarketGraphConfig:
        return self._config

    # ---- calculator source ----

    def get_market_model(self, market_token: str) -> Optional[MarketModel]:
        return self._markets.get(market_token)

    def get_token_price(self, token: str) -> Optional[Price]:
        return self._prices.get(token)

    def get_glv_model(self, glv_token: str) -> Optional[GlvModel]:
        return self._glvs.get(glv_token)

    # ---- accessors ----

    def get_market(self, market_token: str) -> Optional[MarketModel]:
        return self._markets.get(market_token)

    def markets(self) -> Iterator[MarketModel]:
        return iter(self._markets.values())

    def market_tokens(self) -> Iterator[str]:
        return iter(self._markets)

    def tokens(self) -> Iterator[str]:
        """Collateral tokens (graph nodes)."""
        return iter(self._graph.nodes)

    def index_tokens(self) -> Iterator[str]:
        return iter(self._index_tokens)

    def edge_estimate(self, market_token: str, is_token_in_long: bool) -> Optional[Estimated]:
        market = self._markets.get(market_token)
        if market is None or not market.meta.is_swappable():
            return None
        meta = market.meta
        u, v = (meta.long_token, meta.short_token) if is_token_in_long else (meta.short_token, meta.long_token)
        return self._graph[u][v][market_token]["estimated"]

    # ---- mutation ----

    def insert_market(self, market: MarketModel) -> bool:
        """Insert or replace a market; returns True if it was not present before."""
        meta = market.meta
        market_token = meta.market_token
        is_new = market_token not in self._markets
        self._markets[market_token] = market
        for token in (meta.long_token, meta.short_token):
            if token not in self._graph:
                self._graph.add_node(token, markets=set())
            self._graph.nodes[token]["markets"].add(market_token)
        self._index_tokens.setdefault(meta.index_token, set()).add(market_token)
        if meta.is_swappable():
            self._graph.add_edge(meta.long_token, meta.short_token, key=market_token, estimated=None)
            self._graph.add_edge(meta.short_token, meta.long_token, key=market_token, estimated=None)
        self._update_estimated(market_token)
        logger.debug("market %s %s", market_token, "inserted" if is_new else "replaced")
        return is_new

    def insert_glv(self, glv: GlvModel) -> Optional[GlvModel]:
        previous = self._glvs.get(glv.glv_token)
        self._glvs[glv.glv_token] = glv
        return previous

    def insert_virtual_inventory(self, vi: VirtualInventoryModel) -> None:
        self._vis[vi.address] = vi
        for market_token, market in self._markets.items():
            if market.state.virtual_inventory_for_swaps == vi.address:
                self._update_estimated(market_token)

    def update_token_price(self, token: str, price: Price) -> None:
        """Set a token price and re-estimate every market that references the token."""
        self._prices[token] = price
        related: Set[str] = set(self._index_tokens.get(token, ()))
        if token in self._graph:
            related |= self._graph.nodes[token]["markets"]
        for market_token in sorted(related):
            self._update_estimated(market_token)

    def update_value(self, value: int) -> None:
        self._config = replace(self._config, value=value)
        for market_token in self._markets:
            self._update_estimated(market_token)

    def update_base_cost(self, base_cost: int) -> None:
        self._config = replace(self._config, base_cost=base_cost)

    def update_max_steps(self, max_steps: int) -> None:
        self._config = replace(self._config, max_steps=max_steps)

    # ---- estimation ----

    def _update_estimated(self, market_token: str) -> None:
        market = self._markets[market_token]
        meta = market.meta
        if not meta.is_swappable():
            return
        self._graph[meta.long_token][meta.short_token][market_token]["estimated"] = self._estimate(market, True)
        self._graph[meta.short_token][meta.long_token][market_token]["estimated"] = self._estimate(market, False)

    def _estimate(self, market: MarketModel, is_token_in_long: bool) -> Optional[Estimated]:
        value = self._config.value
        if value == 0:
            return None
        prices = self.get_token_prices_for_market_meta(market.meta)
        if prices is None:
            return None
        price_in = prices.collateral_token_price(is_token_in_long)
        price_out = prices.collateral_token_price(not is_token_in_long)
        try:
            if price_in.min == 0:
                raise InvalidArgument("zero input token price")
            amount_in = value // price_in.min
            trial = market.copy()
            with self._estimation_context(trial):
                report = trial.swap(is_token_in_long, amount_in, prices).execute()
            out_value = report.token_out_amount * price_out.max
            if out_value == 0:
                return None
            rate = div_to_factor(out_value, value)
            if rate == 0:
                return None
            rate_dec = unsigned_value_to_decimal(rate)
            return Estimated(rate_dec, rate_dec.ln())
        except EngineError as e:
            logger.debug(
                "estimation failed for %s (%s in): %s",
                market.market_token, "long" if is_token_in_long else "short", e,
            )
            return None

    def _estimation_context(self, trial: MarketModel):
        """Price the trial market with a private copy of its virtual inventory, if the graph knows it."""
        key = trial.state.virtual_inventory_for_swaps
        if key is None or key not in self._vis:
            return trial.with_vis_disabled()
        return trial.with_vi_models({key: self._vis[key].copy()})

    # ---- routing ----

    def _edges(self) -> List[Tuple[str, str, str, Decimal, Decimal]]:
        base = unsigned_value_to_decimal(self._config.base_cost)
        edges = []
        for u, v, market_token, estimated in self._graph.edges(keys=True, data="estimated"):
            if estimated is None:
                continue
            edges.append((u, v, market_token, base - estimated.ln, estimated.rate))
        return edges

    def best_swap_paths(self, source: str, skip_bellman_ford: bool = False) -> BestSwapPaths:
        """Best-rate paths of at most `max_steps` hops from `source` to every reachable token."""
        if source not in self._graph:
            raise InvalidArgument(f"token `{source}` is not a collateral token of the graph")
        params = self._config
        edges = self._edges()
        start = _Route((source,), (), (Decimal(0),), Decimal(1))
        if skip_bellman_ford:
            routes = self._enumerate_paths(start, edges, params.max_steps)
            return BestSwapPaths(source, params, routes, None)
        routes, arbitrage = self._bellman_ford(start, edges, params.max_steps)
        return BestSwapPaths(source, params, routes, arbitrage)

    @staticmethod
    def _bellman_ford(start: _Route, edges, max_steps: int) -> Tuple[Dict[str, _Route], bool]:
        best: Dict[str, _Route] = {start.tokens[0]: start}
        arbitrage = False
        for _ in range(max_steps):
            updated = False
            for u, v, market_token, cost, rate in edges:
                route = best.get(u)
                if route is None or len(route.path) >= max_steps:
                    continue
                if v in route.tokens:
                    # Closing a cycle back to `v`.
                    idx = route.tokens.index(v)
                    if route.cost + cost - route.costs[idx] < 0:
                        arbitrage = True
                    continue
                current = best.get(v)
                if current is None or route.cost + cost < current.cost:
                    best[v] = route.extend(v, market_token, cost, rate)
                    updated = True
            if not updated:
                break
        return best, arbitrage

    @staticmethod
    def _enumerate_paths(start: _Route, edges, max_steps: int) -> Dict[str, _Route]:
        outgoing: Dict[str, list] = {}
        for edge in edges:
            outgoing.setdefault(edge[0], []).append(edge)
        best: Dict[str, _Route] = {start.tokens[0]: start}
        stack = [start]
        while stack:
            route = stack.pop()
            if len(route.path) >= max_steps:
                continue
            for _, v, market_token, cost, rate in outgoing.get(route.tokens[-1], ()):
                if v in route.tokens:
                    continue
                nxt = route.extend(v, market_token, cost, rate)
                current = best.get(v)
                if current is None or nxt.cost < current.cost:
                    best[v] = nxt
                stack.append(nxt)
        return best

    # ---- simulator bridge ----

    def to_simulator(self, options: Optional[CreateGraphSimulatorOptions] = None) -> Simulator:
        """Snapshot the graph into a Simulator (models are shared copy-on-write)."""
        options = options or CreateGraphSimulatorOptions()
        tokens: Dict[str, TokenState] = {}
        for token in list(self._graph.nodes) + list(self._index_tokens):
            price = options.prices.get(token, self._prices.get(token))
            tokens[token] = TokenState(price)
        glvs = {k: g.copy() for k, g in self._glvs.items()}
        for glv in options.glvs:
            glvs[glv.glv_token] = glv
        return Simulator(
            tokens,
            {k: m.copy() for k, m in self._markets.items()},
            glvs,
            {k: v.copy() for k, v in self._vis.items()},
        )

    def update_with_simulator(self, simulator: Simulator,
                              options: Optional[UpdateGraphWithSimulatorOptions] = None) -> None:
        """Fold the simulator's markets (and optionally prices) back into the graph."""
        options = options or UpdateGraphWithSimulatorOptions()
        if options.prices:
            for token, state in simulator.tokens().items():
                if state.price is not None and (token in self._graph or token in self._index_tokens):
                    self._prices[token] = state.price
        for address, vi in simulator.vis().items():
            if address in self._vis:
                self._vis[address] = vi.copy()
        for glv_token, glv in simulator.glvs().items():
            if glv_token in self._glvs:
                self._glvs[glv_token] = glv.copy()
        for market_token, market in simulator.markets().items():
            if market_token in self._markets:
                self._markets[market_token] = market.copy()
        for market_token in self._markets:
            self._update_estimated(market_token)

    def __repr__(self) -> str:
        return (
            f"MarketGraph(tokens={self._graph.number_of_nodes()}, markets={len(self._markets)}, "
            f"edges={self._graph.number_of_edges()})"
        )


__all__ = [
    "MarketGraphConfig",
    "Estimated",
    "CreateGraphSimulatorOptions",
    "UpdateGraphWithSimulatorOptions",
    "BestSwapPaths",
    "MarketGraph",
]
