"""In-memory simulator: token prices + market, GLV and virtual-inventory models.

The Simulator is the execution substrate for every action simulation. It
owns its models; simulations mutate them in place. A failed simulation may
leave earlier sub-steps applied, so callers that need all-or-nothing
behaviour run on `simulator.copy()` and discard the copy on error.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence

from ..calculator import GlvCalculator
from ..core.datatypes import SwapOutput
from ..core.exc import InvalidSwapPath, TokenNotFound
from ..core.price import Price, Prices
from ..glv import GlvModel
from ..market import MarketMeta, MarketModel
from ..virtual_inventory import VirtualInventoryModel
from .options import SimulationOptions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenState:
    """Price slot of a token; None until a price is inserted."""

    price: Optional[Price] = None


class Simulator(GlvCalculator):
    """Registry of token prices and models, keyed by token address."""

    def __init__(
        self,
        tokens: Mapping[str, TokenState],
        markets: Mapping[str, MarketModel],
        glvs: Optional[Mapping[str, GlvModel]] = None,
        vis: Optional[Mapping[str, VirtualInventoryModel]] = None,
    ):
        self._tokens: Dict[str, TokenState] = dict(tokens)
        self._markets: Dict[str, MarketModel] = dict(markets)
        self._glvs: Dict[str, GlvModel] = dict(glvs or {})
        self._vis: Dict[str, VirtualInventoryModel] = dict(vis or {})

    @classmethod
    def from_markets(cls, markets: Iterable[MarketModel], prices: Mapping[str, Price],
                     glvs: Iterable[GlvModel] = (),
                     vis: Iterable[VirtualInventoryModel] = ()) -> "Simulator":
        """Build a simulator whose token set is every token the markets reference."""
        tokens: Dict[str, TokenState] = {}
        market_map: Dict[str, MarketModel] = {}
        for market in markets:
            meta = market.meta
            for token in (meta.index_token, meta.long_token, meta.short_token):
                tokens[token] = TokenState(prices.get(token))
            market_map[market.market_token] = market
        return cls(
            tokens,
            market_map,
            {glv.glv_token: glv for glv in glvs},
            {vi.address: vi for vi in vis},
        )

    # ---- calculator source ----

    def get_market_model(self, market_token: str) -> Optional[MarketModel]:
        return self._markets.get(market_token)

    def get_token_price(self, token: str) -> Optional[Price]:
        state = self._tokens.get(token)
        return state.price if state is not None else None

    def get_glv_model(self, glv_token: str) -> Optional[GlvModel]:
        return self._glvs.get(glv_token)

    # ---- accessors ----

    def get_market(self, market_token: str) -> Optional[MarketModel]:
        return self.get_market_model(market_token)

    def get_price(self, token: str) -> Optional[Price]:
        return self.get_token_price(token)

    def get_prices(self, meta: MarketMeta) -> Optional[Prices]:
        return self.get_token_prices_for_market_meta(meta)

    def get_market_with_prices(self, market_token: str) -> tuple[MarketModel, Prices]:
        """Market model and its prices; MarketNotFound / PricesNotReady otherwise."""
        return self.get_market_model_with_prices(market_token)

    def get_glv(self, glv_token: str) -> Optional[GlvModel]:
        return self.get_glv_model(glv_token)

    def insert_price(self, token: str, price: Price) -> None:
        if token not in self._tokens:
            raise TokenNotFound(token)
        self._tokens[token] = TokenState(price)

    def insert_market(self, market: MarketModel) -> Optional[MarketModel]:
        """Insert or replace a market model; returns the replaced one."""
        previous = self._markets.get(market.market_token)
        self._markets[market.market_token] = market
        meta = market.meta
        for token in (meta.index_token, meta.long_token, meta.short_token):
            self._tokens.setdefault(token, TokenState())
        return previous

    def insert_glv(self, glv: GlvModel) -> Optional[GlvModel]:
        previous = self._glvs.get(glv.glv_token)
        self._glvs[glv.glv_token] = glv
        return previous

    def tokens(self) -> Dict[str, TokenState]:
        return dict(self._tokens)

    def markets(self) -> Dict[str, MarketModel]:
        return dict(self._markets)

    def glvs(self) -> Dict[str, GlvModel]:
        return dict(self._glvs)

    def vis(self) -> Dict[str, VirtualInventoryModel]:
        return dict(self._vis)

    def copy(self) -> "Simulator":
        """Copy-on-write clone: models are shared until either side mutates."""
        return Simulator(
            self._tokens,
            {k: m.copy() for k, m in self._markets.items()},
            {k: g.copy() for k, g in self._glvs.items()},
            {k: v.copy() for k, v in self._vis.items()},
        )

    # ---- swap routing ----

    def vi_context(self, market: MarketModel, disable_vis: bool):
        """Context in which `market` prices swaps with (or without) the shared virtual inventories."""
        return market.with_vis_disabled() if disable_vis else market.with_vi_models(self._vis)

    def swap_along_path(self, path: Sequence[str], source_token: str, amount: int,
                        options: Optional[SimulationOptions] = None) -> SwapOutput:
        """Swap `amount` of `source_token` through the markets of `path`.

        Without options the hops run with virtual inventories disabled;
        with options, `options.disable_vis` decides. A failing hop raises
        after the earlier hops have already been applied.
        """
        disable_vis = True if options is None else options.disable_vis
        current_token = source_token
        current_amount = amount
        reports = []
        for market_token in path:
            market, prices = self.get_market_model_with_prices(market_token)
            meta = market.meta
            if not meta.is_swappable():
                raise InvalidSwapPath(
                    f"[swap] `{market_token}` is not a swappable market", market_token=market_token
                )
            if current_token == meta.long_token:
                is_token_in_long = True
            elif current_token == meta.short_token:
                is_token_in_long = False
            else:
                raise InvalidSwapPath(
                    f"[swap] invalid swap step. Current step: {market_token}", market_token=market_token
                )
            with self.vi_context(market, disable_vis):
                report = market.swap(is_token_in_long, current_amount, prices).execute()
            logger.debug(
                "hop %s: %s %s -> %s",
                market_token, current_amount, current_token, report.token_out_amount,
            )
            reports.append(report)
            current_token = meta.opposite_token(current_token)
            current_amount = report.token_out_amount
        return SwapOutput(current_token, current_amount, reports)

    # ---- simulation shortcuts ----

    def simulate_deposit(self, market_token, params, **kwargs):
        from .deposit import DepositSimulation
        return DepositSimulation(self, market_token, params, **kwargs)

    def simulate_withdrawal(self, market_token, params, **kwargs):
        from .withdrawal import WithdrawalSimulation
        return WithdrawalSimulation(self, market_token, params, **kwargs)

    def simulate_shift(self, from_market_token, to_market_token, params):
        from .shift import ShiftSimulation
        return ShiftSimulation(self, from_market_token, to_market_token, params)

    def simulate_order(self, kind, params, collateral_or_swap_out_token, **kwargs):
        from .order import OrderSimulation
        return OrderSimulation(self, kind, params, collateral_or_swap_out_token, **kwargs)

    def simulate_glv_deposit(self, glv_token, market_token, params, **kwargs):
        from .glv_deposit import GlvDepositSimulation
        return GlvDepositSimulation(self, glv_token, market_token, params, **kwargs)

    def simulate_glv_withdrawal(self, glv_token, market_token, params, **kwargs):
        from .glv_withdrawal import GlvWithdrawalSimulation
        return GlvWithdrawalSimulation(self, glv_token, market_token, params, **kwargs)

    def __repr__(self) -> str:
        return (
            f"Simulator(tokens={len(self._tokens)}, markets={len(self._markets)}, "
            f"glvs={len(self._glvs)}, vis={len(self._vis)})"
        )


__all__ = ["TokenState", "Simulator"]
