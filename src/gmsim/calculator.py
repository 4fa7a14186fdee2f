"""Calculator mixins layered over any "market + price source".

A class that implements `get_market_model(market_token)` and
`get_token_price(token)` gets market pricing helpers from MarketCalculator;
adding `get_glv_model(glv_token)` enables GlvCalculator. Both the Simulator
and the MarketGraph implement them, so the same GLV algorithms run over
either store.
"""
from __future__ import annotations

from typing import Optional, Tuple

from .core.amounts import checked_add, market_token_amount_to_usd
from .core.exc import ComputationError, GlvNotFound, MarketNotFound, PricesNotReady
from .core.price import Price, Prices, Value
from .glv import GlvModel, GlvStatus, get_glv_value_for_market
from .market import MarketMeta, MarketModel, MarketStatus


class MarketCalculator:
    """Market pricing over a market/price source."""

    def get_market_model(self, market_token: str) -> Optional[MarketModel]:
        raise NotImplementedError

    def get_token_price(self, token: str) -> Optional[Price]:
        raise NotImplementedError

    def get_token_prices_for_market_meta(self, meta: MarketMeta) -> Optional[Prices]:
        index = self.get_token_price(meta.index_token)
        long = self.get_token_price(meta.long_token)
        short = self.get_token_price(meta.short_token)
        if index is None or long is None or short is None:
            return None
        return Prices(index, long, short)

    def get_market_model_with_prices(self, market_token: str) -> Tuple[MarketModel, Prices]:
        market = self.get_market_model(market_token)
        if market is None:
            raise MarketNotFound(market_token)
        prices = self.get_token_prices_for_market_meta(market.meta)
        if prices is None:
            raise PricesNotReady(market_token)
        return market, prices

    def get_market_status(self, market_token: str) -> MarketStatus:
        market, prices = self.get_market_model_with_prices(market_token)
        return market.status(prices)


class GlvCalculator(MarketCalculator):
    """GLV pricing over a market/price/GLV source."""

    def get_glv_model(self, glv_token: str) -> Optional[GlvModel]:
        raise NotImplementedError

    def require_glv_model(self, glv_token: str) -> GlvModel:
        glv = self.get_glv_model(glv_token)
        if glv is None:
            raise GlvNotFound(glv_token)
        return glv

    def get_market_token_value_in_glv(self, glv_token: str, market_token: str, maximize: bool) -> int:
        glv = self.require_glv_model(glv_token)
        balance = glv.balance(market_token)
        market, prices = self.get_market_model_with_prices(market_token)
        return get_glv_value_for_market(prices, market, balance, maximize).market_token_value_in_glv

    def get_glv_value(self, glv_token: str, maximize: bool) -> int:
        glv = self.require_glv_model(glv_token)
        value = 0
        for market_token in glv.market_tokens():
            value = checked_add(
                value,
                self.get_market_token_value_in_glv(glv_token, market_token, maximize),
                what="[sim] GLV value",
            )
        return value

    def get_glv_token_value(self, glv_token: str, amount: int, maximize: bool) -> int:
        glv = self.require_glv_model(glv_token)
        glv_value = self.get_glv_value(glv_token, maximize)
        try:
            return market_token_amount_to_usd(amount, glv_value, glv.supply)
        except ComputationError as e:
            raise ComputationError(f"[sim] failed to convert glv token amount into value ({e})") from e

    def get_max_sellable_glv_value_for_market_token(self, glv_token: str, market_token: str) -> int:
        value_in_glv = self.get_market_token_value_in_glv(glv_token, market_token, False)
        market, prices = self.get_market_model_with_prices(market_token)
        return min(value_in_glv, market.max_sellable_value(prices))

    def get_max_sellable_glv_value(self, glv_token: str) -> int:
        glv = self.require_glv_model(glv_token)
        value = 0
        for market_token in glv.market_tokens():
            value = checked_add(
                value,
                self.get_max_sellable_glv_value_for_market_token(glv_token, market_token),
                what="max sellable value",
            )
        return value

    def get_glv_status(self, glv_token: str) -> GlvStatus:
        return GlvStatus(
            max_sellable_value=self.get_max_sellable_glv_value(glv_token),
            total_value=Value(
                min=self.get_glv_value(glv_token, False),
                max=self.get_glv_value(glv_token, True),
            ),
        )


__all__ = ["MarketCalculator", "GlvCalculator"]
