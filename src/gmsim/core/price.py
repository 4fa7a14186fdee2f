"""
Price primitives: Price{min,max} per token and the Prices triple of a market.

Prices are USD per smallest token unit scaled by MARKET_USD_UNIT. The
`maximize` flag used across the engine picks which bound a computation
uses; callers pick the bound that is worse for the party being priced.
"""

from __future__ import annotations

from dataclasses import dataclass

from .amounts import to_u128, to_i128
from .exc import AmountDomainError, InvalidArgument


@dataclass(frozen=True)
class Price:
    """Oracle price with min/max bounds (integer domain, u128)."""

    min: int
    max: int

    def __post_init__(self):
        if self.min < 0 or self.max < 0:
            raise AmountDomainError("price bounds must be >= 0")
        if self.min > self.max:
            raise AmountDomainError(f"price min={self.min} > max={self.max}")
        to_u128(self.max, "price")

    @classmethod
    def fixed(cls, value: int) -> "Price":
        return cls(value, value)

    def pick_price(self, maximize: bool) -> int:
        return self.max if maximize else self.min

    def mid(self) -> int:
        return (self.min + self.max) // 2

    def has_zero(self) -> bool:
        return self.min == 0


@dataclass(frozen=True)
class Prices:
    """Index / long / short token prices of one market."""

    index_token_price: Price
    long_token_price: Price
    short_token_price: Price

    def collateral_token_price(self, is_long: bool) -> Price:
        return self.long_token_price if is_long else self.short_token_price

    def validate(self) -> None:
        """Reject zero bounds: an action may not be priced at zero."""
        for name in ("index_token_price", "long_token_price", "short_token_price"):
            if getattr(self, name).has_zero():
                raise InvalidArgument(f"invalid prices: {name} has a zero bound")


@dataclass(frozen=True)
class Value:
    """Unsigned {min,max} value pair for display."""

    min: int
    max: int


@dataclass(frozen=True)
class SignedValue:
    """Signed {min,max} value pair for display."""

    min: int
    max: int

    def __post_init__(self):
        to_i128(self.min)
        to_i128(self.max)


__all__ = ["Price", "Prices", "Value", "SignedValue"]
