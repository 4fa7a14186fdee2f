"""Stable error codes for simulation failures.

`SimulationError.from_error` maps an engine exception to a small, stable
code set for client consumption. Typed exceptions are classified by type;
anything else is classified from its `[sim]` / `[swap]` prefixed message.
Errors that carry neither are not simulation errors and map to None.
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Optional

from ..core import exc


class SimulationErrorCode(enum.Enum):
    UNKNOWN = "SIM_UNKNOWN"
    MARKET_NOT_FOUND = "SIM_MARKET_NOT_FOUND"
    PRICES_NOT_READY = "SIM_PRICES_NOT_READY"
    PRICE_NOT_READY = "SIM_PRICE_NOT_READY"
    INVALID_SWAP_PATH = "SIM_INVALID_SWAP_PATH"
    TRIGGER_PRICE_REQUIRED = "SIM_TRIGGER_PRICE_REQUIRED"
    EMPTY_DEPOSIT = "SIM_EMPTY_DEPOSIT"
    EMPTY_WITHDRAWAL = "SIM_EMPTY_WITHDRAWAL"
    EMPTY_SHIFT = "SIM_EMPTY_SHIFT"
    SHIFT_IMPOSSIBLE = "SIM_SHIFT_IMPOSSIBLE"
    INSUFFICIENT_OUTPUT_AMOUNT = "SIM_INSUFFICIENT_OUTPUT_AMOUNT"

    @property
    def default_message(self) -> str:
        return _DEFAULT_MESSAGES[self]


_DEFAULT_MESSAGES = {
    SimulationErrorCode.UNKNOWN: "simulation failed",
    SimulationErrorCode.MARKET_NOT_FOUND: "market not found in simulator",
    SimulationErrorCode.PRICES_NOT_READY: "required prices are not ready in simulator",
    SimulationErrorCode.PRICE_NOT_READY: "required price is not ready in simulator",
    SimulationErrorCode.INVALID_SWAP_PATH: "invalid swap path",
    SimulationErrorCode.TRIGGER_PRICE_REQUIRED: "trigger price is required",
    SimulationErrorCode.EMPTY_DEPOSIT: "empty deposit",
    SimulationErrorCode.EMPTY_WITHDRAWAL: "empty withdrawal",
    SimulationErrorCode.EMPTY_SHIFT: "empty shift",
    SimulationErrorCode.SHIFT_IMPOSSIBLE: "shift is impossible",
    SimulationErrorCode.INSUFFICIENT_OUTPUT_AMOUNT: "insufficient output amount",
}

# Checked in order; subclasses before their bases.
_TYPED_CODES = (
    (exc.MarketNotFound, SimulationErrorCode.MARKET_NOT_FOUND),
    (exc.PricesNotReady, SimulationErrorCode.PRICES_NOT_READY),
    (exc.PriceNotReady, SimulationErrorCode.PRICE_NOT_READY),
    (exc.InvalidSwapPath, SimulationErrorCode.INVALID_SWAP_PATH),
    (exc.TriggerPriceRequired, SimulationErrorCode.TRIGGER_PRICE_REQUIRED),
    (exc.EmptyDeposit, SimulationErrorCode.EMPTY_DEPOSIT),
    (exc.EmptyWithdrawal, SimulationErrorCode.EMPTY_WITHDRAWAL),
    (exc.EmptyShift, SimulationErrorCode.EMPTY_SHIFT),
    (exc.ShiftImpossible, SimulationErrorCode.SHIFT_IMPOSSIBLE),
    (exc.InsufficientOutputAmount, SimulationErrorCode.INSUFFICIENT_OUTPUT_AMOUNT),
)


def classify_message(msg: str) -> Optional[SimulationErrorCode]:
    """Classify raw error text. Returns None when it is not a simulation error."""
    if not (msg.startswith("[sim]") or msg.startswith("[swap]")):
        return None
    lower = msg.lower()
    if "market" in lower and "not found" in lower:
        return SimulationErrorCode.MARKET_NOT_FOUND
    if "prices" in lower and "not ready" in lower:
        return SimulationErrorCode.PRICES_NOT_READY
    if "price" in lower and "not ready" in lower:
        return SimulationErrorCode.PRICE_NOT_READY
    if "invalid" in lower and "swap path" in lower:
        return SimulationErrorCode.INVALID_SWAP_PATH
    if "trigger price" in lower and "required" in lower:
        return SimulationErrorCode.TRIGGER_PRICE_REQUIRED
    if "empty deposit" in lower:
        return SimulationErrorCode.EMPTY_DEPOSIT
    if "empty withdrawal" in lower:
        return SimulationErrorCode.EMPTY_WITHDRAWAL
    if "empty shift" in lower:
        return SimulationErrorCode.EMPTY_SHIFT
    if "shift" in lower and "impossible" in lower:
        return SimulationErrorCode.SHIFT_IMPOSSIBLE
    if "insufficient" in lower and "output" in lower:
        return SimulationErrorCode.INSUFFICIENT_OUTPUT_AMOUNT
    return SimulationErrorCode.UNKNOWN


@dataclass(frozen=True)
class SimulationError:
    """Client-facing error: stable code, default message and raw details."""

    code: str
    message: str
    details: Optional[str] = None

    @classmethod
    def new(cls, code: SimulationErrorCode, details: Optional[str] = None) -> "SimulationError":
        return cls(code=code.value, message=code.default_message, details=details)

    @classmethod
    def from_error(cls, err: BaseException) -> Optional["SimulationError"]:
        msg = str(err)
        for typ, code in _TYPED_CODES:
            if isinstance(err, typ):
                return cls.new(code, msg)
        code = classify_message(msg)
        if code is None:
            return None
        return cls.new(code, msg)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "details": self.details}


__all__ = ["SimulationErrorCode", "SimulationError", "classify_message"]
