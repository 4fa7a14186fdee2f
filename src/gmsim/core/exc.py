"""
Core exception types for gmsim.

These are dependency-free and may be imported by all modules. Every error
belongs to one kind of the taxonomy below; the kind is exposed as the
``kind`` class attribute so callers can branch without isinstance chains.

Messages raised from the simulation layer are prefixed with ``[sim]`` and
those raised while walking a swap path with ``[swap]``; the classification
layer in :mod:`gmsim.simulation.errors` relies on these prefixes.
"""

__all__ = [
    "EngineError",
    # kinds
    "NotFoundError",
    "NotReadyError",
    "InvalidInputError",
    "ComputationError",
    "InsufficientOutputAmount",
    "InsufficientLiquidity",
    "ValidationError",
    # not-found
    "MarketNotFound",
    "GlvNotFound",
    "TokenNotFound",
    # not-ready
    "PriceNotReady",
    "PricesNotReady",
    # invalid input
    "AmountDomainError",
    "InvalidArgument",
    "EmptyDeposit",
    "EmptyWithdrawal",
    "EmptyShift",
    "EmptyGlvDeposit",
    "EmptyGlvWithdrawal",
    "InvalidSwapPath",
    "ShiftImpossible",
    "InvalidPoolValue",
    "TriggerPriceRequired",
    # arithmetic
    "MarketTokenBalanceOverflow",
    "MarketTokenBalanceUnderflow",
    "GlvTokenSupplyOverflow",
    "GlvTokenSupplyUnderflow",
]


class EngineError(Exception):
    """Base class of every error raised by the engine."""

    kind = "unknown"


# ---------------------------------------------------------------------------
# Kinds
# ---------------------------------------------------------------------------

class NotFoundError(EngineError):
    """Raised when a market, GLV or token is absent from the registry."""

    kind = "not-found"


class NotReadyError(EngineError):
    """Raised when a required price has not been inserted."""

    kind = "not-ready"


class InvalidInputError(EngineError):
    """Raised when action inputs violate preconditions."""

    kind = "invalid-input"


class ComputationError(EngineError):
    """Raised when checked arithmetic would overflow, underflow or divide by zero."""

    kind = "arithmetic"


class InsufficientOutputAmount(EngineError):
    """Raised when a computed output is below the caller's minimum.

    Attributes
    ----------
    output : int
        The amount the action would have produced.
    minimum : int
        The minimum requested by the caller.
    side : str | None
        Optional side tag ("long" / "short") for two-sided outputs.
    """

    kind = "slippage"

    def __init__(self, output, minimum, *, side=None, prefix="[sim]", msg=None):
        if msg is None:
            label = f"insufficient {side} output amount" if side else "insufficient output amount"
            msg = f"{prefix} {label}: {output} < {minimum}"
        super().__init__(msg)
        self.output = output
        self.minimum = minimum
        self.side = side


class InsufficientLiquidity(EngineError):
    """Raised when a pool cannot pay out the requested amount.

    Attributes
    ----------
    requested : int
        The amount the action needs to take out of the pool.
    available : int
        The amount the pool currently holds.
    """

    kind = "invalid-input"

    def __init__(self, requested, available, *, what="pool"):
        super().__init__(
            f"insufficient liquidity in {what}: requested={requested} available={available}"
        )
        self.requested = requested
        self.available = available
        self.what = what


class ValidationError(EngineError):
    """Raised when an action would breach a configured cap (reserve, max pool, max pnl, leverage)."""

    kind = "invalid-input"


# ---------------------------------------------------------------------------
# Not-found / not-ready
# ---------------------------------------------------------------------------

class MarketNotFound(NotFoundError):
    def __init__(self, market_token):
        super().__init__(f"[sim] market `{market_token}` not found in the simulator")
        self.market_token = market_token


class GlvNotFound(NotFoundError):
    def __init__(self, glv_token):
        super().__init__(f"[sim] GLV for GLV token `{glv_token}` not found")
        self.glv_token = glv_token


class TokenNotFound(NotFoundError):
    def __init__(self, token):
        super().__init__(f"[sim] token `{token}` is not found in the simulator")
        self.token = token


class PriceNotReady(NotReadyError):
    def __init__(self, token):
        super().__init__(f"[sim] price for {token} is not ready")
        self.token = token


class PricesNotReady(NotReadyError):
    def __init__(self, market_token):
        super().__init__(
            f"[sim] prices for market `{market_token}` are not ready in the simulator"
        )
        self.market_token = market_token


# ---------------------------------------------------------------------------
# Invalid input
# ---------------------------------------------------------------------------

class AmountDomainError(InvalidInputError):
    """Raised when inputs violate the non-negative domain or basic preconditions."""
    pass


class InvalidArgument(InvalidInputError):
    pass


class EmptyDeposit(InvalidInputError):
    def __init__(self, msg="[sim] empty deposit"):
        super().__init__(msg)


class EmptyWithdrawal(InvalidInputError):
    def __init__(self, msg="[sim] empty withdrawal"):
        super().__init__(msg)


class EmptyShift(InvalidInputError):
    def __init__(self, msg="[sim] empty shift"):
        super().__init__(msg)


class EmptyGlvDeposit(InvalidInputError):
    def __init__(self, msg="[sim] empty GLV deposit"):
        super().__init__(msg)


class EmptyGlvWithdrawal(InvalidInputError):
    def __init__(self, msg="[sim] empty GLV withdrawal"):
        super().__init__(msg)


class InvalidSwapPath(InvalidInputError):
    """Raised when a swap path visits a market that does not trade the current token."""

    def __init__(self, msg="[sim] invalid swap path", *, market_token=None):
        super().__init__(msg)
        self.market_token = market_token


class ShiftImpossible(InvalidInputError):
    def __init__(self, from_market_token, to_market_token):
        super().__init__(
            f"[sim] shift from `{from_market_token}` to `{to_market_token}` is impossible"
        )
        self.from_market_token = from_market_token
        self.to_market_token = to_market_token


class InvalidPoolValue(InvalidInputError):
    """Raised when a pool value is negative (or zero) where a positive one is required."""
    pass


class TriggerPriceRequired(InvalidInputError):
    def __init__(self, msg="[sim] trigger price is required"):
        super().__init__(msg)


# ---------------------------------------------------------------------------
# Arithmetic (GLV balance bookkeeping)
# ---------------------------------------------------------------------------

class _BalanceError(ComputationError):
    label = "balance"

    def __init__(self, token, current, delta):
        super().__init__(f"[GLV] {self.label} for `{token}`: current={current} delta={delta}")
        self.token = token
        self.current = current
        self.delta = delta


class MarketTokenBalanceOverflow(_BalanceError):
    label = "market token balance overflow"


class MarketTokenBalanceUnderflow(_BalanceError):
    label = "market token balance underflow"


class GlvTokenSupplyOverflow(_BalanceError):
    label = "GLV token supply overflow"


class GlvTokenSupplyUnderflow(_BalanceError):
    label = "GLV token supply underflow"
