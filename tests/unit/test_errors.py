import logging

import pytest

from gmsim.core import ComputationError, InsufficientOutputAmount
from gmsim.core.exc import EmptyDeposit, EmptyGlvDeposit, MarketNotFound, PriceNotReady, ShiftImpossible
from gmsim.log_config import init_logging
from gmsim.simulation import SimulationError, SimulationErrorCode
from gmsim.simulation.errors import classify_message


# -----------------------------
# Message classification
# -----------------------------

@pytest.mark.parametrize("msg,code", [
    ("[sim] market `M` not found in the simulator", SimulationErrorCode.MARKET_NOT_FOUND),
    ("[sim] prices for market `M` are not ready in the simulator", SimulationErrorCode.PRICES_NOT_READY),
    ("[sim] price for LONG is not ready", SimulationErrorCode.PRICE_NOT_READY),
    ("[swap] invalid swap path: hop 2", SimulationErrorCode.INVALID_SWAP_PATH),
    ("[sim] Trigger price is required", SimulationErrorCode.TRIGGER_PRICE_REQUIRED),
    ("[sim] empty deposit", SimulationErrorCode.EMPTY_DEPOSIT),
    ("[sim] empty withdrawal", SimulationErrorCode.EMPTY_WITHDRAWAL),
    ("[sim] empty shift", SimulationErrorCode.EMPTY_SHIFT),
    ("[sim] shift from `A` to `B` is impossible", SimulationErrorCode.SHIFT_IMPOSSIBLE),
    ("[swap] insufficient output amount: 1 < 2", SimulationErrorCode.INSUFFICIENT_OUTPUT_AMOUNT),
    ("[sim] something else went wrong", SimulationErrorCode.UNKNOWN),
])
def test_classify_message(msg, code):
    print(f"[case] {msg!r} -> {code.value}")
    assert classify_message(msg) is code


@pytest.mark.parametrize("msg", ["market not found", "empty deposit", "", " [sim] leading space"])
def test_unprefixed_messages_are_not_simulation_errors(msg):
    assert classify_message(msg) is None


# -----------------------------
# SimulationError
# -----------------------------

def test_from_typed_errors():
    err = SimulationError.from_error(EmptyDeposit())
    print(f"\n===== SIMULATION ERROR =====\n    {err.to_dict()}")
    assert err.code == "SIM_EMPTY_DEPOSIT"
    assert err.message == "empty deposit"
    assert err.details == "[sim] empty deposit"

    assert SimulationError.from_error(MarketNotFound("M")).code == "SIM_MARKET_NOT_FOUND"
    assert SimulationError.from_error(PriceNotReady("LONG")).code == "SIM_PRICE_NOT_READY"
    assert SimulationError.from_error(ShiftImpossible("A", "B")).code == "SIM_SHIFT_IMPOSSIBLE"
    short = SimulationError.from_error(InsufficientOutputAmount(1, 2, side="short"))
    assert short.code == "SIM_INSUFFICIENT_OUTPUT_AMOUNT"
    assert short.details == "[sim] insufficient short output amount: 1 < 2"


def test_from_untyped_errors():
    # Prefixed errors without a dedicated code fall back to the message text.
    assert SimulationError.from_error(EmptyGlvDeposit()).code == "SIM_UNKNOWN"
    assert SimulationError.from_error(ValueError("[swap] invalid swap path")).code == "SIM_INVALID_SWAP_PATH"
    assert SimulationError.from_error(ComputationError("mul_div overflow")) is None
    assert SimulationError.from_error(RuntimeError("boom")) is None


def test_new_and_to_dict():
    err = SimulationError.new(SimulationErrorCode.EMPTY_SHIFT)
    assert err.to_dict() == {"code": "SIM_EMPTY_SHIFT", "message": "empty shift", "details": None}


# -----------------------------
# Logging setup
# -----------------------------

def test_init_logging_attaches_one_handler():
    logger = logging.getLogger("gmsim")
    handlers, level = list(logger.handlers), logger.level
    try:
        init_logging("debug")
        same = init_logging(logging.WARNING)
        assert same is logger
        assert logger.level == logging.WARNING
        assert sum(1 for h in logger.handlers if getattr(h, "_gmsim", False)) == 1
    finally:
        logger.handlers[:] = handlers
        logger.setLevel(level)
