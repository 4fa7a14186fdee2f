import pytest

from gmsim.core import InsufficientOutputAmount
from gmsim.core.exc import (
    EmptyDeposit,
    EmptyGlvDeposit,
    EmptyGlvWithdrawal,
    EmptyShift,
    EmptyWithdrawal,
    InvalidArgument,
    InvalidSwapPath,
    ShiftImpossible,
)
from gmsim.glv import GlvMarketConfig
from gmsim.simulation import (
    CreateDepositParams,
    CreateGlvDepositParams,
    CreateGlvWithdrawalParams,
    CreateShiftParams,
    CreateWithdrawalParams,
    DepositSimulation,
    GlvDepositSimulation,
    ShiftSimulation,
)


# -----------------------------
# Deposit
# -----------------------------

def test_deposit_simulation_without_swaps(simulator):
    out = simulator.simulate_deposit(
        "MKT_B", CreateDepositParams(initial_long_token_amount=10 ** 11)
    ).execute()
    print(f"\n===== DEPOSIT =====\n    minted={out.minted}")
    assert out.minted == 10 ** 11
    assert out.long_swap.amount == 10 ** 11 and out.long_swap.is_identity()
    assert out.short_swap.amount == 0
    assert simulator.get_market("MKT_B").supply == 2 * 10 ** 15 + 10 ** 11


def test_deposit_simulation_swaps_pay_token_first(simulator):
    out = DepositSimulation(
        simulator,
        "MKT_B",
        CreateDepositParams(initial_short_token_amount=10 ** 11),
        short_pay_token="OTHER",
        short_swap_path=["MKT_C"],
    ).execute()
    assert out.short_swap.output_token == "SHORT"
    assert out.minted == 10 ** 11
    assert simulator.get_market("MKT_C").state.liquidity.long_amount == 10 ** 15 + 10 ** 11


def test_deposit_simulation_rejects_wrong_swap_output(simulator):
    with pytest.raises(InvalidSwapPath) as ei:
        simulator.simulate_deposit(
            "MKT_B",
            CreateDepositParams(initial_long_token_amount=10 ** 11),
            long_pay_token="OTHER",
            long_swap_path=["MKT_C"],
        ).execute()
    assert "long" in str(ei.value)


def test_deposit_simulation_min_output_and_empty(simulator):
    with pytest.raises(EmptyDeposit):
        simulator.simulate_deposit("MKT_B", CreateDepositParams()).execute()
    with pytest.raises(InsufficientOutputAmount) as ei:
        simulator.simulate_deposit(
            "MKT_B",
            CreateDepositParams(initial_long_token_amount=10 ** 11, min_market_token_amount=10 ** 11 + 1),
        ).execute()
    assert ei.value.output == 10 ** 11


# -----------------------------
# Withdrawal
# -----------------------------

def test_withdrawal_simulation(simulator):
    out = simulator.simulate_withdrawal(
        "MKT_B", CreateWithdrawalParams(market_token_amount=2 * 10 ** 14)
    ).execute()
    assert out.long_token_amount == 10 ** 14
    assert out.short_token_amount == 10 ** 14
    assert out.long_swap.output_token == "LONG"


def test_withdrawal_simulation_swaps_long_side(simulator):
    out = simulator.simulate_withdrawal(
        "MKT_B",
        CreateWithdrawalParams(market_token_amount=2 * 10 ** 14),
        long_receive_token="SHORT",
        long_swap_path=["MKT_D"],
    ).execute()
    print(f"\n    long side received as {out.long_swap.output_token}: {out.long_token_amount}")
    assert out.long_swap.output_token == "SHORT"
    assert out.long_token_amount == 10 ** 14
    assert simulator.get_market("MKT_D").state.liquidity.long_amount == 10 ** 15 + 10 ** 14


def test_withdrawal_simulation_errors(simulator):
    with pytest.raises(EmptyWithdrawal):
        simulator.simulate_withdrawal("MKT_B", CreateWithdrawalParams()).execute()
    with pytest.raises(InsufficientOutputAmount) as ei:
        simulator.copy().simulate_withdrawal(
            "MKT_B", CreateWithdrawalParams(market_token_amount=2 * 10 ** 14, min_short_token_amount=2 * 10 ** 14)
        ).execute()
    assert ei.value.side == "short"
    with pytest.raises(InvalidSwapPath):
        simulator.copy().simulate_withdrawal(
            "MKT_B",
            CreateWithdrawalParams(market_token_amount=2 * 10 ** 14),
            long_receive_token="OTHER",
            long_swap_path=["MKT_D"],
        ).execute()


def test_withdrawal_swap_must_end_in_pool_token_by_default(simulator):
    with pytest.raises(InvalidSwapPath) as ei:
        simulator.simulate_withdrawal(
            "MKT_B",
            CreateWithdrawalParams(market_token_amount=2 * 10 ** 14),
            long_swap_path=["MKT_D"],
        ).execute()
    print(f"\n    {ei.value}")
    assert "expected `LONG`, got `SHORT`" in str(ei.value)


# -----------------------------
# Shift
# -----------------------------

def test_shift_between_markets_with_same_tokens(simulator):
    out = simulator.simulate_shift(
        "MKT_B", "MKT_D", CreateShiftParams(from_market_token_amount=2 * 10 ** 14)
    ).execute()
    print(f"\n===== SHIFT =====\n    minted={out.to_market_token_amount}")
    assert out.withdraw.long_token_output == 10 ** 14
    assert out.to_market_token_amount == 2 * 10 ** 14
    assert simulator.get_market("MKT_B").supply == 18 * 10 ** 14
    assert simulator.get_market("MKT_D").supply == 22 * 10 ** 14


@pytest.mark.parametrize("to_market,params,exc", [
    ("MKT_C", CreateShiftParams(from_market_token_amount=10 ** 9), ShiftImpossible),
    ("MKT_D", CreateShiftParams(), EmptyShift),
    ("MKT_D", CreateShiftParams(from_market_token_amount=10 ** 9, min_to_market_token_amount=10 ** 10),
     InsufficientOutputAmount),
])
def test_shift_errors(simulator, to_market, params, exc):
    print(f"[case] {to_market} {params} -> {exc.__name__}")
    with pytest.raises(exc):
        ShiftSimulation(simulator, "MKT_B", to_market, params).execute()


# -----------------------------
# GLV deposit / withdrawal
# -----------------------------

def test_glv_deposit_with_market_tokens_then_withdraw(simulator):
    dep = simulator.simulate_glv_deposit(
        "GLV", "MKT_B", CreateGlvDepositParams(market_token_amount=10 ** 12)
    ).execute()
    print(f"\n===== GLV =====\n    deposit value={dep.received_value} minted={dep.minted}")
    assert dep.deposit is None
    assert dep.glv_value == 10 ** 26
    assert dep.received_value == 10 ** 23
    assert dep.minted == 10 ** 12

    wd = simulator.simulate_glv_withdrawal(
        "GLV", "MKT_B", CreateGlvWithdrawalParams(glv_token_amount=10 ** 12)
    ).execute()
    print(f"    withdraw market tokens={wd.market_token_amount} long={wd.report.long_token_output}")
    assert wd.withdrawn_value == 10 ** 23
    assert wd.market_token_amount == 10 ** 12
    assert wd.long_swap.amount == 5 * 10 ** 11
    assert wd.short_swap.amount == 5 * 10 ** 11
    glv = simulator.get_glv("GLV")
    assert glv.balance("MKT_B") == 10 ** 15
    assert glv.supply == 10 ** 15


def test_glv_deposit_with_long_and_short_tokens(simulator):
    dep = GlvDepositSimulation(
        simulator,
        "GLV",
        "MKT_D",
        CreateGlvDepositParams(initial_long_token_amount=10 ** 11, initial_short_token_amount=10 ** 11),
    ).execute()
    assert dep.deposit.minted == 2 * 10 ** 11
    assert dep.market_token_amount == 2 * 10 ** 11
    # $200 into a GLV priced at $1 per GLV token.
    assert dep.minted == 2 * 10 ** 11
    assert simulator.get_glv("GLV").balance("MKT_D") == 2 * 10 ** 11


def test_glv_deposit_errors(simulator):
    with pytest.raises(InsufficientOutputAmount):
        simulator.simulate_glv_deposit("GLV", "MKT_B", CreateGlvDepositParams()).execute()
    with pytest.raises(InvalidArgument):
        simulator.simulate_glv_deposit(
            "GLV", "MKT_C", CreateGlvDepositParams(market_token_amount=1)
        ).execute()
    with pytest.raises(InsufficientOutputAmount):
        simulator.copy().simulate_glv_deposit(
            "GLV", "MKT_B", CreateGlvDepositParams(market_token_amount=10 ** 9, min_glv_token_amount=10 ** 10)
        ).execute()


def test_glv_deposit_not_allowed(simulator):
    simulator.get_glv("GLV").state.markets["MKT_D"] = GlvMarketConfig(is_deposit_allowed=False)
    with pytest.raises(InvalidArgument):
        simulator.simulate_glv_deposit(
            "GLV", "MKT_D", CreateGlvDepositParams(market_token_amount=1)
        ).execute()


def test_glv_deposit_too_small_to_mint(simulator):
    # A single outstanding GLV token unit is worth the whole GLV value.
    glv = simulator.get_glv("GLV")
    glv.supply = 1
    with pytest.raises(EmptyGlvDeposit):
        simulator.simulate_glv_deposit(
            "GLV", "MKT_B", CreateGlvDepositParams(market_token_amount=1)
        ).execute()


def test_empty_glv_withdrawal(simulator):
    with pytest.raises(EmptyGlvWithdrawal):
        simulator.simulate_glv_withdrawal("GLV", "MKT_B", CreateGlvWithdrawalParams()).execute()


def test_glv_withdrawal_swap_must_end_in_pool_token_by_default(simulator):
    with pytest.raises(InvalidSwapPath) as ei:
        simulator.simulate_glv_withdrawal(
            "GLV",
            "MKT_B",
            CreateGlvWithdrawalParams(glv_token_amount=10 ** 12),
            long_swap_path=["MKT_D"],
        ).execute()
    assert "invalid long swap path" in str(ei.value)


def test_glv_withdrawal_swaps_ignore_virtual_inventories(glv_vi_simulator):
    sim = glv_vi_simulator
    wd = sim.simulate_glv_withdrawal(
        "GLV",
        "MKT_B",
        CreateGlvWithdrawalParams(glv_token_amount=10 ** 12),
        long_receive_token="SHORT",
        long_swap_path=["MKT_V"],
    ).execute()
    print(f"\n===== GLV WITHDRAWAL VIA MKT_V =====\n    long side={wd.long_swap.amount} {wd.long_swap.output_token}")
    assert wd.long_swap.output_token == "SHORT"
    assert sim.vis()["VI"].long_amount == 2 * 10 ** 15
    assert sim.vis()["VI"].short_amount == 10 ** 15

    # A plain withdrawal routes the same swap through the inventory.
    plain = sim.simulate_withdrawal(
        "MKT_B",
        CreateWithdrawalParams(market_token_amount=10 ** 12),
        long_receive_token="SHORT",
        long_swap_path=["MKT_V"],
    ).execute()
    assert sim.vis()["VI"].long_amount > 2 * 10 ** 15
    assert plain.long_swap.amount < wd.long_swap.amount
