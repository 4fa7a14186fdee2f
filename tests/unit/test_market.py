import pytest

from gmsim.core import MARKET_USD_UNIT as UNIT, ComputationError, InsufficientLiquidity, ValidationError
from gmsim.core.exc import EmptyDeposit, EmptyWithdrawal, InvalidArgument, InvalidPoolValue
from gmsim.market import MarketConfig, PnlFactorKind, Pool, SwapPricingKind
from gmsim.virtual_inventory import VirtualInventory, VirtualInventoryModel


def _fee_config(fee_factor=UNIT // 1000, receiver_factor=UNIT // 2):
    return MarketConfig(
        swap_fee_factor_for_positive_impact=fee_factor,
        swap_fee_factor_for_negative_impact=fee_factor,
        swap_fee_receiver_factor=receiver_factor,
    )


# -----------------------------
# Pricing
# -----------------------------

def test_pool_value_and_market_token_price(market, prices):
    value = market.pool_value(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)
    price = market.market_token_price(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)
    print(f"\n===== POOL VALUE =====\n    value={value} token_price={price}")
    assert value == 2 * 10 ** 26
    # $1 per whole market token.
    assert price == UNIT


def test_market_token_price_with_zero_supply(market_factory, prices):
    empty = market_factory("MKT_E", long_amount=0, short_amount=0, supply=0)
    assert empty.market_token_price(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True) == UNIT

    stranded = market_factory("MKT_S", supply=0)
    with pytest.raises(InvalidPoolValue):
        stranded.market_token_price(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)


def test_negative_pool_value_is_rejected(market, prices):
    market.make_state_mut().position_impact_amount = 3 * 10 ** 15
    assert market.pool_value(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True) < 0
    with pytest.raises(InvalidPoolValue):
        market.market_token_price(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)


def test_trader_pnl_is_capped_by_pnl_factor(market_factory, prices):
    m = market_factory("MKT_B", config=MarketConfig(max_pnl_factor_for_long_deposit=UNIT // 50))
    st = m.make_state_mut()
    st.open_interest.long_amount = 10 ** 25
    st.open_interest_in_tokens.long_amount = 2 * 10 ** 14

    assert m.pnl(prices, True, True) == 10 ** 25
    capped = m.pool_value(prices, PnlFactorKind.MAX_AFTER_DEPOSIT, True)
    uncapped = m.pool_value(prices, PnlFactorKind.MAX_AFTER_WITHDRAWAL, True)
    print(f"\n    capped={capped} uncapped={uncapped}")
    # 2% of the 1e26 long side is the most traders' profit can count for.
    assert capped == 2 * 10 ** 26 - 2 * 10 ** 24
    assert uncapped == 2 * 10 ** 26 - 10 ** 25


def test_max_sellable_value_respects_reserves(market, prices):
    assert market.max_sellable_value(prices) == 2 * 10 ** 26

    st = market.make_state_mut()
    st.open_interest_in_tokens.long_amount = 5 * 10 ** 14
    st.open_interest.long_amount = 5 * 10 ** 25
    sellable = market.max_sellable_value(prices)
    print(f"\n    max sellable with half the long side reserved: {sellable}")
    assert sellable == 10 ** 26


def test_status_reports_both_sides(market, prices):
    status = market.status(prices)
    assert status.total_value.min == status.total_value.max == 2 * 10 ** 26
    assert status.pool_value_without_pnl_for_long.min == 10 ** 26
    assert status.pending_pnl_for_long.max == 0
    assert status.open_interest_for_short == 0


# -----------------------------
# Swap
# -----------------------------

def test_swap_without_fees_or_impact_is_one_to_one(market, prices):
    report = market.swap(True, 10 ** 12, prices).execute()
    assert report.token_out_amount == 10 ** 12
    assert report.price_impact_value == 0
    assert market.state.liquidity == Pool(10 ** 15 + 10 ** 12, 10 ** 15 - 10 ** 12)


def test_swap_fees_split_between_pool_and_receiver(market_factory, prices):
    m = market_factory("MKT_F", config=_fee_config())
    report = m.swap(True, 10 ** 12, prices).execute()
    print(f"\n    out={report.token_out_amount} fees={report.token_in_fees}")
    assert report.token_out_amount == 999 * 10 ** 9
    assert report.token_in_fees.fee_amount_for_receiver == 5 * 10 ** 8
    assert report.token_in_fees.fee_amount_for_pool == 5 * 10 ** 8
    assert report.token_in_fee_amount == 10 ** 9
    assert m.state.claimable_fee.long_amount == 5 * 10 ** 8
    # Pool keeps the swapped-in amount minus the receiver's share.
    assert m.state.liquidity.long_amount == 10 ** 15 + 10 ** 12 - 5 * 10 ** 8


def test_swap_negative_impact_goes_to_impact_pool(impact_market, prices):
    report = impact_market.swap(True, 10 ** 12, prices).execute()
    print(f"\n===== NEGATIVE IMPACT =====\n    impact={report.price_impact_value} amount={report.price_impact_amount}")
    assert report.price_impact_value == -2 * 10 ** 21
    assert report.price_impact_amount == 2 * 10 ** 10
    assert report.token_out_amount == 98 * 10 ** 10
    assert impact_market.state.swap_impact.long_amount == 10 ** 14 + 2 * 10 ** 10


def test_swap_positive_impact_is_paid_from_impact_pool(impact_market, prices):
    report = impact_market.swap(False, 10 ** 12, prices).execute()
    assert report.price_impact_value == 2 * 10 ** 21
    assert report.token_out_amount == 102 * 10 ** 10
    assert impact_market.state.swap_impact.long_amount == 10 ** 14 - 2 * 10 ** 10



def test_swap_positive_impact_capped_by_impact_pool(impact_market, prices):
    impact_market.make_state_mut().swap_impact.long_amount = 5 * 10 ** 9
    report = impact_market.swap(False, 10 ** 12, prices).execute()
    print(f"\n    capped bonus: out={report.token_out_amount}")
    assert report.price_impact_amount == 5 * 10 ** 9
    assert report.token_out_amount == 10 ** 12 + 5 * 10 ** 9
    assert impact_market.state.swap_impact.long_amount == 0


def test_swap_insufficient_liquidity_leaves_state_untouched(market_factory, prices):
    m = market_factory("MKT_L", short_amount=10 ** 9)
    def snapshot():
        st = m.state
        return (st.liquidity.long_amount, st.liquidity.short_amount, st.long_token_balance, st.short_token_balance)

    before = snapshot()
    with pytest.raises(InsufficientLiquidity) as ei:
        m.swap(True, 10 ** 12, prices).execute()
    print(f"\n    {ei.value}")
    assert ei.value.available == 10 ** 9
    assert snapshot() == before


def test_swap_reserve_breach_rolls_back(market, prices):
    st = market.make_state_mut()
    # Long side almost fully reserved by open positions.
    st.open_interest_in_tokens.long_amount = 10 ** 15 - 5 * 10 ** 11
    st.open_interest.long_amount = (10 ** 15 - 5 * 10 ** 11) * 10 ** 11
    supply = market.supply
    with pytest.raises(ValidationError):
        market.swap(False, 10 ** 12, prices).execute()
    assert market.state.liquidity == Pool(10 ** 15, 10 ** 15)
    assert market.state.short_token_balance == 10 ** 15
    assert market.supply == supply


def test_pure_market_is_not_swappable(market_factory, prices):
    pure = market_factory("MKT_P", short_token="LONG")
    assert pure.is_pure()
    with pytest.raises(InvalidArgument):
        pure.swap(True, 10 ** 9, prices)


def test_copied_market_does_not_see_swaps(market, prices):
    clone = market.copy()
    assert market.is_shared()
    clone.swap(True, 10 ** 12, prices).execute()
    assert market.state.liquidity == Pool(10 ** 15, 10 ** 15)
    assert clone.state.liquidity.long_amount == 10 ** 15 + 10 ** 12


# -----------------------------
# Virtual inventory contexts
# -----------------------------

def test_missing_virtual_inventory_is_an_error_until_provided(market_factory, prices):
    m = market_factory("MKT_V", vi="VI")
    with pytest.raises(InvalidArgument):
        m.virtual_inventory_for_swaps()

    with m.with_vis_disabled():
        assert m.virtual_inventory_for_swaps() is None
        m.swap(True, 10 ** 9, prices).execute()

    vi = VirtualInventoryModel(VirtualInventory("VI", 10 ** 15, 10 ** 15))
    vi_map = {"VI": vi}
    with m.with_vi_models(vi_map):
        assert "VI" not in vi_map
        assert m.virtual_inventory_for_swaps() is vi
        m.swap(True, 10 ** 9, prices).execute()
    assert vi_map["VI"].long_amount == 10 ** 15 + 10 ** 9
    assert m.vi_for_swaps is None


def test_vi_is_restored_when_swap_fails(market_factory, prices):
    m = market_factory("MKT_V", short_amount=10 ** 9, vi="VI")
    vi_map = {"VI": VirtualInventoryModel(VirtualInventory("VI", 10 ** 15, 10 ** 15))}
    with pytest.raises(InsufficientLiquidity):
        with m.with_vi_models(vi_map):
            m.swap(True, 10 ** 12, prices).execute()
    assert vi_map["VI"].long_amount == 10 ** 15


def test_vi_underflow_fails_swap_and_rolls_back(market_factory, prices):
    m = market_factory("MKT_V", vi="VI")
    vi_map = {"VI": VirtualInventoryModel(VirtualInventory("VI", 10 ** 15, 10 ** 9))}
    with pytest.raises(ComputationError) as ei:
        with m.with_vi_models(vi_map):
            m.swap(True, 10 ** 12, prices).execute()
    print(f"\n    {ei.value}")
    assert "underflow" in str(ei.value)
    assert (vi_map["VI"].long_amount, vi_map["VI"].short_amount) == (10 ** 15, 10 ** 9)
    assert m.state.liquidity.long_amount == 10 ** 15


@pytest.mark.parametrize("is_long,delta", [(True, -(10 ** 15) - 1), (False, -(10 ** 9) - 1)])
def test_vi_apply_delta_is_checked(is_long, delta):
    print(f"[case] is_long={is_long} delta={delta}")
    vi = VirtualInventoryModel(VirtualInventory("VI", 10 ** 15, 10 ** 9))
    with pytest.raises(ComputationError):
        vi.apply_delta(is_long, delta)
    assert (vi.long_amount, vi.short_amount) == (10 ** 15, 10 ** 9)
    vi.apply_delta(is_long, delta + 1)
    assert vi.amount(is_long) == 0



# -----------------------------
# Deposit
# -----------------------------

def test_deposit_mints_pro_rata(market, prices):
    report = market.deposit(10 ** 11, 0, prices).execute()
    assert report.minted == 10 ** 11
    assert market.supply == 2 * 10 ** 15 + 10 ** 11
    assert market.state.liquidity.long_amount == 10 ** 15 + 10 ** 11


def test_first_deposit_into_empty_market(market_factory, prices):
    m = market_factory("MKT_E", long_amount=0, short_amount=0, supply=0)
    report = m.deposit(10 ** 11, 10 ** 11, prices).execute()
    print(f"\n    first deposit minted={report.minted}")
    # $200 of value at $1 per market token.
    assert report.minted == 2 * 10 ** 11


def test_deposit_positive_impact_adds_from_impact_pool(impact_market, prices):
    report = impact_market.deposit(0, 10 ** 12, prices).execute()
    print(f"\n===== DEPOSIT IMPACT =====\n    impact={report.price_impact_value} minted={report.minted}")
    assert report.price_impact_value == 10 ** 21
    assert report.minted == 101 * 10 ** 10
    assert impact_market.state.swap_impact.short_amount == 10 ** 14 - 10 ** 10
    assert impact_market.state.liquidity.short_amount == 10 ** 15 + 10 ** 12 + 10 ** 10


def test_empty_deposit_is_rejected(market, prices):
    with pytest.raises(EmptyDeposit):
        market.deposit(0, 0, prices)


def test_deposit_over_max_pool_amount_rolls_back(market_factory, prices):
    m = market_factory("MKT_B", config=MarketConfig(max_pool_amount_for_long_token=10 ** 15))
    with pytest.raises(ValidationError):
        m.deposit(1, 0, prices).execute()
    assert m.supply == 2 * 10 ** 15
    assert m.state.liquidity.long_amount == 10 ** 15


# -----------------------------
# Withdrawal
# -----------------------------

def test_withdrawal_splits_by_side_value(market, prices):
    report = market.withdraw(2 * 10 ** 14, prices).execute()
    assert report.long_token_output == 10 ** 14
    assert report.short_token_output == 10 ** 14
    assert market.supply == 18 * 10 ** 14
    assert market.state.liquidity == Pool(9 * 10 ** 14, 9 * 10 ** 14)


def test_withdrawal_fees_and_shift_pricing(market_factory, prices):
    m = market_factory("MKT_F", config=_fee_config(receiver_factor=0))
    with m.copy().with_swap_pricing(SwapPricingKind.SHIFT) as shifted:
        shift_report = shifted.withdraw(2 * 10 ** 14, prices).execute()
    report = m.withdraw(2 * 10 ** 14, prices).execute()
    print(f"\n    withdrawal out={report.long_token_output} shift out={shift_report.long_token_output}")
    assert report.long_token_output == 10 ** 14 - 10 ** 11
    assert shift_report.long_token_output == 10 ** 14
    # The fee stays with liquidity providers.
    assert m.state.liquidity.long_amount == 9 * 10 ** 14 + 10 ** 11
    assert m.swap_pricing is SwapPricingKind.SWAP


def test_empty_withdrawal_is_rejected(market, prices):
    with pytest.raises(EmptyWithdrawal):
        market.withdraw(0, prices)


def test_withdrawal_over_supply_fails(market, prices):
    with pytest.raises(InsufficientLiquidity):
        market.withdraw(3 * 10 ** 15, prices).execute()
