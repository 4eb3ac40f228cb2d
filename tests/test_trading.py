from contextlib import contextmanager

import pytest

from perpvamm.amm import TradeDirection, calculate_swap_output
from perpvamm.constants import FUNDING_PERIOD, PRECISION
from perpvamm.errors import ErrorCode, PerpError
from perpvamm.state import Market, Position, User
from perpvamm.trading import close_position, liquidate, open_position, settle_funding
from perpvamm.validation import OraclePrice

NOW = 10_000
RESERVE = 10**12
BIG_LIMIT = 10**30
RICH = 10**12


@contextmanager
def fails_with(code):
    with pytest.raises(PerpError) as info:
        yield
    assert info.value.code is code


def make_market(liquidation_fee_rate=0, paused=False):
    return Market(
        market_index=0,
        initialized=True,
        paused=paused,
        amm_base_asset_reserve=RESERVE,
        amm_quote_asset_reserve=RESERVE,
        amm_k_constant=RESERVE * RESERVE,
        liquidation_fee_rate=liquidation_fee_rate,
        initial_margin_ratio=100_000,
        maintenance_margin_ratio=50_000,
        funding_period=FUNDING_PERIOD,
    )


def oracle(price=1, expo=0, publish_time=NOW):
    return OraclePrice(price=price, expo=expo, publish_time=publish_time)


def user_with(collateral, base=0, quote=0, settled_ts=0):
    user = User(authority="alice", initialized=True, collateral=collateral)
    user.positions[0] = Position(
        market_index=0,
        base_asset_amount=base,
        quote_asset_amount=quote,
        last_settled_funding_ts=settled_ts,
    )
    return user


def trade(user, market, amount, limit=BIG_LIMIT):
    open_position(user, market, amount, limit, oracle(), NOW)


def recent_rate_market():
    market = make_market()
    market.last_funding_ts = NOW - 10
    market.last_funding_rate = PRECISION
    return market


# open_position


def test_open_long_updates_reserves_and_position():
    market = make_market()
    user = user_with(10**6)
    expected_quote, expected_base = calculate_swap_output(
        10**11, RESERVE, RESERVE, TradeDirection.LONG
    )
    trade(user, market, 10**11)
    assert (market.amm_base_asset_reserve, market.amm_quote_asset_reserve) == (
        expected_base,
        expected_quote,
    )
    position = user.find_position(0)
    assert position.base_asset_amount == 10**11
    assert position.quote_asset_amount == expected_quote - RESERVE


def test_open_short_records_negative_base():
    market = make_market()
    user = user_with(10**6)
    trade(user, market, -10**11, 0)
    assert user.find_position(0).base_asset_amount == -10**11
    assert market.amm_base_asset_reserve == RESERVE + 10**11
    assert market.amm_quote_asset_reserve < RESERVE


@pytest.mark.parametrize(
    "amount, limit, collateral, locked, paused, code",
    [
        (10**11, 0, 10**6, False, False, ErrorCode.PRICE_SLIPPAGE),
        (-10**11, BIG_LIMIT, 10**6, False, False, ErrorCode.PRICE_SLIPPAGE),
        (10**9, BIG_LIMIT, 50, False, False, ErrorCode.POSITION_CAUSES_MARGIN_CALL),
        (0, BIG_LIMIT, 10**6, False, False, ErrorCode.MATH_OVERFLOW),
        (10**9, BIG_LIMIT, 10**6, True, False, ErrorCode.REENTRANCY_GUARD_ACTIVE),
        (10**9, BIG_LIMIT, 10**6, False, True, ErrorCode.MARKET_PAUSED),
    ],
)
def test_open_rejected_leaves_state(amount, limit, collateral, locked, paused, code):
    market = make_market(paused=paused)
    user = user_with(collateral)
    user.operation_lock = locked
    with fails_with(code):
        trade(user, market, amount, limit)
    assert (market.amm_base_asset_reserve, market.amm_quote_asset_reserve) == (RESERVE, RESERVE)
    assert all(p.base_asset_amount == 0 for p in user.positions)


# close_position


def test_open_then_close_restores_base_reserve():
    market = make_market()
    user = user_with(10**6)
    trade(user, market, 10**11)
    close_position(user, market, 0)
    assert market.amm_base_asset_reserve == RESERVE
    assert market.amm_quote_asset_reserve <= RESERVE
    assert user.collateral == 10**6
    assert user.positions[0].base_asset_amount == 0
    with fails_with(ErrorCode.POSITION_NOT_FOUND):
        user.find_position(0)


@pytest.mark.parametrize("other_amount, gains", [(10**11, True), (-5 * 10**11, False)])
def test_close_long_pnl_follows_other_trader(other_amount, gains):
    market = make_market()
    alice = user_with(10**6)
    trade(alice, market, 10**11)
    trade(user_with(10**6), market, other_amount, BIG_LIMIT if other_amount > 0 else 0)
    close_position(alice, market, 0)
    assert (alice.collateral > 10**6) is gains
    assert alice.collateral != 10**6


@pytest.mark.parametrize(
    "user, index, code",
    [
        (user_with(10**6), 0, ErrorCode.POSITION_NOT_FOUND),
        (user_with(10**6, base=10**9, quote=10**9), 3, ErrorCode.INVALID_MARKET_INDEX),
    ],
)
def test_close_rejected(user, index, code):
    with fails_with(code):
        close_position(user, make_market(), index)


# liquidate


def test_liquidate_resets_position():
    user = user_with(10, base=10**9, quote=10**9)
    liquidate(user, make_market(), 0, oracle(), NOW)
    assert user.positions[0].base_asset_amount == 0
    assert user.positions[0].market_index == 0
    assert user.collateral == 10
    assert user.operation_lock is False


@pytest.mark.parametrize(
    "collateral, fee_rate, quote, code",
    [
        (10**6, 0, oracle(), ErrorCode.POSITION_NOT_LIQUIDATABLE),
        (10, 1, oracle(), ErrorCode.INSUFFICIENT_COLLATERAL),
        (10, 0, oracle(publish_time=NOW - 1000), ErrorCode.STALE_ORACLE_PRICE),
    ],
)
def test_liquidate_rejected(collateral, fee_rate, quote, code):
    user = user_with(collateral, base=10**9, quote=10**9)
    with fails_with(code):
        liquidate(user, make_market(liquidation_fee_rate=fee_rate), 0, quote, NOW)
    assert user.collateral == collateral
    assert user.positions[0].base_asset_amount == 10**9
    assert user.operation_lock is False


# settle_funding


def test_settle_funding_no_premium():
    market = make_market()
    user = user_with(RICH, base=1000, quote=1000)
    settle_funding(user, market, 0, oracle(), NOW)
    assert (market.last_funding_rate, market.last_funding_ts) == (0, NOW)
    assert user.collateral == RICH
    assert user.positions[0].last_settled_funding_ts == NOW


def test_settle_funding_long_pays_short_receives():
    market = make_market()
    long_user = user_with(RICH, base=1000, quote=1000)
    short_user = user_with(RICH, base=-1000, quote=1000)
    low_oracle = oracle(price=5, expo=-1)
    settle_funding(long_user, market, 0, low_oracle, NOW)
    assert market.last_funding_rate > 0
    settle_funding(short_user, market, 0, low_oracle, NOW)
    assert long_user.collateral < RICH < short_user.collateral
    assert RICH - long_user.collateral == short_user.collateral - RICH


def test_settle_funding_within_period_does_nothing():
    user = user_with(RICH, base=1000, quote=1000, settled_ts=NOW - 100)
    settle_funding(user, make_market(), 0, None, NOW)
    assert user.collateral == RICH
    assert user.positions[0].last_settled_funding_ts == NOW - 100


def test_settle_funding_uses_recent_market_rate():
    market = recent_rate_market()
    user = user_with(RICH, base=1000, quote=1000)
    settle_funding(user, market, 0, None, NOW)
    assert user.collateral == RICH - 1000
    assert market.last_funding_ts == NOW - 10


def test_settle_funding_insufficient_collateral_rolls_back():
    user = user_with(5, base=1000, quote=1000)
    with fails_with(ErrorCode.MATH_OVERFLOW):
        settle_funding(user, recent_rate_market(), 0, None, NOW)
    assert user.collateral == 5
    assert user.positions[0].last_settled_funding_ts == 0


@pytest.mark.parametrize(
    "base, locked, quote, code",
    [
        (1000, True, oracle(), ErrorCode.REENTRANCY_GUARD_ACTIVE),
        (0, False, oracle(), ErrorCode.POSITION_NOT_FOUND),
        (1000, False, oracle(publish_time=0), ErrorCode.STALE_ORACLE_PRICE),
    ],
)
def test_settle_funding_rejected(base, locked, quote, code):
    market = make_market()
    user = user_with(RICH, base=base, quote=base)
    user.operation_lock = locked
    with fails_with(code):
        settle_funding(user, market, 0, quote, NOW)
    assert market.last_funding_ts == 0
    assert user.collateral == RICH