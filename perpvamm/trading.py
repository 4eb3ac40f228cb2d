"""Trading operations: opening and closing positions, liquidation and funding."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import fields

from .amm import TradeDirection, calculate_swap_output
from .constants import (
    I64_MAX,
    I64_MIN,
    I128_MAX,
    I128_MIN,
    PRECISION,
    U64_MAX,
    U128_MAX,
)
from .errors import ErrorCode, PerpError
from .margin import is_liquidatable, meets_initial_margin_requirement
from .state import Market, User
from .validation import (
    OraclePrice,
    validate_market_not_paused,
    validate_oracle_price,
    validate_user_not_locked,
)

_FEE_SCALE = 1_000_000
_FUNDING_DIVISOR = 24


@contextmanager
def _transaction(*accounts: object) -> Iterator[None]:
    """Restore every account to its prior state if the block raises."""
    snapshots = [copy.deepcopy(account) for account in accounts]
    try:
        yield
    except BaseException:
        for account, snapshot in zip(accounts, snapshots):
            for f in fields(account):
                setattr(account, f.name, getattr(snapshot, f.name))
        raise


def _in_range(value: int, low: int, high: int, code: ErrorCode = ErrorCode.MATH_OVERFLOW) -> int:
    if value < low or value > high:
        raise PerpError(code)
    return value


def _u64(value: int, code: ErrorCode = ErrorCode.MATH_OVERFLOW) -> int:
    return _in_range(value, 0, U64_MAX, code)


def _u128(value: int) -> int:
    return _in_range(value, 0, U128_MAX)


def _i128(value: int) -> int:
    return _in_range(value, I128_MIN, I128_MAX)


def _i64(value: int) -> int:
    return _in_range(value, I64_MIN, I64_MAX)


def _div_toward_zero(numerator: int, denominator: int) -> int:
    quotient = abs(numerator) // abs(denominator)
    return quotient if (numerator < 0) == (denominator < 0) else -quotient


def _abs_i128(value: int) -> int:
    if value == I128_MIN:
        raise PerpError(ErrorCode.MATH_OVERFLOW)
    return abs(value)


def _direction_of(amount: int) -> TradeDirection:
    return TradeDirection.LONG if amount > 0 else TradeDirection.SHORT


def _require_market_index(market: Market, market_index: int) -> None:
    if market.market_index != market_index:
        raise PerpError(ErrorCode.INVALID_MARKET_INDEX)


def _apply_collateral_change(user: User, change: int) -> None:
    # Amounts are truncated to 64 bits before being applied.
    if change > 0:
        user.collateral = _u64(user.collateral + (change & U64_MAX))
    else:
        user.collateral = _u64(user.collateral - (abs(change) & U64_MAX))


def open_position(
    user: User,
    market: Market,
    base_asset_amount: int,
    limit_price: int,
    oracle: OraclePrice | None,
    now: int,
) -> None:
    """Trade base_asset_amount against the vAMM (positive long, negative short)."""
    with _transaction(user, market):
        validate_user_not_locked(user)
        validate_market_not_paused(market)

        direction = _direction_of(base_asset_amount)
        size = _abs_i128(base_asset_amount)

        new_quote, new_base = calculate_swap_output(
            size,
            market.amm_base_asset_reserve,
            market.amm_quote_asset_reserve,
            direction,
        )
        quote_acquired = abs(market.amm_quote_asset_reserve - new_quote)

        if size == 0:
            raise PerpError(ErrorCode.MATH_OVERFLOW)
        entry_price = _u128(quote_acquired * PRECISION) // size

        if direction is TradeDirection.LONG:
            if limit_price < entry_price:
                raise PerpError(ErrorCode.PRICE_SLIPPAGE)
        elif limit_price > entry_price:
            raise PerpError(ErrorCode.PRICE_SLIPPAGE)

        market.amm_base_asset_reserve = new_base
        market.amm_quote_asset_reserve = new_quote

        position = user.find_or_create_position(market.market_index)
        position.base_asset_amount = _i128(position.base_asset_amount + base_asset_amount)
        position.quote_asset_amount = _u128(position.quote_asset_amount + quote_acquired)

        if not meets_initial_margin_requirement(user, market, oracle, now):
            raise PerpError(ErrorCode.POSITION_CAUSES_MARGIN_CALL)


def close_position(user: User, market: Market, market_index: int) -> None:
    """Close the user's position in market_index and realise its profit or loss."""
    with _transaction(user, market):
        _require_market_index(market, market_index)
        validate_user_not_locked(user)
        validate_market_not_paused(market)

        position = copy.copy(user.find_position(market_index))
        if position.base_asset_amount == 0:
            raise PerpError(ErrorCode.NO_POSITION_TO_CLOSE)

        to_close = -position.base_asset_amount
        new_quote, new_base = calculate_swap_output(
            _abs_i128(to_close),
            market.amm_base_asset_reserve,
            market.amm_quote_asset_reserve,
            _direction_of(to_close),
        )
        quote_returned = abs(market.amm_quote_asset_reserve - new_quote)

        if position.base_asset_amount > 0:
            pnl = quote_returned - position.quote_asset_amount
        else:
            pnl = position.quote_asset_amount - quote_returned

        if pnl > 0:
            _apply_collateral_change(user, pnl // PRECISION)
        else:
            _apply_collateral_change(user, -(abs(pnl) // PRECISION))

        market.amm_base_asset_reserve = new_base
        market.amm_quote_asset_reserve = new_quote

        user.find_position(market_index).reset(market_index)


def liquidate(
    user: User,
    market: Market,
    market_index: int,
    oracle: OraclePrice | None,
    now: int,
) -> None:
    """Liquidate the user's position in market_index when below maintenance margin."""
    with _transaction(user, market):
        _require_market_index(market, market_index)
        validate_user_not_locked(user)
        validate_market_not_paused(market)

        user.operation_lock = True

        if not is_liquidatable(user, market, oracle, now):
            raise PerpError(ErrorCode.POSITION_NOT_LIQUIDATABLE)

        position = user.find_position(market_index)
        position_value = _in_range(
            _abs_i128(position.base_asset_amount) * market.mark_price(), 0, I128_MAX
        )
        fee = _u64((position_value & U64_MAX) * market.liquidation_fee_rate) // _FEE_SCALE

        user.collateral = _u64(user.collateral - fee, ErrorCode.INSUFFICIENT_COLLATERAL)

        position.reset(market_index)
        user.operation_lock = False


def settle_funding(
    user: User,
    market: Market,
    market_index: int,
    oracle: OraclePrice | None,
    now: int,
) -> None:
    """Apply the funding payment for the user's position in market_index."""
    with _transaction(user, market):
        _require_market_index(market, market_index)
        validate_user_not_locked(user)

        position = user.find_position(market_index)

        since_settle = _i64(now - position.last_settled_funding_ts)
        if since_settle < market.funding_period:
            return

        since_update = _i64(now - market.last_funding_ts)
        if since_update >= market.funding_period:
            oracle_price = validate_oracle_price(oracle, now)
            mark_price = market.mark_price()
            premium = _i128(mark_price - oracle_price)
            funding_rate = _div_toward_zero(_i128(premium * PRECISION), _FUNDING_DIVISOR)
            market.last_funding_rate = funding_rate
            market.last_funding_ts = now

        payment = _div_toward_zero(
            _i128(position.base_asset_amount * market.last_funding_rate), PRECISION
        )
        _apply_collateral_change(user, -payment)

        position.last_settled_funding_ts = now