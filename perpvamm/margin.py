"""Margin requirement and liquidation checks."""

from __future__ import annotations

from .constants import COLLATERAL_PRECISION, PRECISION, U128_MAX
from .errors import ErrorCode, PerpError
from .state import Market, User
from .validation import OraclePrice, validate_oracle_price


def _checked(value: int) -> int:
    if value < 0 or value > U128_MAX:
        raise PerpError(ErrorCode.MATH_OVERFLOW)
    return value


def _total_position_value(user: User, market: Market, price: int) -> int:
    total = 0
    for position in user.positions:
        if position.market_index == market.market_index and position.base_asset_amount != 0:
            value = _checked(abs(position.base_asset_amount) * price) // PRECISION
            total = _checked(total + value)
    return total


def _margin_ratio(user: User, total_position_value: int) -> int:
    collateral_value = user.collateral * (PRECISION // COLLATERAL_PRECISION)
    return _checked(collateral_value * PRECISION) // total_position_value


def meets_initial_margin_requirement(
    user: User, market: Market | None, oracle: OraclePrice | None, now: int
) -> bool:
    """True when the user's margin ratio in the market is at least the initial ratio."""
    if market is None:
        raise PerpError(ErrorCode.INVALID_MARKET_INDEX)
    if oracle is None:
        raise PerpError(ErrorCode.INVALID_ORACLE_PRICE)
    price = validate_oracle_price(oracle, now)
    total = _total_position_value(user, market, price)
    if total == 0:
        return True
    return _margin_ratio(user, total) >= market.initial_margin_ratio


def is_liquidatable(
    user: User, market: Market, oracle: OraclePrice | None, now: int
) -> bool:
    """True when the user's margin ratio is below the maintenance ratio."""
    price = validate_oracle_price(oracle, now)
    total = _total_position_value(user, market, price)
    if total == 0:
        return False
    return _margin_ratio(user, total) < market.maintenance_margin_ratio