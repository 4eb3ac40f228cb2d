"""Constant-product swap maths for the virtual AMM."""

from __future__ import annotations

import enum

from .constants import U128_MAX
from .errors import ErrorCode, PerpError


class TradeDirection(enum.Enum):
    """Side of a trade against the vAMM."""

    LONG = "long"
    SHORT = "short"


def _checked(value: int) -> int:
    if value < 0 or value > U128_MAX:
        raise PerpError(ErrorCode.MATH_OVERFLOW)
    return value


def calculate_swap_output(
    base_asset_amount: int,
    base_asset_reserve: int,
    quote_asset_reserve: int,
    direction: TradeDirection,
) -> tuple[int, int]:
    """Return (new_quote_asset_reserve, new_base_asset_reserve) after a swap."""
    if base_asset_reserve == 0 or quote_asset_reserve == 0:
        raise PerpError(ErrorCode.UNHEALTHY_MARKET_STATE)

    k = _checked(base_asset_reserve * quote_asset_reserve)

    if direction is TradeDirection.LONG:
        new_base = _checked(base_asset_reserve - base_asset_amount)
    else:
        new_base = _checked(base_asset_reserve + base_asset_amount)

    if new_base == 0:
        raise PerpError(ErrorCode.MATH_OVERFLOW)
    return k // new_base, new_base