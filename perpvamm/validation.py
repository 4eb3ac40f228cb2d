"""Oracle price and account guard checks."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import ORACLE_STALENESS_THRESHOLD, PRECISION, U128_MAX
from .errors import ErrorCode, PerpError
from .state import Market, User


@dataclass(frozen=True)
class OraclePrice:
    """An oracle quote: price * 10**expo, published at publish_time."""

    price: int
    expo: int
    publish_time: int


def _reject_if(condition: bool, code: ErrorCode) -> None:
    if condition:
        raise PerpError(code)


def validate_oracle_price(oracle: OraclePrice | None, now: int) -> int:
    """Return the oracle price scaled to PRECISION, checking freshness and exponent."""
    _reject_if(oracle is None, ErrorCode.INVALID_ORACLE_PRICE)
    _reject_if(
        abs(now - oracle.publish_time) > ORACLE_STALENESS_THRESHOLD,
        ErrorCode.STALE_ORACLE_PRICE,
    )
    _reject_if(oracle.expo > 0, ErrorCode.INVALID_ORACLE_PRICE)

    # A negative price reinterpreted as unsigned cannot be scaled without overflow.
    scaled = (oracle.price & U128_MAX) * PRECISION
    _reject_if(scaled > U128_MAX, ErrorCode.MATH_OVERFLOW)
    return scaled // 10 ** abs(oracle.expo)


def validate_user_not_locked(user: User) -> None:
    """Fail if the user's operation lock is held."""
    _reject_if(user.operation_lock, ErrorCode.REENTRANCY_GUARD_ACTIVE)


def validate_market_not_paused(market: Market) -> None:
    """Fail if the market is paused."""
    _reject_if(market.paused, ErrorCode.MARKET_PAUSED)