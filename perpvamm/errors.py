"""Error codes and the exception raised by the exchange."""

from __future__ import annotations

import enum


class ErrorCode(enum.IntEnum):
    """Exchange error codes, numbered from 6000."""

    INVALID_CALCULATION = 6000
    MATH_OVERFLOW = 6001
    INVALID_ORACLE_PRICE = 6002
    STALE_ORACLE_PRICE = 6003
    PRICE_SLIPPAGE = 6004
    INVALID_TRADE_DIRECTION = 6005
    MARKET_PAUSED = 6006
    POSITION_NOT_FOUND = 6007
    NO_POSITION_TO_CLOSE = 6008
    POSITION_NOT_LIQUIDATABLE = 6009
    INSUFFICIENT_COLLATERAL = 6010
    WITHDRAWAL_CAUSES_MARGIN_CALL = 6011
    POSITION_CAUSES_MARGIN_CALL = 6012
    INVALID_AMOUNT = 6013
    INVALID_MARKET_INDEX = 6014
    UNHEALTHY_MARKET_STATE = 6015
    REENTRANCY_GUARD_ACTIVE = 6016
    FUNDING_ALREADY_SETTLED = 6017

    @property
    def message(self) -> str:
        """Human-readable description of the error."""
        return _MESSAGES[self]


_MESSAGES = {
    ErrorCode.INVALID_CALCULATION: "Invalid calculation",
    ErrorCode.MATH_OVERFLOW: "Math overflow",
    ErrorCode.INVALID_ORACLE_PRICE: "Invalid Oracle Price",
    ErrorCode.STALE_ORACLE_PRICE: "Oracle price is stale",
    ErrorCode.PRICE_SLIPPAGE: "AMM price is outside the limit price",
    ErrorCode.INVALID_TRADE_DIRECTION: "Invalid trade direction",
    ErrorCode.MARKET_PAUSED: "Market is paused",
    ErrorCode.POSITION_NOT_FOUND: "Position not found for the given market",
    ErrorCode.NO_POSITION_TO_CLOSE: "No position to close",
    ErrorCode.POSITION_NOT_LIQUIDATABLE: "Position is not liquidatable",
    ErrorCode.INSUFFICIENT_COLLATERAL: "Insufficient collateral for withdrawal or trade",
    ErrorCode.WITHDRAWAL_CAUSES_MARGIN_CALL: "Cannot withdraw funds, it would cause a margin call",
    ErrorCode.POSITION_CAUSES_MARGIN_CALL: "Cannot open position, it would cause an immediate margin call",
    ErrorCode.INVALID_AMOUNT: "Invalid amount for deposit or withdrawal",
    ErrorCode.INVALID_MARKET_INDEX: "The market index provided is invalid or out of bounds",
    ErrorCode.UNHEALTHY_MARKET_STATE: "Market is in an unhealthy state",
    ErrorCode.REENTRANCY_GUARD_ACTIVE: "Re-entrancy guard is active",
    ErrorCode.FUNDING_ALREADY_SETTLED: "Funding was already settled for the period",
}


class PerpError(Exception):
    """Raised when an exchange operation fails; carries an ErrorCode."""

    def __init__(self, code: ErrorCode) -> None:
        self.code = ErrorCode(code)
        super().__init__(self.code.message)