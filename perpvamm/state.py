"""Account state: markets, the global program state, users and positions."""

from __future__ import annotations

from dataclasses import dataclass, field, fields

from .constants import MAX_POSITIONS, PRECISION, U128_MAX
from .errors import ErrorCode, PerpError


def _as_i128(value: int) -> int:
    value &= U128_MAX
    return value - 2**128 if value >= 2**127 else value


@dataclass
class Market:
    """A single perpetuals market backed by a virtual AMM."""

    market_index: int = 0
    initialized: bool = False
    paused: bool = False
    bump: int = 0
    amm_base_asset_reserve: int = 0
    amm_quote_asset_reserve: int = 0
    amm_k_constant: int = 0
    oracle_price_feed: str | None = None
    trade_fee_rate: int = 0
    liquidation_fee_rate: int = 0
    initial_margin_ratio: int = 0
    maintenance_margin_ratio: int = 0
    last_funding_rate: int = 0
    last_funding_ts: int = 0
    funding_period: int = 0
    open_interest_base: int = 0

    def mark_price(self) -> int:
        """Mark price from the vAMM reserves, scaled by PRECISION."""
        if self.amm_base_asset_reserve == 0:
            return 0
        scaled = self.amm_quote_asset_reserve * PRECISION
        if scaled > U128_MAX:
            raise PerpError(ErrorCode.INVALID_CALCULATION)
        return scaled // self.amm_base_asset_reserve


@dataclass
class ProgramState:
    """Global state of the exchange."""

    admin: str = ""
    usdc_mint: str = ""
    bump: int = 0
    number_of_markets: int = 0
    paused: bool = False


@dataclass
class Position:
    """A user's position in one market."""

    market_index: int = 0
    base_asset_amount: int = 0
    quote_asset_amount: int = 0
    last_cumulative_funding_rate: int = 0
    last_settled_funding_ts: int = 0

    def unrealized_pnl(self, mark_price: int) -> int:
        """Unrealized profit at the given mark price; a loss raises MATH_OVERFLOW."""
        if self.base_asset_amount == 0:
            return 0
        current_value = abs(self.base_asset_amount) * mark_price
        entry_value = self.quote_asset_amount * PRECISION
        if current_value > U128_MAX or entry_value > U128_MAX:
            raise PerpError(ErrorCode.MATH_OVERFLOW)
        if self.base_asset_amount > 0:
            pnl = current_value - entry_value
        else:
            pnl = entry_value - current_value
        if pnl < 0:
            raise PerpError(ErrorCode.MATH_OVERFLOW)
        return _as_i128(pnl)

    def reset(self, market_index: int) -> None:
        """Clear the position, keeping it assigned to market_index."""
        for f in fields(self):
            setattr(self, f.name, 0)
        self.market_index = market_index


@dataclass
class User:
    """A user's account: collateral and a fixed set of position slots."""

    authority: str = ""
    bump: int = 0
    initialized: bool = False
    operation_lock: bool = False
    collateral: int = 0
    positions: list[Position] = field(
        default_factory=lambda: [Position() for _ in range(MAX_POSITIONS)]
    )

    def find_position(self, market_index: int) -> Position:
        """Return the open position in market_index."""
        found = next(
            (
                p
                for p in self.positions
                if p.market_index == market_index and p.base_asset_amount != 0
            ),
            None,
        )
        if found is None:
            raise PerpError(ErrorCode.POSITION_NOT_FOUND)
        return found

    def find_or_create_position(self, market_index: int) -> Position:
        """Return the slot for market_index, claiming an empty one if needed."""
        found = next((p for p in self.positions if p.market_index == market_index), None)
        if found is not None:
            return found
        empty = next((p for p in self.positions if p.base_asset_amount == 0), None)
        if empty is None:
            raise PerpError(ErrorCode.INVALID_MARKET_INDEX)
        empty.market_index = market_index
        return empty