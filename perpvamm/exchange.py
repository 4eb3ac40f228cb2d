"""The exchange: global setup, markets, user accounts and collateral movements."""

from __future__ import annotations

from dataclasses import dataclass, field

from . import trading
from .constants import FUNDING_PERIOD, U16_MAX, U64_MAX, U128_MAX, VAULT_SEED
from .errors import ErrorCode, PerpError
from .margin import meets_initial_margin_requirement
from .state import Market, ProgramState, User
from .validation import OraclePrice, validate_user_not_locked


@dataclass
class TokenLedger:
    """Balances of the collateral token, keyed by owner."""

    balances: dict[str, int] = field(default_factory=dict)

    def mint(self, owner: str, amount: int) -> None:
        """Create amount new tokens in owner's balance."""
        if amount < 0:
            raise ValueError("amount must not be negative")
        new_balance = self.balance(owner) + amount
        if new_balance > U64_MAX:
            raise OverflowError("balance exceeds 64 bits")
        self.balances[owner] = new_balance

    def balance(self, owner: str) -> int:
        """Token balance held by owner."""
        return self.balances.get(owner, 0)

    def transfer(self, source: str, destination: str, amount: int) -> None:
        """Move amount tokens from source to destination."""
        if amount < 0:
            raise ValueError("amount must not be negative")
        if self.balance(source) < amount:
            raise ValueError(f"insufficient funds in {source!r}")
        if source == destination:
            return
        received = self.balance(destination) + amount
        if received > U64_MAX:
            raise OverflowError("balance exceeds 64 bits")
        self.balances[source] = self.balance(source) - amount
        self.balances[destination] = received


class Exchange:
    """A perpetuals exchange whose markets trade against virtual AMMs."""

    def __init__(self, admin: str, usdc_mint: str, ledger: TokenLedger) -> None:
        self.state = ProgramState(admin=admin, usdc_mint=usdc_mint)
        self.ledger = ledger
        self.vault = f"{VAULT_SEED.decode()}:{usdc_mint}"
        self.markets: dict[int, Market] = {}
        self.users: dict[str, User] = {}

    def _market(self, market_index: int) -> Market:
        try:
            return self.markets[market_index]
        except KeyError:
            raise PerpError(ErrorCode.INVALID_MARKET_INDEX) from None

    def _user(self, authority: str) -> User:
        try:
            return self.users[authority]
        except KeyError:
            raise KeyError(f"no user account for {authority!r}") from None

    def create_market(
        self,
        admin: str,
        market_index: int,
        amm_base_asset_reserve: int,
        amm_quote_asset_reserve: int,
        trade_fee_rate: int,
        liquidation_fee_rate: int,
        initial_margin_ratio: int,
        maintenance_margin_ratio: int,
        oracle: OraclePrice | None,
        now: int,
    ) -> Market:
        """Create a market; only the admin may do this."""
        if admin != self.state.admin:
            raise PermissionError("only the admin can create markets")
        if not 0 <= market_index <= U16_MAX:
            raise PerpError(ErrorCode.INVALID_MARKET_INDEX)
        if market_index in self.markets:
            raise ValueError(f"market {market_index} already exists")

        if amm_base_asset_reserve <= 0 or amm_quote_asset_reserve <= 0:
            raise PerpError(ErrorCode.INVALID_CALCULATION)
        if initial_margin_ratio <= maintenance_margin_ratio:
            raise PerpError(ErrorCode.INVALID_CALCULATION)
        if oracle is None:
            raise PerpError(ErrorCode.INVALID_ORACLE_PRICE)

        k = amm_base_asset_reserve * amm_quote_asset_reserve
        if k > U128_MAX:
            raise PerpError(ErrorCode.MATH_OVERFLOW)
        if self.state.number_of_markets + 1 > U16_MAX:
            raise PerpError(ErrorCode.MATH_OVERFLOW)

        market = Market(
            market_index=market_index,
            initialized=True,
            paused=False,
            amm_base_asset_reserve=amm_base_asset_reserve,
            amm_quote_asset_reserve=amm_quote_asset_reserve,
            amm_k_constant=k,
            trade_fee_rate=trade_fee_rate,
            liquidation_fee_rate=liquidation_fee_rate,
            initial_margin_ratio=initial_margin_ratio,
            maintenance_margin_ratio=maintenance_margin_ratio,
            last_funding_ts=now,
            funding_period=FUNDING_PERIOD,
        )
        self.markets[market_index] = market
        self.state.number_of_markets += 1
        return market

    def create_user(self, authority: str) -> User:
        """Open an account for authority."""
        if authority in self.users:
            raise ValueError(f"user {authority!r} already exists")
        user = User(authority=authority, initialized=True)
        self.users[authority] = user
        return user

    def deposit_collateral(self, authority: str, amount: int) -> None:
        """Move amount tokens from authority into the vault and credit the account."""
        if amount <= 0:
            raise PerpError(ErrorCode.INVALID_AMOUNT)
        user = self._user(authority)
        validate_user_not_locked(user)
        new_collateral = user.collateral + amount
        if new_collateral > U64_MAX:
            raise PerpError(ErrorCode.MATH_OVERFLOW)
        self.ledger.transfer(authority, self.vault, amount)
        user.collateral = new_collateral

    def withdraw_collateral(
        self,
        authority: str,
        amount: int,
        market_index: int,
        oracle: OraclePrice | None,
        now: int,
    ) -> None:
        """Return amount tokens from the vault, provided margin stays sufficient."""
        if amount <= 0:
            raise PerpError(ErrorCode.INVALID_AMOUNT)
        user = self._user(authority)
        validate_user_not_locked(user)

        free_collateral = user.collateral - amount
        if free_collateral < 0:
            raise PerpError(ErrorCode.INSUFFICIENT_COLLATERAL)

        market = self.markets.get(market_index)
        if not meets_initial_margin_requirement(user, market, oracle, now):
            raise PerpError(ErrorCode.WITHDRAWAL_CAUSES_MARGIN_CALL)

        self.ledger.transfer(self.vault, authority, amount)
        user.collateral = free_collateral

    def open_position(
        self,
        authority: str,
        market_index: int,
        base_asset_amount: int,
        limit_price: int,
        oracle: OraclePrice | None,
        now: int,
    ) -> None:
        """Open or extend a position (positive long, negative short)."""
        trading.open_position(
            self._user(authority),
            self._market(market_index),
            base_asset_amount,
            limit_price,
            oracle,
            now,
        )

    def close_position(self, authority: str, market_index: int) -> None:
        """Close the user's position in market_index."""
        trading.close_position(self._user(authority), self._market(market_index), market_index)

    def liquidate(
        self,
        liquidator: str,
        authority: str,
        market_index: int,
        oracle: OraclePrice | None,
        now: int,
    ) -> None:
        """Liquidate authority's position; any liquidator may call this."""
        trading.liquidate(
            self._user(authority), self._market(market_index), market_index, oracle, now
        )

    def settle_funding(
        self,
        authority: str,
        market_index: int,
        oracle: OraclePrice | None,
        now: int,
    ) -> None:
        """Settle the funding payment for authority's position in market_index."""
        trading.settle_funding(
            self._user(authority), self._market(market_index), market_index, oracle, now
        )