# perpvamm

An in-memory perpetual futures exchange that prices trades with a virtual
automated market maker (vAMM). It keeps track of markets, user accounts,
collateral, positions, oracle prices, funding payments and liquidations. All
arithmetic uses fixed-point integers and checks the same ranges a 64- or 128-bit
ledger would enforce.

## Installation

```
pip install perpvamm
```

## Concepts

- Prices and base amounts use a precision of 10^9 (`perpvamm.constants.PRECISION`).
- Collateral is kept in units of 10^6, as for USDC
  (`perpvamm.constants.COLLATERAL_PRECISION`).
- Each market (`perpvamm.state.Market`) has a vAMM with base and quote
  reserves. A swap keeps their product constant
  (`perpvamm.amm.calculate_swap_output`). The mark price is
  `quote * 10^9 // base` (`Market.mark_price`).
- A user (`perpvamm.state.User`) holds collateral and eight position slots
  (`perpvamm.state.Position`).
- An oracle quote (`perpvamm.validation.OraclePrice`) is `price * 10**expo`. It
  is rejected if its `publish_time` is more than 60 seconds away from `now`, or
  if `expo` is positive.
- Exchange rules raise `perpvamm.errors.PerpError`. Its `code` attribute is an
  `perpvamm.errors.ErrorCode` member (numbered from 6000) and its message is
  `code.message`.
- `Exchange` also raises ordinary Python exceptions for bookkeeping mistakes:
  - `PermissionError` when a non-admin creates a market.
  - `ValueError` for a duplicate market or user, or for a ledger transfer the
    source cannot cover.
  - `KeyError` for an unknown user.
- Each trading operation in `perpvamm.trading` restores the user and market to
  their earlier state if it fails part-way.

## Example

```python
from perpvamm.exchange import Exchange, TokenLedger
from perpvamm.validation import OraclePrice
from perpvamm.errors import PerpError

ledger = TokenLedger()
exchange = Exchange(admin="admin", usdc_mint="usdc-mint", ledger=ledger)

now = 1_700_000_000
oracle = OraclePrice(price=100_000_000, expo=-6, publish_time=now)  # 100.0

exchange.create_market(
    "admin",
    market_index=0,
    amm_base_asset_reserve=1_000_000_000_000,
    amm_quote_asset_reserve=100_000_000_000_000,
    trade_fee_rate=1_000,
    liquidation_fee_rate=10_000,
    initial_margin_ratio=100_000,
    maintenance_margin_ratio=50_000,
    oracle=oracle,
    now=now,
)

exchange.create_user("alice")
ledger.mint("alice", 1_000_000_000)
exchange.deposit_collateral("alice", 500_000_000)
print(ledger.balance("alice"))           # 500000000

# Go long one unit of the base asset, paying at most 200.0 per unit.
exchange.open_position("alice", 0, 1_000_000_000, 200_000_000_000, oracle, now)
print(exchange.users["alice"].find_position(0).base_asset_amount)  # 1000000000

try:
    exchange.close_position("alice", 1)
except PerpError as exc:
    print("rejected:", exc.code.name, "-", exc)
```

## API overview

`perpvamm.exchange`
- `TokenLedger` keeps collateral-token balances. Its methods are `mint`,
  `balance` and `transfer`.
- `Exchange(admin, usdc_mint, ledger)` provides:
  - `create_market`, `create_user`
  - `deposit_collateral`, `withdraw_collateral`
  - `open_position`, `close_position`
  - `liquidate`, `settle_funding`

  Its `state`, `markets`, `users` and `vault` attributes expose the accounts.

`perpvamm.trading`
- `open_position`, `close_position`, `liquidate` and `settle_funding` act
  directly on `User` and `Market` objects.

`perpvamm.margin`
- `meets_initial_margin_requirement` and `is_liquidatable` compare the
  collateral-to-position-value ratio with the market's ratios.

`perpvamm.validation`
- `validate_oracle_price`, `validate_user_not_locked` and
  `validate_market_not_paused`.

`perpvamm.amm`
- `TradeDirection` and `calculate_swap_output`.

## What it does not do

- Everything lives in memory. Nothing is saved between runs.
- There is no command-line tool and no network service.
- There is no live oracle feed. Callers supply an `OraclePrice` and the current
  time `now` to each call.
- A market stores `trade_fee_rate` and `open_interest_base`, but trades do not
  charge the fee or update open interest.

## Running the tests

```
pip install "perpvamm[test]"
pytest
```