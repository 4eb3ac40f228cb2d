"""Constants used throughout the exchange."""

PROGRAM_SEED = b"perp_dex_state"
VAULT_SEED = b"collateral_vault"
MARKET_SEED = b"market"
USER_SEED = b"user"

# Precision for prices and assets (10^9).
PRECISION = 1_000_000_000

# Precision for collateral (USDC, 10^6).
COLLATERAL_PRECISION = 1_000_000

MAX_POSITIONS = 8

# Oracle price validity window in seconds.
ORACLE_STALENESS_THRESHOLD = 60

# Funding period in seconds.
FUNDING_PERIOD = 3600

U16_MAX = 2**16 - 1
U64_MAX = 2**64 - 1
U128_MAX = 2**128 - 1
I64_MIN = -(2**63)
I64_MAX = 2**63 - 1
I128_MIN = -(2**127)
I128_MAX = 2**127 - 1