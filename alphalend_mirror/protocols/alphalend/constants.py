# Fixed point scale factors
WAD = 10**18  # 1e18, scale of xtoken_ratio, compounded_interest, borrow_weight
BPS_SCALE = 10_000  # Basis points (100% = 10000)
PERCENT_SCALE = 100

# Move u256
MAX_U256 = 2**256 - 1

# Time constants
MILLISECONDS_PER_SECOND = 1_000
SECONDS_PER_YEAR = 365 * 24 * 60 * 60  # 31,536,000
DAYS_PER_YEAR = 365

# Coin types
SUI_COIN_TYPE = "0x2::sui::SUI"
