"""Protocol-wide constants."""

BASIS_POINTS = 10_000

# Health factors are scaled x100; anything below 100 is liquidatable.
HEALTH_FACTOR_PRECISION = 100
MAX_HEALTH_FACTOR = 2**256 - 1

# All prices leaving the feed adapter carry this many decimals.
PRICE_DECIMALS = 8

STALENESS_THRESHOLD = 3600  # seconds
MAX_PRICE_DEVIATION = 500  # basis points

# 0.01 of an 18-decimal collateral token.
MIN_PROFIT_THRESHOLD = 10**16
