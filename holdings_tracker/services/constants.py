# holdings_tracker/services/constants.py
"""
Centralized constants for the Holdings Tracker services.

Values that operators may want to tune live in config.Settings; these are
the fixed business rules and API limits.

Usage:
    from holdings_tracker.services.constants import (
        PENCE_CURRENCY_CODES,
        CURRENCY_PRECISION,
    )
"""

from decimal import Decimal


# =============================================================================
# DECIMAL PRECISION
# =============================================================================

# Reported monetary values (current value, series values)
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Prices, rates and quantities as stored (matches Numeric(18, 8))
PRICE_PRECISION: Decimal = Decimal("0.00000001")

ZERO: Decimal = Decimal("0")
ONE: Decimal = Decimal("1")


# =============================================================================
# CURRENCY
# =============================================================================

# Minor-unit GBP quotes (London listings). GBX is the ISO-style spelling.
PENCE_CURRENCY_CODES: frozenset[str] = frozenset({"GBp", "GBX", "GBx"})
PENCE_MAJOR_CURRENCY: str = "GBP"
PENCE_FACTOR: Decimal = Decimal("0.01")

# Multiplier used when no rate is found within the forward-fill window
FX_FALLBACK_MULTIPLIER: Decimal = ONE


# =============================================================================
# SYNC LEDGER KEYS
# =============================================================================

ASSET_KEY_PREFIX: str = "asset_"
RATE_KEY_PREFIX: str = "rate_"


# =============================================================================
# VALUATION
# =============================================================================

# Series start for a ledger with no transactions (calendar days before today)
DEFAULT_LOOKBACK_DAYS: int = 365

# Extra history fetched before the earliest transaction so the first days
# can be forward-filled from a prior close
HISTORY_PADDING_DAYS: int = 7


# =============================================================================
# ADMIN
# =============================================================================

# Default window for the cache reset endpoint
CACHE_RESET_DEFAULT_HOURS: int = 24


# =============================================================================
# API LIMITS
# =============================================================================

MAX_BULK_TRANSACTIONS: int = 1000
MAX_TICKERS_PER_REQUEST: int = 50


# =============================================================================
# RATE LIMITING (slowapi format: "N/period")
# =============================================================================

RATE_LIMIT_DEFAULT: str = "100/minute"
RATE_LIMIT_WRITE: str = "30/minute"
RATE_LIMIT_VALUATION: str = "20/minute"
RATE_LIMIT_ADMIN: str = "5/minute"
RATE_LIMIT_HEALTH: str = "60/minute"
