# holdings_tracker/routers/__init__.py
"""
API routers for the Holdings Tracker.

Each router handles a specific domain:
- transactions: BUY/SELL ledger records
- portfolios: Portfolio metadata (asset class labels)
- valuation: Portfolio valuation (holdings + daily value series)
- prices: Normalized price series for arbitrary tickers
- admin: Cache reset
"""

from holdings_tracker.routers.admin import router as admin_router
from holdings_tracker.routers.portfolios import router as portfolios_router
from holdings_tracker.routers.prices import router as prices_router
from holdings_tracker.routers.transactions import router as transactions_router
from holdings_tracker.routers.valuation import router as valuation_router

__all__ = [
    "admin_router",
    "portfolios_router",
    "prices_router",
    "transactions_router",
    "valuation_router",
]
