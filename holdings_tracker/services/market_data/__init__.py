# holdings_tracker/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract interface for market data providers (base.py)
- Yahoo Finance implementation (yahoo.py)
- The serializing gateway every provider call goes through (gateway.py)

Architecture:
    MarketDataProvider (ABC)
    └── YahooFinanceProvider (yfinance)

    MarketDataGateway
    └── Bounded worker pool (default 1) in front of one provider
"""

from holdings_tracker.services.market_data.base import (
    MarketDataProvider,
    OHLCVData,
    DailyBars,
    QuoteMeta,
)
from holdings_tracker.services.market_data.gateway import MarketDataGateway, GatewayStats
from holdings_tracker.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    "MarketDataProvider",
    "OHLCVData",
    "DailyBars",
    "QuoteMeta",
    "MarketDataGateway",
    "GatewayStats",
    "YahooFinanceProvider",
]
