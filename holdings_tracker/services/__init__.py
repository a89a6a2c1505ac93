# holdings_tracker/services/__init__.py
"""
Service layer for business logic.

This package contains the service layer which encapsulates business logic
separate from the API (router) layer. Services:
- Have NO knowledge of HTTP (no HTTPException, no status codes)
- Raise domain-specific exceptions
- Receive database sessions (or a sessionmaker, when they run on worker
  threads) from the caller
- Are easily testable via dependency injection

Usage:
    from holdings_tracker.services import PriceCacheManager
    from holdings_tracker.services import CurrencyNormalizer
    from holdings_tracker.services import PortfolioValuationService
    from holdings_tracker.services import (
        ServiceError,
        MarketDataError,
        StorageError,
    )

Architecture:
    services/
    ├── __init__.py          # This file - main exports
    ├── exceptions.py        # Domain exceptions
    ├── constants.py         # Business constants and limits
    ├── protocols.py         # Store / ledger / gateway interfaces
    ├── price_store.py       # Daily bars and FX rates (SQLAlchemy)
    ├── sync_ledger.py       # Last successful provider check per key
    ├── price_cache.py       # Freshness + incremental refresh policy
    ├── currency.py          # Pence handling and FX conversion
    ├── price_series.py      # Parallel load + normalize for many tickers
    ├── ledger.py            # Transaction ledger reads and writes
    ├── cache_admin.py       # Administrative cache reset
    ├── market_data/         # Provider + serialized gateway
    │   ├── base.py          # Abstract provider interface
    │   ├── yahoo.py         # Yahoo Finance implementation
    │   └── gateway.py       # Single-slot call queue
    └── valuation/           # Valuation
        ├── types.py         # Valuation data types
        ├── engine.py        # Pure ledger replay
        └── service.py       # get_portfolio_valuation orchestrator
"""

from holdings_tracker.services.cache_admin import CacheAdminService, ResetResult
from holdings_tracker.services.currency import CurrencyNormalizer
# Exceptions
from holdings_tracker.services.exceptions import (
    ServiceError,
    ValidationError,
    NotFoundError,
    PortfolioNotFoundError,
    TransactionNotFoundError,
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    StorageError,
)
from holdings_tracker.services.ledger import NewTransaction, TransactionRepository
from holdings_tracker.services.price_cache import (
    PriceCacheManager,
    RateSeriesResult,
    SeriesResult,
)
from holdings_tracker.services.price_series import NormalizedBatch, PriceSeriesService
from holdings_tracker.services.price_store import PriceBar, RatePoint, SqlPriceStore
from holdings_tracker.services.sync_ledger import SqlSyncLedger
from holdings_tracker.services.valuation import PortfolioValuationService, ValuationEngine

__all__ = [
    # Pipeline
    "SqlPriceStore",
    "SqlSyncLedger",
    "PriceCacheManager",
    "CurrencyNormalizer",
    "PriceSeriesService",
    "ValuationEngine",
    "PortfolioValuationService",
    "TransactionRepository",
    "CacheAdminService",

    # Data types
    "PriceBar",
    "RatePoint",
    "SeriesResult",
    "RateSeriesResult",
    "NormalizedBatch",
    "NewTransaction",
    "ResetResult",

    # Exceptions
    "ServiceError",
    "ValidationError",
    "NotFoundError",
    "PortfolioNotFoundError",
    "TransactionNotFoundError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "StorageError",
]
