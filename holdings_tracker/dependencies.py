# holdings_tracker/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests. Sharing matters here beyond efficiency: the Market Data
Gateway owns the process-wide provider queue, so there must be exactly
one of it.

Services are lazily initialized on first use to avoid import-time side effects.

Usage in routers:
    from holdings_tracker.dependencies import get_valuation_service

    @router.get("/{portfolio_id}/valuation")
    def get_valuation(
        service: PortfolioValuationService = Depends(get_valuation_service),
    ):
        ...

Tests replace any of these through app.dependency_overrides.
"""

import logging
from functools import lru_cache

from holdings_tracker.config import settings
from holdings_tracker.database import SessionLocal
from holdings_tracker.services.cache_admin import CacheAdminService
from holdings_tracker.services.currency import CurrencyNormalizer
from holdings_tracker.services.ledger import TransactionRepository
from holdings_tracker.services.market_data.gateway import MarketDataGateway
from holdings_tracker.services.market_data.yahoo import YahooFinanceProvider
from holdings_tracker.services.price_cache import PriceCacheManager
from holdings_tracker.services.price_series import PriceSeriesService
from holdings_tracker.services.price_store import SqlPriceStore
from holdings_tracker.services.sync_ledger import SqlSyncLedger
from holdings_tracker.services.valuation.engine import ValuationEngine
from holdings_tracker.services.valuation.service import PortfolioValuationService
from holdings_tracker.utils.date_utils import SystemClock

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_clock, get_market_data_provider (no deps)
# 2. get_market_data_gateway (provider)
# 3. get_price_store, get_sync_ledger (SessionLocal)
# 4. get_price_cache (store, ledger, gateway)
# 5. get_currency_normalizer, get_price_series_service (price cache)
# 6. get_valuation_service (repository, price series)


@lru_cache(maxsize=1)
def get_clock() -> SystemClock:
    return SystemClock()


@lru_cache(maxsize=1)
def get_market_data_provider() -> YahooFinanceProvider:
    """Get the singleton market data provider instance."""
    logger.debug("Initializing singleton YahooFinanceProvider")
    return YahooFinanceProvider(timeout=settings.provider_timeout_seconds)


@lru_cache(maxsize=1)
def get_market_data_gateway() -> MarketDataGateway:
    """
    Get the singleton MarketDataGateway.

    Every provider call of the process goes through its worker pool
    (GATEWAY_CONCURRENCY workers, default 1).
    """
    logger.debug(f"Initializing singleton MarketDataGateway (concurrency={settings.gateway_concurrency})")
    return MarketDataGateway(
        provider=get_market_data_provider(),
        concurrency=settings.gateway_concurrency,
        timeout=settings.gateway_timeout_seconds,
        clock=get_clock(),
    )


@lru_cache(maxsize=1)
def get_price_store() -> SqlPriceStore:
    return SqlPriceStore(SessionLocal)


@lru_cache(maxsize=1)
def get_sync_ledger() -> SqlSyncLedger:
    return SqlSyncLedger(SessionLocal)


@lru_cache(maxsize=1)
def get_price_cache() -> PriceCacheManager:
    """Get the singleton PriceCacheManager (store + sync ledger + gateway)."""
    logger.debug("Initializing singleton PriceCacheManager")
    return PriceCacheManager(
        store=get_price_store(),
        ledger=get_sync_ledger(),
        gateway=get_market_data_gateway(),
        clock=get_clock(),
    )


@lru_cache(maxsize=1)
def get_currency_normalizer() -> CurrencyNormalizer:
    return CurrencyNormalizer(
        get_price_cache(),
        forward_fill_days=settings.forward_fill_days,
        max_workers=settings.valuation_max_workers,
    )


@lru_cache(maxsize=1)
def get_price_series_service() -> PriceSeriesService:
    """Get the singleton PriceSeriesService used by /prices and valuations."""
    return PriceSeriesService(
        price_cache=get_price_cache(),
        normalizer=get_currency_normalizer(),
        clock=get_clock(),
        max_workers=settings.valuation_max_workers,
        history_lookback_years=settings.history_lookback_years,
    )


@lru_cache(maxsize=1)
def get_transaction_repository() -> TransactionRepository:
    return TransactionRepository(clock=get_clock())


@lru_cache(maxsize=1)
def get_valuation_service() -> PortfolioValuationService:
    """
    Get the singleton PortfolioValuationService instance.

    Shares the price cache (and so the gateway) with the /prices endpoint.
    """
    logger.debug("Initializing singleton PortfolioValuationService")
    return PortfolioValuationService(
        repository=get_transaction_repository(),
        price_series=get_price_series_service(),
        engine=ValuationEngine(forward_fill_days=settings.forward_fill_days),
        clock=get_clock(),
        default_currency=settings.reporting_currency,
        history_lookback_years=settings.history_lookback_years,
    )


@lru_cache(maxsize=1)
def get_cache_admin_service() -> CacheAdminService:
    return CacheAdminService(SessionLocal, clock=get_clock())
