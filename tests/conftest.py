# tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Database fixtures (in-memory SQLite for single-threaded tests, a
  file-backed SQLite database for tests that fan out over threads)
- Mock provider and a fixed clock
- The real pipeline (store, ledger, gateway, price cache) wired to them
- A TestClient with every service dependency overridden
- Sample data factories
"""

import os

# Settings are validated at import time: select the test environment first
os.environ.setdefault("ENVIRONMENT", "test")

import threading
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Iterator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from holdings_tracker.database import get_db
from holdings_tracker.dependencies import (
    get_cache_admin_service,
    get_price_series_service,
    get_transaction_repository,
    get_valuation_service,
)
from holdings_tracker.main import app
from holdings_tracker.models import Base, TransactionType
from holdings_tracker.services.cache_admin import CacheAdminService
from holdings_tracker.services.currency import CurrencyNormalizer
from holdings_tracker.services.exceptions import TickerNotFoundError
from holdings_tracker.services.market_data.base import (
    DailyBars,
    MarketDataProvider,
    OHLCVData,
    QuoteMeta,
)
from holdings_tracker.services.ledger import TransactionRepository
from holdings_tracker.services.market_data.gateway import MarketDataGateway
from holdings_tracker.services.price_cache import PriceCacheManager
from holdings_tracker.services.price_series import PriceSeriesService
from holdings_tracker.services.price_store import PriceBar, SqlPriceStore
from holdings_tracker.services.sync_ledger import SqlSyncLedger
from holdings_tracker.services.valuation import PortfolioValuationService, ValuationEngine
from holdings_tracker.services.valuation.types import LedgerEntry


# =============================================================================
# DATABASE FIXTURES
# =============================================================================

@pytest.fixture(scope="function")
def db_engine():
    """Create an in-memory SQLite database engine for testing."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db(db_engine) -> Iterator[Session]:
    """Create a database session for testing."""
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=db_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture(scope="function")
def session_factory(tmp_path) -> Iterator[sessionmaker]:
    """
    Sessionmaker on a file-backed SQLite database.

    Unlike the StaticPool engine above, every thread gets its own
    connection, so the parallel price series fan-out can be exercised.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'cache.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


# =============================================================================
# CLOCK
# =============================================================================

class FixedClock:
    """Clock frozen at a given instant; advance() moves it forward."""

    def __init__(self, instant: datetime) -> None:
        self._instant = instant

    def now(self) -> datetime:
        return self._instant

    def today(self) -> date:
        return self._instant.date()

    def advance(self, **kwargs) -> None:
        self._instant = self._instant + timedelta(**kwargs)


TODAY = date(2024, 3, 15)


@pytest.fixture
def clock() -> FixedClock:
    """Noon UTC on TODAY."""
    return FixedClock(datetime(TODAY.year, TODAY.month, TODAY.day, 12, 0, tzinfo=timezone.utc))


# =============================================================================
# MOCK MARKET DATA PROVIDER
# =============================================================================

class MockMarketDataProvider(MarketDataProvider):
    """
    Mock implementation of MarketDataProvider for testing.

    Bars are configured per symbol and served filtered to the requested
    range, like the real provider. Every call is recorded.
    """

    def __init__(self):
        self._bars: dict[str, list[OHLCVData]] = {}
        self._currencies: dict[str, str] = {}
        self._meta_currencies: dict[str, str] = {}
        self._errors: dict[str, Exception] = {}
        self._lock = threading.Lock()
        self.calls: list[tuple] = []

    @property
    def name(self) -> str:
        return "mock"

    def set_bars(self, symbol: str, bars: list[OHLCVData], currency: str | None = None) -> None:
        """Configure the full history of a symbol and the currency reported with it."""
        self._bars[symbol] = list(bars)
        if currency is not None:
            self._currencies[symbol] = currency

    def set_quote_currency(self, symbol: str, currency: str) -> None:
        """Currency answered by get_quote_meta (not reported with bars)."""
        self._meta_currencies[symbol] = currency

    def set_error(self, symbol: str, error: Exception) -> None:
        self._errors[symbol] = error

    def clear_error(self, symbol: str) -> None:
        self._errors.pop(symbol, None)

    def bar_calls(self, symbol: str | None = None) -> list[tuple]:
        """Recorded get_daily_bars calls as (symbol, start_date, end_date)."""
        return [
            call[1:] for call in self.calls
            if call[0] == "bars" and (symbol is None or call[1] == symbol)
        ]

    def meta_calls(self) -> list[str]:
        return [call[1] for call in self.calls if call[0] == "meta"]

    def get_daily_bars(self, symbol: str, start_date: date, end_date: date) -> DailyBars:
        with self._lock:
            self.calls.append(("bars", symbol, start_date, end_date))

        if symbol in self._errors:
            raise self._errors[symbol]
        if symbol not in self._bars:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)

        return DailyBars(
            symbol=symbol,
            bars=[bar for bar in self._bars[symbol] if start_date <= bar.date <= end_date],
            currency=self._currencies.get(symbol),
            from_date=start_date,
        )

    def get_quote_meta(self, symbol: str) -> QuoteMeta:
        with self._lock:
            self.calls.append(("meta", symbol))

        if symbol in self._errors:
            raise self._errors[symbol]
        currency = self._meta_currencies.get(symbol) or self._currencies.get(symbol)
        if currency is None:
            raise TickerNotFoundError(ticker=symbol, provider=self.name)
        return QuoteMeta(symbol=symbol, currency=currency)


@pytest.fixture
def mock_provider() -> MockMarketDataProvider:
    """Create a fresh mock provider for each test."""
    return MockMarketDataProvider()


# =============================================================================
# PIPELINE FIXTURES
# =============================================================================

@pytest.fixture
def gateway(mock_provider, clock) -> Iterator[MarketDataGateway]:
    gateway = MarketDataGateway(mock_provider, concurrency=1, timeout=5.0, clock=clock)
    yield gateway
    gateway.shutdown(wait=True)


@pytest.fixture
def price_store(session_factory) -> SqlPriceStore:
    return SqlPriceStore(session_factory)


@pytest.fixture
def sync_ledger(session_factory) -> SqlSyncLedger:
    return SqlSyncLedger(session_factory)


@pytest.fixture
def price_cache(price_store, sync_ledger, gateway, clock) -> PriceCacheManager:
    return PriceCacheManager(store=price_store, ledger=sync_ledger, gateway=gateway, clock=clock)


@pytest.fixture
def normalizer(price_cache) -> CurrencyNormalizer:
    return CurrencyNormalizer(price_cache, forward_fill_days=7, max_workers=4)


@pytest.fixture
def price_series(price_cache, normalizer, clock) -> PriceSeriesService:
    return PriceSeriesService(
        price_cache=price_cache,
        normalizer=normalizer,
        clock=clock,
        max_workers=4,
        history_lookback_years=1,
    )


# =============================================================================
# API CLIENT
# =============================================================================

@pytest.fixture(scope="function")
def client(db: Session, price_series, session_factory, clock) -> Iterator[TestClient]:
    """
    TestClient with the database and every service dependency overridden.

    The ledger uses the in-memory `db` session; prices come from the mock
    provider through the real cache on the file-backed database.
    """
    repository = TransactionRepository(clock=clock)
    valuation_service = PortfolioValuationService(
        repository=repository,
        price_series=price_series,
        engine=ValuationEngine(forward_fill_days=7),
        clock=clock,
        default_currency="EUR",
        history_lookback_years=1,
    )
    cache_admin = CacheAdminService(session_factory, clock=clock)

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_transaction_repository] = lambda: repository
    app.dependency_overrides[get_price_series_service] = lambda: price_series
    app.dependency_overrides[get_valuation_service] = lambda: valuation_service
    app.dependency_overrides[get_cache_admin_service] = lambda: cache_admin

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()


# =============================================================================
# SAMPLE DATA FACTORIES
# =============================================================================

def make_bars(start: date, closes: list, step_days: int = 1) -> list[OHLCVData]:
    """One OHLCVData per close, `step_days` calendar days apart, starting at start."""
    bars = []
    for i, close in enumerate(closes):
        close = Decimal(str(close))
        bars.append(OHLCVData(
            date=start + timedelta(days=i * step_days),
            open=close,
            high=close,
            low=close,
            close=close,
            volume=1000 + i,
            adjusted_close=close,
        ))
    return bars


def make_price_bars(
        ticker: str,
        closes_by_date: dict[date, object],
        currency: str | None = "USD",
) -> list[PriceBar]:
    """PriceBar series from {date: close}, ascending."""
    bars = []
    for day in sorted(closes_by_date):
        close = Decimal(str(closes_by_date[day]))
        bars.append(PriceBar(
            ticker=ticker,
            date=day,
            open=close,
            high=close,
            low=close,
            close=close,
            adj_close=close,
            volume=100,
            currency=currency,
        ))
    return bars


def entry(
        ticker: str,
        transaction_type: TransactionType,
        quantity,
        day: date,
        asset_class: str | None = None,
) -> LedgerEntry:
    return LedgerEntry(
        ticker=ticker,
        transaction_type=transaction_type,
        quantity=Decimal(str(quantity)),
        date=day,
        asset_class=asset_class,
    )
