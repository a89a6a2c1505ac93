# holdings_tracker/services/price_store.py
"""
Price Store: durable daily bars per ticker and daily rates per currency pair.

Write policy:
    Inserts are idempotent. A (ticker, date) or (pair, date) that is already
    stored is skipped with INSERT ... ON CONFLICT DO NOTHING, never
    overwritten, so concurrent refreshes of the same symbol are harmless.
    The one permitted mutation is backfilling the native currency on bars
    stored without one.

Sessions:
    Each method opens its own short session and transaction from the
    injected sessionmaker, so the store can be shared by the valuation
    worker threads. Reads and writes never share a transaction. Any
    SQLAlchemy failure is rolled back and raised as StorageError.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from holdings_tracker.models import AssetPrice, ExchangeRate
from holdings_tracker.services.exceptions import StorageError
from holdings_tracker.services.market_data.base import OHLCVData

logger = logging.getLogger(__name__)

# 80 rows x 11 columns stays under the 999 bound parameters of older SQLite builds
INSERT_CHUNK_SIZE = 80


# =============================================================================
# VALUE OBJECTS
# =============================================================================

@dataclass(frozen=True)
class PriceBar:
    """One stored daily bar. Prices are in `currency` (None if unknown)."""

    ticker: str
    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    adj_close: Decimal
    volume: int | None
    currency: str | None


@dataclass(frozen=True)
class RatePoint:
    """One stored daily rate: 1 unit of the pair's base = `rate` units of its quote."""

    pair: str
    date: date
    rate: Decimal


# =============================================================================
# STORE
# =============================================================================

class SqlPriceStore:
    """
    SQLAlchemy-backed Price Store.

    Example:
        store = SqlPriceStore(SessionLocal)
        store.insert_bars("AAPL", bars, currency="USD")
        bars = store.get_bars("AAPL", date(2024, 1, 1))
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    # =========================================================================
    # PRICE BARS
    # =========================================================================

    def get_bars(self, ticker: str, from_date: date) -> list[PriceBar]:
        """All stored bars for ticker with date >= from_date, ascending."""
        query = (
            select(AssetPrice)
            .where(AssetPrice.ticker == ticker, AssetPrice.date >= from_date)
            .order_by(AssetPrice.date)
        )
        with self._read("get_bars") as session:
            rows = session.scalars(query).all()
            return [self._to_price_bar(row) for row in rows]

    def stored_currency(self, ticker: str) -> str | None:
        """Native currency recorded on the most recent bar that has one."""
        query = (
            select(AssetPrice.currency)
            .where(AssetPrice.ticker == ticker, AssetPrice.currency.is_not(None))
            .order_by(AssetPrice.date.desc())
            .limit(1)
        )
        with self._read("stored_currency") as session:
            return session.scalar(query)

    def insert_bars(self, ticker: str, bars: list[OHLCVData], currency: str | None) -> int:
        """
        Insert bars, skipping dates already stored for ticker.

        Returns:
            Number of rows submitted (conflicting rows are silently skipped)
        """
        records = [
            {
                "ticker": ticker,
                "date": bar.date,
                "open_price": bar.open,
                "high_price": bar.high,
                "low_price": bar.low,
                "close_price": bar.close,
                "adjusted_close": bar.adjusted_close if bar.adjusted_close is not None else bar.close,
                "volume": bar.volume,
                "currency": currency,
            }
            for bar in bars
        ]
        return self._insert_ignoring_duplicates(AssetPrice, records, ["ticker", "date"], "insert_bars")

    def backfill_currency(self, ticker: str, currency: str) -> int:
        """Set currency on stored bars of ticker that have none. Returns rows updated."""
        stmt = (
            update(AssetPrice)
            .where(AssetPrice.ticker == ticker, AssetPrice.currency.is_(None))
            .values(currency=currency)
        )
        with self._write("backfill_currency") as session:
            updated = session.execute(stmt).rowcount

        if updated:
            logger.info(f"Backfilled currency {currency} on {updated} bars of {ticker}")
        return updated

    # =========================================================================
    # EXCHANGE RATES
    # =========================================================================

    def get_rates(self, pair: str, from_date: date) -> list[RatePoint]:
        """All stored rates for pair with date >= from_date, ascending."""
        query = (
            select(ExchangeRate)
            .where(ExchangeRate.pair == pair, ExchangeRate.date >= from_date)
            .order_by(ExchangeRate.date)
        )
        with self._read("get_rates") as session:
            return [
                RatePoint(pair=row.pair, date=row.date, rate=Decimal(row.rate))
                for row in session.scalars(query).all()
            ]

    def insert_rates(self, pair: str, bars: list[OHLCVData]) -> int:
        """Insert the closes of an FX series as rates, skipping stored dates."""
        records = [
            {"pair": pair, "date": bar.date, "rate": bar.close}
            for bar in bars
        ]
        return self._insert_ignoring_duplicates(ExchangeRate, records, ["pair", "date"], "insert_rates")

    # =========================================================================
    # INTERNALS
    # =========================================================================

    @contextmanager
    def _read(self, operation: str) -> Iterator[Session]:
        try:
            with self._session_factory() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Price store {operation} failed: {e}")
            raise StorageError(operation, str(e)) from e

    @contextmanager
    def _write(self, operation: str) -> Iterator[Session]:
        try:
            with self._session_factory() as session, session.begin():
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Price store {operation} failed, rolled back: {e}")
            raise StorageError(operation, str(e)) from e

    def _insert_ignoring_duplicates(
            self,
            model: type,
            records: list[dict],
            conflict_columns: list[str],
            operation: str,
    ) -> int:
        if not records:
            return 0

        # All chunks share one transaction: either every new row lands or none
        with self._write(operation) as session:
            insert = _dialect_insert(session)
            for start in range(0, len(records), INSERT_CHUNK_SIZE):
                chunk = records[start:start + INSERT_CHUNK_SIZE]
                stmt = insert(model).values(chunk).on_conflict_do_nothing(
                    index_elements=conflict_columns
                )
                session.execute(stmt)

        return len(records)

    @staticmethod
    def _to_price_bar(row: AssetPrice) -> PriceBar:
        return PriceBar(
            ticker=row.ticker,
            date=row.date,
            open=Decimal(row.open_price),
            high=Decimal(row.high_price),
            low=Decimal(row.low_price),
            close=Decimal(row.close_price),
            adj_close=Decimal(row.adjusted_close),
            volume=row.volume,
            currency=row.currency,
        )


def _dialect_insert(session: Session):
    """INSERT construct supporting ON CONFLICT for the session's database."""
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        return pg_insert
    if dialect == "sqlite":
        return sqlite_insert
    raise StorageError("insert", f"unsupported database dialect '{dialect}'")
