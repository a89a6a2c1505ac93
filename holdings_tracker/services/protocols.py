# holdings_tracker/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- The SQL implementations satisfy these without inheriting from them
- Tests pass in-memory fakes and a fixed clock
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from holdings_tracker.services.market_data.base import DailyBars, OHLCVData, QuoteMeta
    from holdings_tracker.services.price_store import PriceBar, RatePoint


class PriceStoreProtocol(Protocol):
    """Interface required by PriceCacheManager."""

    def get_bars(self, ticker: str, from_date: date) -> list[PriceBar]:
        ...

    def stored_currency(self, ticker: str) -> str | None:
        ...

    def insert_bars(self, ticker: str, bars: list[OHLCVData], currency: str | None) -> int:
        ...

    def backfill_currency(self, ticker: str, currency: str) -> int:
        ...

    def get_rates(self, pair: str, from_date: date) -> list[RatePoint]:
        ...

    def insert_rates(self, pair: str, bars: list[OHLCVData]) -> int:
        ...


class SyncLedgerProtocol(Protocol):
    """Interface required by PriceCacheManager."""

    def get_last_checked(self, key: str) -> datetime | None:
        ...

    def mark_checked(self, key: str, checked_at: datetime) -> None:
        ...


class MarketDataGatewayProtocol(Protocol):
    """Interface required by PriceCacheManager."""

    def fetch_daily_bars(self, symbol: str, from_date: date) -> DailyBars:
        ...

    def fetch_quote_meta(self, symbol: str) -> QuoteMeta:
        ...
