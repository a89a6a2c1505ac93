# holdings_tracker/services/price_cache.py
"""
Price Cache Manager: answers "all daily bars for symbol S from date D on"
from the local store, calling the provider at most once per symbol per day.

Algorithm (same for price series and FX series):
    1. Fresh iff the sync ledger's last check for the key falls on today
       (calendar day in the clock's timezone).
    2. Read stored rows with date >= from_date.
    3. Fresh and non-empty: return them, no provider call.
    4. Otherwise fetch from the latest stored date (incremental) or from
       from_date when nothing is stored.
    5. Insert new rows (duplicates skipped) and mark the key checked, even
       when the provider had nothing new.
    6. Re-read date >= from_date and return it.
    7. Provider failure: log, return what was stored, leave the ledger
       untouched so the next request tries again. Never raised.

Storage failures (StorageError) are not caught here: they fail the request.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime
from typing import TypeVar

from holdings_tracker.services.exceptions import MarketDataError
from holdings_tracker.services.market_data.base import DailyBars
from holdings_tracker.services.price_store import PriceBar, RatePoint
from holdings_tracker.services.protocols import (
    MarketDataGatewayProtocol,
    PriceStoreProtocol,
    SyncLedgerProtocol,
)
from holdings_tracker.services.sync_ledger import asset_key, rate_key
from holdings_tracker.utils.date_utils import Clock, SystemClock

logger = logging.getLogger(__name__)

Row = TypeVar("Row", PriceBar, RatePoint)


# =============================================================================
# RESULT TYPES
# =============================================================================

@dataclass
class SeriesResult:
    """
    Price series for one ticker.

    Attributes:
        symbol: Ticker requested
        bars: Stored bars with date >= from_date, ascending
        currency: Native quote currency, None if it could not be resolved
        cache_hit: True if served without calling the provider
        error: Provider error message if the refresh failed
    """

    symbol: str
    bars: list[PriceBar]
    currency: str | None
    cache_hit: bool = False
    error: str | None = None


@dataclass
class RateSeriesResult:
    """Rate series for one currency pair (e.g. "USDEUR=X")."""

    pair: str
    rates: list[RatePoint]
    cache_hit: bool = False
    error: str | None = None


@dataclass
class _Refresh:
    rows: list
    cache_hit: bool
    fetched: DailyBars | None = None
    error: str | None = None


# =============================================================================
# CACHE MANAGER
# =============================================================================

class PriceCacheManager:
    """
    Orchestrates Price Store + Sync Ledger + Market Data Gateway.

    All collaborators are injected, including the clock, so tests can run
    the freshness policy against a fixed day.
    """

    def __init__(
            self,
            store: PriceStoreProtocol,
            ledger: SyncLedgerProtocol,
            gateway: MarketDataGatewayProtocol,
            clock: Clock | None = None,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._gateway = gateway
        self._clock = clock or SystemClock()

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def get_series(self, symbol: str, from_date: date) -> SeriesResult:
        """
        Daily bars for symbol from from_date onward, ascending by date.

        The native currency is taken from the provider response, then from
        the stored bars, then from a quote metadata call whose answer is
        written back onto stored bars that lack one.
        """
        refresh = self._refresh(
            key=asset_key(symbol),
            symbol=symbol,
            from_date=from_date,
            read=self._store.get_bars,
            write=lambda fetched: self._store.insert_bars(symbol, fetched.bars, fetched.currency),
        )

        currency, currency_error = self._resolve_currency(
            symbol,
            refresh.rows,
            fetched_currency=refresh.fetched.currency if refresh.fetched else None,
            allow_remote=refresh.error is None,
        )

        return SeriesResult(
            symbol=symbol,
            bars=refresh.rows,
            currency=currency,
            cache_hit=refresh.cache_hit,
            error=refresh.error or currency_error,
        )

    def get_rate_series(self, pair: str, from_date: date) -> RateSeriesResult:
        """Daily rates for a provider FX symbol from from_date onward, ascending."""
        refresh = self._refresh(
            key=rate_key(pair),
            symbol=pair,
            from_date=from_date,
            read=self._store.get_rates,
            write=lambda fetched: self._store.insert_rates(pair, fetched.bars),
        )
        return RateSeriesResult(
            pair=pair,
            rates=refresh.rows,
            cache_hit=refresh.cache_hit,
            error=refresh.error,
        )

    # =========================================================================
    # REFRESH POLICY
    # =========================================================================

    def _refresh(
            self,
            key: str,
            symbol: str,
            from_date: date,
            read: Callable[[str, date], list[Row]],
            write: Callable[[DailyBars], int],
    ) -> _Refresh:
        fresh = self._is_fresh(self._ledger.get_last_checked(key))
        stored = read(symbol, from_date)

        if fresh and stored:
            logger.debug(f"Cache hit for {key}: {len(stored)} rows since {from_date}")
            return _Refresh(rows=stored, cache_hit=True)

        fetch_start = stored[-1].date if stored else from_date

        try:
            fetched = self._gateway.fetch_daily_bars(symbol, fetch_start)
        except MarketDataError as e:
            logger.warning(f"Refresh of {key} failed, serving {len(stored)} cached rows: {e}")
            return _Refresh(rows=stored, cache_hit=False, error=str(e))
        except Exception as e:
            # yfinance can raise outside our mapped errors (parsing, HTTP client internals)
            logger.warning(
                f"Refresh of {key} failed unexpectedly, serving {len(stored)} cached rows: {e}",
                exc_info=True,
            )
            return _Refresh(rows=stored, cache_hit=False, error=str(e) or type(e).__name__)

        submitted = write(fetched) if fetched.bars else 0
        self._ledger.mark_checked(key, self._clock.now())

        logger.info(
            f"Refreshed {key} from {fetch_start}: fetched={fetched.days_fetched}, "
            f"submitted={submitted}"
        )

        return _Refresh(rows=read(symbol, from_date), cache_hit=False, fetched=fetched)

    def _is_fresh(self, last_checked: datetime | None) -> bool:
        if last_checked is None:
            return False
        now = self._clock.now()
        return last_checked.astimezone(now.tzinfo).date() == self._clock.today()

    # =========================================================================
    # CURRENCY RESOLUTION
    # =========================================================================

    def _resolve_currency(
            self,
            symbol: str,
            bars: list[PriceBar],
            fetched_currency: str | None,
            allow_remote: bool,
    ) -> tuple[str | None, str | None]:
        """
        Returns:
            (currency, error message if it could not be resolved)
        """
        missing_on_stored = any(bar.currency is None for bar in bars)

        if fetched_currency:
            if missing_on_stored:
                self._store.backfill_currency(symbol, fetched_currency)
            return fetched_currency, None

        for bar in reversed(bars):
            if bar.currency:
                return bar.currency, None

        stored_currency = self._store.stored_currency(symbol)
        if stored_currency:
            return stored_currency, None

        if not allow_remote:
            return None, None

        try:
            meta = self._gateway.fetch_quote_meta(symbol)
        except MarketDataError as e:
            logger.warning(f"Could not resolve currency for {symbol}: {e}")
            return None, str(e)

        if missing_on_stored:
            self._store.backfill_currency(symbol, meta.currency)
        return meta.currency, None
