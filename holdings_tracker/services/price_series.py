# holdings_tracker/services/price_series.py
"""
Batch loading of normalized price series.

Fans out one Price Cache Manager request per ticker on a thread pool, then
loads the FX series the batch needs (also in parallel) and converts every
series into the reporting currency. All parallel requests converge on the
single Market Data Gateway, so cache hits return quickly while provider
calls stay serialized.

Failures are per ticker: a ticker whose refresh failed but has cached bars
is still returned, with its error reported alongside; a ticker with no bars
or no known currency is reported and left out.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date

from holdings_tracker.services.currency import CurrencyNormalizer, rate_table
from holdings_tracker.services.price_cache import PriceCacheManager, SeriesResult
from holdings_tracker.services.price_store import PriceBar
from holdings_tracker.services.valuation.types import TickerError
from holdings_tracker.utils.context import submit_with_context
from holdings_tracker.utils.date_utils import Clock, SystemClock, years_before

logger = logging.getLogger(__name__)


@dataclass
class NormalizedBatch:
    """
    Normalized series for a batch of tickers.

    Attributes:
        currency: Reporting currency of every bar in `series`
        series: Ticker -> bars in `currency`, ascending
        native_currencies: Ticker -> quote currency before conversion
        errors: Per-ticker problems (a ticker may appear in both `series`
            and `errors` when stale cached data was served)
    """

    currency: str
    series: dict[str, list[PriceBar]] = field(default_factory=dict)
    native_currencies: dict[str, str] = field(default_factory=dict)
    errors: list[TickerError] = field(default_factory=list)


class PriceSeriesService:
    """
    Loads and normalizes price series for many tickers at once.

    Used by the valuation service and by the /prices endpoint.
    """

    def __init__(
            self,
            price_cache: PriceCacheManager,
            normalizer: CurrencyNormalizer,
            clock: Clock | None = None,
            max_workers: int = 8,
            history_lookback_years: int = 5,
    ) -> None:
        self._price_cache = price_cache
        self._normalizer = normalizer
        self._clock = clock or SystemClock()
        self._max_workers = max_workers
        self._history_lookback_years = history_lookback_years

    def get_normalized_prices(self, tickers: Iterable[str], currency: str) -> NormalizedBatch:
        """Series for each ticker over the default history window, in currency."""
        from_date = years_before(self._clock.today(), self._history_lookback_years)
        return self.load(tickers, from_date, currency)

    def load(self, tickers: Iterable[str], from_date: date, currency: str) -> NormalizedBatch:
        """
        Fetch, then normalize, every ticker's series from from_date.

        Raises:
            StorageError: If the price store cannot be read or written
        """
        target = currency.upper()
        tickers = list(dict.fromkeys(tickers))
        batch = NormalizedBatch(currency=target)
        if not tickers:
            return batch

        results = self._fetch_all(tickers, from_date)

        usable: dict[str, SeriesResult] = {}
        for ticker in tickers:
            result = results[ticker]
            if result.error:
                batch.errors.append(TickerError(ticker=ticker, message=result.error))

            if not result.bars:
                if not result.error:
                    batch.errors.append(TickerError(ticker=ticker, message="No price data available"))
                continue
            if result.currency is None:
                if not result.error:
                    batch.errors.append(TickerError(ticker=ticker, message="Quote currency unknown"))
                continue

            usable[ticker] = result

        pairs_by_ticker = {
            ticker: self._normalizer.required_pairs([result.currency], target)
            for ticker, result in usable.items()
        }
        rate_results = self._normalizer.load_rates(
            {pair for pairs in pairs_by_ticker.values() for pair in pairs},
            from_date,
        )

        for ticker, result in usable.items():
            rates = None
            for pair in pairs_by_ticker[ticker]:
                rate_result = rate_results[pair]
                if rate_result.error:
                    batch.errors.append(TickerError(ticker=ticker, message=f"{pair}: {rate_result.error}"))
                rates = rate_table(rate_result.rates)

            batch.series[ticker] = self._normalizer.normalize(
                result.bars,
                result.currency,
                target,
                rates={} if rates is None else rates,
            )
            batch.native_currencies[ticker] = result.currency

        logger.info(
            f"Loaded {len(batch.series)}/{len(tickers)} series in {target} "
            f"from {from_date} ({len(batch.errors)} errors)"
        )
        return batch

    def _fetch_all(self, tickers: list[str], from_date: date) -> dict[str, SeriesResult]:
        workers = max(1, min(self._max_workers, len(tickers)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="price-series") as executor:
            futures = {
                ticker: submit_with_context(executor, self._price_cache.get_series, ticker, from_date)
                for ticker in tickers
            }
            return {ticker: future.result() for ticker, future in futures.items()}
