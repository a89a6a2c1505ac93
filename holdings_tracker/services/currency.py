# holdings_tracker/services/currency.py
"""
Currency Normalizer: re-expresses a price series in a target currency.

Rate convention:
    Pair symbols follow Yahoo's FX tickers, "<NATIVE><TARGET>=X", and a
    stored rate r means 1 NATIVE = r TARGET. Converting is therefore a
    multiplication, never a division.

Pence sterling:
    London listings quote in GBp (also spelled GBX / GBx), i.e. GBP / 100.
    The 0.01 factor is applied before any FX conversion and also when the
    target is GBP itself. The rate pair is looked up for GBP.

Missing rates:
    Exact date first, then the nearest earlier rate within the forward-fill
    window (default 7 calendar days). Rates of 0 count as missing. When no
    rate resolves, the bar is kept with a multiplier of 1 and a single
    WARNING is logged for the series. This is a known approximation.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from datetime import date, timedelta
from decimal import Decimal

from holdings_tracker.services.constants import (
    FX_FALLBACK_MULTIPLIER,
    ONE,
    PENCE_CURRENCY_CODES,
    PENCE_FACTOR,
    PENCE_MAJOR_CURRENCY,
    PRICE_PRECISION,
)
from holdings_tracker.services.price_cache import PriceCacheManager, RateSeriesResult
from holdings_tracker.services.price_store import PriceBar, RatePoint
from holdings_tracker.utils.context import submit_with_context
from holdings_tracker.utils.date_utils import nearest_prior_value

logger = logging.getLogger(__name__)


# =============================================================================
# CURRENCY CODES
# =============================================================================

def is_pence(currency: str) -> bool:
    """True for minor-unit GBP quote codes (case matters: "GBP" is not pence)."""
    return currency in PENCE_CURRENCY_CODES


def major_currency(currency: str) -> str:
    """ISO code the currency converts through ("GBp" -> "GBP", "usd" -> "USD")."""
    if is_pence(currency):
        return PENCE_MAJOR_CURRENCY
    return currency.upper()


def unit_factor(currency: str) -> Decimal:
    """Multiplier from quote units to major units (0.01 for pence)."""
    return PENCE_FACTOR if is_pence(currency) else ONE


def pair_symbol(native_currency: str, target_currency: str) -> str:
    """
    Provider symbol of the rate series converting native into target.

    Example:
        >>> pair_symbol("USD", "EUR")
        'USDEUR=X'
        >>> pair_symbol("GBp", "EUR")
        'GBPEUR=X'
    """
    return f"{major_currency(native_currency)}{target_currency.upper()}=X"


def needs_rate(native_currency: str, target_currency: str) -> bool:
    return major_currency(native_currency) != target_currency.upper()


def rate_table(rates: Iterable[RatePoint]) -> dict[date, Decimal]:
    """Date -> rate map with non-positive rates dropped (they count as missing)."""
    return {point.date: point.rate for point in rates if point.rate > 0}


# =============================================================================
# NORMALIZER
# =============================================================================

class CurrencyNormalizer:
    """
    Converts PriceBar series between currencies using cached FX series.

    Rates come from the same PriceCacheManager as prices, so FX series obey
    the once-a-day freshness rule and incremental fetches.

    Example:
        normalizer = CurrencyNormalizer(price_cache)
        eur_bars = normalizer.normalize(bars, "USD", "EUR")
    """

    def __init__(
            self,
            price_cache: PriceCacheManager,
            forward_fill_days: int = 7,
            max_workers: int = 8,
    ) -> None:
        self._price_cache = price_cache
        self._forward_fill_days = forward_fill_days
        self._max_workers = max_workers

    @property
    def forward_fill_days(self) -> int:
        return self._forward_fill_days

    def required_pairs(self, currencies: Iterable[str], target_currency: str) -> list[str]:
        """Distinct pair symbols needed to bring every currency into target."""
        return sorted({
            pair_symbol(currency, target_currency)
            for currency in currencies
            if needs_rate(currency, target_currency)
        })

    def load_rates(self, pairs: Iterable[str], from_date: date) -> dict[str, RateSeriesResult]:
        """
        Fetch rate series for all pairs in parallel.

        Rates are requested from `forward_fill_days` before from_date so the
        first bars of a series can be filled from an earlier rate. Provider
        failures are carried on each result, never raised.
        """
        pairs = list(dict.fromkeys(pairs))
        if not pairs:
            return {}

        start = from_date - timedelta(days=self._forward_fill_days)
        workers = max(1, min(self._max_workers, len(pairs)))

        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="fx-rates") as executor:
            futures = {
                pair: submit_with_context(executor, self._price_cache.get_rate_series, pair, start)
                for pair in pairs
            }
            return {pair: future.result() for pair, future in futures.items()}

    def normalize(
            self,
            bars: list[PriceBar],
            native_currency: str,
            target_currency: str,
            rates: Mapping[date, Decimal] | None = None,
    ) -> list[PriceBar]:
        """
        Return bars expressed in target_currency.

        Args:
            bars: Series in native_currency, ascending by date
            native_currency: Quote currency of the series ("USD", "GBp", ...)
            target_currency: Reporting currency
            rates: Date -> rate for pair_symbol(native, target). Loaded
                through the price cache when omitted.

        Returns:
            New list of bars with currency = target_currency. Volume is
            never scaled.
        """
        target = target_currency.upper()
        factor = unit_factor(native_currency)

        if not needs_rate(native_currency, target):
            if factor == ONE:
                return [bar if bar.currency == target else replace(bar, currency=target) for bar in bars]
            return [self._scale(bar, factor, target) for bar in bars]

        if not bars:
            return []

        pair = pair_symbol(native_currency, target)
        if rates is None:
            rates = self._fetch_rate_table(pair, bars[0].date)
        usable = {day: rate for day, rate in rates.items() if rate is not None and rate > 0}

        normalized = []
        unresolved = 0
        for bar in bars:
            rate = nearest_prior_value(usable, bar.date, self._forward_fill_days)
            if rate is None:
                unresolved += 1
                rate = FX_FALLBACK_MULTIPLIER
            normalized.append(self._scale(bar, factor * rate, target))

        if unresolved:
            logger.warning(
                f"No {pair} rate within {self._forward_fill_days} days for {unresolved} of "
                f"{len(bars)} {bars[0].ticker} bars, left unconverted"
            )

        return normalized

    def _fetch_rate_table(self, pair: str, first_bar_date: date) -> dict[date, Decimal]:
        start = first_bar_date - timedelta(days=self._forward_fill_days)
        return rate_table(self._price_cache.get_rate_series(pair, start).rates)

    @staticmethod
    def _scale(bar: PriceBar, multiplier: Decimal, currency: str) -> PriceBar:
        def convert(value: Decimal) -> Decimal:
            return (value * multiplier).quantize(PRICE_PRECISION)

        return replace(
            bar,
            open=convert(bar.open),
            high=convert(bar.high),
            low=convert(bar.low),
            close=convert(bar.close),
            adj_close=convert(bar.adj_close),
            currency=currency,
        )
