# holdings_tracker/services/valuation/engine.py
"""
Valuation Engine: replays a transaction ledger against normalized daily
closes. Pure and deterministic - no I/O, no clock, no logging side effects
beyond debug output.

Rules:
    Quantity on day d = sum of +quantity (BUY) / -quantity (SELL) over the
    ticker's transactions dated <= d. A negative result is reported as is.

    Price on day d = close on d, else the nearest earlier close within the
    forward-fill window (7 calendar days), else 0. An unpriced day is kept
    and valued at 0.

    Day value = sum over tickers with quantity > 0 of quantity x price.

    Series = every calendar day from the earliest transaction through
    as_of. Leading days with value 0 are trimmed; once a day has been
    emitted, every later day is emitted even when its value is 0.

Rolling state:
    Transactions are sorted once by date (stable, so ledger order breaks
    ties) and applied with a moving pointer while walking the days, so the
    cost is O(D x K + T) for D days, K tickers and T transactions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from datetime import date, timedelta
from decimal import Decimal

from holdings_tracker.services.constants import (
    CURRENCY_PRECISION,
    DEFAULT_LOOKBACK_DAYS,
    ZERO,
)
from holdings_tracker.services.price_store import PriceBar
from holdings_tracker.services.valuation.types import (
    EngineResult,
    Holding,
    LedgerEntry,
    TickerSeriesPoint,
    ValuePoint,
)
from holdings_tracker.utils.date_utils import iter_days, nearest_prior_value

logger = logging.getLogger(__name__)


class ValuationEngine:
    """
    Computes holdings and the daily value series for one ledger.

    Example:
        engine = ValuationEngine()
        result = engine.compute_valuation(entries, {"AAPL": eur_bars}, date.today())
    """

    def __init__(
            self,
            forward_fill_days: int = 7,
            default_lookback_days: int = DEFAULT_LOOKBACK_DAYS,
    ) -> None:
        self._forward_fill_days = forward_fill_days
        self._default_lookback_days = default_lookback_days

    def compute_valuation(
            self,
            transactions: Sequence[LedgerEntry],
            series_by_ticker: Mapping[str, Sequence[PriceBar]],
            as_of: date,
    ) -> EngineResult:
        """
        Value the ledger from its first transaction through as_of.

        Args:
            transactions: Ledger entries in any order
            series_by_ticker: Normalized bars per ticker, ascending by date.
                Tickers absent from this mapping are left out of the result.
            as_of: Last day of the series and the holdings date

        Returns:
            EngineResult with holdings, value_series and per_ticker_series
        """
        entries = sorted(
            (t for t in transactions if t.ticker in series_by_ticker),
            key=lambda t: t.date,
        )

        all_dates = [t.date for t in transactions]
        start = min(all_dates) if all_dates else as_of - timedelta(days=self._default_lookback_days)

        closes = {
            ticker: {bar.date: bar.close for bar in bars}
            for ticker, bars in series_by_ticker.items()
        }
        tickers = sorted({t.ticker for t in entries})

        quantities: dict[str, Decimal] = {ticker: ZERO for ticker in tickers}
        value_series: list[ValuePoint] = []
        per_ticker: dict[str, list[TickerSeriesPoint]] = {ticker: [] for ticker in tickers}
        pointer = 0

        for day in iter_days(start, as_of):
            while pointer < len(entries) and entries[pointer].date <= day:
                entry = entries[pointer]
                quantities[entry.ticker] += entry.signed_quantity
                pointer += 1

            day_points: dict[str, TickerSeriesPoint] = {}
            total = ZERO
            for ticker in tickers:
                quantity = quantities[ticker]
                price = self._price_on(closes[ticker], day)
                value = quantity * price if quantity > 0 else ZERO
                total += value
                day_points[ticker] = TickerSeriesPoint(
                    date=day,
                    quantity=quantity,
                    price=price,
                    value=value.quantize(CURRENCY_PRECISION),
                )

            if not value_series and total <= 0:
                continue

            value_series.append(
                ValuePoint(
                    date=day,
                    value=total.quantize(CURRENCY_PRECISION),
                    by_ticker={
                        ticker: point.value
                        for ticker, point in day_points.items()
                        if point.quantity > 0
                    },
                )
            )
            for ticker, point in day_points.items():
                per_ticker[ticker].append(point)

        # Entries dated after as_of never reach the walk above
        final_quantities = {ticker: ZERO for ticker in tickers}
        for entry in entries:
            if entry.date <= as_of:
                final_quantities[entry.ticker] += entry.signed_quantity

        holdings = self._build_holdings(entries, final_quantities, series_by_ticker, as_of)

        logger.debug(
            f"Valued {len(tickers)} tickers over {len(value_series)} days, "
            f"{len(holdings)} open holdings"
        )

        return EngineResult(
            holdings=holdings,
            value_series=value_series,
            per_ticker_series=per_ticker,
        )

    def _price_on(self, closes: Mapping[date, Decimal], day: date) -> Decimal:
        price = nearest_prior_value(closes, day, self._forward_fill_days)
        return price if price is not None else ZERO

    @staticmethod
    def _build_holdings(
            entries: Sequence[LedgerEntry],
            quantities: Mapping[str, Decimal],
            series_by_ticker: Mapping[str, Sequence[PriceBar]],
            as_of: date,
    ) -> list[Holding]:
        # entries are date-sorted and stable, so the last label seen wins ties
        asset_classes: dict[str, str] = {}
        for entry in entries:
            if entry.date <= as_of and entry.asset_class:
                asset_classes[entry.ticker] = entry.asset_class

        holdings = []
        for ticker, quantity in quantities.items():
            if quantity <= 0:
                continue

            priced = [bar for bar in series_by_ticker[ticker] if bar.date <= as_of]
            current_price = priced[-1].close if priced else ZERO

            holdings.append(
                Holding(
                    ticker=ticker,
                    quantity=quantity,
                    current_price=current_price,
                    current_value=(quantity * current_price).quantize(CURRENCY_PRECISION),
                    asset_class=asset_classes.get(ticker),
                )
            )

        return holdings
