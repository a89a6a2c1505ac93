# holdings_tracker/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements MarketDataProvider with the yfinance library. Symbols are passed
through unchanged, so both listings ("AAPL", "VOD.L") and currency pairs
("USDEUR=X") work.

Currency metadata:
    Yahoo reports minor-unit quotes as-is, e.g. "GBp" for London listings
    priced in pence. The code is NOT uppercased here: "GBp" and "GBP" mean
    different things and the currency normalizer relies on the difference.

Limitations:
- Rate limits exist but are undocumented, hence the gateway serializes calls
- Not suitable for intraday data
"""

import logging
import math
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

import pandas as pd
import yfinance as yf

from holdings_tracker.services.constants import PRICE_PRECISION
from holdings_tracker.services.exceptions import (
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
)
from holdings_tracker.services.market_data.base import (
    MarketDataProvider,
    DailyBars,
    OHLCVData,
    QuoteMeta,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Configuration:
        timeout: HTTP timeout in seconds handed to yfinance (default: 10)

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError
        - Exponential backoff, 3 attempts

    Example:
        provider = YahooFinanceProvider(timeout=15)
        result = provider.get_daily_bars("AAPL", date(2024, 1, 1), date(2024, 12, 31))
        print(f"Fetched {result.days_fetched} days in {result.currency}")
    """

    def __init__(self, timeout: int = 10) -> None:
        self._timeout = timeout
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    # =========================================================================
    # DAILY BARS
    # =========================================================================

    def get_daily_bars(self, symbol: str, start_date: date, end_date: date) -> DailyBars:
        return self._execute_with_retry(
            self._fetch_daily_bars,
            symbol,
            start_date,
            end_date,
        )

    def _fetch_daily_bars(self, symbol: str, start_date: date, end_date: date) -> DailyBars:
        """Internal method to fetch daily bars (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching daily bars for {symbol}: {start_date} to {end_date}")

        result = DailyBars(symbol=symbol, from_date=start_date)

        try:
            yf_ticker = yf.Ticker(symbol)

            # Yahoo Finance end date is exclusive
            yahoo_end = end_date + timedelta(days=1)

            df = yf_ticker.history(
                start=start_date.isoformat(),
                end=yahoo_end.isoformat(),
                interval="1d",
                auto_adjust=False,  # raw closes plus a separate "Adj Close" column
                timeout=self._timeout,
            )
            metadata = self._history_metadata(yf_ticker)
            result.currency = metadata.get("currency") or None

            if df is None or df.empty:
                if result.currency is None and not self._is_valid_ticker_info(yf_ticker.info):
                    raise TickerNotFoundError(ticker=symbol, provider=self.name)

                # Known symbol, nothing new in this range (weekend, holiday)
                logger.debug(f"No bars for {symbol} since {start_date}")
                return result

            result.bars = self._dataframe_to_ohlcv(df)
            logger.debug(f"Fetched {len(result.bars)} bars for {symbol}")
            return result

        except TickerNotFoundError:
            raise
        except Exception as e:
            raise self._map_error(symbol, e)

    # =========================================================================
    # QUOTE METADATA
    # =========================================================================

    def get_quote_meta(self, symbol: str) -> QuoteMeta:
        return self._execute_with_retry(self._fetch_quote_meta, symbol)

    def _fetch_quote_meta(self, symbol: str) -> QuoteMeta:
        """Internal method to fetch quote metadata (called by retry wrapper)."""
        symbol = symbol.strip().upper()
        logger.debug(f"Fetching quote metadata for {symbol}")

        try:
            info = yf.Ticker(symbol).info
            if not self._is_valid_ticker_info(info):
                raise TickerNotFoundError(ticker=symbol, provider=self.name)

            currency = info.get("currency")
            if not currency:
                raise TickerNotFoundError(ticker=symbol, provider=self.name)

            return QuoteMeta(symbol=symbol, currency=currency)

        except TickerNotFoundError:
            raise
        except Exception as e:
            raise self._map_error(symbol, e)

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    def _map_error(self, symbol: str, error: Exception) -> Exception:
        """Translate a yfinance/HTTP exception into our provider errors."""
        error_str = str(error).lower()

        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(ticker=symbol, provider=self.name)

        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {symbol}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _history_metadata(yf_ticker: Any) -> dict:
        """Metadata of the last history() call; {} if yfinance has none."""
        try:
            metadata = yf_ticker.history_metadata
        except Exception:
            return {}
        return metadata if isinstance(metadata, dict) else {}

    def _dataframe_to_ohlcv(self, df: pd.DataFrame) -> list[OHLCVData]:
        """
        Convert a yfinance history DataFrame to a list of OHLCVData.

        Rows without a close are skipped. Missing open/high/low fall back to
        the close, a missing adjusted close falls back to the close.
        """
        prices = []

        for idx, row in df.iterrows():
            try:
                price_date = idx.date() if hasattr(idx, 'date') else idx

                close_price = self._to_decimal(row.get('Close'))
                if close_price is None:
                    logger.warning(f"Skipping {price_date}: missing close price")
                    continue

                open_price = self._to_decimal(row.get('Open')) or close_price
                high_price = self._to_decimal(row.get('High')) or close_price
                low_price = self._to_decimal(row.get('Low')) or close_price
                adj_close = self._to_decimal(row.get('Adj Close')) or close_price

                prices.append(OHLCVData(
                    date=price_date,
                    open=open_price,
                    high=max(high_price, low_price),
                    low=min(high_price, low_price),
                    close=close_price,
                    volume=self._to_int(row.get('Volume')),
                    adjusted_close=adj_close,
                ))

            except (ValueError, ArithmeticError) as e:
                logger.warning(f"Error parsing row {idx}: {e}")
                continue

        prices.sort(key=lambda p: p.date)
        return prices

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(PRICE_PRECISION)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _to_int(value: Any) -> int | None:
        """Convert a value to int, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return int(value)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _is_valid_ticker_info(info: dict | None) -> bool:
        """
        Check if a Yahoo info dict represents a real symbol.

        Yahoo returns an info dict even for unknown symbols, but without
        price or name fields.
        """
        if not info:
            return False
        return bool(
            info.get("regularMarketPrice")
            or info.get("shortName")
            or info.get("longName")
        )
