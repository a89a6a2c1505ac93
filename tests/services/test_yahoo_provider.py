# tests/services/test_yahoo_provider.py
"""
Tests for the YahooFinanceProvider.

This module tests:
- DataFrame to OHLCVData conversion
- Currency metadata passed through unchanged ("GBp" stays "GBp")
- Ticker info validation
- Error classification and retries

Note: These tests mock the yfinance library to avoid actual API calls.
"""

from datetime import date
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest

from holdings_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from holdings_tracker.services.market_data.yahoo import YahooFinanceProvider


class FastRetryYahooProvider(YahooFinanceProvider):
    """Same retry policy without the backoff sleeps."""

    RETRY_MIN_WAIT = 0
    RETRY_MAX_WAIT = 0


def _history_frame(rows: dict[str, dict]) -> pd.DataFrame:
    """Build a yfinance-shaped history frame from {iso_date: columns}."""
    index = pd.DatetimeIndex([pd.Timestamp(day) for day in rows])
    return pd.DataFrame(list(rows.values()), index=index)


def _mock_ticker(frame: pd.DataFrame, currency: str | None = "USD", info: dict | None = None) -> MagicMock:
    ticker = MagicMock()
    ticker.history.return_value = frame
    ticker.history_metadata = {"currency": currency} if currency else {}
    ticker.info = info if info is not None else {}
    return ticker


FULL_ROW = {"Open": 100.0, "High": 105.0, "Low": 99.0, "Close": 104.0, "Adj Close": 103.5, "Volume": 1200}


# =============================================================================
# PROVIDER INITIALIZATION
# =============================================================================

class TestYahooProviderInit:
    def test_provider_name(self):
        assert YahooFinanceProvider().name == "yahoo"

    def test_default_timeout(self):
        assert YahooFinanceProvider()._timeout == 10

    def test_custom_timeout(self):
        assert YahooFinanceProvider(timeout=30)._timeout == 30


# =============================================================================
# DAILY BARS
# =============================================================================

class TestGetDailyBars:
    """Tests for get_daily_bars with mocked yfinance."""

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_converts_rows(self, mock_yf):
        frame = _history_frame({
            "2024-03-04": FULL_ROW,
            "2024-03-01": {**FULL_ROW, "Close": 101.0, "Adj Close": 100.5},
        })
        mock_yf.Ticker.return_value = _mock_ticker(frame)

        result = YahooFinanceProvider().get_daily_bars("aapl", date(2024, 3, 1), date(2024, 3, 4))

        assert result.symbol == "AAPL"
        assert result.currency == "USD"
        assert [b.date for b in result.bars] == [date(2024, 3, 1), date(2024, 3, 4)]
        bar = result.bars[1]
        assert bar.open == Decimal("100")
        assert bar.high == Decimal("105")
        assert bar.low == Decimal("99")
        assert bar.close == Decimal("104")
        assert bar.adjusted_close == Decimal("103.5")
        assert bar.volume == 1200
        mock_yf.Ticker.assert_called_once_with("AAPL")

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_end_date_is_made_exclusive(self, mock_yf):
        ticker = _mock_ticker(_history_frame({"2024-03-01": FULL_ROW}))
        mock_yf.Ticker.return_value = ticker

        YahooFinanceProvider().get_daily_bars("AAPL", date(2024, 3, 1), date(2024, 3, 4))

        kwargs = ticker.history.call_args.kwargs
        assert kwargs["start"] == "2024-03-01"
        assert kwargs["end"] == "2024-03-05"
        assert kwargs["interval"] == "1d"
        assert kwargs["auto_adjust"] is False

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_pence_currency_is_not_uppercased(self, mock_yf):
        mock_yf.Ticker.return_value = _mock_ticker(_history_frame({"2024-03-01": FULL_ROW}), currency="GBp")

        result = YahooFinanceProvider().get_daily_bars("VOD.L", date(2024, 3, 1), date(2024, 3, 1))

        assert result.currency == "GBp"

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_row_without_close_is_skipped(self, mock_yf):
        frame = _history_frame({
            "2024-03-01": FULL_ROW,
            "2024-03-04": {**FULL_ROW, "Close": float("nan")},
        })
        mock_yf.Ticker.return_value = _mock_ticker(frame)

        result = YahooFinanceProvider().get_daily_bars("AAPL", date(2024, 3, 1), date(2024, 3, 4))

        assert [b.date for b in result.bars] == [date(2024, 3, 1)]

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_missing_columns_fall_back_to_close(self, mock_yf):
        frame = _history_frame({"2024-03-01": {"Close": 1.0834, "Volume": float("nan")}})
        mock_yf.Ticker.return_value = _mock_ticker(frame, currency=None, info={"shortName": "USD/EUR"})

        result = YahooFinanceProvider().get_daily_bars("USDEUR=X", date(2024, 3, 1), date(2024, 3, 1))

        bar = result.bars[0]
        assert bar.open == bar.high == bar.low == bar.adjusted_close == bar.close == Decimal("1.0834")
        assert bar.volume is None
        assert result.currency is None

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_empty_range_for_known_symbol(self, mock_yf):
        mock_yf.Ticker.return_value = _mock_ticker(pd.DataFrame(), currency="EUR")

        result = YahooFinanceProvider().get_daily_bars("SAP.DE", date(2024, 3, 2), date(2024, 3, 3))

        assert result.bars == []
        assert result.currency == "EUR"

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_empty_range_for_unknown_symbol(self, mock_yf):
        mock_yf.Ticker.return_value = _mock_ticker(pd.DataFrame(), currency=None, info={})

        with pytest.raises(TickerNotFoundError) as exc_info:
            YahooFinanceProvider().get_daily_bars("NOPE", date(2024, 3, 1), date(2024, 3, 4))

        assert exc_info.value.provider == "yahoo"


# =============================================================================
# QUOTE METADATA
# =============================================================================

class TestGetQuoteMeta:
    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_returns_currency(self, mock_yf):
        mock_yf.Ticker.return_value = MagicMock(info={"shortName": "Vodafone", "currency": "GBp"})

        meta = YahooFinanceProvider().get_quote_meta("vod.l")

        assert meta.symbol == "VOD.L"
        assert meta.currency == "GBp"

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_invalid_info_raises_not_found(self, mock_yf):
        mock_yf.Ticker.return_value = MagicMock(info={"symbol": "NOPE"})

        with pytest.raises(TickerNotFoundError):
            YahooFinanceProvider().get_quote_meta("NOPE")

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_missing_currency_raises_not_found(self, mock_yf):
        mock_yf.Ticker.return_value = MagicMock(info={"shortName": "Odd"})

        with pytest.raises(TickerNotFoundError):
            YahooFinanceProvider().get_quote_meta("ODD")


# =============================================================================
# ERROR HANDLING
# =============================================================================

class TestErrorHandling:
    """Transient errors are retried, then mapped to provider errors."""

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_rate_limit_error(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("Too many requests")

        with pytest.raises(RateLimitError) as exc_info:
            FastRetryYahooProvider().get_daily_bars("AAPL", date(2024, 3, 1), date(2024, 3, 4))

        assert exc_info.value.provider == "yahoo"
        assert mock_yf.Ticker.call_count == FastRetryYahooProvider.MAX_RETRY_ATTEMPTS

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_network_error(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("Connection timeout")

        with pytest.raises(ProviderUnavailableError):
            FastRetryYahooProvider().get_quote_meta("AAPL")

        assert mock_yf.Ticker.call_count == 3

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_transient_error_then_success(self, mock_yf):
        mock_yf.Ticker.side_effect = [
            Exception("Connection reset"),
            MagicMock(info={"shortName": "Apple", "currency": "USD"}),
        ]

        assert FastRetryYahooProvider().get_quote_meta("AAPL").currency == "USD"

    @patch('holdings_tracker.services.market_data.yahoo.yf')
    def test_not_found_is_not_retried(self, mock_yf):
        mock_yf.Ticker.side_effect = Exception("No data found, symbol may be delisted")

        with pytest.raises(TickerNotFoundError):
            FastRetryYahooProvider().get_daily_bars("GONE", date(2024, 3, 1), date(2024, 3, 4))

        assert mock_yf.Ticker.call_count == 1


# =============================================================================
# HELPERS
# =============================================================================

class TestHelpers:
    @pytest.mark.parametrize("info,expected", [
        ({"regularMarketPrice": 100.5}, True),
        ({"shortName": "Test"}, True),
        ({"longName": "Test Inc."}, True),
        ({"symbol": "TEST"}, False),
        ({}, False),
        (None, False),
    ])
    def test_is_valid_ticker_info(self, info, expected):
        assert YahooFinanceProvider._is_valid_ticker_info(info) is expected

    def test_to_decimal(self):
        assert YahooFinanceProvider._to_decimal(1.5) == Decimal("1.5")
        assert YahooFinanceProvider._to_decimal(float("nan")) is None
        assert YahooFinanceProvider._to_decimal(None) is None
        assert YahooFinanceProvider._to_decimal("abc") is None

    def test_to_int(self):
        assert YahooFinanceProvider._to_int(12.0) == 12
        assert YahooFinanceProvider._to_int(float("nan")) is None
