# tests/services/test_currency_normalizer.py
"""
Tests for currency normalization.

This module tests:
- Currency code helpers (pence detection, pair symbols)
- Identity conversion and pence sterling scaling
- FX multiplication with forward-fill of missing rates
- Fallback to an unconverted bar (multiplier 1) with a warning
- Rate loading through the price cache
"""

import logging
from datetime import date
from decimal import Decimal

import pytest

from holdings_tracker.services.currency import (
    CurrencyNormalizer,
    is_pence,
    major_currency,
    needs_rate,
    pair_symbol,
    rate_table,
    unit_factor,
)
from holdings_tracker.services.price_store import RatePoint
from tests.conftest import make_bars, make_price_bars


# =============================================================================
# CURRENCY CODE HELPERS
# =============================================================================

class TestCurrencyCodes:
    @pytest.mark.parametrize("code,expected", [
        ("GBp", True),
        ("GBX", True),
        ("GBx", True),
        ("GBP", False),
        ("USD", False),
    ])
    def test_is_pence(self, code, expected):
        assert is_pence(code) is expected

    def test_major_currency(self):
        assert major_currency("GBp") == "GBP"
        assert major_currency("usd") == "USD"

    def test_unit_factor(self):
        assert unit_factor("GBX") == Decimal("0.01")
        assert unit_factor("EUR") == Decimal("1")

    @pytest.mark.parametrize("native,target,expected", [
        ("USD", "EUR", "USDEUR=X"),
        ("GBp", "EUR", "GBPEUR=X"),
        ("JPY", "usd", "JPYUSD=X"),
    ])
    def test_pair_symbol(self, native, target, expected):
        assert pair_symbol(native, target) == expected

    def test_needs_rate(self):
        assert needs_rate("USD", "EUR") is True
        assert needs_rate("EUR", "eur") is False
        assert needs_rate("GBp", "GBP") is False

    def test_rate_table_drops_non_positive(self):
        rates = [
            RatePoint("USDEUR=X", date(2024, 1, 1), Decimal("0.9")),
            RatePoint("USDEUR=X", date(2024, 1, 2), Decimal("0")),
        ]
        assert rate_table(rates) == {date(2024, 1, 1): Decimal("0.9")}


# =============================================================================
# NORMALIZE
# =============================================================================

class TestIdentityAndPence:
    def test_same_currency_is_unchanged(self, normalizer):
        bars = make_price_bars("AAPL", {date(2024, 3, 1): "180.5"}, currency="USD")

        result = normalizer.normalize(bars, "USD", "USD")

        assert result[0].close == Decimal("180.5")
        assert result[0].currency == "USD"

    def test_target_is_uppercased(self, normalizer):
        bars = make_price_bars("SAP.DE", {date(2024, 3, 1): 150}, currency="EUR")
        assert normalizer.normalize(bars, "EUR", "eur")[0].currency == "EUR"

    def test_pence_to_gbp_scales_by_one_hundredth(self, normalizer, mock_provider):
        bars = make_price_bars("VOD.L", {date(2024, 3, 1): 150}, currency="GBp")

        result = normalizer.normalize(bars, "GBp", "GBP")

        bar = result[0]
        assert bar.open == bar.high == bar.low == bar.close == Decimal("1.50")
        assert bar.adj_close == Decimal("1.50")
        assert bar.volume == 100
        assert bar.currency == "GBP"
        # No rate needed, so no provider call
        assert mock_provider.calls == []

    def test_empty_series(self, normalizer):
        assert normalizer.normalize([], "USD", "EUR") == []


class TestFxConversion:
    """Tests for rate lookup and multiplication."""

    def test_rate_multiplies_prices(self, normalizer):
        bars = make_price_bars("AAPL", {date(2024, 3, 1): 200}, currency="USD")
        rates = {date(2024, 3, 1): Decimal("0.92")}

        result = normalizer.normalize(bars, "USD", "EUR", rates=rates)

        assert result[0].close == Decimal("184")
        assert result[0].currency == "EUR"
        assert result[0].volume == 100

    def test_pence_factor_applied_before_rate(self, normalizer):
        bars = make_price_bars("VOD.L", {date(2024, 3, 1): 150}, currency="GBX")
        rates = {date(2024, 3, 1): Decimal("1.17")}

        result = normalizer.normalize(bars, "GBX", "EUR", rates=rates)

        assert result[0].close == Decimal("1.755")

    def test_weekend_bar_uses_friday_rate(self, normalizer):
        bars = make_price_bars("BTC-USD", {date(2024, 3, 10): 100}, currency="USD")
        rates = {date(2024, 3, 8): Decimal("0.9")}  # Friday

        result = normalizer.normalize(bars, "USD", "EUR", rates=rates)

        assert result[0].close == Decimal("90")

    def test_exact_rate_preferred_over_earlier(self, normalizer):
        bars = make_price_bars("AAPL", {date(2024, 3, 5): 100}, currency="USD")
        rates = {date(2024, 3, 4): Decimal("0.5"), date(2024, 3, 5): Decimal("0.9")}

        assert normalizer.normalize(bars, "USD", "EUR", rates=rates)[0].close == Decimal("90")

    def test_zero_rate_counts_as_missing(self, normalizer):
        bars = make_price_bars("AAPL", {date(2024, 3, 5): 100}, currency="USD")
        rates = {date(2024, 3, 4): Decimal("0.9"), date(2024, 3, 5): Decimal("0")}

        assert normalizer.normalize(bars, "USD", "EUR", rates=rates)[0].close == Decimal("90")

    def test_rate_outside_window_falls_back_to_one(self, normalizer, caplog):
        bars = make_price_bars(
            "AAPL",
            {date(2024, 3, 1): 100, date(2024, 3, 20): 110},
            currency="USD",
        )
        rates = {date(2024, 3, 1): Decimal("0.9")}

        with caplog.at_level(logging.WARNING):
            result = normalizer.normalize(bars, "USD", "EUR", rates=rates)

        assert [b.close for b in result] == [Decimal("90"), Decimal("110")]
        assert result[1].currency == "EUR"
        warnings = [r for r in caplog.records if "USDEUR=X" in r.getMessage()]
        assert len(warnings) == 1

    def test_rate_series_fetched_when_not_given(self, normalizer, mock_provider):
        mock_provider.set_bars("USDEUR=X", make_bars(date(2024, 2, 20), ["0.9"] * 20))
        bars = make_price_bars("AAPL", {date(2024, 3, 1): 100}, currency="USD")

        result = normalizer.normalize(bars, "USD", "EUR")

        assert result[0].close == Decimal("90")
        # Rates requested from forward_fill_days before the first bar
        assert mock_provider.bar_calls("USDEUR=X")[0][1] == date(2024, 2, 23)


# =============================================================================
# RATE LOADING
# =============================================================================

class TestRequiredPairsAndLoading:
    def test_required_pairs_are_distinct_and_sorted(self, normalizer):
        pairs = normalizer.required_pairs(["USD", "GBp", "EUR", "USD", "GBX"], "EUR")
        assert pairs == ["GBPEUR=X", "USDEUR=X"]

    def test_no_pairs_for_pence_into_gbp(self, normalizer):
        assert normalizer.required_pairs(["GBp", "GBP"], "GBP") == []

    def test_load_rates_in_parallel(self, normalizer, mock_provider):
        mock_provider.set_bars("USDEUR=X", make_bars(date(2024, 2, 1), ["0.9"] * 30))
        mock_provider.set_bars("GBPEUR=X", make_bars(date(2024, 2, 1), ["1.17"] * 30))

        results = normalizer.load_rates(["USDEUR=X", "GBPEUR=X"], date(2024, 3, 1))

        assert set(results) == {"USDEUR=X", "GBPEUR=X"}
        assert results["GBPEUR=X"].rates[0].rate == Decimal("1.17")
        assert results["USDEUR=X"].error is None
        for _, start, _ in mock_provider.bar_calls():
            assert start == date(2024, 2, 23)

    def test_load_rates_reports_failures(self, normalizer):
        results = normalizer.load_rates(["ZZZEUR=X"], date(2024, 3, 1))

        assert results["ZZZEUR=X"].rates == []
        assert results["ZZZEUR=X"].error is not None

    def test_load_no_pairs(self, normalizer):
        assert normalizer.load_rates([], date(2024, 3, 1)) == {}
