# holdings_tracker/services/valuation/types.py
"""
Internal data types for the valuation pipeline.

These dataclasses are used by the engine and the orchestrating service.
They are NOT Pydantic schemas - those are defined in
holdings_tracker/schemas/valuation.py for API serialization.

Design Principles:
- Immutable where possible (frozen=True for value objects)
- Use Decimal for ALL financial values (never float)
- Use date (not datetime) for valuation dates
- Per-ticker failures accumulate in `errors`, they never abort a valuation

Type Hierarchy:
    LedgerEntry         - One BUY/SELL as the engine sees it
    Holding             - Open position as of the valuation date
    ValuePoint          - One day of the portfolio value series
    TickerSeriesPoint   - One day of a single ticker's series
    TickerError         - Why a ticker is missing from the result
    EngineResult        - Output of ValuationEngine.compute_valuation
    PortfolioValuation  - Output of get_portfolio_valuation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal

from holdings_tracker.models import TransactionType


# =============================================================================
# INPUT
# =============================================================================

@dataclass(frozen=True)
class LedgerEntry:
    """
    One ledger transaction, detached from the ORM.

    Attributes:
        ticker: Uppercased symbol
        transaction_type: BUY adds quantity, SELL subtracts it
        quantity: Positive number of units
        date: Trade date
        asset_class: Label chosen by the user, if any
    """

    ticker: str
    transaction_type: TransactionType
    quantity: Decimal
    date: date
    asset_class: str | None = None

    @property
    def signed_quantity(self) -> Decimal:
        if self.transaction_type == TransactionType.SELL:
            return -self.quantity
        return self.quantity


# =============================================================================
# OUTPUT
# =============================================================================

@dataclass(frozen=True)
class Holding:
    """
    Open position as of the valuation date.

    Attributes:
        ticker: Symbol
        quantity: Net units held (always > 0 here)
        current_price: Latest close in the reporting currency (0 if unpriced)
        current_value: quantity x current_price, rounded to cents
        asset_class: Label from the most recent transaction of the ticker
    """

    ticker: str
    quantity: Decimal
    current_price: Decimal
    current_value: Decimal
    asset_class: str | None = None


@dataclass(frozen=True)
class ValuePoint:
    """
    One day of the portfolio value series.

    `by_ticker` has one entry per ticker holding a positive quantity that
    day, and its values sum to `value` (before rounding).
    """

    date: date
    value: Decimal
    by_ticker: dict[str, Decimal] = field(default_factory=dict)


@dataclass(frozen=True)
class TickerSeriesPoint:
    date: date
    quantity: Decimal
    price: Decimal
    value: Decimal


@dataclass(frozen=True)
class TickerError:
    """A ticker that could not be priced or fetched."""

    ticker: str
    message: str


@dataclass
class EngineResult:
    holdings: list[Holding] = field(default_factory=list)
    value_series: list[ValuePoint] = field(default_factory=list)
    per_ticker_series: dict[str, list[TickerSeriesPoint]] = field(default_factory=dict)


@dataclass
class PortfolioValuation:
    """
    Complete valuation of one portfolio in one reporting currency.

    Attributes:
        portfolio_id: Portfolio identifier
        reporting_currency: Currency of every price and value below
        as_of: Valuation date (today)
        holdings: Open positions, sorted by ticker
        value_series: Daily values, leading zero days trimmed
        per_ticker_series: Daily series per ticker over the same range
        errors: Per-ticker fetch or pricing failures
        asset_classes: Labels configured on the portfolio (pass-through)
    """

    portfolio_id: str
    reporting_currency: str
    as_of: date
    holdings: list[Holding] = field(default_factory=list)
    value_series: list[ValuePoint] = field(default_factory=list)
    per_ticker_series: dict[str, list[TickerSeriesPoint]] = field(default_factory=dict)
    errors: list[TickerError] = field(default_factory=list)
    asset_classes: list[str] = field(default_factory=list)

    @property
    def total_value(self) -> Decimal:
        """Sum of current holding values."""
        return sum((h.current_value for h in self.holdings), Decimal("0"))

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)
