# holdings_tracker/schemas/valuation.py
"""
Pydantic schemas for Portfolio Valuation.

These schemas handle:
- Holdings breakdown (open positions as of today)
- Daily value series with a per-ticker split
- Per-ticker series (quantity, price, value per day)
- Per-ticker errors (the rest of the payload is still returned)

All prices and values are in the response's reporting_currency.
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field


# =============================================================================
# HOLDINGS
# =============================================================================

class HoldingResponse(BaseModel):
    """Open position as of the valuation date."""

    ticker: str
    quantity: Decimal = Field(..., description="Net units held")
    current_price: Decimal = Field(..., description="Latest close (0 if no price is known)")
    current_value: Decimal = Field(..., description="quantity × current_price")
    asset_class: str | None = Field(
        default=None,
        description="Label of the most recent transaction carrying one"
    )


# =============================================================================
# TIME SERIES
# =============================================================================

class ValuePointResponse(BaseModel):
    """One day of the portfolio value series."""

    date: dt.date
    value: Decimal = Field(..., description="Total portfolio value that day")
    by_ticker: dict[str, Decimal] = Field(
        default_factory=dict,
        description="Value per ticker holding a positive quantity that day"
    )


class TickerSeriesPointResponse(BaseModel):
    date: dt.date
    quantity: Decimal
    price: Decimal
    value: Decimal


class TickerErrorResponse(BaseModel):
    """A ticker that could not be fetched or priced."""

    ticker: str
    message: str


# =============================================================================
# PORTFOLIO VALUATION
# =============================================================================

class PortfolioValuationResponse(BaseModel):
    """
    Complete valuation of a portfolio.

    `errors` lists tickers whose data could not be refreshed or priced.
    A ticker can appear both in the series (served from the cache) and in
    `errors` (the refresh failed).
    """

    portfolio_id: str
    reporting_currency: str = Field(..., description="ISO code of every amount below")
    as_of: dt.date = Field(..., description="Valuation date")
    total_value: Decimal = Field(..., description="Sum of current holding values")
    holdings: list[HoldingResponse] = Field(default_factory=list)
    value_series: list[ValuePointResponse] = Field(default_factory=list)
    per_ticker_series: dict[str, list[TickerSeriesPointResponse]] = Field(default_factory=dict)
    errors: list[TickerErrorResponse] = Field(default_factory=list)
    asset_classes: list[str] = Field(
        default_factory=list,
        description="Asset class labels configured on the portfolio"
    )

