# holdings_tracker/schemas/prices.py
"""
Pydantic schemas for normalized price series (GET /prices).
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from holdings_tracker.schemas.valuation import TickerErrorResponse


class PriceBarResponse(BaseModel):
    """One daily bar in the response currency."""

    model_config = ConfigDict(from_attributes=True)

    date: dt.date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    adj_close: Decimal
    volume: int | None = None


class TickerPricesResponse(BaseModel):
    ticker: str
    native_currency: str = Field(..., description="Quote currency before conversion (e.g. 'GBp')")
    bars: list[PriceBarResponse] = Field(default_factory=list)


class PricesResponse(BaseModel):
    """
    Normalized series for the requested tickers.

    Tickers without usable data appear in `errors` only; a ticker served
    from a stale cache appears in both.
    """

    currency: str = Field(..., description="Currency of every price in `series`")
    series: list[TickerPricesResponse] = Field(default_factory=list)
    errors: list[TickerErrorResponse] = Field(default_factory=list)
