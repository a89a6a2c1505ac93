# holdings_tracker/routers/prices.py
"""
Normalized price series endpoint.

- GET /prices?tickers=AAPL,VOD.L&currency=EUR - Cached daily bars for the
  last HISTORY_LOOKBACK_YEARS years, converted into one currency
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AfterValidator

from holdings_tracker.config import settings
from holdings_tracker.dependencies import get_price_series_service
from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_VALUATION
from holdings_tracker.schemas.prices import (
    PriceBarResponse,
    PricesResponse,
    TickerPricesResponse,
)
from holdings_tracker.schemas.validators import parse_ticker_list, validate_currency_query
from holdings_tracker.schemas.valuation import TickerErrorResponse
from holdings_tracker.services.price_series import PriceSeriesService

# Parsed into a de-duplicated list of uppercased symbols
TickersQuery = Annotated[
    str,
    Query(description="Comma-separated symbols, e.g. AAPL,VOD.L"),
    AfterValidator(parse_ticker_list),
]
CurrencyQuery = Annotated[
    str | None,
    Query(description="Target currency"),
    AfterValidator(validate_currency_query),
]

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


@router.get("", response_model=PricesResponse)
@limiter.limit(RATE_LIMIT_VALUATION)
def get_prices(
    request: Request,
    tickers: TickersQuery,
    currency: CurrencyQuery = None,
    service: PriceSeriesService = Depends(get_price_series_service),
) -> PricesResponse:
    """Daily bars per ticker in the requested currency."""
    batch = service.get_normalized_prices(
        tickers,
        currency or settings.reporting_currency,
    )

    return PricesResponse(
        currency=batch.currency,
        series=[
            TickerPricesResponse(
                ticker=ticker,
                native_currency=batch.native_currencies[ticker],
                bars=[PriceBarResponse.model_validate(bar) for bar in bars],
            )
            for ticker, bars in batch.series.items()
        ],
        errors=[TickerErrorResponse(ticker=e.ticker, message=e.message) for e in batch.errors],
    )
