# holdings_tracker/routers/valuation.py
"""
Portfolio valuation endpoint.

- GET /portfolios/{id}/valuation?currency=EUR - Holdings, daily value
  series, per-ticker series and per-ticker errors

The endpoint may trigger provider calls (once per ticker per day), so it
has its own, tighter rate limit.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request
from pydantic import AfterValidator
from sqlalchemy.orm import Session

from holdings_tracker.database import get_db
from holdings_tracker.dependencies import get_valuation_service
from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_VALUATION
from holdings_tracker.schemas.errors import ErrorDetail
from holdings_tracker.schemas.validators import validate_currency_query
from holdings_tracker.schemas.valuation import (
    HoldingResponse,
    PortfolioValuationResponse,
    TickerErrorResponse,
    TickerSeriesPointResponse,
    ValuePointResponse,
)
from holdings_tracker.services.valuation import PortfolioValuationService
from holdings_tracker.services.valuation.types import PortfolioValuation

logger = logging.getLogger(__name__)

CurrencyQuery = Annotated[
    str | None,
    Query(description="Reporting currency (defaults to REPORTING_CURRENCY)"),
    AfterValidator(validate_currency_query),
]

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/portfolios",
    tags=["Valuation"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_valuation(valuation: PortfolioValuation) -> PortfolioValuationResponse:
    """Map internal PortfolioValuation to Pydantic schema."""
    return PortfolioValuationResponse(
        portfolio_id=valuation.portfolio_id,
        reporting_currency=valuation.reporting_currency,
        as_of=valuation.as_of,
        total_value=valuation.total_value,
        holdings=[
            HoldingResponse(
                ticker=h.ticker,
                quantity=h.quantity,
                current_price=h.current_price,
                current_value=h.current_value,
                asset_class=h.asset_class,
            )
            for h in valuation.holdings
        ],
        value_series=[
            ValuePointResponse(date=p.date, value=p.value, by_ticker=dict(p.by_ticker))
            for p in valuation.value_series
        ],
        per_ticker_series={
            ticker: [
                TickerSeriesPointResponse(
                    date=p.date,
                    quantity=p.quantity,
                    price=p.price,
                    value=p.value,
                )
                for p in points
            ]
            for ticker, points in valuation.per_ticker_series.items()
        },
        errors=[
            TickerErrorResponse(ticker=e.ticker, message=e.message)
            for e in valuation.errors
        ],
        asset_classes=list(valuation.asset_classes),
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get(
    "/{portfolio_id}/valuation",
    response_model=PortfolioValuationResponse,
    responses={
        404: {"model": ErrorDetail, "description": "Portfolio not found"},
        500: {"model": ErrorDetail, "description": "Price store failure"},
    },
)
@limiter.limit(RATE_LIMIT_VALUATION)
def get_portfolio_valuation(
    request: Request,
    portfolio_id: str,
    currency: CurrencyQuery = None,
    db: Session = Depends(get_db),
    service: PortfolioValuationService = Depends(get_valuation_service),
) -> PortfolioValuationResponse:
    """
    Value a portfolio in one reporting currency.

    Tickers whose prices could not be refreshed are still valued from the
    cache when possible and listed in `errors`.
    """
    valuation = service.get_portfolio_valuation(db, portfolio_id, currency)
    return _map_valuation(valuation)
