# holdings_tracker/services/valuation/service.py
"""
Portfolio Valuation Service - orchestrates the valuation pipeline.

Flow of get_portfolio_valuation:
    1. Load the ledger and the portfolio's asset classes
    2. history_start = min(today - HISTORY_LOOKBACK_YEARS,
                           earliest transaction - HISTORY_PADDING_DAYS)
    3. Fetch every distinct ticker's series in parallel (price cache)
    4. Load the FX series the batch needs in parallel, normalize
    5. Run the pure ValuationEngine with as_of = today

Per-ticker failures are collected in `errors`; the rest of the payload is
still returned. Storage failures propagate and fail the request.

Collaborators are injected so tests can swap in fakes and a fixed clock.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING

from sqlalchemy.orm import Session

from holdings_tracker.services.constants import HISTORY_PADDING_DAYS
from holdings_tracker.services.valuation.engine import ValuationEngine
from holdings_tracker.services.valuation.types import PortfolioValuation
from holdings_tracker.utils.date_utils import Clock, SystemClock, years_before

if TYPE_CHECKING:
    from holdings_tracker.services.ledger import TransactionRepository
    from holdings_tracker.services.price_series import PriceSeriesService

logger = logging.getLogger(__name__)


class PortfolioValuationService:
    """
    Values a portfolio's ledger in a reporting currency.

    Example:
        service = PortfolioValuationService(repository, price_series, engine)
        valuation = service.get_portfolio_valuation(db, "my-portfolio", "EUR")
    """

    def __init__(
            self,
            repository: TransactionRepository,
            price_series: PriceSeriesService,
            engine: ValuationEngine | None = None,
            clock: Clock | None = None,
            default_currency: str = "EUR",
            history_lookback_years: int = 5,
    ) -> None:
        self._repository = repository
        self._price_series = price_series
        self._engine = engine or ValuationEngine()
        self._clock = clock or SystemClock()
        self._default_currency = default_currency
        self._history_lookback_years = history_lookback_years

    def get_portfolio_valuation(
            self,
            db: Session,
            portfolio_id: str,
            reporting_currency: str | None = None,
    ) -> PortfolioValuation:
        """
        Compute holdings and the daily value series of a portfolio.

        Args:
            db: Session used for the ledger reads
            portfolio_id: Portfolio identifier
            reporting_currency: ISO code; the configured default when None

        Returns:
            PortfolioValuation with holdings, value_series,
            per_ticker_series and errors

        Raises:
            PortfolioNotFoundError: If the portfolio does not exist
            StorageError: If the price store cannot be read or written
        """
        currency = (reporting_currency or self._default_currency).upper()
        asset_classes = self._repository.get_portfolio_asset_classes(db, portfolio_id)
        entries = self._repository.list_entries(db, portfolio_id)
        today = self._clock.today()

        valuation = PortfolioValuation(
            portfolio_id=portfolio_id,
            reporting_currency=currency,
            as_of=today,
            asset_classes=asset_classes,
        )
        if not entries:
            logger.info(f"Portfolio {portfolio_id} has no transactions")
            return valuation

        earliest = min(entry.date for entry in entries)
        history_start = min(
            years_before(today, self._history_lookback_years),
            earliest - timedelta(days=HISTORY_PADDING_DAYS),
        )
        tickers = sorted({entry.ticker for entry in entries})

        batch = self._price_series.load(tickers, history_start, currency)
        result = self._engine.compute_valuation(entries, batch.series, today)

        valuation.holdings = result.holdings
        valuation.value_series = result.value_series
        valuation.per_ticker_series = result.per_ticker_series
        valuation.errors = batch.errors

        logger.info(
            f"Valued portfolio {portfolio_id} in {currency}: "
            f"{len(valuation.holdings)} holdings, {len(valuation.value_series)} days, "
            f"{len(valuation.errors)} errors"
        )
        return valuation
