# holdings_tracker/services/valuation/__init__.py
"""
Valuation package.

Usage:
    from holdings_tracker.services.valuation import PortfolioValuationService

    valuation = service.get_portfolio_valuation(db, "my-portfolio", "EUR")

Architecture:
    valuation/
    ├── __init__.py     # This file - package exports
    ├── types.py        # Internal data classes
    ├── engine.py       # Pure ledger replay (ValuationEngine)
    └── service.py      # PortfolioValuationService (orchestrator)

Data Flow:
    Ledger → LedgerEntry list
    Tickers → PriceSeriesService → normalized PriceBar series
    Entries + Series → ValuationEngine → EngineResult
    EngineResult + errors → PortfolioValuation
"""

from holdings_tracker.services.valuation.engine import ValuationEngine
from holdings_tracker.services.valuation.service import PortfolioValuationService
from holdings_tracker.services.valuation.types import (
    EngineResult,
    Holding,
    LedgerEntry,
    PortfolioValuation,
    TickerError,
    TickerSeriesPoint,
    ValuePoint,
)

__all__ = [
    # Main service
    "PortfolioValuationService",

    # Engine
    "ValuationEngine",

    # Data types
    "EngineResult",
    "Holding",
    "LedgerEntry",
    "PortfolioValuation",
    "TickerError",
    "TickerSeriesPoint",
    "ValuePoint",
]
