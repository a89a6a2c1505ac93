# holdings_tracker/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

This package contains all Pydantic schemas organized by domain:
- admin: Cache reset request/response
- errors: Error response formats
- portfolios: Portfolio asset class labels
- prices: Normalized price series
- transactions: Transaction CRUD operations
- validators: Reusable validation functions (ticker, currency, portfolio id)
- valuation: Holdings, value series, per-ticker errors

Usage:
    from holdings_tracker.schemas import TransactionCreate, TransactionResponse
    from holdings_tracker.schemas import PortfolioValuationResponse
    from holdings_tracker.schemas import ErrorDetail
"""

from holdings_tracker.schemas.admin import CacheResetRequest, CacheResetResponse
from holdings_tracker.schemas.errors import ErrorDetail, ValidationErrorDetail
from holdings_tracker.schemas.portfolios import AssetClassesResponse, AssetClassesUpdate
from holdings_tracker.schemas.prices import (
    PriceBarResponse,
    PricesResponse,
    TickerPricesResponse,
)
from holdings_tracker.schemas.transactions import (
    BulkCreateResponse,
    DeleteResponse,
    TransactionBulkCreate,
    TransactionCreate,
    TransactionItem,
    TransactionResponse,
    TransactionUpdate,
)
from holdings_tracker.schemas.valuation import (
    HoldingResponse,
    PortfolioValuationResponse,
    TickerErrorResponse,
    TickerSeriesPointResponse,
    ValuePointResponse,
)

__all__ = [
    # Admin
    "CacheResetRequest",
    "CacheResetResponse",
    # Errors
    "ErrorDetail",
    "ValidationErrorDetail",
    # Portfolios
    "AssetClassesUpdate",
    "AssetClassesResponse",
    # Prices
    "PriceBarResponse",
    "TickerPricesResponse",
    "PricesResponse",
    # Transactions
    "TransactionItem",
    "TransactionCreate",
    "TransactionBulkCreate",
    "TransactionUpdate",
    "TransactionResponse",
    "BulkCreateResponse",
    "DeleteResponse",
    # Valuation
    "HoldingResponse",
    "ValuePointResponse",
    "TickerSeriesPointResponse",
    "TickerErrorResponse",
    "PortfolioValuationResponse",
]
