# holdings_tracker/schemas/transactions.py
"""
Pydantic schemas for Transaction validation.

These schemas define:
- What data clients must send (Create, BulkCreate)
- What data clients can update (Update)
- What data the API returns (Response)

Validation layers:
- Field constraints: type, length, numeric limits
- Field validators: normalization (uppercase, trim), logical checks
- Service: existence checks, default trade date

IMPORTANT: Quantities use Decimal for precision. Never use float!
"""

import datetime as dt

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from holdings_tracker.models import TransactionType
from holdings_tracker.schemas.validators import validate_portfolio_id, validate_ticker
from holdings_tracker.services.constants import MAX_BULK_TRANSACTIONS


def _not_in_future(value: dt.date | None) -> dt.date | None:
    if value is not None and value > dt.date.today():
        raise ValueError("Transaction date cannot be in the future")
    return value


def _clean_asset_class(value: str | None) -> str | None:
    if value is None:
        return None
    value = value.strip()
    return value or None


# =============================================================================
# CREATE SCHEMAS
# =============================================================================

class TransactionItem(BaseModel):
    """
    One BUY/SELL record as sent by the client.

    `date` may be omitted: the transaction is then dated at the earliest
    cached price of the ticker (or today when nothing is cached).
    """

    ticker: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Yahoo Finance symbol",
        examples=["AAPL", "VOD.L", "SAP.DE"]
    )

    transaction_type: TransactionType = Field(
        ...,
        description="Type of transaction",
        examples=[TransactionType.BUY, TransactionType.SELL]
    )

    quantity: Decimal = Field(
        ...,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Number of shares/units traded (must be positive)",
        examples=["10", "0.5"]
    )

    date: dt.date | None = Field(
        default=None,
        description="Trade date (defaults to the start of the cached history)",
        examples=["2024-01-02"]
    )

    asset_class: str | None = Field(
        default=None,
        max_length=50,
        description="Free-form label such as 'Stocks' or 'ETF'",
        examples=["Stocks", "ETF"]
    )

    @field_validator('ticker')
    @classmethod
    def validate_and_normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator('date')
    @classmethod
    def validate_date_not_in_future(cls, v: dt.date | None) -> dt.date | None:
        """Prevent recording transactions that haven't happened yet."""
        return _not_in_future(v)

    @field_validator('asset_class')
    @classmethod
    def normalize_asset_class(cls, v: str | None) -> str | None:
        return _clean_asset_class(v)


class TransactionCreate(TransactionItem):
    """Schema for creating one transaction. The portfolio is created if missing."""

    portfolio_id: str = Field(
        ...,
        description="Client-chosen portfolio identifier",
        examples=["default"]
    )

    @field_validator('portfolio_id')
    @classmethod
    def validate_portfolio(cls, v: str) -> str:
        return validate_portfolio_id(v)


class TransactionBulkCreate(BaseModel):
    """
    Schema for importing many transactions at once.

    The operation is atomic: if ANY transaction fails, NONE are created.
    """

    portfolio_id: str = Field(..., description="Client-chosen portfolio identifier")
    transactions: list[TransactionItem] = Field(
        ...,
        min_length=1,
        max_length=MAX_BULK_TRANSACTIONS,
        description="Transactions to create"
    )

    @field_validator('portfolio_id')
    @classmethod
    def validate_portfolio(cls, v: str) -> str:
        return validate_portfolio_id(v)


# =============================================================================
# UPDATE SCHEMA
# =============================================================================

class TransactionUpdate(BaseModel):
    """
    Schema for updating an existing transaction.

    All fields are optional: the client only sends fields to update.
    The portfolio cannot be changed.
    """

    ticker: str | None = Field(default=None, min_length=1, max_length=20)
    transaction_type: TransactionType | None = Field(default=None)
    quantity: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=18,
        decimal_places=8,
        description="Corrected quantity"
    )
    date: dt.date | None = Field(default=None, description="Corrected trade date")
    asset_class: str | None = Field(default=None, max_length=50)

    @field_validator('ticker')
    @classmethod
    def validate_and_normalize_ticker(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return validate_ticker(v)

    @field_validator('date')
    @classmethod
    def validate_date_not_in_future(cls, v: dt.date | None) -> dt.date | None:
        return _not_in_future(v)

    @field_validator('asset_class')
    @classmethod
    def normalize_asset_class(cls, v: str | None) -> str | None:
        return _clean_asset_class(v)


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class TransactionResponse(BaseModel):
    """Schema for API responses."""

    id: int = Field(..., description="Unique identifier")
    portfolio_id: str = Field(..., description="Portfolio identifier")
    ticker: str
    transaction_type: TransactionType = Field(..., description="Transaction type (BUY/SELL)")
    quantity: Decimal
    date: dt.date
    asset_class: str | None = None
    created_at: dt.datetime = Field(..., description="When the transaction was recorded")

    model_config = ConfigDict(from_attributes=True)


class BulkCreateResponse(BaseModel):
    portfolio_id: str
    created: int = Field(..., description="Number of transactions created")


class DeleteResponse(BaseModel):
    deleted: int = Field(..., description="Number of transactions deleted")
