# holdings_tracker/routers/transactions.py
"""
Transaction management endpoints.

Provides CRUD operations for the BUY/SELL ledger of a portfolio:
- GET    /transactions?portfolio_id=...                 - newest first
- POST   /transactions                                  - create one
- POST   /transactions/bulk                             - create many (atomic)
- PATCH  /transactions/{id}                             - partial update
- DELETE /transactions/{id}                             - delete one
- DELETE /transactions?portfolio_id=...&ticker=...      - delete a ticker

Key concepts:
- Portfolios are created on first write (name "My Portfolio")
- Tickers are stored uppercased
- A transaction without a date is dated at the earliest cached price of
  its ticker, or today
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Request, status
from pydantic import AfterValidator
from sqlalchemy.orm import Session

from holdings_tracker.database import get_db
from holdings_tracker.dependencies import get_transaction_repository
from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_DEFAULT, RATE_LIMIT_WRITE
from holdings_tracker.schemas.errors import ErrorDetail
from holdings_tracker.schemas.transactions import (
    BulkCreateResponse,
    DeleteResponse,
    TransactionBulkCreate,
    TransactionCreate,
    TransactionItem,
    TransactionResponse,
    TransactionUpdate,
)
from holdings_tracker.schemas.validators import validate_portfolio_id, validate_ticker
from holdings_tracker.services.ledger import NewTransaction, TransactionRepository

logger = logging.getLogger(__name__)

PortfolioIdQuery = Annotated[
    str,
    Query(description="Portfolio identifier"),
    AfterValidator(validate_portfolio_id),
]
TickerQuery = Annotated[
    str,
    Query(description="Symbol whose transactions are removed"),
    AfterValidator(validate_ticker),
]

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/transactions",
    tags=["Transactions"],
)


def _to_new_transaction(item: TransactionItem) -> NewTransaction:
    return NewTransaction(
        ticker=item.ticker,
        transaction_type=item.transaction_type,
        quantity=item.quantity,
        date=item.date,
        asset_class=item.asset_class,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.get("", response_model=list[TransactionResponse])
@limiter.limit(RATE_LIMIT_DEFAULT)
def list_transactions(
    request: Request,
    portfolio_id: PortfolioIdQuery,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> list[TransactionResponse]:
    """List a portfolio's transactions, newest first. Unknown portfolios give []."""
    transactions = repository.list_transactions(db, portfolio_id, newest_first=True)
    return [TransactionResponse.model_validate(t) for t in transactions]


@router.post(
    "",
    response_model=TransactionResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_transaction(
    request: Request,
    payload: TransactionCreate,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> TransactionResponse:
    """Record one BUY or SELL."""
    transaction = repository.create_transaction(db, payload.portfolio_id, _to_new_transaction(payload))
    return TransactionResponse.model_validate(transaction)


@router.post(
    "/bulk",
    response_model=BulkCreateResponse,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def create_transactions_bulk(
    request: Request,
    payload: TransactionBulkCreate,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> BulkCreateResponse:
    """
    Import many transactions at once.

    The operation is atomic: if ANY transaction fails, NONE are created.
    """
    created = repository.create_transactions(
        db,
        payload.portfolio_id,
        [_to_new_transaction(item) for item in payload.transactions],
    )
    return BulkCreateResponse(portfolio_id=payload.portfolio_id, created=created)


@router.patch(
    "/{transaction_id}",
    response_model=TransactionResponse,
    responses={404: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def update_transaction(
    request: Request,
    transaction_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> TransactionResponse:
    """Update only the fields sent by the client."""
    transaction = repository.update_transaction(
        db,
        transaction_id,
        **payload.model_dump(exclude_unset=True),
    )
    return TransactionResponse.model_validate(transaction)


@router.delete(
    "/{transaction_id}",
    response_model=DeleteResponse,
    responses={404: {"model": ErrorDetail}},
)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_transaction(
    request: Request,
    transaction_id: int,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> DeleteResponse:
    repository.delete_transaction(db, transaction_id)
    return DeleteResponse(deleted=1)


@router.delete("", response_model=DeleteResponse)
@limiter.limit(RATE_LIMIT_WRITE)
def delete_ticker_transactions(
    request: Request,
    portfolio_id: PortfolioIdQuery,
    ticker: TickerQuery,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> DeleteResponse:
    """Remove every transaction of one ticker from a portfolio."""
    deleted = repository.delete_ticker(db, portfolio_id, ticker)
    return DeleteResponse(deleted=deleted)
