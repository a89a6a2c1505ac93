# holdings_tracker/routers/portfolios.py
"""
Portfolio metadata endpoints.

- PUT /portfolios/{id}/asset-classes - Replace the asset class labels

The labels are only passed through to clients (in the valuation
response); the valuation itself never reads them.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from holdings_tracker.database import get_db
from holdings_tracker.dependencies import get_transaction_repository
from holdings_tracker.middleware.rate_limit import limiter, RATE_LIMIT_WRITE
from holdings_tracker.schemas.portfolios import AssetClassesResponse, AssetClassesUpdate
from holdings_tracker.services.ledger import TransactionRepository

router = APIRouter(
    prefix="/portfolios",
    tags=["Portfolios"],
)


@router.put("/{portfolio_id}/asset-classes", response_model=AssetClassesResponse)
@limiter.limit(RATE_LIMIT_WRITE)
def set_asset_classes(
    request: Request,
    portfolio_id: str,
    payload: AssetClassesUpdate,
    db: Session = Depends(get_db),
    repository: TransactionRepository = Depends(get_transaction_repository),
) -> AssetClassesResponse:
    """Replace the labels; creates the portfolio if it does not exist yet."""
    labels = repository.set_asset_classes(db, portfolio_id, payload.asset_classes)
    return AssetClassesResponse(portfolio_id=portfolio_id, asset_classes=labels)
