# holdings_tracker/services/ledger.py
"""
Transaction ledger: the BUY/SELL records the valuation replays.

Portfolios are identified by a client-chosen string id and are created on
first write with the name "My Portfolio". Tickers are stored uppercased.

When a transaction has no date, it defaults to the earliest stored price
date for its ticker (the position is treated as held since the start of
the cached history), or today when nothing is stored yet.

Methods take the request's Session and commit their own writes. Bulk
creation is all-or-nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from holdings_tracker.models import AssetPrice, Portfolio, Transaction, TransactionType
from holdings_tracker.services.exceptions import (
    PortfolioNotFoundError,
    TransactionNotFoundError,
    ValidationError,
)
from holdings_tracker.services.valuation.types import LedgerEntry
from holdings_tracker.utils.date_utils import Clock, SystemClock

logger = logging.getLogger(__name__)

DEFAULT_PORTFOLIO_NAME = "My Portfolio"


@dataclass(frozen=True)
class NewTransaction:
    """Input for create_transaction / create_transactions."""

    ticker: str
    transaction_type: TransactionType
    quantity: Decimal
    date: date | None = None
    asset_class: str | None = None


class TransactionRepository:
    """
    Reads and writes the transaction ledger.

    Example:
        repo = TransactionRepository()
        repo.create_transaction(db, "p1", NewTransaction("aapl", TransactionType.BUY, Decimal("10")))
        entries = repo.list_entries(db, "p1")
    """

    def __init__(self, clock: Clock | None = None) -> None:
        self._clock = clock or SystemClock()

    # =========================================================================
    # READS
    # =========================================================================

    def list_transactions(
            self,
            db: Session,
            portfolio_id: str,
            newest_first: bool = False,
    ) -> list[Transaction]:
        """Transactions of a portfolio ordered by date (ties by insertion order)."""
        if newest_first:
            order = (Transaction.date.desc(), Transaction.id.desc())
        else:
            order = (Transaction.date, Transaction.id)

        query = (
            select(Transaction)
            .where(Transaction.portfolio_id == portfolio_id)
            .order_by(*order)
        )
        return list(db.scalars(query).all())

    def list_entries(self, db: Session, portfolio_id: str) -> list[LedgerEntry]:
        """Date-ascending ledger entries for the valuation engine."""
        return [
            LedgerEntry(
                ticker=t.ticker,
                transaction_type=t.transaction_type,
                quantity=Decimal(t.quantity),
                date=t.date,
                asset_class=t.asset_class,
            )
            for t in self.list_transactions(db, portfolio_id)
        ]

    def get_portfolio(self, db: Session, portfolio_id: str) -> Portfolio:
        """
        Raises:
            PortfolioNotFoundError: If no such portfolio exists
        """
        portfolio = db.get(Portfolio, portfolio_id)
        if portfolio is None:
            raise PortfolioNotFoundError(portfolio_id)
        return portfolio

    def get_portfolio_asset_classes(self, db: Session, portfolio_id: str) -> list[str]:
        return list(self.get_portfolio(db, portfolio_id).asset_classes or [])

    # =========================================================================
    # WRITES
    # =========================================================================

    def create_transaction(self, db: Session, portfolio_id: str, data: NewTransaction) -> Transaction:
        """Create one transaction, creating the portfolio if needed."""
        transaction = self._build(db, portfolio_id, data)
        self._ensure_portfolio(db, portfolio_id)
        db.add(transaction)
        db.commit()
        db.refresh(transaction)

        logger.info(
            f"Created {transaction.transaction_type.value} {transaction.ticker} "
            f"x{transaction.quantity} on {transaction.date} in portfolio {portfolio_id}"
        )
        return transaction

    def create_transactions(
            self,
            db: Session,
            portfolio_id: str,
            items: Sequence[NewTransaction],
    ) -> int:
        """
        Create many transactions in one database transaction.

        Returns:
            Number of transactions created (all of them, or an exception)
        """
        try:
            self._ensure_portfolio(db, portfolio_id)
            for item in items:
                db.add(self._build(db, portfolio_id, item))
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(f"Bulk created {len(items)} transactions in portfolio {portfolio_id}")
        return len(items)

    def update_transaction(self, db: Session, transaction_id: int, **changes) -> Transaction:
        """
        Apply a partial update. Keys with value None are ignored.

        Raises:
            TransactionNotFoundError: If transaction_id does not exist
        """
        transaction = self._get_or_raise(db, transaction_id)

        for field_name, value in changes.items():
            if value is None:
                continue
            if field_name == "ticker":
                value = _normalize_ticker(value)
            setattr(transaction, field_name, value)

        db.commit()
        db.refresh(transaction)
        logger.info(f"Updated transaction {transaction_id}")
        return transaction

    def delete_transaction(self, db: Session, transaction_id: int) -> None:
        transaction = self._get_or_raise(db, transaction_id)
        db.delete(transaction)
        db.commit()
        logger.info(f"Deleted transaction {transaction_id}")

    def delete_ticker(self, db: Session, portfolio_id: str, ticker: str) -> int:
        """Delete every transaction of ticker in portfolio. Returns rows deleted."""
        ticker = _normalize_ticker(ticker)
        result = db.execute(
            delete(Transaction).where(
                Transaction.portfolio_id == portfolio_id,
                Transaction.ticker == ticker,
            )
        )
        db.commit()
        logger.info(f"Deleted {result.rowcount} {ticker} transactions from portfolio {portfolio_id}")
        return result.rowcount

    def set_asset_classes(self, db: Session, portfolio_id: str, asset_classes: Sequence[str]) -> list[str]:
        """Replace the portfolio's asset class labels (order kept, duplicates dropped)."""
        portfolio = self._ensure_portfolio(db, portfolio_id)
        portfolio.asset_classes = list(dict.fromkeys(label.strip() for label in asset_classes if label.strip()))
        db.commit()
        return list(portfolio.asset_classes)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _ensure_portfolio(self, db: Session, portfolio_id: str) -> Portfolio:
        portfolio = db.get(Portfolio, portfolio_id)
        if portfolio is None:
            portfolio = Portfolio(id=portfolio_id, name=DEFAULT_PORTFOLIO_NAME, asset_classes=[])
            db.add(portfolio)
            db.flush()
            logger.info(f"Created portfolio {portfolio_id}")
        return portfolio

    def _build(self, db: Session, portfolio_id: str, data: NewTransaction) -> Transaction:
        if data.quantity <= 0:
            raise ValidationError("Quantity must be positive", field="quantity")

        ticker = _normalize_ticker(data.ticker)
        return Transaction(
            portfolio_id=portfolio_id,
            ticker=ticker,
            transaction_type=data.transaction_type,
            quantity=data.quantity,
            date=data.date or self._default_date(db, ticker),
            asset_class=data.asset_class,
        )

    def _default_date(self, db: Session, ticker: str) -> date:
        earliest = db.scalar(select(func.min(AssetPrice.date)).where(AssetPrice.ticker == ticker))
        return earliest or self._clock.today()

    @staticmethod
    def _get_or_raise(db: Session, transaction_id: int) -> Transaction:
        transaction = db.get(Transaction, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(transaction_id)
        return transaction


def _normalize_ticker(ticker: str) -> str:
    ticker = ticker.strip().upper()
    if not ticker:
        raise ValidationError("Ticker cannot be empty", field="ticker")
    return ticker
