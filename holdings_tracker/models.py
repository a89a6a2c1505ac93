# holdings_tracker/models.py
import enum
from datetime import date, datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Date, DateTime, ForeignKey, Enum, Numeric, UniqueConstraint, JSON, BigInteger, Index
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


class TransactionType(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class Portfolio(Base):
    """
    A named ledger of transactions.

    Portfolio ids are chosen by the client, so the primary key is a
    string. Portfolios are created
    implicitly the first time a transaction is recorded against an id.
    """
    __tablename__ = "portfolios"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String, default="My Portfolio")
    # Labels offered to the user when tagging transactions (e.g. "Stocks", "Bonds")
    asset_classes: Mapped[list[str]] = mapped_column(JSON, default=list)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    transactions: Mapped[list["Transaction"]] = relationship(
        back_populates="portfolio",
        cascade="all, delete-orphan",
    )


class Transaction(Base):
    __tablename__ = "transactions"
    __table_args__ = (
        # "All transactions of portfolio X in date order" is the valuation query
        Index('ix_transaction_portfolio_date', 'portfolio_id', 'date'),
        Index('ix_transaction_portfolio_ticker', 'portfolio_id', 'ticker'),
    )

    id: Mapped[int] = mapped_column(primary_key=True, index=True)
    portfolio_id: Mapped[str] = mapped_column(ForeignKey("portfolios.id"), index=True)
    ticker: Mapped[str] = mapped_column(String(20), index=True)
    transaction_type: Mapped[TransactionType] = mapped_column(Enum(TransactionType))
    # Numeric(18, 8) supports fractional units (crypto, fund shares)
    quantity: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    date: Mapped[date] = mapped_column(Date, index=True)
    asset_class: Mapped[str | None] = mapped_column(String(50), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)

    portfolio: Mapped["Portfolio"] = relationship(back_populates="transactions")


class AssetPrice(Base):
    """
    Daily price bar cache (OHLCV format).

    One row per (ticker, date). Rows are written only by the price cache and
    are never overwritten: re-inserting an existing date is a no-op. The
    only mutation is backfilling `currency` on rows stored before the
    native currency was known.
    """
    __tablename__ = "asset_prices"
    __table_args__ = (
        UniqueConstraint('ticker', 'date', name='uq_asset_price_ticker_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    ticker: Mapped[str] = mapped_column(String(20), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)

    open_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    high_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    low_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    close_price: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    adjusted_close: Mapped[Decimal] = mapped_column(Numeric(18, 8))
    volume: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Native quote currency as reported by the provider (e.g. "USD", "GBp")
    currency: Mapped[str | None] = mapped_column(String(8), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        index=True,
    )


class ExchangeRate(Base):
    """
    Daily exchange rate cache.

    `pair` is the provider symbol, e.g. "USDEUR=X".
    Convention: rate represents "1 USD = rate EUR" for pair "USDEUR=X".
    """
    __tablename__ = "exchange_rates"
    __table_args__ = (
        UniqueConstraint('pair', 'date', name='uq_exchange_rate_pair_date'),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    pair: Mapped[str] = mapped_column(String(20), index=True)
    date: Mapped[date] = mapped_column(Date, index=True)
    rate: Mapped[Decimal] = mapped_column(Numeric(18, 8))

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=_utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utcnow,
        onupdate=_utcnow,
        index=True,
    )


class SyncEntry(Base):
    """
    Last time the provider was successfully queried for a cache key.

    Keys: "asset_<TICKER>" for price series, "rate_<PAIR>" for FX series.
    """
    __tablename__ = "sync_registry"

    key: Mapped[str] = mapped_column(String(64), primary_key=True)
    last_checked_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
