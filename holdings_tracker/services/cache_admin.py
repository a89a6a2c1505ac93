# holdings_tracker/services/cache_admin.py
"""
Administrative cache reset.

Purges price bars, exchange rates and sync ledger entries written or
checked since an instant, so the next request for the affected symbols is
treated as stale and re-synced. Everything is deleted in one transaction.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from holdings_tracker.models import AssetPrice, ExchangeRate, SyncEntry
from holdings_tracker.services.constants import CACHE_RESET_DEFAULT_HOURS
from holdings_tracker.services.exceptions import StorageError
from holdings_tracker.utils.date_utils import Clock, SystemClock, as_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResetResult:
    since: datetime
    deleted_prices: int
    deleted_rates: int
    deleted_sync_entries: int


class CacheAdminService:
    """Deletes recently written cache rows to force a re-sync."""

    def __init__(self, session_factory: sessionmaker, clock: Clock | None = None) -> None:
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    def reset(self, since: datetime | None = None) -> ResetResult:
        """
        Delete cache rows updated at or after `since`.

        Args:
            since: Cut-off instant; defaults to 24 hours ago

        Returns:
            ResetResult with the number of rows deleted per table

        Raises:
            StorageError: If the deletes fail (nothing is deleted then)
        """
        if since is None:
            since = self._clock.now() - timedelta(hours=CACHE_RESET_DEFAULT_HOURS)
        cutoff = as_utc(since)

        try:
            with self._session_factory() as session, session.begin():
                prices = session.execute(
                    delete(AssetPrice).where(AssetPrice.updated_at >= cutoff)
                ).rowcount
                rates = session.execute(
                    delete(ExchangeRate).where(ExchangeRate.updated_at >= cutoff)
                ).rowcount
                entries = session.execute(
                    delete(SyncEntry).where(SyncEntry.last_checked_at >= cutoff)
                ).rowcount
        except SQLAlchemyError as e:
            logger.error(f"Cache reset since {cutoff.isoformat()} failed, rolled back: {e}")
            raise StorageError("cache_reset", str(e)) from e

        logger.warning(
            f"Cache reset since {cutoff.isoformat()}: deleted {prices} prices, "
            f"{rates} rates, {entries} sync entries"
        )
        return ResetResult(
            since=cutoff,
            deleted_prices=prices,
            deleted_rates=rates,
            deleted_sync_entries=entries,
        )
