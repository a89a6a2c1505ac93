# holdings_tracker/services/sync_ledger.py
"""
Sync Ledger: when was the provider last successfully asked about a key.

Keys are "asset_<TICKER>" for price series and "rate_<PAIR>" for FX series.
Instants are stored in UTC; freshness is decided by the price cache using
its clock.
"""

import logging
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from holdings_tracker.models import SyncEntry
from holdings_tracker.services.constants import ASSET_KEY_PREFIX, RATE_KEY_PREFIX
from holdings_tracker.services.exceptions import StorageError
from holdings_tracker.utils.date_utils import as_utc

logger = logging.getLogger(__name__)


def asset_key(ticker: str) -> str:
    return f"{ASSET_KEY_PREFIX}{ticker}"


def rate_key(pair: str) -> str:
    return f"{RATE_KEY_PREFIX}{pair}"


class SqlSyncLedger:
    """SQLAlchemy-backed Sync Ledger, one row per key."""

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def get_last_checked(self, key: str) -> datetime | None:
        """Last successful check for key (UTC), or None if never checked."""
        try:
            with self._session_factory() as session:
                value = session.scalar(
                    select(SyncEntry.last_checked_at).where(SyncEntry.key == key)
                )
        except SQLAlchemyError as e:
            raise StorageError("get_last_checked", str(e)) from e

        return as_utc(value) if value is not None else None

    def mark_checked(self, key: str, checked_at: datetime) -> None:
        """
        Record a successful check for key.

        Upsert: concurrent writers for the same key are fine, the last one wins.
        """
        checked_at = as_utc(checked_at)
        try:
            with self._session_factory() as session, session.begin():
                dialect = session.get_bind().dialect.name
                insert = pg_insert if dialect == "postgresql" else sqlite_insert
                stmt = insert(SyncEntry).values(key=key, last_checked_at=checked_at)
                stmt = stmt.on_conflict_do_update(
                    index_elements=["key"],
                    set_={"last_checked_at": stmt.excluded.last_checked_at},
                )
                session.execute(stmt)
        except SQLAlchemyError as e:
            logger.error(f"Failed to mark {key} as checked: {e}")
            raise StorageError("mark_checked", str(e)) from e

        logger.debug(f"Marked {key} checked at {checked_at.isoformat()}")
