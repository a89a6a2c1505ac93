#!/usr/bin/env python3
# init_db.py
"""
Database initialization script.

Creates every table of the Holdings Tracker (ledger, price cache, sync
ledger) on the database named by DATABASE_URL:
    DATABASE_URL=sqlite:///./holdings.db python init_db.py
"""
import logging

from holdings_tracker.config import settings
from holdings_tracker.database import engine
from holdings_tracker.models import Base
from holdings_tracker.utils.logging import setup_logging

logger = logging.getLogger(__name__)


def init_db() -> None:
    """Create all database tables defined in models (existing tables are kept)."""
    logger.info("Creating database tables...")
    Base.metadata.create_all(bind=engine)
    logger.info(f"Tables created: {', '.join(sorted(Base.metadata.tables))}")


if __name__ == "__main__":
    setup_logging(level=settings.log_level, log_format=settings.log_format)
    init_db()
