# holdings_tracker/schemas/validators.py
"""
Reusable validation functions for Pydantic schemas and query parameters.

This module provides:
- Ticker validation and normalization
- Comma-separated ticker list parsing
- Currency code validation
- Portfolio id validation

These validators ensure consistent input handling across all schemas.
"""

import re

from holdings_tracker.services.constants import MAX_TICKERS_PER_REQUEST

# =============================================================================
# CONSTANTS
# =============================================================================

# Ticker: 1-20 chars. Yahoo symbols may carry an exchange suffix (VOD.L),
# a share class (BRK-B) or an index caret (^GSPC)
TICKER_PATTERN = re.compile(r'^[\^]?[A-Z0-9][A-Z0-9.\-=]{0,19}$')
TICKER_MAX_LENGTH = 20

# Currency: ISO 4217 format (3 uppercase letters)
CURRENCY_PATTERN = re.compile(r'^[A-Z]{3}$')

# Portfolio ids are chosen by the client
PORTFOLIO_ID_PATTERN = re.compile(r'^[A-Za-z0-9_\-]{1,64}$')


# =============================================================================
# TICKER VALIDATION
# =============================================================================

def validate_ticker(value: str) -> str:
    """
    Validate and normalize a ticker symbol.

    Valid formats:
    - Standard tickers: AAPL, NVDA, MSFT
    - With exchange suffix: VOD.L, SAP.DE
    - Share classes: BRK-B
    - Indices with caret: ^GSPC

    Raises:
        ValueError: If ticker format is invalid
    """
    if not value:
        raise ValueError("Ticker cannot be empty")

    normalized = value.strip().upper()

    if len(normalized) > TICKER_MAX_LENGTH:
        raise ValueError(f"Ticker cannot exceed {TICKER_MAX_LENGTH} characters")

    if not TICKER_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid ticker format: '{normalized}'. "
            "Ticker must be alphanumeric, may include '.', '-' or start with '^'"
        )

    return normalized


def parse_ticker_list(value: str) -> list[str]:
    """
    Parse "AAPL, vod.l,AAPL" into ["AAPL", "VOD.L"].

    Order is kept and duplicates dropped.

    Raises:
        ValueError: If the list is empty, too long, or has an invalid ticker
    """
    tickers = [validate_ticker(part) for part in value.split(",") if part.strip()]
    if not tickers:
        raise ValueError("At least one ticker is required")

    tickers = list(dict.fromkeys(tickers))
    if len(tickers) > MAX_TICKERS_PER_REQUEST:
        raise ValueError(f"At most {MAX_TICKERS_PER_REQUEST} tickers per request")
    return tickers


# =============================================================================
# CURRENCY VALIDATION
# =============================================================================

def validate_currency(value: str) -> str:
    """
    Validate and normalize a currency code ("eur" -> "EUR").

    Raises:
        ValueError: If currency format is invalid
    """
    if not value:
        raise ValueError("Currency cannot be empty")

    normalized = value.strip().upper()

    if not CURRENCY_PATTERN.match(normalized):
        raise ValueError(
            f"Invalid currency format: '{normalized}'. "
            "Currency must be a 3-letter ISO code (e.g., USD, EUR)"
        )

    return normalized


def validate_currency_query(value: str | None) -> str | None:
    """Same as validate_currency, passing None through (use the default)."""
    if value is None:
        return None
    return validate_currency(value)


# =============================================================================
# PORTFOLIO VALIDATION
# =============================================================================

def validate_portfolio_id(value: str) -> str:
    if not PORTFOLIO_ID_PATTERN.match(value):
        raise ValueError(
            "Portfolio id must be 1-64 characters of letters, digits, '_' or '-'"
        )
    return value
