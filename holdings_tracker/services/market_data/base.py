# holdings_tracker/services/market_data/base.py
"""
Abstract interface for market data providers.

The price cache never talks to a provider directly: calls go through the
MarketDataGateway, which serializes them. Providers only need to know how
to fetch one symbol's daily bars and its quote metadata, and how to retry
transient failures.

Design Principles:
- Services depend on this abstraction, not on yfinance
- Retry logic implemented once in the base class (tenacity)
- Mock implementations for testing subclass this ABC
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import TypeVar, Callable, Any

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from holdings_tracker.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar('T')


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class OHLCVData:
    """
    Single day's OHLCV (Open, High, Low, Close, Volume) bar.

    Exchange rate series use the same shape; the rate is the close.

    Attributes:
        date: Trading date (no time component)
        open: Opening price
        high: Highest price during the day
        low: Lowest price during the day
        close: Closing price (primary valuation price)
        volume: Trading volume (None for FX)
        adjusted_close: Close adjusted for splits/dividends
    """

    date: date
    open: Decimal
    high: Decimal
    low: Decimal
    close: Decimal
    volume: int | None = None
    adjusted_close: Decimal | None = None

    def __post_init__(self) -> None:
        """Validate price data."""
        if self.close <= 0:
            raise ValueError(f"close price must be positive, got {self.close}")
        if self.high < self.low:
            raise ValueError(f"high ({self.high}) cannot be less than low ({self.low})")


@dataclass
class DailyBars:
    """
    Result of fetching daily bars for one symbol.

    Attributes:
        symbol: Provider symbol requested (e.g. "AAPL", "USDEUR=X")
        bars: Bars in ascending date order (may be empty)
        currency: Native quote currency from the response metadata, if present
        from_date: Requested start date
    """

    symbol: str
    bars: list[OHLCVData] = field(default_factory=list)
    currency: str | None = None
    from_date: date | None = None

    @property
    def days_fetched(self) -> int:
        return len(self.bars)


@dataclass(frozen=True)
class QuoteMeta:
    """
    Current quote metadata for a symbol.

    Attributes:
        symbol: Provider symbol
        currency: Native quote currency, exactly as reported (e.g. "GBp")
    """

    symbol: str
    currency: str

    def __post_init__(self) -> None:
        if not self.currency:
            raise ValueError("currency is required")


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Retry Behavior:
        `_execute_with_retry` implements exponential backoff. Subclasses can
        override the retry configuration via class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError
        - RateLimitError

    Non-Retryable Exceptions:
        - TickerNotFoundError
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and error messages."""
        pass

    @abstractmethod
    def get_daily_bars(self, symbol: str, start_date: date, end_date: date) -> DailyBars:
        """
        Fetch daily bars for one symbol.

        Args:
            symbol: Provider symbol (e.g. "AAPL", "VOD.L", "USDEUR=X")
            start_date: First date (inclusive)
            end_date: Last date (inclusive)

        Returns:
            DailyBars, possibly empty

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    @abstractmethod
    def get_quote_meta(self, symbol: str) -> QuoteMeta:
        """
        Fetch current quote metadata (the native currency).

        Raises:
            TickerNotFoundError: Symbol unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """
        pass

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function with retry logic for transient failures.

        Retries ProviderUnavailableError and RateLimitError with exponential
        backoff; everything else is raised immediately. The last exception
        is re-raised once attempts are exhausted.
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
