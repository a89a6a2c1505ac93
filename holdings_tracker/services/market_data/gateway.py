# holdings_tracker/services/market_data/gateway.py
"""
Market Data Gateway: the single outbound channel to the provider.

Every provider call made by the process is submitted to one bounded worker
pool (default: one worker), so however many tickers a valuation fans out
over, the provider sees at most `concurrency` requests in flight. Callers
block on their own future only; a failure or timeout is delivered to that
caller and nobody else.

Timeouts:
    The `timeout` clock starts when a worker picks the call up, not when it
    is queued, so callers waiting their turn behind a single worker do not
    time out. A caller whose running call exceeds `timeout` gets a
    ProviderUnavailableError; the running call cannot be interrupted and its
    result is discarded. The provider client enforces its own HTTP timeout,
    so the worker is always released.
"""

import logging
import threading
from collections.abc import Callable
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from datetime import date
from typing import Any, TypeVar

from holdings_tracker.services.exceptions import ProviderUnavailableError
from holdings_tracker.services.market_data.base import DailyBars, MarketDataProvider, QuoteMeta
from holdings_tracker.utils.context import submit_with_context
from holdings_tracker.utils.date_utils import Clock, SystemClock

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class GatewayStats:
    """Counters since the gateway was created."""

    submitted: int
    succeeded: int
    failed: int
    timed_out: int
    concurrency: int


class MarketDataGateway:
    """
    Serializing wrapper around a MarketDataProvider.

    Attributes:
        provider: The wrapped provider
        concurrency: Maximum provider calls in flight (pool size)
        timeout: Seconds a started call may run before its caller gives up,
            None to wait forever
    """

    QUEUE_POLL_SECONDS = 0.1

    def __init__(
            self,
            provider: MarketDataProvider,
            concurrency: int = 1,
            timeout: float | None = 30.0,
            clock: Clock | None = None,
    ) -> None:
        if concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")

        self.provider = provider
        self.concurrency = concurrency
        self.timeout = timeout
        self._clock = clock or SystemClock()
        self._executor = ThreadPoolExecutor(
            max_workers=concurrency,
            thread_name_prefix="market-data",
        )
        self._lock = threading.Lock()
        self._submitted = 0
        self._succeeded = 0
        self._failed = 0
        self._timed_out = 0

        logger.info(
            f"MarketDataGateway initialized (provider={provider.name}, "
            f"concurrency={concurrency}, timeout={timeout})"
        )

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def fetch_daily_bars(self, symbol: str, from_date: date) -> DailyBars:
        """
        Fetch daily bars for symbol from from_date through today.

        Raises:
            MarketDataError subclasses from the provider, or
            ProviderUnavailableError if the wait times out
        """
        end_date = self._clock.today()
        return self._dispatch(
            f"daily_bars({symbol}, {from_date})",
            self.provider.get_daily_bars,
            symbol,
            from_date,
            end_date,
        )

    def fetch_quote_meta(self, symbol: str) -> QuoteMeta:
        """Fetch the symbol's current quote metadata (native currency)."""
        return self._dispatch(
            f"quote_meta({symbol})",
            self.provider.get_quote_meta,
            symbol,
        )

    @property
    def stats(self) -> GatewayStats:
        with self._lock:
            return GatewayStats(
                submitted=self._submitted,
                succeeded=self._succeeded,
                failed=self._failed,
                timed_out=self._timed_out,
                concurrency=self.concurrency,
            )

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting calls; optionally wait for queued calls to finish."""
        self._executor.shutdown(wait=wait)

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _dispatch(self, label: str, func: Callable[..., T], *args: Any) -> T:
        with self._lock:
            self._submitted += 1

        started = threading.Event()

        def run(*call_args: Any) -> T:
            started.set()
            return func(*call_args)

        future = submit_with_context(self._executor, run, *args)

        # Queue time is unbounded; only the running call is timed
        while not started.wait(self.QUEUE_POLL_SECONDS):
            if future.done():
                break

        try:
            result = future.result(timeout=self.timeout)
        except FutureTimeoutError:
            with self._lock:
                self._timed_out += 1
            logger.warning(f"Gateway call {label} timed out after {self.timeout}s")
            raise ProviderUnavailableError(
                provider=self.provider.name,
                reason=f"timed out after {self.timeout}s waiting for {label}",
            )
        except Exception:
            with self._lock:
                self._failed += 1
            raise

        with self._lock:
            self._succeeded += 1
        return result
