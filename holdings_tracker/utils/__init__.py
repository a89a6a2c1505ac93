# holdings_tracker/utils/__init__.py
"""
Cross-cutting utilities:
- logging: Logging setup with correlation ID support
- context: Correlation ID storage and context-propagating executor submit
- date_utils: Calendar-day helpers and the shared forward-fill lookup
"""

from holdings_tracker.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
    submit_with_context,
)
from holdings_tracker.utils.date_utils import (
    Clock,
    SystemClock,
    iter_days,
    nearest_prior_value,
)
from holdings_tracker.utils.logging import setup_logging

__all__ = [
    "setup_logging",
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
    "submit_with_context",
    "Clock",
    "SystemClock",
    "iter_days",
    "nearest_prior_value",
]
