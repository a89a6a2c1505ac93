# holdings_tracker/utils/date_utils.py
"""
Date utility functions for the Holdings Tracker.

Calendar days are plain `datetime.date` values everywhere in the pipeline.
Instants (sync timestamps) are timezone-aware `datetime` values and are only
turned into calendar days through a `Clock`, so "today" means the same thing
in every component.

Usage:
    from holdings_tracker.utils.date_utils import nearest_prior_value, iter_days

    price = nearest_prior_value(closes_by_date, day, max_lookback_days=7)
"""

from collections.abc import Iterator, Mapping
from datetime import date, datetime, timedelta, timezone
from typing import Protocol, TypeVar

V = TypeVar("V")


class Clock(Protocol):
    """Source of the current instant and calendar day."""

    def now(self) -> datetime:
        ...

    def today(self) -> date:
        ...


class SystemClock:
    """
    Wall clock in the process's local timezone.

    `now()` is timezone-aware so it can be stored and compared safely;
    `today()` is the local calendar day.
    """

    def now(self) -> datetime:
        return datetime.now(timezone.utc).astimezone()

    def today(self) -> date:
        return self.now().date()


def as_utc(instant: datetime) -> datetime:
    """
    Normalize an instant to UTC for storage and comparison.

    SQLite drops the offset when storing, so every instant written or
    compared in the database must already be in UTC. Naive values are
    assumed to be UTC.
    """
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def iter_days(start_date: date, end_date: date) -> Iterator[date]:
    """
    Yield every calendar day from start_date to end_date, both inclusive.

    Yields nothing when start_date is after end_date.
    """
    current = start_date
    while current <= end_date:
        yield current
        current += timedelta(days=1)


def nearest_prior_value(
        values_by_date: Mapping[date, V],
        target_date: date,
        max_lookback_days: int,
) -> V | None:
    """
    Find the value for target_date, or the nearest earlier one.

    The exact date is tried first, then target_date - 1 day, - 2 days and so
    on up to max_lookback_days. Values that are None are treated as missing.
    Nothing further back than the window is ever returned.

    Args:
        values_by_date: Dict of date -> value
        target_date: Date we need a value for
        max_lookback_days: Maximum calendar days to walk back

    Returns:
        The value if found within the window, None otherwise

    Example:
        >>> nearest_prior_value({date(2024, 1, 5): 10}, date(2024, 1, 7), 7)
        10
    """
    for offset in range(max_lookback_days + 1):
        value = values_by_date.get(target_date - timedelta(days=offset))
        if value is not None:
            return value
    return None


def years_before(day: date, years: int) -> date:
    """Same calendar day `years` years earlier (Feb 29 maps to Feb 28)."""
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        return day.replace(year=day.year - years, day=28)
