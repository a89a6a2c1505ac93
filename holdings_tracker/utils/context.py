# holdings_tracker/utils/context.py
"""
Request context management for the Holdings Tracker.

Stores the correlation ID of the current request in a ContextVar so every
log line of a request can be traced. Context variables do not flow into
thread pool workers on their own, so work handed to an executor goes
through `submit_with_context`, which runs it inside a copy of the caller's
context.

Usage:
    from holdings_tracker.utils.context import get_correlation_id, set_correlation_id

    set_correlation_id("abc-123")          # middleware
    correlation_id = get_correlation_id()  # anywhere, including pool workers
"""

import contextvars
from collections.abc import Callable
from concurrent.futures import Executor, Future
from typing import Any, TypeVar

T = TypeVar("T")

_correlation_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id", default=None
)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None if not set."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current request."""
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID at the end of a request."""
    _correlation_id_var.set(None)


def submit_with_context(
        executor: Executor,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
) -> Future[T]:
    """
    Submit func to executor so it runs with the caller's context variables.

    Args:
        executor: Thread pool to run on
        func: Callable to execute
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        The Future returned by executor.submit
    """
    ctx = contextvars.copy_context()
    return executor.submit(ctx.run, func, *args, **kwargs)
