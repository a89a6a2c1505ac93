# holdings_tracker/middleware/correlation.py
"""
Correlation ID middleware for request tracing.

Every request gets an ID that is stored in a context variable, attached to
each log record by CorrelationIdFilter, and echoed in the response. The
valuation fan-out copies the context into its worker threads, so provider
calls made on behalf of a request log with that request's ID.

Correlation ID Sources (in order of precedence):
1. X-Correlation-ID header (from client or upstream service)
2. X-Request-ID header (alternative header name)
3. Generated UUID if neither header is present or the value is unusable

Usage:
    app.add_middleware(CorrelationIdMiddleware)

    curl -H "X-Correlation-ID: my-trace-123" http://localhost:8000/health
    # Response includes: X-Correlation-ID: my-trace-123
"""

import logging
import re
import time
import uuid
from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from holdings_tracker.utils.context import set_correlation_id, clear_correlation_id

logger = logging.getLogger(__name__)

CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Header values end up in log lines: keep them short and printable
MAX_CORRELATION_ID_LENGTH = 128
_VALID_CORRELATION_ID = re.compile(r"^[A-Za-z0-9._:\-]+$")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """
    Sets the request's correlation ID and logs one line per request.

    The access line is written at INFO with method, path, status and
    duration; /health probes are logged at DEBUG to keep logs quiet.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = self._get_correlation_id(request)
        set_correlation_id(correlation_id)
        started = time.perf_counter()

        try:
            response = await call_next(request)
            response.headers[CORRELATION_ID_HEADER] = correlation_id

            elapsed_ms = (time.perf_counter() - started) * 1000
            level = logging.DEBUG if request.url.path.startswith("/health") else logging.INFO
            logger.log(
                level,
                f"{request.method} {request.url.path} -> {response.status_code} "
                f"({elapsed_ms:.1f} ms)",
            )
            return response

        finally:
            clear_correlation_id()

    def _get_correlation_id(self, request: Request) -> str:
        for header in (CORRELATION_ID_HEADER, REQUEST_ID_HEADER):
            value = request.headers.get(header)
            if value and self._is_valid(value):
                return value

        return str(uuid.uuid4())

    @staticmethod
    def _is_valid(value: str) -> bool:
        return len(value) <= MAX_CORRELATION_ID_LENGTH and bool(_VALID_CORRELATION_ID.match(value))
