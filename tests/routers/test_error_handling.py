# tests/routers/test_error_handling.py
"""
Integration tests for error handling and health endpoints.

These tests verify:
- Consistent error response format (ErrorDetail schema)
- Correct HTTP status codes for each service exception
- Validation error details
- Health, liveness and readiness probes
"""

import pytest

from holdings_tracker.dependencies import get_price_series_service
from holdings_tracker.main import app
from holdings_tracker.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    StorageError,
    TickerNotFoundError,
    ValidationError,
)


class RaisingPriceSeries:
    """Stands in for PriceSeriesService and raises the configured error."""

    def __init__(self, error: Exception):
        self.error = error

    def get_normalized_prices(self, tickers, currency):
        raise self.error


def _raise_from_prices(client, error: Exception):
    app.dependency_overrides[get_price_series_service] = lambda: RaisingPriceSeries(error)
    return client.get("/prices", params={"tickers": "AAPL"})


# =============================================================================
# ERROR ENVELOPE
# =============================================================================

class TestServiceExceptionMapping:
    @pytest.mark.parametrize("error,status,error_type", [
        (ValidationError("Quantity must be positive", field="quantity"), 400, "ValidationError"),
        (TickerNotFoundError(ticker="AAPL", provider="yahoo"), 404, "TickerNotFoundError"),
        (RateLimitError(provider="yahoo"), 429, "RateLimitError"),
        (ProviderUnavailableError(provider="yahoo", reason="timed out"), 503, "ProviderUnavailableError"),
        (MarketDataError("bad payload", provider="yahoo"), 502, "MarketDataError"),
        (StorageError("insert_bars", "disk full"), 500, "StorageError"),
        (ServiceError("unexpected"), 500, "ServiceError"),
    ])
    def test_status_and_envelope(self, client, error, status, error_type):
        response = _raise_from_prices(client, error)

        assert response.status_code == status
        body = response.json()
        assert set(body) == {"error", "message", "details"}
        assert body["error"] == error_type

    def test_validation_error_details(self, client):
        body = _raise_from_prices(client, ValidationError("bad", field="ticker")).json()
        assert body["details"] == {"field": "ticker"}

    def test_rate_limit_retry_after_header(self, client):
        response = _raise_from_prices(client, RateLimitError(provider="yahoo", retry_after=30))

        assert response.headers["Retry-After"] == "30"
        assert response.json()["details"] == {"retry_after": 30}

    def test_storage_error_hides_reason(self, client):
        body = _raise_from_prices(client, StorageError("insert_bars", "disk full")).json()

        assert body["message"] == "Storage failure during insert_bars"
        assert body["details"] == {"operation": "insert_bars"}


class TestHttpErrors:
    def test_unknown_route_uses_envelope(self, client):
        response = client.get("/does-not-exist")

        assert response.status_code == 404
        assert response.json()["error"] == "NotFoundError"

    def test_method_not_allowed(self, client):
        response = client.put("/prices")

        assert response.status_code == 405
        assert response.json()["error"] == "MethodNotAllowedError"

    def test_request_validation_format(self, client):
        response = client.patch("/transactions/not-a-number", json={})

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "ValidationError"
        assert body["message"] == "Request validation failed"
        detail = body["details"][0]
        assert set(detail) == {"field", "message", "type"}
        assert detail["field"] == "path.transaction_id"


# =============================================================================
# HEALTH
# =============================================================================

class TestHealth:
    def test_root(self, client):
        body = client.get("/").json()
        assert body["docs"] == "/docs"

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] in ("healthy", "degraded")
        assert body["checks"]["database"] == {"status": "healthy", "critical": True}
        assert body["checks"]["market_data_gateway"]["critical"] is False

    def test_liveness(self, client):
        assert client.get("/health/live").json() == {"status": "alive"}

    def test_readiness(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}
