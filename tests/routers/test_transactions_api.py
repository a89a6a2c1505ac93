# tests/routers/test_transactions_api.py
"""
API layer tests for transaction and portfolio metadata endpoints.

These tests verify the HTTP layer using FastAPI's TestClient:
- Correct status codes (200, 201, 400, 404, 422)
- Response JSON structure matches Pydantic schemas
- Query parameter handling
"""

from decimal import Decimal

from tests.conftest import TODAY


def _payload(**overrides) -> dict:
    data = {
        "portfolio_id": "default",
        "ticker": "AAPL",
        "transaction_type": "BUY",
        "quantity": "10",
        "date": "2024-01-02",
    }
    data.update(overrides)
    return data


def _create(client, **overrides) -> dict:
    response = client.post("/transactions", json=_payload(**overrides))
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# CREATE
# =============================================================================

class TestCreateTransaction:
    def test_create(self, client):
        body = _create(client, ticker="vod.l", asset_class="Stocks")

        assert body["id"] > 0
        assert body["portfolio_id"] == "default"
        assert body["ticker"] == "VOD.L"
        assert body["transaction_type"] == "BUY"
        assert Decimal(body["quantity"]) == Decimal("10")
        assert body["date"] == "2024-01-02"
        assert body["asset_class"] == "Stocks"
        assert "created_at" in body

    def test_missing_date_defaults_to_today(self, client):
        body = _create(client, date=None)
        assert body["date"] == TODAY.isoformat()

    def test_invalid_quantity_returns_422(self, client):
        response = client.post("/transactions", json=_payload(quantity="-1"))

        assert response.status_code == 422
        body = response.json()
        assert body["error"] == "ValidationError"
        assert any(d["field"].endswith("quantity") for d in body["details"])

    def test_invalid_ticker_returns_422(self, client):
        response = client.post("/transactions", json=_payload(ticker="BAD TICKER"))
        assert response.status_code == 422

    def test_invalid_portfolio_id_returns_422(self, client):
        response = client.post("/transactions", json=_payload(portfolio_id="has space"))
        assert response.status_code == 422


class TestBulkCreate:
    def test_bulk_create(self, client):
        response = client.post("/transactions/bulk", json={
            "portfolio_id": "p1",
            "transactions": [
                {"ticker": "AAPL", "transaction_type": "BUY", "quantity": "5", "date": "2024-01-02"},
                {"ticker": "AAPL", "transaction_type": "SELL", "quantity": "2", "date": "2024-02-01"},
            ],
        })

        assert response.status_code == 201
        assert response.json() == {"portfolio_id": "p1", "created": 2}
        assert len(client.get("/transactions", params={"portfolio_id": "p1"}).json()) == 2

    def test_bulk_is_all_or_nothing(self, client):
        response = client.post("/transactions/bulk", json={
            "portfolio_id": "p1",
            "transactions": [
                {"ticker": "AAPL", "transaction_type": "BUY", "quantity": "5"},
                {"ticker": "MSFT", "transaction_type": "BUY", "quantity": "0"},
            ],
        })

        assert response.status_code == 422
        assert client.get("/transactions", params={"portfolio_id": "p1"}).json() == []


# =============================================================================
# LIST
# =============================================================================

class TestListTransactions:
    def test_newest_first(self, client):
        _create(client, ticker="OLD", date="2023-05-01")
        _create(client, ticker="NEW", date="2024-02-01")

        response = client.get("/transactions", params={"portfolio_id": "default"})

        assert response.status_code == 200
        assert [t["ticker"] for t in response.json()] == ["NEW", "OLD"]

    def test_unknown_portfolio_is_empty(self, client):
        response = client.get("/transactions", params={"portfolio_id": "nobody"})

        assert response.status_code == 200
        assert response.json() == []

    def test_portfolio_id_required(self, client):
        assert client.get("/transactions").status_code == 422


# =============================================================================
# UPDATE / DELETE
# =============================================================================

class TestUpdateAndDelete:
    def test_patch_updates_sent_fields_only(self, client):
        created = _create(client)

        response = client.patch(f"/transactions/{created['id']}", json={"quantity": "4"})

        assert response.status_code == 200
        body = response.json()
        assert Decimal(body["quantity"]) == Decimal("4")
        assert body["ticker"] == "AAPL"
        assert body["date"] == "2024-01-02"

    def test_patch_unknown_returns_404(self, client):
        response = client.patch("/transactions/999", json={"quantity": "4"})

        assert response.status_code == 404
        body = response.json()
        assert body["error"] == "TransactionNotFoundError"
        assert body["details"] == {"transaction_id": 999}

    def test_delete(self, client):
        created = _create(client)

        response = client.delete(f"/transactions/{created['id']}")

        assert response.status_code == 200
        assert response.json() == {"deleted": 1}
        assert client.get("/transactions", params={"portfolio_id": "default"}).json() == []

    def test_delete_unknown_returns_404(self, client):
        assert client.delete("/transactions/12345").status_code == 404

    def test_delete_ticker(self, client):
        _create(client)
        _create(client, transaction_type="SELL", quantity="3")
        _create(client, ticker="MSFT")

        response = client.delete("/transactions", params={"portfolio_id": "default", "ticker": "aapl"})

        assert response.status_code == 200
        assert response.json() == {"deleted": 2}
        remaining = client.get("/transactions", params={"portfolio_id": "default"}).json()
        assert [t["ticker"] for t in remaining] == ["MSFT"]

    def test_delete_ticker_validates_query(self, client):
        response = client.delete("/transactions", params={"portfolio_id": "default", "ticker": "no spaces"})

        assert response.status_code == 422
        assert response.json()["details"][0]["field"] == "query.ticker"


# =============================================================================
# ASSET CLASSES
# =============================================================================

class TestAssetClasses:
    def test_put_asset_classes(self, client):
        response = client.put("/portfolios/p9/asset-classes", json={"asset_classes": ["Stocks", "ETF", "Stocks"]})

        assert response.status_code == 200
        assert response.json() == {"portfolio_id": "p9", "asset_classes": ["Stocks", "ETF"]}

    def test_labels_show_up_in_valuation(self, client):
        client.put("/portfolios/p9/asset-classes", json={"asset_classes": ["Bonds"]})

        response = client.get("/portfolios/p9/valuation")

        assert response.status_code == 200
        assert response.json()["asset_classes"] == ["Bonds"]
