"""Tests for application wiring: health endpoint and problem responses."""
import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_unknown_route_is_problem_json(client: AsyncClient):
    response = await client.get("/api/v1/nowhere")
    assert response.status_code == 404
    assert response.headers["content-type"].startswith("application/problem+json")
    body = response.json()
    assert body["code"] == "NOT_FOUND"
    assert body["instance"] == "/api/v1/nowhere"
    assert body["trace_id"]


@pytest.mark.asyncio
async def test_lock_timeout_maps_to_503(admin_client: AsyncClient, monkeypatch):
    from stockroom.services.errors import LockTimeoutError
    from stockroom.services.stock_ledger import StockLedgerService

    async def busy(*args, **kwargs):
        raise LockTimeoutError("The record is busy, please retry")

    monkeypatch.setattr(StockLedgerService, "apply_stock_movement", busy)

    response = await admin_client.post(
        "/api/v1/transactions", json={"material_id": "any", "quantity": 1, "type": "IN"}
    )
    assert response.status_code == 503
    assert response.headers["retry-after"] == "1"
    assert response.json()["retryable"] is True
    assert response.json()["code"] == "LOCK_TIMEOUT"
