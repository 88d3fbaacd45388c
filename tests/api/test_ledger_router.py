"""Ledger entry, seed and reset endpoint tests, plus the health check."""

from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from httpx import AsyncClient
from sqlalchemy.exc import OperationalError

from settlement_recon.database import get_db
from settlement_recon.main import app
from settlement_recon.services import ledger as ledger_module


async def test_create_entry(client: AsyncClient) -> None:
    response = await client.post(
        "/ledger/entries",
        json={
            "amount": "250.00",
            "entry_date": "2023-11-01",
            "description": "Order #77 (Net-15)",
            "reference": "ORD-77",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert Decimal(data["amount"]) == Decimal("250.00")
    assert data["reference"] == "ORD-77"
    assert data["entry_type"] == "credit"
    assert data["reconciled"] is False
    assert data["entry_date"].startswith("2023-11-01T00:00:00")


async def test_create_entry_with_explicit_terms(client: AsyncClient) -> None:
    response = await client.post(
        "/ledger/entries",
        json={"amount": "10.00", "entry_date": "2023-11-01", "description": "x", "payment_terms_days": 45},
    )

    assert response.status_code == 201
    assert response.json()["payment_terms_days"] == 45


async def test_create_entry_rejects_non_positive_amount(client: AsyncClient) -> None:
    response = await client.post(
        "/ledger/entries",
        json={"amount": "0", "entry_date": "2023-11-01", "description": "x"},
    )

    assert response.status_code == 422


async def test_create_entry_rejects_fractional_cents(client: AsyncClient) -> None:
    response = await client.post(
        "/ledger/entries",
        json={"amount": "1.005", "entry_date": "2023-11-01", "description": "x"},
    )

    assert response.status_code == 422


async def test_seed_then_list_open_entries(client: AsyncClient) -> None:
    seeded = await client.post("/ledger/seed")
    assert seeded.status_code == 201
    assert seeded.json()["total"] == 6

    response = await client.get("/ledger/entries")

    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 6
    # Newest obligation first
    assert data["items"][0]["reference"] == "NV-1005"
    assert data["items"][-1]["reference"] == "NV-1006"


async def test_list_reconciled_entries_after_run(client: AsyncClient) -> None:
    await client.post("/ledger/seed")
    await client.post(
        "/statements/ingest",
        json={"content": "Date,Amount,Description,Reference\n2023-11-01,12500.00,Wire,NV-1001\n"},
    )
    await client.post("/reconciliation/run")

    reconciled = await client.get("/ledger/entries", params={"reconciled": True})
    open_entries = await client.get("/ledger/entries")

    assert [item["reference"] for item in reconciled.json()["items"]] == ["NV-1001"]
    assert open_entries.json()["total"] == 5


async def test_reset_deletes_everything(client: AsyncClient) -> None:
    await client.post("/ledger/seed")

    response = await client.post("/ledger/reset")

    assert response.status_code == 200
    assert response.json() == {"reconciliation_records": 0, "bank_transactions": 0, "ledger_entries": 6}
    assert (await client.get("/ledger/entries")).json()["total"] == 0


async def test_reset_forbidden_when_disabled(client: AsyncClient, monkeypatch) -> None:
    monkeypatch.setattr(ledger_module.settings, "allow_reset", False)
    await client.post("/ledger/seed")

    response = await client.post("/ledger/reset")

    assert response.status_code == 403
    assert (await client.get("/ledger/entries")).json()["total"] == 6


async def test_health_ok(client: AsyncClient) -> None:
    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"
    assert data["checks"] == {"database": True}


async def test_health_returns_503_when_database_fails(client: AsyncClient) -> None:
    async def failing_db():
        session = MagicMock()
        session.execute = AsyncMock(side_effect=OperationalError("SELECT 1", {}, Exception("DB down")))
        yield session

    app.dependency_overrides[get_db] = failing_db
    try:
        response = await client.get("/health")
    finally:
        app.dependency_overrides.pop(get_db, None)

    assert response.status_code == 503
    assert response.json()["checks"] == {"database": False}


async def test_request_id_is_echoed(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-ID": "req-123"})

    assert response.headers["X-Request-ID"] == "req-123"
