from fastapi.testclient import TestClient

from tracker.core.config import Settings
from main import app as served_app


def test_healthz(client):
    res = client.get("/healthz")
    assert res.status_code == 200
    assert res.json()["status"] == "ok"


def test_openapi_contains_routes():
    client = TestClient(served_app)
    res = client.get("/openapi.json")
    assert res.status_code == 200
    paths = res.json().get("paths", {})
    assert "/api/v1/invoices/" in paths
    assert "/webhooks/stripe" in paths
    assert "/api/v1/promo/operandi-challenge" in paths
    assert "/auth/login" in paths


def test_invoice_schema_exposes_payment_fields(client):
    schema = client.get("/openapi.json").json()["components"]["schemas"]["InvoiceRead"]
    props = schema.get("properties", {})
    for name in ("hosted_invoice_url", "paid_at", "amount_paid", "last_payment_error"):
        assert name in props


def test_validation_errors_carry_field_map(client, headers):
    res = client.post("/api/v1/invoices/", json={"customer": {"email": "x"}}, headers=headers)
    assert res.status_code == 422
    body = res.json()
    assert body["detail"]["message"] == "Validation failed"
    assert "items" in body["detail"]["field_errors"]
    assert any(err["loc"][-1] == "items" for err in body["errors"])


def test_settings_read_origins_and_currency(monkeypatch):
    monkeypatch.setenv("CORS_ORIGINS", '["https://a.example", "https://b.example"]')
    monkeypatch.setenv("DEFAULT_CURRENCY", "EUR")
    settings = Settings(_env_file=None)
    assert settings.CORS_ORIGINS == ["https://a.example", "https://b.example"]
    assert settings.DEFAULT_CURRENCY == "eur"
