from __future__ import annotations

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from outboard_quote.web import app as web_app


def _dec(value) -> Decimal:
    return Decimal(str(value))


@pytest.fixture
def client(monkeypatch, configs_dir):
    monkeypatch.setattr(web_app, "CONFIGS_DIR", configs_dir)
    return TestClient(web_app.app)


def test_payment(client):
    r = client.post("/api/payment", json={"finance_amount": "12000", "promo_rate": "0", "term_months": 60})
    assert r.status_code == 200
    assert _dec(r.json()["payment"]) == 200


def test_payment_rejects_bad_amount(client):
    r = client.post("/api/payment", json={"finance_amount": "lots"})
    assert r.status_code == 422


def test_warranty(client):
    r = client.get("/api/warranty", params={"horsepower": 115, "current_years": 3, "target_years": 7})
    assert r.status_code == 200
    data = r.json()
    assert _dec(data["cost"]) == 1306
    assert data["warning"] is None


def test_warranty_missing_bracket(client):
    r = client.get("/api/warranty", params={"horsepower": 1000, "current_years": 3, "target_years": 7})
    data = r.json()
    assert _dec(data["cost"]) == 0
    assert data["warning"]["code"] == "warranty_bracket_missing"


def test_recommendation(client):
    r = client.get("/api/recommendation", params={"boat_type": "pontoon", "horsepower": 115})
    assert r.json()["package_id"] == "better"
    r = client.get("/api/recommendation")
    assert r.json()["reason"] == "insufficient information"


def test_promotions_match(client):
    params = {"model": "9.9 MH FourStroke", "horsepower": "9.9", "msrp": 3725, "as_of": "2026-04-01"}
    data = client.get("/api/promotions/match", params=params).json()
    assert data["winning_rule"]["id"] == "get-7-2026"
    assert [r["id"] for r in data["applied_rules"]] == ["get-7-2026", "boat-show-portables"]
    assert _dec(data["total_discount"]) == 150
    assert data["total_warranty_bonus_years"] == 4


def test_quote_by_motor_id(client):
    body = {"motor_id": "1115F132D", "selections": {"boat_type": "pontoon"}, "as_of": "2026-05-01"}
    r = client.post("/api/quote", json=body)
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["selected_package_id"] == "better"
    # 16495 sale price + 450 labour + 179.99 battery
    assert _dec(data["totals"]["subtotal"]) == Decimal("17124.99")


def test_quote_inline_motor(client):
    body = {
        "motor": {"model": "60 ELPT FourStroke", "horsepower": 60, "msrp": 12635},
        "selections": {"purchase_path": "loose"},
        "as_of": "2027-03-01",
    }
    data = client.post("/api/quote", json=body).json()
    assert data["promotion"]["applied_rules"] == []
    assert data["recommendation"]["reason"] == "insufficient information"
    assert data["selected_package_id"] == "good"


def test_quote_unknown_motor(client):
    r = client.post("/api/quote", json={"motor_id": "missing"})
    assert r.status_code == 404


def test_quote_requires_motor(client):
    assert client.post("/api/quote", json={}).status_code == 422


def test_quote_rejects_invalid_selection(client):
    body = {"motor_id": "1115F132D", "selections": {"package_id": "platinum"}}
    assert client.post("/api/quote", json=body).status_code == 422


def test_payment_schedule_weekly(client):
    body = {"finance_amount": "12000", "rate": "0", "term_months": 60, "frequency": "weekly"}
    data = client.post("/api/payment/schedule", json=body).json()
    assert data["periods"] == 260
    assert _dec(data["payment"]) == 46


def test_payment_schedule_rejects_unknown_frequency(client):
    body = {"finance_amount": "12000", "rate": "0", "frequency": "daily"}
    assert client.post("/api/payment/schedule", json=body).status_code == 422


def test_trade_in_estimate(client):
    params = {"brand": "Evinrude", "year": 2015, "horsepower": 40, "condition": "good", "as_of": "2026-05-01"}
    data = client.get("/api/trade-in/estimate", params=params).json()
    assert data["source"] == "Generic estimate"
    assert _dec(data["value"]) == 250
    assert _dec(data["pre_penalty_value"]) == 475
