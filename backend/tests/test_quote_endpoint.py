from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from fieldquote.api.dependencies import get_resolver
from fieldquote.main import app


@pytest.fixture
def client(resolver):
    app.dependency_overrides[get_resolver] = lambda: resolver
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_services(client):
    res = client.get("/api/v1/services")
    assert res.status_code == 200
    services = {s["service_id"]: s for s in res.json()}
    assert set(services) == {"foamingDrain", "sanipod", "stripWax"}
    assert services["foamingDrain"]["volume_tier"] is True
    assert "grease_trap_install_rate" in services["foamingDrain"]["override_fields"]


def test_quote_endpoint(client):
    res = client.post(
        "/api/v1/services/foamingDrain/quote",
        json={"input": {"units": 5, "frequency": "weekly"}},
    )
    assert res.status_code == 200
    data = res.json()
    assert data["chosen_option"] == "alternate"
    assert Decimal(data["per_visit"]) == Decimal("50")
    assert data["minimum_charge_applied"] is True
    assert Decimal(data["monthly_recurring"]) == Decimal("216.50")
    assert data["frequency_class"] == "month"


def test_quote_endpoint_applies_overrides(client):
    res = client.post(
        "/api/v1/services/sanipod/quote",
        json={"input": {"units": 4}, "overrides": {"per_visit": "45", "monthly_recurring": ""}},
    )
    assert res.status_code == 200
    data = res.json()
    assert Decimal(data["per_visit"]) == Decimal("45")
    assert data["field_values"]["per_visit"]["overridden"] is True
    assert data["field_values"]["monthly_recurring"]["overridden"] is False


def test_quote_endpoint_tolerates_bad_input(client):
    res = client.post(
        "/api/v1/services/foamingDrain/quote",
        json={"input": {"units": "lots", "frequency": "", "contract_months": "abc"}},
    )
    assert res.status_code == 200
    data = res.json()
    assert Decimal(data["per_visit"]) == Decimal("0")
    assert data["contract_months"] == 12


def test_unknown_service_returns_404(client):
    res = client.post("/api/v1/services/windowWashing/quote", json={})
    assert res.status_code == 404
    assert res.json()["detail"]["message"] == "Service not found"
    assert res.json()["detail"]["field_errors"] == {"service_id": "not_found"}


def test_unknown_override_field_returns_422(client):
    res = client.post(
        "/api/v1/services/sanipod/quote",
        json={"input": {"units": 4}, "overrides": {"trip_charge": 10}},
    )
    assert res.status_code == 422
    assert res.json()["detail"]["field_errors"] == {"trip_charge": "unknown_field"}


def test_change_preview(client):
    res = client.post(
        "/api/v1/services/foamingDrain/quote/changes",
        json={"input": {"units": 3}, "overrides": {"per_visit": 80}},
    )
    assert res.status_code == 200
    records = res.json()
    assert len(records) == 1
    record = records[0]
    assert record["product_key"] == "foamingDrain_per_visit"
    assert Decimal(record["original_value"]) == Decimal("50")
    assert Decimal(record["change_amount"]) == Decimal("30")
    assert Decimal(record["change_percentage"]) == Decimal("60")
    assert record["frequency"] == "weekly"


def test_config_endpoints(client):
    res = client.get("/api/v1/services/stripWax/config")
    assert res.status_code == 200
    data = res.json()
    assert data["service_id"] == "stripWax"
    assert data["default_variant"] == "standardFull"

    res = client.post("/api/v1/services/stripWax/config/refresh")
    assert res.status_code == 200
    assert res.json()["version"] == "static"

    assert client.get("/api/v1/services/nope/config").status_code == 404


def test_malformed_override_value_returns_422(client):
    res = client.post(
        "/api/v1/services/sanipod/quote",
        json={"input": {"units": 4}, "overrides": {"per_visit": "abc", "monthly_recurring": ""}},
    )
    assert res.status_code == 422
    assert res.json()["detail"]["field_errors"] == {"per_visit": "invalid_number"}


def test_zero_override_is_kept_distinct_from_cleared(client):
    res = client.post(
        "/api/v1/services/sanipod/quote",
        json={"input": {"units": 4}, "overrides": {"per_visit": 0}},
    )
    assert res.status_code == 200
    data = res.json()
    assert Decimal(data["per_visit"]) == Decimal("0")
    assert data["field_values"]["per_visit"]["overridden"] is True
