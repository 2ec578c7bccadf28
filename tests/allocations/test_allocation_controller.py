from __future__ import annotations

from datetime import date
from types import SimpleNamespace

import pytest

from src.resource_allocation.resource_allocation.core.enums import AllocationMode
from src.resource_allocation.resource_allocation.main import create_app
from src.resource_allocation.resource_allocation.settings.service import SettingsService


class InMemorySettings:
    def __init__(self, **values):
        self.values = dict(values)

    def get_value(self, key):
        return self.values.get(key)

    def set_value(self, key, value, *, description=None):
        self.values[key] = value


@pytest.fixture
def settings_repo():
    return InMemorySettings(allocation_mode="percentage")


@pytest.fixture
def client(monkeypatch, service, settings_repo):
    monkeypatch.setenv("APP_ENV", "testing")
    container = SimpleNamespace(
        allocation_service=service,
        settings_service=SettingsService(settings_repo, default_mode=AllocationMode.HOURS),
    )
    app = create_app(container=container)
    return app.test_client()


def _login(client, *, user_id=1, role="coordinator"):
    with client.session_transaction() as sess:
        sess["user_id"] = user_id
        sess["role"] = role


def _post(client, **overrides):
    body = {
        "employee_id": 7,
        "project_id": 3,
        "start_date": "2025-03-01",
        "end_date": "2025-03-31",
        "allocated_percentage": 60,
    }
    body.update(overrides)
    return client.post("/api/allocations", json=body)


def test_requires_login(client):
    resp = client.get("/api/allocations")
    assert resp.status_code == 401


def test_create_uses_stored_mode(client):
    _login(client)
    resp = _post(client)

    assert resp.status_code == 201
    data = resp.get_json()
    assert data["allocated_percentage"] == 60
    assert data["allocated_hours"] == 92
    assert data["start_date"] == "2025-03-01"


def test_create_over_capacity_returns_conflict(client, allocations_repo):
    allocations_repo.add(employee_id=7, percentage=60, start=date(2025, 3, 1), end=date(2025, 3, 31))
    _login(client)

    resp = _post(client, start_date="2025-03-10", end_date="2025-03-20", allocated_percentage=41)

    assert resp.status_code == 409
    data = resp.get_json()
    assert data["currentTotal"] == 60
    assert data["requested"] == 41


def test_create_forbidden_for_regular_user(client):
    _login(client, role="user")
    assert _post(client).status_code == 403


def test_create_with_bad_date_is_bad_request(client):
    _login(client)
    resp = _post(client, start_date="03/01/2025")
    assert resp.status_code == 400
    assert "start_date" in resp.get_json()["error"]


def test_create_with_inverted_period_is_bad_request(client):
    _login(client)
    assert _post(client, start_date="2025-03-31", end_date="2025-03-01").status_code == 400


def test_patch_can_clear_end_date(client):
    _login(client)
    allocation_id = _post(client).get_json()["allocation_id"]

    resp = client.patch(f"/api/allocations/{allocation_id}", json={"end_date": None})

    assert resp.status_code == 200
    assert resp.get_json()["end_date"] is None


def test_delete_then_get_is_not_found(client):
    _login(client)
    allocation_id = _post(client).get_json()["allocation_id"]

    assert client.delete(f"/api/allocations/{allocation_id}").status_code == 204
    assert client.get(f"/api/allocations/{allocation_id}").status_code == 404


def test_history_and_revert(client):
    _login(client)
    _post(client)
    history = client.get("/api/allocations/history?employee_id=7").get_json()
    assert [h["action"] for h in history] == ["created"]

    resp = client.post(f"/api/allocations/history/{history[0]['history_id']}/revert", json={"comment": "oops"})

    assert resp.status_code == 200
    assert resp.get_json()["is_active"] is False
    assert client.get("/api/allocations").get_json() == []


def test_capacity_endpoint(client):
    _login(client)
    _post(client, allocated_percentage=25)

    resp = client.get("/api/employees/7/capacity?start_date=2025-03-10&end_date=2025-03-14")

    assert resp.status_code == 200
    data = resp.get_json()
    assert data["allocated_percentage"] == 25
    assert data["remaining_percentage"] == 75
    assert len(data["allocations"]) == 1


def test_capacity_endpoint_unknown_employee(client):
    _login(client)
    assert client.get("/api/employees/404/capacity").status_code == 404


def test_admin_switches_allocation_mode(client, settings_repo):
    _login(client, role="admin")

    resp = client.put("/api/settings/allocation-mode", json={"mode": "hours"})

    assert resp.status_code == 200
    assert settings_repo.values["allocation_mode"] == "hours"
    assert client.get("/api/settings/allocation-mode").get_json() == {"mode": "hours"}


def test_coordinator_cannot_switch_allocation_mode(client, settings_repo):
    _login(client)
    assert client.put("/api/settings/allocation-mode", json={"mode": "hours"}).status_code == 403
    assert settings_repo.values["allocation_mode"] == "percentage"


def test_create_with_numeric_end_date_is_bad_request(client):
    _login(client)
    resp = _post(client, end_date=5)
    assert resp.status_code == 400
    assert "end_date" in resp.get_json()["error"]


def test_create_with_nan_percentage_is_bad_request(client, allocations_repo):
    _login(client)
    body = (
        '{"employee_id": 7, "project_id": 3, "start_date": "2025-03-01",'
        ' "end_date": "2025-03-31", "allocated_percentage": NaN}'
    )
    resp = client.post("/api/allocations", data=body, content_type="application/json")
    assert resp.status_code == 400
    assert allocations_repo.allocations == {}
