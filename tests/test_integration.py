import pytest
from fastapi.testclient import TestClient

from src.route_planning.api.routes import schedules
from src.route_planning.main import create_app
from src.route_planning.models.domain import RouteKey
from src.route_planning.persistence.gateway import InMemoryGateway, PersistenceError

ROUTE = {
    "manager_id": "manager-1",
    "planned_date": "2025-03-14",
    "area": "North",
    "stops": [
        {"id": "A", "name": "Store A", "address": "A High Street", "latitude": 0.0, "longitude": 1.0},
        {"id": "B", "name": "Store B", "postcode": "B1 1AA", "latitude": 0.0, "longitude": 2.0},
        {"id": "X", "name": "Store X"},
    ],
    "home": {"latitude": 0.0, "longitude": 0.0, "address": "1 Home Lane"},
}


class OfflineGateway(InMemoryGateway):
    def save_operational_item(self, key, item):
        raise PersistenceError("route store offline")


def _items(payload: dict) -> dict:
    return {item["id"]: item for item in payload["items"]}


@pytest.fixture
def api_client(gateway: InMemoryGateway, monkeypatch: pytest.MonkeyPatch) -> TestClient:
    monkeypatch.setattr(schedules, "get_gateway", lambda: gateway)
    return TestClient(create_app())


def test_health_endpoints(api_client: TestClient):
    assert api_client.get("/api/health").json() == {"status": "ok"}

    persistence = api_client.get("/api/health/persistence").json()
    assert persistence["backend"] == "InMemoryGateway"
    assert persistence["healthy"] is True


def test_build_endpoint(api_client: TestClient):
    response = api_client.post("/api/schedules/build", json=ROUTE)

    assert response.status_code == 200
    payload = response.json()
    assert payload["version"] == 1
    assert payload["excluded_stop_count"] == 1
    assert payload["summary"]["visit_count"] == 2
    assert payload["summary"]["route_window"] == "06:36 - 20:01"
    items = _items(payload)
    assert items["visit-A"]["start"] == "2025-03-14T09:00:00"
    assert items["visit-B"]["start"] == "2025-03-14T13:24:00"
    assert payload["directions_url"].startswith("https://www.google.com/maps/dir/")


def test_operational_item_is_saved_and_survives_rebuild(api_client: TestClient):
    response = api_client.post(
        "/api/schedules/operational-items",
        json={**ROUTE, "title": "Team meeting", "start_time": "10:00", "duration_minutes": 30},
    )

    assert response.status_code == 201
    items = _items(response.json())
    assert items["visit-A"]["start"] == "2025-03-14T10:30:00"
    assert items["visit-A"]["pinned"] is True

    rebuilt = api_client.post("/api/schedules/build", json=ROUTE).json()
    assert _items(rebuilt) == items


def test_edit_and_delete_operational_item(api_client: TestClient):
    added = api_client.post(
        "/api/schedules/operational-items",
        json={**ROUTE, "title": "Team meeting", "start_time": "10:00", "duration_minutes": 30},
    ).json()
    [operational] = [item for item in added["items"] if item["kind"] == "operational"]
    item_id = operational["operational_id"]

    edited = api_client.put(
        f"/api/schedules/operational-items/{item_id}",
        json={**ROUTE, "title": "Team meeting", "start_time": "16:00", "duration_minutes": 30},
    )
    assert edited.status_code == 200
    assert _items(edited.json())["arrive-home"]["start"] == "2025-03-14T21:07:00"

    deleted = api_client.post(f"/api/schedules/operational-items/{item_id}/delete", json=ROUTE)
    assert deleted.status_code == 200
    assert deleted.json()["summary"]["operational_count"] == 0


def test_pin_visit_endpoint(api_client: TestClient, gateway: InMemoryGateway, route_key: RouteKey):
    response = api_client.post(
        "/api/schedules/visits/pin",
        json={**ROUTE, "stop_id": "A", "start_time": "09:00", "end_time": "10:00"},
    )

    assert response.status_code == 200
    items = _items(response.json())
    assert items["visit-A"]["end"] == "2025-03-14T10:00:00"
    assert items["visit-B"]["start"] == "2025-03-14T12:24:00"
    assert len(gateway.get_visit_overrides(route_key)) == 1


def test_invalid_edits_return_bad_request(api_client: TestClient):
    unknown_stop = api_client.post(
        "/api/schedules/visits/pin",
        json={**ROUTE, "stop_id": "Z", "start_time": "09:00", "end_time": "10:00"},
    )
    bad_date = api_client.post("/api/schedules/build", json={**ROUTE, "planned_date": "14/03/2025"})
    unknown_item = api_client.put(
        "/api/schedules/operational-items/missing",
        json={**ROUTE, "title": "Call", "start_time": "12:00", "duration_minutes": 15},
    )

    assert unknown_stop.status_code == 400
    assert bad_date.status_code == 400
    assert unknown_item.status_code == 400


def test_store_failure_returns_bad_gateway(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(schedules, "get_gateway", lambda: OfflineGateway())
    client = TestClient(create_app())

    response = client.post(
        "/api/schedules/operational-items",
        json={**ROUTE, "title": "Team meeting", "start_time": "10:00", "duration_minutes": 30},
    )

    assert response.status_code == 502
    assert "offline" in response.json()["detail"]


def test_export_ics_endpoint(api_client: TestClient):
    response = api_client.post("/api/schedules/export/ics", json={**ROUTE, "manager_name": "Jane Smith"})

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/calendar")
    assert "route-Jane-Smith-2025-03-14.ics" in response.headers["content-disposition"]
    assert response.text.startswith("BEGIN:VCALENDAR\r\n")
    assert response.text.count("BEGIN:VEVENT") == 6
