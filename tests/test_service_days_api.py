from datetime import datetime, timedelta

import pytest

from conftest import next_weekday, run
from database.documents import to_object_id
from models.enums import UserRole

SERVICE = {
    "name": "Sunday Worship",
    "time": "9:30",
    "weekdays": [0],
    "frequency": "WEEKLY",
    "ordinal": "NEXT",
}


@pytest.fixture
def admin(make_user):
    return make_user(role=UserRole.ADMIN)


def test_admin_creates_service_day(client, admin):
    response = client.post("/api/service-days/", json=SERVICE, headers=admin.headers)
    assert response.status_code == 201
    body = response.json()
    assert body["time"] == "09:30"
    assert body["weekdays"] == [0]
    assert body["is_active"] is True


@pytest.mark.parametrize(
    "overrides",
    [{"time": "9.30"}, {"time": "24:00"}, {"weekdays": []}, {"weekdays": [7]}],
)
def test_invalid_service_definitions_are_rejected(client, admin, overrides):
    response = client.post("/api/service-days/", json={**SERVICE, **overrides}, headers=admin.headers)
    assert response.status_code == 422


def test_members_cannot_manage_service_days(client, make_user):
    member = make_user()
    assert client.post("/api/service-days/", json=SERVICE, headers=member.headers).status_code == 403


def test_list_filters_by_status(client, admin, make_service_day):
    make_service_day(name="Active")
    make_service_day(name="Retired", is_active=False)
    active = client.get("/api/service-days/", headers=admin.headers).json()
    assert [s["name"] for s in active["service_days"]] == ["Active"]
    everything = client.get("/api/service-days/?status=all", headers=admin.headers).json()
    assert everything["total_count"] == 2


def test_update_replaces_weekdays(client, admin, make_service_day):
    service_day_id = make_service_day()
    response = client.put(
        f"/api/service-days/{service_day_id}", json={**SERVICE, "weekdays": [3, 0]}, headers=admin.headers
    )
    assert response.status_code == 200
    assert response.json()["weekdays"] == [0, 3]


def test_toggle_restore_waits_for_restore_window(client, db, admin, make_service_day):
    service_day_id = make_service_day()
    response = client.patch(f"/api/service-days/{service_day_id}/toggle", headers=admin.headers)
    assert response.json()["is_active"] is False

    response = client.patch(f"/api/service-days/{service_day_id}/toggle", headers=admin.headers)
    assert response.status_code == 400
    assert "restored after 24 hours" in response.json()["detail"]

    run(
        db["service_days"].update_one(
            {"_id": to_object_id(service_day_id)}, {"$set": {"deactivated_at": datetime.utcnow() - timedelta(hours=25)}}
        )
    )
    response = client.patch(f"/api/service-days/{service_day_id}/toggle", headers=admin.headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True


def test_occurrences_endpoint(client, admin, make_service_day):
    service_day_id = make_service_day(weekdays=[0])
    response = client.get(
        f"/api/service-days/{service_day_id}/occurrences?from_date=2024-01-01&count=3", headers=admin.headers
    )
    assert response.status_code == 200
    assert response.json()["dates"] == ["2024-01-07", "2024-01-14", "2024-01-21"]


def test_options_endpoint(client, admin, make_service_day):
    service_day_id = make_service_day(weekdays=[5, 6], cycle=1)
    response = client.get(f"/api/service-days/{service_day_id}/options", headers=admin.headers)
    assert response.json() == [
        {"value": "5-1", "label": "Day 1", "day_of_week": 5},
        {"value": "6-2", "label": "Day 2", "day_of_week": 6},
    ]


def test_delete_service_day(client, admin, make_service_day):
    service_day_id = make_service_day()
    assert client.delete(f"/api/service-days/{service_day_id}", headers=admin.headers).status_code == 200
    assert client.get(f"/api/service-days/{service_day_id}", headers=admin.headers).status_code == 404


def test_editing_an_inactive_service_keeps_the_restore_window(client, db, admin, make_service_day):
    service_day_id = make_service_day()
    client.patch(f"/api/service-days/{service_day_id}/toggle", headers=admin.headers)
    run(
        db["service_days"].update_one(
            {"_id": to_object_id(service_day_id)}, {"$set": {"deactivated_at": datetime.utcnow() - timedelta(hours=25)}}
        )
    )
    response = client.put(f"/api/service-days/{service_day_id}", json=SERVICE, headers=admin.headers)
    assert response.json()["is_active"] is False

    response = client.patch(f"/api/service-days/{service_day_id}/toggle", headers=admin.headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True
    assert response.json()["deactivated_at"] is None


def test_deleting_a_service_day_cancels_its_open_requests(client, db, admin, make_user, make_service_day):
    member = make_user()
    service_day_id = make_service_day()
    response = client.post(
        "/api/pickup/requests",
        json={
            "service_day_id": service_day_id,
            "address_id": member.address_id,
            "request_date": next_weekday(0, after_days=2).isoformat(),
        },
        headers=member.headers,
    )
    request_id = response.json()[0]["id"]

    response = client.delete(f"/api/service-days/{service_day_id}", headers=admin.headers)
    assert response.json()["cancelled_requests"] == 1
    stored = run(db["pickup_requests"].find_one({"_id": to_object_id(request_id)}))
    assert stored["status"] == "CANCELLED"
    assert stored["active"] is False

    response = client.get(f"/api/pickup/requests/{request_id}", headers=member.headers)
    assert response.json()["status"] == "CANCELLED"
