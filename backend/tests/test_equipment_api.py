from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select

from geartracker.core.db import SessionLocal
from geartracker.models import (
    AuditEvent,
    Equipment,
    EquipmentCategory,
    EquipmentCondition,
    Event,
    EventEquipment,
    MaintenanceLog,
    MaintenanceSchedule,
)

from tests.utils import auth_headers, create_equipment, create_user, member_headers


def test_requests_without_token_are_rejected(client: TestClient) -> None:
    response = client.get("/api/equipment")
    assert response.status_code == 401
    assert response.json() == {"status": "fail", "message": "Not authenticated"}


def test_inactive_user_is_rejected(client: TestClient) -> None:
    organization, _user, _headers = member_headers()
    inactive = create_user(organization.id, is_active=False)

    response = client.get("/api/equipment", headers=auth_headers(inactive))
    assert response.status_code == 401


def test_create_and_fetch_equipment(client: TestClient) -> None:
    organization, user, headers = member_headers()

    created = client.post(
        "/api/equipment",
        json={
            "name": "  Stage Piano ",
            "type": "Keyboard",
            "brand": "Nord",
            "model": "Stage 4",
            "serialNumber": "NS4-0001",
            "purchaseDate": "2023-05-01",
            "purchasePrice": "3299.00",
            "currentValue": 2800,
            "condition": "EXCELLENT",
            "location": "Studio A",
            "assignedToId": user.id,
        },
        headers=headers,
    )
    assert created.status_code == 201, created.text
    body = created.json()
    assert body["status"] == "success"
    data = body["data"]
    assert data["name"] == "Stage Piano"
    assert data["organizationId"] == organization.id
    assert data["purchasePrice"] == 3299.0
    assert data["currentValue"] == 2800.0
    assert data["condition"] == "EXCELLENT"
    assert data["assignedToId"] == user.id

    detail = client.get(f"/api/equipment/{data['id']}", headers=headers)
    assert detail.status_code == 200, detail.text
    payload = detail.json()["data"]
    assert payload["serialNumber"] == "NS4-0001"
    assert payload["assignedTo"] == {"id": user.id, "name": user.name, "email": user.email}
    assert payload["category"] is None
    assert payload["photos"] == []
    assert payload["maintenanceSchedules"] == []
    assert payload["maintenanceLogs"] == []
    assert payload["eventEquipment"] == []

    with SessionLocal() as db:
        actions = db.execute(
            select(AuditEvent.action).where(AuditEvent.entity_id == data["id"])
        ).scalars().all()
    assert actions == ["equipment.create"]


def test_create_ignores_client_organization(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    other, _other_user, _ = member_headers("Other Org")

    response = client.post(
        "/api/equipment",
        json={"name": "Snare", "type": "Drum", "organizationId": other.id},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    assert response.json()["data"]["organizationId"] == organization.id


def test_create_requires_name_and_type(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.post("/api/equipment", json={"type": "Drum"}, headers=headers)
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert any(error["field"] == "name" for error in body["errors"])

    blank = client.post("/api/equipment", json={"name": "   ", "type": "Drum"}, headers=headers)
    assert blank.status_code == 400


def test_create_rejects_unknown_condition(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.post(
        "/api/equipment",
        json={"name": "Snare", "type": "Drum", "condition": "BROKEN"},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["status"] == "fail"


def test_create_rejects_category_of_another_organization(client: TestClient) -> None:
    _organization, _user, headers = member_headers()
    other, _other_user, other_headers = member_headers("Other Org")

    category = client.post(
        "/api/equipment/categories", json={"name": "Drums"}, headers=other_headers
    )
    assert category.status_code == 201, category.text

    response = client.post(
        "/api/equipment",
        json={"name": "Snare", "type": "Drum", "categoryId": category.json()["data"]["id"]},
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json() == {"status": "fail", "message": "Category not found"}


def test_update_applies_only_present_fields(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    other, _other_user, _ = member_headers("Other Org")
    equipment = create_equipment(
        organization.id, name="Bass", type="Guitar", brand="Fender", location="Van"
    )

    response = client.put(
        f"/api/equipment/{equipment.id}",
        json={"location": "Studio B", "organizationId": other.id},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    data = response.json()["data"]
    assert data["location"] == "Studio B"
    assert data["brand"] == "Fender"
    assert data["name"] == "Bass"
    assert data["organizationId"] == organization.id

    cleared = client.put(
        f"/api/equipment/{equipment.id}", json={"brand": None}, headers=headers
    )
    assert cleared.status_code == 200
    assert cleared.json()["data"]["brand"] is None
    assert cleared.json()["data"]["location"] == "Studio B"


def test_update_rejects_null_name(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    equipment = create_equipment(organization.id)

    response = client.put(f"/api/equipment/{equipment.id}", json={"name": None}, headers=headers)
    assert response.status_code == 400


def test_malformed_identifier_is_rejected(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.get("/api/equipment/not-a-uuid", headers=headers)
    assert response.status_code == 400
    assert response.json()["status"] == "fail"


def test_unknown_equipment_is_not_found(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.get(f"/api/equipment/{uuid4()}", headers=headers)
    assert response.status_code == 404
    assert response.json() == {"status": "fail", "message": "Equipment not found"}


def test_equipment_of_another_organization_is_invisible(client: TestClient) -> None:
    organization, _user, _headers = member_headers()
    _other, _other_user, other_headers = member_headers("Other Org")
    equipment = create_equipment(organization.id, name="Mixer")

    listing = client.get("/api/equipment", headers=other_headers)
    assert listing.status_code == 200
    assert listing.json()["results"] == 0

    path = f"/api/equipment/{equipment.id}"
    assert client.get(path, headers=other_headers).status_code == 404
    assert client.put(path, json={"name": "Stolen"}, headers=other_headers).status_code == 404
    assert client.delete(path, headers=other_headers).status_code == 404
    assert client.post(f"{path}/qrcode", headers=other_headers).status_code == 404

    with SessionLocal() as db:
        stored = db.get(Equipment, equipment.id)
        assert stored is not None
        assert stored.name == "Mixer"


def test_list_paginates(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    for index in range(25):
        create_equipment(organization.id, name=f"Cable {index:02d}")

    response = client.get("/api/equipment", params={"page": 3, "limit": 10}, headers=headers)
    assert response.status_code == 200, response.text
    body = response.json()
    assert body["status"] == "success"
    assert body["results"] == 5
    assert [item["name"] for item in body["data"]] == [f"Cable {i:02d}" for i in range(20, 25)]
    assert body["pagination"] == {"total": 25, "page": 3, "limit": 10, "totalPages": 3}


def test_list_of_empty_inventory(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.get("/api/equipment", headers=headers)
    assert response.status_code == 200
    assert response.json()["pagination"] == {"total": 0, "page": 1, "limit": 20, "totalPages": 0}


def test_list_rejects_out_of_range_paging(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    assert client.get("/api/equipment", params={"limit": 101}, headers=headers).status_code == 400
    assert client.get("/api/equipment", params={"limit": 0}, headers=headers).status_code == 400
    assert client.get("/api/equipment", params={"page": 0}, headers=headers).status_code == 400


def test_list_rejects_unknown_sort_field(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.get("/api/equipment", params={"sortBy": "password"}, headers=headers)
    assert response.status_code == 400
    body = response.json()
    assert body["status"] == "fail"
    assert body["message"] == "Invalid sort field"

    order = client.get("/api/equipment", params={"sortOrder": "sideways"}, headers=headers)
    assert order.status_code == 400


def test_list_sorts_by_requested_field(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    create_equipment(organization.id, name="Cheap", purchase_price="10.00")
    create_equipment(organization.id, name="Pricey", purchase_price="999.99")
    create_equipment(organization.id, name="Middle", purchase_price="250.00")

    response = client.get(
        "/api/equipment",
        params={"sortBy": "purchasePrice", "sortOrder": "desc"},
        headers=headers,
    )
    assert response.status_code == 200, response.text
    assert [item["name"] for item in response.json()["data"]] == ["Pricey", "Middle", "Cheap"]

    snake = client.get(
        "/api/equipment", params={"sortBy": "purchase_price"}, headers=headers
    )
    assert [item["name"] for item in snake.json()["data"]] == ["Cheap", "Middle", "Pricey"]


def test_list_filters(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    create_equipment(
        organization.id,
        name="Jazz Bass",
        brand="Fender",
        condition=EquipmentCondition.GOOD,
        location="Studio A",
    )
    create_equipment(
        organization.id,
        name="SM58",
        brand="Shure",
        condition=EquipmentCondition.FAIR,
        location="Van",
    )

    by_condition = client.get("/api/equipment", params={"condition": "FAIR"}, headers=headers)
    assert [item["name"] for item in by_condition.json()["data"]] == ["SM58"]

    by_location = client.get("/api/equipment", params={"location": "Studio A"}, headers=headers)
    assert [item["name"] for item in by_location.json()["data"]] == ["Jazz Bass"]

    by_search = client.get("/api/equipment", params={"search": "FEND"}, headers=headers)
    assert [item["name"] for item in by_search.json()["data"]] == ["Jazz Bass"]


def test_search_treats_wildcards_literally(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    create_equipment(organization.id, name="Jazz Bass")
    create_equipment(organization.id, name="50% off pedal")
    create_equipment(organization.id, name="Patch_Cable")

    def names(term: str) -> list[str]:
        response = client.get("/api/equipment", params={"search": term}, headers=headers)
        assert response.status_code == 200, response.text
        return [item["name"] for item in response.json()["data"]]

    assert names("%") == ["50% off pedal"]
    assert names("J_zz") == []
    assert names("_") == ["Patch_Cable"]
    assert names("h_c") == ["Patch_Cable"]


def test_list_items_carry_category_and_next_maintenance(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    category = client.post("/api/equipment/categories", json={"name": "Amps"}, headers=headers)
    category_id = category.json()["data"]["id"]
    equipment = create_equipment(organization.id, name="Combo", category_id=category_id)

    with SessionLocal() as db:
        db.add_all(
            [
                MaintenanceSchedule(
                    equipment_id=equipment.id, title="Retube", next_due=date(2026, 3, 1)
                ),
                MaintenanceSchedule(
                    equipment_id=equipment.id, title="Clean pots", next_due=date(2025, 12, 1)
                ),
                MaintenanceSchedule(equipment_id=equipment.id, title="Someday", next_due=None),
            ]
        )
        db.commit()

    response = client.get("/api/equipment", headers=headers)
    item = response.json()["data"][0]
    assert item["category"]["name"] == "Amps"
    assert item["primaryPhoto"] is None
    assert item["nextMaintenance"]["title"] == "Clean pots"

    by_category = client.get("/api/equipment", params={"category": category_id}, headers=headers)
    assert by_category.json()["results"] == 1


def test_detail_lists_are_newest_first(client: TestClient) -> None:
    organization, user, headers = member_headers()
    equipment = create_equipment(organization.id, name="PA")
    start = datetime(2025, 1, 1, tzinfo=timezone.utc)

    with SessionLocal() as db:
        event = Event(organization_id=organization.id, name="Tour", start_date=date(2025, 1, 1))
        db.add(event)
        db.flush()
        for day in range(7):
            db.add(
                EventEquipment(
                    event_id=event.id,
                    equipment_id=equipment.id,
                    checked_out=start + timedelta(days=day),
                    checked_out_by_id=user.id,
                )
            )
        for day in (3, 9, 6):
            db.add(
                MaintenanceLog(
                    equipment_id=equipment.id,
                    description=f"Service day {day}",
                    performed_date=date(2025, 2, day),
                    cost=Decimal("12.50"),
                    performed_by_id=user.id,
                )
            )
        db.commit()

    response = client.get(f"/api/equipment/{equipment.id}", headers=headers)
    assert response.status_code == 200, response.text
    data = response.json()["data"]

    usages = data["eventEquipment"]
    assert len(usages) == 5
    assert [usage["checkedOut"][:10] for usage in usages] == [
        "2025-01-07",
        "2025-01-06",
        "2025-01-05",
        "2025-01-04",
        "2025-01-03",
    ]
    assert usages[0]["event"]["name"] == "Tour"
    assert usages[0]["checkedOutBy"]["id"] == user.id

    logs = data["maintenanceLogs"]
    assert [log["performedDate"] for log in logs] == ["2025-02-09", "2025-02-06", "2025-02-03"]
    assert logs[0]["cost"] == 12.5
    assert logs[0]["performedBy"]["name"] == user.name


def test_delete_equipment_without_photos(client: TestClient, fake_s3) -> None:
    organization, _user, headers = member_headers()
    equipment = create_equipment(organization.id)
    with SessionLocal() as db:
        db.add(MaintenanceSchedule(equipment_id=equipment.id, title="Check"))
        db.commit()

    response = client.delete(f"/api/equipment/{equipment.id}", headers=headers)
    assert response.status_code == 200, response.text
    assert response.json() == {"status": "success", "message": "Equipment deleted successfully"}
    assert fake_s3.deleted == []

    assert client.get(f"/api/equipment/{equipment.id}", headers=headers).status_code == 404
    with SessionLocal() as db:
        assert db.execute(select(MaintenanceSchedule)).first() is None
        audit = db.execute(
            select(AuditEvent).where(AuditEvent.action == "equipment.delete")
        ).scalars().one()
        assert audit.organization_id == organization.id


def test_deleting_category_keeps_equipment_uncategorized(client: TestClient) -> None:
    organization, _user, headers = member_headers()
    category = client.post("/api/equipment/categories", json={"name": "Mics"}, headers=headers)
    category_id = category.json()["data"]["id"]
    equipment = create_equipment(organization.id, category_id=category_id)

    with SessionLocal() as db:
        db.delete(db.get(EquipmentCategory, category_id))
        db.commit()

    response = client.get(f"/api/equipment/{equipment.id}", headers=headers)
    assert response.json()["data"]["categoryId"] is None


def test_responses_carry_request_id(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    response = client.get("/api/equipment", headers={**headers, "X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
