from __future__ import annotations

from uuid import uuid4

from fastapi.testclient import TestClient
from sqlalchemy import select

from geartracker.core.db import SessionLocal
from geartracker.models import AuditEvent

from tests.utils import member_headers


def test_create_and_list_categories(client: TestClient) -> None:
    organization, _user, headers = member_headers()

    for name in ("Microphones", "Amplifiers", "Cables"):
        response = client.post("/api/equipment/categories", json={"name": name}, headers=headers)
        assert response.status_code == 201, response.text
        assert response.json()["data"]["organizationId"] == organization.id

    listing = client.get("/api/equipment/categories/all", headers=headers)
    assert listing.status_code == 200
    body = listing.json()
    assert body["status"] == "success"
    assert body["results"] == 3
    assert [category["name"] for category in body["data"]] == [
        "Amplifiers",
        "Cables",
        "Microphones",
    ]

    with SessionLocal() as db:
        actions = db.execute(
            select(AuditEvent.action).where(AuditEvent.entity_type == "equipment_category")
        ).scalars().all()
    assert actions == ["category.create"] * 3


def test_category_names_are_unique_per_organization(client: TestClient) -> None:
    _organization, _user, headers = member_headers()
    _other, _other_user, other_headers = member_headers("Other Org")

    first = client.post("/api/equipment/categories", json={"name": "Guitars"}, headers=headers)
    assert first.status_code == 201

    duplicate = client.post("/api/equipment/categories", json={"name": "Guitars"}, headers=headers)
    assert duplicate.status_code == 400
    assert duplicate.json() == {
        "status": "fail",
        "message": "A category with this name already exists",
    }

    elsewhere = client.post(
        "/api/equipment/categories", json={"name": "Guitars"}, headers=other_headers
    )
    assert elsewhere.status_code == 201

    listing = client.get("/api/equipment/categories/all", headers=headers)
    assert listing.json()["results"] == 1


def test_category_with_parent(client: TestClient) -> None:
    _organization, _user, headers = member_headers()
    _other, _other_user, other_headers = member_headers("Other Org")

    parent = client.post("/api/equipment/categories", json={"name": "Audio"}, headers=headers)
    parent_id = parent.json()["data"]["id"]

    child = client.post(
        "/api/equipment/categories",
        json={"name": "Mixers", "parentCategoryId": parent_id},
        headers=headers,
    )
    assert child.status_code == 201, child.text
    assert child.json()["data"]["parentCategoryId"] == parent_id

    foreign_parent = client.post(
        "/api/equipment/categories",
        json={"name": "Mixers", "parentCategoryId": parent_id},
        headers=other_headers,
    )
    assert foreign_parent.status_code == 400
    assert foreign_parent.json()["message"] == "Parent category not found"

    missing_parent = client.post(
        "/api/equipment/categories",
        json={"name": "Speakers", "parentCategoryId": str(uuid4())},
        headers=headers,
    )
    assert missing_parent.status_code == 400


def test_category_name_is_required(client: TestClient) -> None:
    _organization, _user, headers = member_headers()

    blank = client.post("/api/equipment/categories", json={"name": "  "}, headers=headers)
    assert blank.status_code == 400
    assert blank.json()["status"] == "fail"

    missing = client.post("/api/equipment/categories", json={}, headers=headers)
    assert missing.status_code == 400
