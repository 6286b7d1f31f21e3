from __future__ import annotations

import threading
from decimal import Decimal
from typing import Any
from uuid import uuid4

from botocore.exceptions import ClientError

from geartracker.core.db import SessionLocal
from geartracker.core.security import create_access_token
from geartracker.models import Equipment, EquipmentCondition, Organization, User

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class FakeS3Client:
    """In-memory stand-in for the boto3 S3 client.

    ``fail_put`` and ``fail_delete`` hold filename fragments; any key that
    contains one of them fails with a ``ClientError``. ``fail_all_deletes``
    makes every delete fail. When ``put_barrier`` is set, every upload waits on
    it before storing, which lines up concurrent batches.
    """

    def __init__(self) -> None:
        self.objects: dict[str, dict[str, Any]] = {}
        self.deleted: list[tuple[str, str]] = []
        self.fail_put: set[str] = set()
        self.fail_delete: set[str] = set()
        self.fail_all_deletes = False
        self.put_barrier: threading.Barrier | None = None
        self._lock = threading.Lock()

    @staticmethod
    def _error(operation: str) -> ClientError:
        return ClientError({"Error": {"Code": "InternalError", "Message": "boom"}}, operation)

    def put_object(self, *, Bucket: str, Key: str, Body: bytes, ContentType: str) -> dict[str, Any]:
        if any(fragment in Key for fragment in self.fail_put):
            raise self._error("PutObject")
        if self.put_barrier is not None:
            self.put_barrier.wait()
        with self._lock:
            self.objects[Key] = {"Bucket": Bucket, "Body": Body, "ContentType": ContentType}
        return {}

    def delete_object(self, *, Bucket: str, Key: str) -> dict[str, Any]:
        if self.fail_all_deletes or any(fragment in Key for fragment in self.fail_delete):
            raise self._error("DeleteObject")
        with self._lock:
            self.objects.pop(Key, None)
            self.deleted.append((Bucket, Key))
        return {}


def create_organization(name: str = "Acme Audio") -> Organization:
    with SessionLocal() as db:
        organization = Organization(name=name)
        db.add(organization)
        db.commit()
        db.refresh(organization)
        return organization


def create_user(organization_id: str, *, name: str = "Sam Roadie", is_active: bool = True) -> User:
    with SessionLocal() as db:
        user = User(
            organization_id=organization_id,
            email=f"{uuid4().hex[:10]}@example.com",
            name=name,
            is_active=is_active,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user


def auth_headers(user: User) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user.id)}"}


def member_headers(organization_name: str = "Acme Audio") -> tuple[Organization, User, dict[str, str]]:
    organization = create_organization(organization_name)
    user = create_user(organization.id)
    return organization, user, auth_headers(user)


def create_equipment(
    organization_id: str,
    *,
    name: str = "Amp",
    type: str = "Amplifier",
    condition: EquipmentCondition | None = None,
    category_id: str | None = None,
    location: str | None = None,
    brand: str | None = None,
    purchase_price: str | None = None,
    current_value: str | None = None,
) -> Equipment:
    with SessionLocal() as db:
        equipment = Equipment(
            organization_id=organization_id,
            name=name,
            type=type,
            condition=condition,
            category_id=category_id,
            location=location,
            brand=brand,
            purchase_price=Decimal(purchase_price) if purchase_price is not None else None,
            current_value=Decimal(current_value) if current_value is not None else None,
        )
        db.add(equipment)
        db.commit()
        db.refresh(equipment)
        return equipment


def photo_files(*names: str) -> list[tuple[str, tuple[str, bytes, str]]]:
    return [("photos", (name, PNG_BYTES, "image/png")) for name in names]
