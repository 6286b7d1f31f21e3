"""Seed a local database with one organization, a member and some gear.

Prints an access token for the seeded member so the API can be explored
with curl right away.
"""

from __future__ import annotations

import argparse
import sys
from decimal import Decimal
from pathlib import Path

ROOT_DIR = Path(__file__).resolve().parent.parent
BACKEND_DIR = ROOT_DIR / "backend"
if str(BACKEND_DIR) not in sys.path:
    sys.path.insert(0, str(BACKEND_DIR))

from sqlalchemy import select  # noqa: E402

from geartracker.core.db import Base, SessionLocal, engine  # noqa: E402
from geartracker.core.security import create_access_token  # noqa: E402
from geartracker.models import (  # noqa: E402
    Equipment,
    EquipmentCategory,
    EquipmentCondition,
    Organization,
    User,
)

CATEGORIES = ("Amplifiers", "Guitars", "Microphones", "Cables")

EQUIPMENT_SEED = [
    {
        "name": "Blues Junior",
        "type": "Amplifier",
        "category": "Amplifiers",
        "brand": "Fender",
        "condition": EquipmentCondition.GOOD,
        "purchase_price": Decimal("699.00"),
        "current_value": Decimal("520.00"),
        "location": "Rehearsal room",
    },
    {
        "name": "Jazz Bass",
        "type": "Bass guitar",
        "category": "Guitars",
        "brand": "Fender",
        "condition": EquipmentCondition.EXCELLENT,
        "purchase_price": Decimal("1499.00"),
        "current_value": Decimal("1350.00"),
        "location": "Rehearsal room",
    },
    {
        "name": "SM58",
        "type": "Microphone",
        "category": "Microphones",
        "brand": "Shure",
        "condition": EquipmentCondition.FAIR,
        "purchase_price": Decimal("99.00"),
        "location": "Van",
    },
    {
        "name": "XLR 10m",
        "type": "Cable",
        "category": None,
        "condition": None,
        "location": "Van",
    },
]


def seed(organization_name: str, email: str) -> str:
    with SessionLocal() as db:
        user = db.execute(select(User).where(User.email == email)).scalars().first()
        if user is not None:
            print(f"User {email} already seeded, skipping inventory")
            return create_access_token(user.id)

        organization = Organization(name=organization_name)
        db.add(organization)
        db.flush()

        user = User(organization_id=organization.id, email=email, name="Seed Member")
        db.add(user)

        categories: dict[str, EquipmentCategory] = {}
        for name in CATEGORIES:
            category = EquipmentCategory(organization_id=organization.id, name=name)
            db.add(category)
            categories[name] = category
        db.flush()

        for row in EQUIPMENT_SEED:
            values = dict(row)
            category_name = values.pop("category")
            db.add(
                Equipment(
                    organization_id=organization.id,
                    category_id=categories[category_name].id if category_name else None,
                    assigned_to_id=user.id,
                    **values,
                )
            )
        db.commit()
        print(f"Seeded {len(EQUIPMENT_SEED)} items for {organization_name}")
        return create_access_token(user.id)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--organization", default="Demo Band")
    parser.add_argument("--email", default="member@example.com")
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create tables from the models instead of relying on Alembic",
    )
    args = parser.parse_args()

    if args.create_tables:
        Base.metadata.create_all(bind=engine)

    token = seed(args.organization, args.email)
    print(f"Access token: {token}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
