"""equipment inventory schema"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "20261018_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


EQUIPMENT_CONDITION_VALUES = ("EXCELLENT", "GOOD", "FAIR", "POOR")


def _id_column() -> sa.Column:
    return sa.Column("id", sa.String(length=36), primary_key=True)


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        server_default=sa.func.now(),
        nullable=False,
    )


def _fk(column: str, target: str, *, ondelete: str, nullable: bool) -> sa.Column:
    return sa.Column(
        column,
        sa.String(length=36),
        sa.ForeignKey(target, ondelete=ondelete),
        nullable=nullable,
    )


def upgrade() -> None:
    op.create_table(
        "organizations",
        _id_column(),
        sa.Column("name", sa.String(length=255), nullable=False),
        _created_at(),
    )

    op.create_table(
        "users",
        _id_column(),
        _fk("organization_id", "organizations.id", ondelete="CASCADE", nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False, unique=True),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        _created_at(),
    )
    op.create_index("ix_users_organization_id", "users", ["organization_id"])
    op.create_index("ix_users_email", "users", ["email"])

    op.create_table(
        "equipment_categories",
        _id_column(),
        _fk("organization_id", "organizations.id", ondelete="CASCADE", nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        _fk("parent_category_id", "equipment_categories.id", ondelete="SET NULL", nullable=True),
        _created_at(),
        sa.UniqueConstraint("organization_id", "name", name="uq_equipment_categories_org_name"),
    )
    op.create_index(
        "ix_equipment_categories_organization_id", "equipment_categories", ["organization_id"]
    )

    op.create_table(
        "equipment",
        _id_column(),
        _fk("organization_id", "organizations.id", ondelete="CASCADE", nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("type", sa.String(length=100), nullable=False),
        _fk("category_id", "equipment_categories.id", ondelete="SET NULL", nullable=True),
        sa.Column("brand", sa.String(length=255), nullable=True),
        sa.Column("model", sa.String(length=255), nullable=True),
        sa.Column("serial_number", sa.String(length=255), nullable=True),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("purchase_price", sa.Numeric(12, 2), nullable=True),
        sa.Column("current_value", sa.Numeric(12, 2), nullable=True),
        sa.Column(
            "condition",
            sa.Enum(*EQUIPMENT_CONDITION_VALUES, name="equipment_condition"),
            nullable=True,
        ),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("location", sa.String(length=255), nullable=True),
        _fk("assigned_to_id", "users.id", ondelete="SET NULL", nullable=True),
        _created_at(),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
    )
    op.create_index("ix_equipment_org_name", "equipment", ["organization_id", "name"])
    op.create_index("ix_equipment_org_category", "equipment", ["organization_id", "category_id"])

    op.create_table(
        "equipment_photos",
        _id_column(),
        _fk("equipment_id", "equipment.id", ondelete="CASCADE", nullable=False),
        sa.Column("storage_key", sa.String(length=512), nullable=False, unique=True),
        sa.Column("photo_url", sa.String(length=1024), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        _created_at(),
    )
    op.create_index(
        "ix_equipment_photos_equipment_position",
        "equipment_photos",
        ["equipment_id", "position"],
        unique=True,
    )
    op.create_index(
        "ix_equipment_photos_one_primary",
        "equipment_photos",
        ["equipment_id"],
        unique=True,
        postgresql_where=sa.text("is_primary"),
        sqlite_where=sa.text("is_primary"),
    )

    op.create_table(
        "maintenance_schedules",
        _id_column(),
        _fk("equipment_id", "equipment.id", ondelete="CASCADE", nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("interval_days", sa.Integer(), nullable=True),
        sa.Column("next_due", sa.Date(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_maintenance_schedules_equipment_id", "maintenance_schedules", ["equipment_id"]
    )

    op.create_table(
        "maintenance_logs",
        _id_column(),
        _fk("equipment_id", "equipment.id", ondelete="CASCADE", nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("performed_date", sa.Date(), nullable=False),
        sa.Column("cost", sa.Numeric(12, 2), nullable=True),
        _fk("performed_by_id", "users.id", ondelete="SET NULL", nullable=True),
        _created_at(),
    )
    op.create_index("ix_maintenance_logs_equipment_id", "maintenance_logs", ["equipment_id"])

    op.create_table(
        "events",
        _id_column(),
        _fk("organization_id", "organizations.id", ondelete="CASCADE", nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("venue", sa.String(length=255), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        _created_at(),
    )
    op.create_index("ix_events_organization_id", "events", ["organization_id"])

    op.create_table(
        "event_equipment",
        _id_column(),
        _fk("event_id", "events.id", ondelete="CASCADE", nullable=False),
        _fk("equipment_id", "equipment.id", ondelete="CASCADE", nullable=False),
        sa.Column("checked_out", sa.DateTime(timezone=True), nullable=False),
        sa.Column("checked_in", sa.DateTime(timezone=True), nullable=True),
        _fk("checked_out_by_id", "users.id", ondelete="SET NULL", nullable=True),
        _fk("checked_in_by_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
    )
    op.create_index("ix_event_equipment_event_id", "event_equipment", ["event_id"])
    op.create_index("ix_event_equipment_equipment_id", "event_equipment", ["equipment_id"])

    op.create_table(
        "audit_events",
        _id_column(),
        _fk("organization_id", "organizations.id", ondelete="CASCADE", nullable=False),
        _fk("actor_user_id", "users.id", ondelete="SET NULL", nullable=True),
        sa.Column("action", sa.String(length=64), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_id", sa.String(length=36), nullable=False),
        sa.Column(
            "details",
            postgresql.JSONB().with_variant(sa.JSON(), "sqlite"),
            nullable=True,
        ),
        sa.Column("ip_address", sa.String(length=64), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        _created_at(),
    )
    op.create_index(
        "ix_audit_events_org_entity",
        "audit_events",
        ["organization_id", "entity_type", "entity_id"],
    )


def downgrade() -> None:
    op.drop_index("ix_audit_events_org_entity", table_name="audit_events")
    op.drop_table("audit_events")
    op.drop_index("ix_event_equipment_equipment_id", table_name="event_equipment")
    op.drop_index("ix_event_equipment_event_id", table_name="event_equipment")
    op.drop_table("event_equipment")
    op.drop_index("ix_events_organization_id", table_name="events")
    op.drop_table("events")
    op.drop_index("ix_maintenance_logs_equipment_id", table_name="maintenance_logs")
    op.drop_table("maintenance_logs")
    op.drop_index("ix_maintenance_schedules_equipment_id", table_name="maintenance_schedules")
    op.drop_table("maintenance_schedules")
    op.drop_index("ix_equipment_photos_one_primary", table_name="equipment_photos")
    op.drop_index("ix_equipment_photos_equipment_position", table_name="equipment_photos")
    op.drop_table("equipment_photos")
    op.drop_index("ix_equipment_org_category", table_name="equipment")
    op.drop_index("ix_equipment_org_name", table_name="equipment")
    op.drop_table("equipment")
    sa.Enum(name="equipment_condition").drop(op.get_bind(), checkfirst=True)
    op.drop_index("ix_equipment_categories_organization_id", table_name="equipment_categories")
    op.drop_table("equipment_categories")
    op.drop_index("ix_users_email", table_name="users")
    op.drop_index("ix_users_organization_id", table_name="users")
    op.drop_table("users")
    op.drop_table("organizations")
