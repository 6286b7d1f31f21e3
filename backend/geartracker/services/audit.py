from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from fastapi import Request
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from geartracker.models import AuditEvent, User


def record_audit(
    db: Session,
    *,
    organization_id: str,
    actor: User | None,
    action: str,
    entity_type: str,
    entity_id: str,
    details: Mapping[str, Any] | None = None,
    request: Request | None = None,
) -> AuditEvent:
    """Add an audit event to the session.

    Nothing is flushed here: the event is committed or rolled back together
    with the change it describes.
    """

    client = request.client if request is not None else None
    event = AuditEvent(
        organization_id=organization_id,
        actor_user_id=actor.id if actor is not None else None,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        details=jsonable_encoder(details) if details is not None else None,
        ip_address=client.host if client is not None else None,
        user_agent=request.headers.get("user-agent") if request is not None else None,
    )
    db.add(event)
    return event


__all__ = ["record_audit"]
