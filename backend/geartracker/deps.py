from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from geartracker.core.db import get_db
from geartracker.core.logging import bind_organization
from geartracker.core.security import decode_token
from geartracker.models import User

bearer_scheme = HTTPBearer(auto_error=False)

DbSession = Annotated[Session, Depends(get_db)]
BearerCredentials = Annotated[HTTPAuthorizationCredentials | None, Depends(bearer_scheme)]


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_token(token: str) -> str:
    try:
        claims = decode_token(token)
    except ValueError as exc:
        raise _unauthorized("Invalid token") from exc
    subject = claims.get("sub")
    if claims.get("type") != "access" or not subject:
        raise _unauthorized("Invalid token")
    return str(subject)


def get_current_user(credentials: BearerCredentials, db: DbSession) -> User:
    """Resolve the bearer token to an active member of some organization."""
    if credentials is None:
        raise _unauthorized("Not authenticated")

    member = db.get(User, _user_id_from_token(credentials.credentials))
    if member is None or not member.is_active:
        raise _unauthorized("Inactive user")
    return member


CurrentUser = Annotated[User, Depends(get_current_user)]


async def get_current_organization_id(user: CurrentUser) -> str:
    # Async so the bound organization is copied into the endpoint's threadpool context.
    bind_organization(user.organization_id)
    return user.organization_id


OrganizationId = Annotated[str, Depends(get_current_organization_id)]


__all__ = [
    "CurrentUser",
    "DbSession",
    "OrganizationId",
    "bearer_scheme",
    "get_current_organization_id",
    "get_current_user",
]
