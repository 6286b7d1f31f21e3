"""Access-token verification.

Tokens are issued by the identity service; this API only verifies them. The
``create_access_token`` helper mints tokens with the same claims for local
tooling and tests.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from jose import JWTError, jwt

from geartracker.core.config import get_settings

ALGORITHM = "HS256"


def create_access_token(user_id: str, *, ttl_minutes: int | None = None) -> str:
    settings = get_settings()
    minutes = settings.access_ttl_min if ttl_minutes is None else ttl_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=minutes)
    payload = {"sub": user_id, "exp": expire, "type": "access"}
    return jwt.encode(payload, settings.jwt_secret, algorithm=ALGORITHM)


def decode_token(token: str) -> dict:
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[ALGORITHM])
    except JWTError as exc:  # jose raises a generic JWTError
        raise ValueError("Invalid token") from exc


__all__ = ["ALGORITHM", "create_access_token", "decode_token"]
