from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

from alembic.config import Config
from alembic.script import ScriptDirectory
from fastapi import APIRouter, HTTPException, status
from sqlalchemy import Connection, text
from sqlalchemy.exc import SQLAlchemyError

from geartracker.core.db import engine

logger = logging.getLogger("geartracker.health")

router = APIRouter(prefix="/health")

ALEMBIC_CONFIG_PATH = Path(__file__).resolve().parents[3] / "alembic.ini"


@router.get("/live")
def live() -> dict[str, str]:
    """Process is up; touches nothing external."""

    return {"status": "ok"}


@router.get("/ready")
def ready() -> dict[str, str]:
    """Database reachable and on the latest Alembic revision."""

    problem = _readiness_problem()
    if problem is not None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=problem)
    return {"status": "ok"}


def _readiness_problem() -> str | None:
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
            if engine.dialect.name == "sqlite":
                # Local and test databases are created from metadata, not migrations.
                return None
            applied = _applied_revisions(connection)
    except SQLAlchemyError:
        logger.exception("Database connection failed during readiness check")
        return "database_unreachable"

    if applied is None:
        return "missing_alembic_version"

    expected = _alembic_heads()
    if not expected:
        logger.warning("No Alembic heads detected; treating database as ready")
        return None
    if not expected.issubset(applied):
        logger.error(
            "Database not on latest migration",
            extra={"expected": sorted(expected), "found": sorted(applied)},
        )
        return "pending_migrations"
    return None


def _applied_revisions(connection: Connection) -> set[str] | None:
    try:
        rows = connection.execute(text("SELECT version_num FROM alembic_version"))
    except SQLAlchemyError:
        logger.exception("Failed to read alembic_version table")
        return None
    return {row[0] for row in rows}


@lru_cache
def _alembic_heads() -> set[str]:
    if not ALEMBIC_CONFIG_PATH.exists():
        logger.error("Alembic configuration not found", extra={"path": str(ALEMBIC_CONFIG_PATH)})
        return set()
    script = ScriptDirectory.from_config(Config(str(ALEMBIC_CONFIG_PATH)))
    return set(script.get_heads())


__all__ = ["router"]
