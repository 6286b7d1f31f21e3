"""Sentry error tracking."""

from __future__ import annotations

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.logging import LoggingIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

from geartracker.core.config import Settings

logger = logging.getLogger("geartracker.sentry")


def init_sentry(settings: Settings) -> bool:
    """Initialise Sentry when a DSN is configured; return whether it was enabled."""

    if not settings.sentry_dsn:
        logger.info("Sentry DSN not configured; skipping error tracking setup")
        return False

    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        traces_sample_rate=settings.sentry_traces_sample_rate,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.INFO, event_level=logging.ERROR),
        ],
        send_default_pii=False,
    )
    logger.info(
        "Sentry initialised",
        extra={"traces_sample_rate": settings.sentry_traces_sample_rate},
    )
    return True


__all__ = ["init_sentry"]
