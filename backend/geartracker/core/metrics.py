"""Prometheus instrumentation."""

from __future__ import annotations

import logging
from typing import Final

from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator, metrics

from geartracker.core.db import engine

logger = logging.getLogger("geartracker.metrics")

DB_POOL_IN_USE: Final[Gauge] = Gauge(
    "db_pool_connections_in_use",
    "Number of database connections currently checked out from the pool.",
)
PHOTO_BLOBS_UPLOADED: Final[Counter] = Counter(
    "equipment_photo_blobs_uploaded_total",
    "Equipment photo objects written to the blob store.",
)
PHOTO_BLOBS_DELETED: Final[Counter] = Counter(
    "equipment_photo_blobs_deleted_total",
    "Equipment photo objects removed from the blob store.",
)
BLOB_OPERATION_FAILURES: Final[Counter] = Counter(
    "blob_store_operation_failures_total",
    "Failed blob store calls by operation.",
    ["operation"],
)


def _record_db_pool_metrics(_: metrics.Info) -> None:
    checkedout = getattr(engine.pool, "checkedout", None)
    if not callable(checkedout):
        # SQLite's static pools do not track checkouts.
        return
    DB_POOL_IN_USE.set(float(checkedout()))


def setup_metrics(app) -> Instrumentator:
    """Instrument the app and expose ``/metrics``."""

    instrumentator = Instrumentator(
        should_group_status_codes=False,
        should_ignore_untemplated=True,
        excluded_handlers=["/metrics", "/api/health/.*"],
    )
    instrumentator.add(metrics.default())
    instrumentator.add(_record_db_pool_metrics)

    instrumentator.instrument(app)
    instrumentator.expose(app, include_in_schema=False)
    return instrumentator


__all__ = [
    "BLOB_OPERATION_FAILURES",
    "DB_POOL_IN_USE",
    "PHOTO_BLOBS_DELETED",
    "PHOTO_BLOBS_UPLOADED",
    "setup_metrics",
]
