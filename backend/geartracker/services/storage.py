"""Blob store gateway for equipment photos.

Wraps a boto3 S3 client: key/URL construction, single-object upload and
delete, and fan-out helpers that run several calls concurrently and report the
outcome of every one of them.
"""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Generic, TYPE_CHECKING, TypeVar
from uuid import uuid4

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from geartracker.core.config import get_settings
from geartracker.core.metrics import (
    BLOB_OPERATION_FAILURES,
    PHOTO_BLOBS_DELETED,
    PHOTO_BLOBS_UPLOADED,
)


if TYPE_CHECKING:
    from mypy_boto3_s3.client import S3Client
else:  # pragma: no cover - type checking only
    from botocore.client import BaseClient as S3Client


logger = logging.getLogger("geartracker.storage")

PHOTO_KEY_PREFIX = "equipment-photos"
SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._-]+")

T = TypeVar("T")
R = TypeVar("R")


class StorageUnavailableError(RuntimeError):
    """Raised when the storage backend is not configured."""


class BlobStoreError(RuntimeError):
    """A call to the blob store failed."""

    def __init__(self, operation: str, key: str, reason: str) -> None:
        super().__init__(f"{operation} failed for {key}: {reason}")
        self.operation = operation
        self.key = key
        self.reason = reason


@dataclass(slots=True)
class BlobUpload:
    key: str
    body: bytes
    content_type: str


@dataclass
class FanOutResult(Generic[R]):
    """Outcome of a concurrent batch, in submission order."""

    succeeded: list[R]
    failures: list[BlobStoreError]

    @property
    def ok(self) -> bool:
        return not self.failures


def _filter_kwargs(**kwargs: Any) -> dict[str, Any]:
    return {key: value for key, value in kwargs.items() if value is not None}


@lru_cache
def get_s3_client() -> S3Client:
    settings = get_settings()
    config_kwargs: dict[str, Any] = {
        "connect_timeout": settings.s3_connect_timeout,
        "read_timeout": settings.s3_read_timeout,
        "retries": {"max_attempts": 3, "mode": "standard"},
        "max_pool_connections": max(10, settings.blob_io_max_workers),
    }
    if settings.s3_use_path_style:
        config_kwargs["s3"] = {"addressing_style": "path"}

    client_kwargs: dict[str, Any] = {
        "aws_access_key_id": settings.s3_access_key,
        "aws_secret_access_key": settings.s3_secret_key,
        "region_name": settings.s3_region,
        "endpoint_url": settings.s3_endpoint,
        "config": Config(**config_kwargs),
    }
    return boto3.client("s3", **_filter_kwargs(**client_kwargs))


def ensure_bucket() -> str:
    bucket = get_settings().s3_bucket
    if not bucket:
        raise StorageUnavailableError("S3 bucket not configured")
    return bucket


def public_base_url() -> str:
    """Base URL that persisted photo URLs are built from."""

    settings = get_settings()
    if settings.s3_public_url:
        return settings.s3_public_url
    bucket = ensure_bucket()
    if settings.s3_endpoint:
        return f"{settings.s3_endpoint.rstrip('/')}/{bucket}"
    region = settings.s3_region or "us-east-1"
    return f"https://{bucket}.s3.{region}.amazonaws.com"


def sanitize_filename(filename: str) -> str:
    base = os.path.basename(filename.strip()) or "file"
    name, ext = os.path.splitext(base)
    safe_name = SAFE_CHARS_RE.sub("-", name).strip("-._") or "file"
    safe_ext = "".join(ch for ch in ext if ch.isalnum() or ch in {".", "_", "-"})
    candidate = f"{safe_name}{safe_ext}" if safe_ext else safe_name
    return candidate[:200] or "file"


def build_photo_key(filename: str) -> str:
    """``equipment-photos/{random token}-{filename}``; the token is never reused."""

    return f"{PHOTO_KEY_PREFIX}/{uuid4().hex}-{sanitize_filename(filename)}"


def build_photo_url(key: str) -> str:
    return f"{public_base_url()}/{key}"


def _describe(exc: Exception) -> str:
    if isinstance(exc, ClientError):
        return str(exc.response.get("Error", {}).get("Code") or "ClientError")
    return exc.__class__.__name__


def put_object(client: S3Client, bucket: str, upload: BlobUpload) -> str:
    try:
        client.put_object(
            Bucket=bucket,
            Key=upload.key,
            Body=upload.body,
            ContentType=upload.content_type,
        )
    except (ClientError, BotoCoreError) as exc:
        BLOB_OPERATION_FAILURES.labels(operation="put").inc()
        logger.warning("Unable to upload object %s: %s", upload.key, _describe(exc))
        raise BlobStoreError("put", upload.key, _describe(exc)) from exc
    PHOTO_BLOBS_UPLOADED.inc()
    return upload.key


def delete_object(client: S3Client, bucket: str, key: str) -> str:
    try:
        client.delete_object(Bucket=bucket, Key=key)
    except (ClientError, BotoCoreError) as exc:
        BLOB_OPERATION_FAILURES.labels(operation="delete").inc()
        logger.warning("Unable to delete object %s: %s", key, _describe(exc))
        raise BlobStoreError("delete", key, _describe(exc)) from exc
    PHOTO_BLOBS_DELETED.inc()
    return key


def _fan_out(func: Callable[[T], R], items: Sequence[T]) -> FanOutResult[R]:
    if not items:
        return FanOutResult(succeeded=[], failures=[])

    workers = min(len(items), get_settings().blob_io_max_workers)
    succeeded: list[R] = []
    failures: list[BlobStoreError] = []
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="blob-io") as pool:
        futures = [pool.submit(func, item) for item in items]
        # Every call is awaited, so no attempt is still in flight when we return.
        for future in futures:
            try:
                succeeded.append(future.result())
            except BlobStoreError as exc:
                failures.append(exc)
    return FanOutResult(succeeded=succeeded, failures=failures)


def put_objects(client: S3Client, bucket: str, uploads: Sequence[BlobUpload]) -> FanOutResult[str]:
    return _fan_out(lambda upload: put_object(client, bucket, upload), uploads)


def delete_objects(client: S3Client, bucket: str, keys: Iterable[str]) -> FanOutResult[str]:
    return _fan_out(lambda key: delete_object(client, bucket, key), list(keys))


__all__ = [
    "BlobStoreError",
    "BlobUpload",
    "FanOutResult",
    "PHOTO_KEY_PREFIX",
    "S3Client",
    "StorageUnavailableError",
    "build_photo_key",
    "build_photo_url",
    "delete_object",
    "delete_objects",
    "ensure_bucket",
    "get_s3_client",
    "public_base_url",
    "put_object",
    "put_objects",
    "sanitize_filename",
]
