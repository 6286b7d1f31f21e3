"""Pytest configuration for backend tests."""
from __future__ import annotations

import os
import sys
from collections.abc import Generator
from pathlib import Path

import pytest


def _ensure_backend_on_path() -> None:
    backend_dir = Path(__file__).resolve().parents[1]
    backend_path = str(backend_dir)
    if backend_path not in sys.path:
        sys.path.insert(0, backend_path)


_ensure_backend_on_path()

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///./test.db")
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_JSON", "false")

from fastapi.testclient import TestClient  # noqa: E402

from geartracker.core.config import get_settings  # noqa: E402
from geartracker.core.db import Base, engine  # noqa: E402
from geartracker.main import app  # noqa: E402
from geartracker.services import storage as storage_service  # noqa: E402

from tests.utils import FakeS3Client  # noqa: E402


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Generator[None, None, None]:
    get_settings.cache_clear()
    try:
        yield
    finally:
        get_settings.cache_clear()


@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def configure_storage(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    monkeypatch.setenv("S3_BUCKET", "test-bucket")
    monkeypatch.setenv("S3_ACCESS_KEY", "test-access")
    monkeypatch.setenv("S3_SECRET_KEY", "test-secret")
    monkeypatch.setenv("S3_REGION", "eu-west-1")
    monkeypatch.setenv("S3_PUBLIC_URL", "https://cdn.example.com/gear")
    monkeypatch.setenv("APP_URL", "https://app.example.com")
    get_settings.cache_clear()
    storage_service.get_s3_client.cache_clear()
    yield
    get_settings.cache_clear()
    if hasattr(storage_service.get_s3_client, "cache_clear"):
        storage_service.get_s3_client.cache_clear()


@pytest.fixture()
def fake_s3(monkeypatch: pytest.MonkeyPatch) -> FakeS3Client:
    fake = FakeS3Client()
    monkeypatch.setattr(storage_service, "get_s3_client", lambda: fake)
    return fake


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)
