import json
from functools import lru_cache
from typing import Annotated, Any

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_DATABASE_URL = "postgresql+psycopg://gear:changeme@db:5432/geartracker"
DEFAULT_APP_URL = "https://app.musicgeartracker.com"

_OPTIONAL_STRINGS = (
    "sentry_dsn",
    "s3_endpoint",
    "s3_bucket",
    "s3_access_key",
    "s3_secret_key",
    "s3_region",
    "s3_public_url",
)


def _clean_list(items: Any) -> list[str]:
    return [text for text in (str(item).strip() for item in items) if text]


class Settings(BaseSettings):
    """Runtime configuration read from the environment or a local ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Service
    app_env: str = Field("development", alias="APP_ENV")
    app_url: str = Field(DEFAULT_APP_URL, alias="APP_URL")
    database_url: str = Field(DEFAULT_DATABASE_URL, alias="DATABASE_URL")
    cors_allowed_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=list, alias="CORS_ALLOWED_ORIGINS"
    )
    gzip_min_length: int = Field(1024, alias="GZIP_MIN_LENGTH")

    # Auth tokens
    jwt_secret: str = Field("change-me", alias="JWT_SECRET")
    access_ttl_min: int = Field(60, alias="ACCESS_TTL_MIN")

    # Observability
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(True, alias="LOG_JSON")
    sentry_dsn: str | None = Field(None, alias="SENTRY_DSN")
    sentry_traces_sample_rate: float = Field(0.1, alias="SENTRY_TRACES_SAMPLE_RATE")

    # Photo storage
    s3_endpoint: str | None = Field(None, alias="S3_ENDPOINT")
    s3_bucket: str | None = Field(None, alias="S3_BUCKET")
    s3_access_key: str | None = Field(None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(None, alias="S3_SECRET_KEY")
    s3_region: str | None = Field(None, alias="S3_REGION")
    s3_use_path_style: bool = Field(False, alias="S3_USE_PATH_STYLE")
    s3_public_url: str | None = Field(None, alias="S3_PUBLIC_URL")
    s3_connect_timeout: float = Field(5.0, alias="S3_CONNECT_TIMEOUT")
    s3_read_timeout: float = Field(30.0, alias="S3_READ_TIMEOUT")

    # Photo uploads
    photo_upload_max_files: int = Field(5, alias="PHOTO_UPLOAD_MAX_FILES")
    photo_max_size: int = Field(10 * 1024 * 1024, alias="PHOTO_MAX_SIZE")
    photo_upload_rate_limit: str = Field("60/minute", alias="PHOTO_UPLOAD_RATE_LIMIT")
    blob_io_max_workers: int = Field(8, alias="BLOB_IO_MAX_WORKERS")

    @field_validator("cors_allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> list[str]:
        """Accept a JSON array, a comma separated string or a plain sequence."""
        if value is None:
            return []
        if not isinstance(value, str):
            return _clean_list(value)
        text = value.strip()
        if not text.startswith("["):
            return _clean_list(text.split(","))
        try:
            decoded = json.loads(text)
        except json.JSONDecodeError as exc:
            raise ValueError("CORS_ALLOWED_ORIGINS is neither a JSON array nor CSV") from exc
        if not isinstance(decoded, list):
            raise ValueError("CORS_ALLOWED_ORIGINS must be a JSON array")
        return _clean_list(decoded)

    @field_validator(*_OPTIONAL_STRINGS, mode="before")
    @classmethod
    def _blank_is_unset(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip() or None
        return value

    @field_validator("app_url", "database_url", mode="before")
    @classmethod
    def _blank_is_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None or (isinstance(value, str) and not value.strip()):
            return DEFAULT_APP_URL if info.field_name == "app_url" else DEFAULT_DATABASE_URL
        return value.strip() if isinstance(value, str) else value

    @field_validator("app_url", "s3_public_url")
    @classmethod
    def _drop_trailing_slash(cls, value: str | None) -> str | None:
        return value.rstrip("/") if value else value

    @field_validator("sentry_traces_sample_rate")
    @classmethod
    def _clamp_sample_rate(cls, value: float) -> float:
        return min(max(value, 0.0), 1.0)

    @field_validator("photo_upload_max_files", "blob_io_max_workers")
    @classmethod
    def _at_least_one(cls, value: int) -> int:
        return value if value >= 1 else 1


@lru_cache
def get_settings() -> Settings:
    return Settings()  # type: ignore[call-arg]
