"""Configuration loading for the vehicle photo service.

This module loads application configuration with the following rules:
- Primary source: `fleet_config.json` at the project root.
- Overrides: text files under `config/`, then environment variables.
- Validation: Pydantic models enforce required fields and value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator, model_validator


CONFIG_DIR = Path("config")
ROOT_FLEET_CONFIG = Path("fleet_config.json")
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: log and ignore unreadable override
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class StorageConfig(BaseModel):
    backend: str = Field(default="s3")  # one of: s3, memory
    bucket: str = Field(default="")
    region: str = Field(default="eu-central-1")
    endpoint_url: Optional[str] = None
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = None
    connect_timeout_seconds: float = Field(default=5.0, gt=0)
    read_timeout_seconds: float = Field(default=30.0, gt=0)

    @field_validator("backend")
    @classmethod
    def backend_must_be_allowed(cls, v: str) -> str:
        allowed = {"s3", "memory"}
        if v not in allowed:
            raise ValueError(f"storage.backend must be one of {sorted(allowed)}")
        return v

    @model_validator(mode="after")
    def s3_requires_bucket(self) -> "StorageConfig":
        if self.backend == "s3" and not self.bucket.strip():
            raise ValueError("storage.bucket is required when storage.backend is s3")
        return self


class PhotosConfig(BaseModel):
    position_offset: int = Field(default=128)
    position_gap: int = Field(default=128, ge=2)
    max_upload_bytes: int = Field(default=2 * 1024 * 1024, gt=0)
    lock_timeout_seconds: float = Field(default=10.0, gt=0)


class AppConfig(BaseModel):
    database: DatabaseConfig
    storage: StorageConfig
    photos: PhotosConfig
    auto_apply_migrations: bool = True


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def _truthy(value: Optional[str]) -> bool:
    return str(value).strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) fleet_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_FLEET_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    def _pick(env_key: str, file_key: str, base_key: str, default: Optional[str] = None) -> Optional[str]:
        return _env(env_key) or _read_config_file(file_key) or _base(base_key, default)

    # Database
    dsn = _pick("DATABASE_URL", "database.url", "database.dsn", "sqlite+pysqlite:///:memory:")

    # Object storage
    backend = (_pick("STORAGE_BACKEND", "storage.backend", "storage.backend", "s3") or "s3").strip()
    bucket = _pick("S3_BUCKET_NAME", "storage.bucket", "storage.bucket", "") or ""
    region = _pick("S3_REGION", "storage.region", "storage.region", "eu-central-1") or "eu-central-1"
    endpoint_url = _pick("S3_ENDPOINT_URL", "storage.endpoint_url", "storage.endpoint_url")
    access_key_id = _pick("S3_ACCESS_KEY_ID", "storage.access_key_id", "storage.access_key_id")
    secret_access_key = _pick("S3_SECRET_ACCESS_KEY", "storage.secret_access_key", "storage.secret_access_key")
    connect_timeout_text = _pick("S3_CONNECT_TIMEOUT_SECONDS", "storage.connect_timeout", "storage.connect_timeout_seconds", "5")
    read_timeout_text = _pick("S3_READ_TIMEOUT_SECONDS", "storage.read_timeout", "storage.read_timeout_seconds", "30")

    # Photo ordering
    offset_text = _pick("PHOTO_POSITION_OFFSET", "photos.position_offset", "photos.position_offset", "128")
    gap_text = _pick("PHOTO_POSITION_GAP", "photos.position_gap", "photos.position_gap", "128")
    max_bytes_text = _pick("PHOTO_MAX_UPLOAD_BYTES", "photos.max_upload_bytes", "photos.max_upload_bytes", str(2 * 1024 * 1024))
    lock_timeout_text = _pick("PHOTO_LOCK_TIMEOUT_SECONDS", "photos.lock_timeout", "photos.lock_timeout_seconds", "10")

    auto_migrate_text = _pick("AUTO_APPLY_MIGRATIONS", "database.auto_apply_migrations", "database.auto_apply_migrations", "1")

    try:
        cfg = AppConfig(
            database=DatabaseConfig(dsn=dsn),
            storage=StorageConfig(
                backend=backend,
                bucket=bucket,
                region=region,
                endpoint_url=endpoint_url,
                access_key_id=access_key_id,
                secret_access_key=secret_access_key,
                connect_timeout_seconds=float(str(connect_timeout_text).strip()),
                read_timeout_seconds=float(str(read_timeout_text).strip()),
            ),
            photos=PhotosConfig(
                position_offset=int(str(offset_text).strip()),
                position_gap=int(str(gap_text).strip()),
                max_upload_bytes=int(str(max_bytes_text).strip()),
                lock_timeout_seconds=float(str(lock_timeout_text).strip()),
            ),
            auto_apply_migrations=_truthy(auto_migrate_text),
        )
        return cfg
    except PydanticValidationError as e:
        # Surface actionable message
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "StorageConfig",
    "PhotosConfig",
    "load_config",
]
