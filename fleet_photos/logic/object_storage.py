"""Object storage bridge for photo content.

Binary content lives outside the database, addressed by the deterministic
key ``{vehicle_id}/{photo_id}.{extension}``. Calls are made exactly once;
failures come back as a ``StorageResult`` carrying the HTTP status the store
reported (``None`` when no response arrived, e.g. a connection timeout).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

CONTENT_TYPE_EXTENSIONS: Dict[str, str] = {
    "image/png": "png",
    "image/jpeg": "jpeg",
}


def extension_for(content_type: str) -> Optional[str]:
    return CONTENT_TYPE_EXTENSIONS.get((content_type or "").strip().lower())


def storage_key_for(parent_id: str, item_id: str, content_type: str) -> str:
    ext = extension_for(content_type)
    if ext is None:
        raise ValueError(f"unsupported content type: {content_type!r}")
    return f"{parent_id}/{item_id}.{ext}"


class StorageResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    ok: bool
    status_hint: Optional[int] = None
    detail: str = ""

    @classmethod
    def succeeded(cls, status: Optional[int] = None) -> "StorageResult":
        return cls(ok=True, status_hint=status)

    @classmethod
    def failed(cls, status: Optional[int], detail: str) -> "StorageResult":
        return cls(ok=False, status_hint=status, detail=detail)


class ObjectStorage(Protocol):
    def put(self, key: str, data: bytes, content_type: str) -> StorageResult: ...

    def delete(self, key: str) -> StorageResult: ...

    def url_for(self, key: str) -> str: ...


def _status_of(payload: Dict[str, Any]) -> Optional[int]:
    try:
        return int(payload["ResponseMetadata"]["HTTPStatusCode"])
    except (KeyError, TypeError, ValueError):
        return None


def build_s3_client(
    region: str,
    *,
    endpoint_url: Optional[str] = None,
    access_key_id: Optional[str] = None,
    secret_access_key: Optional[str] = None,
    connect_timeout: float = 5.0,
    read_timeout: float = 30.0,
):  # type: ignore[no-untyped-def]
    """Return a boto3 S3 client with retries disabled and bounded timeouts."""
    config = BotoConfig(
        region_name=region,
        connect_timeout=connect_timeout,
        read_timeout=read_timeout,
        retries={"total_max_attempts": 1},
    )
    return boto3.client(
        "s3",
        endpoint_url=endpoint_url or None,
        aws_access_key_id=access_key_id or None,
        aws_secret_access_key=secret_access_key or None,
        config=config,
    )


class S3ObjectStorage:
    """S3 (or S3-compatible) implementation of the bridge."""

    # S3 answers 204 on delete; some compatible stores answer 200
    DELETE_OK_STATUSES = (200, 204)

    def __init__(self, client, bucket: str, region: str, endpoint_url: Optional[str] = None) -> None:  # type: ignore[no-untyped-def]
        self._client = client
        self._bucket = bucket
        self._region = region
        self._endpoint_url = endpoint_url.rstrip("/") if endpoint_url else None

    def url_for(self, key: str) -> str:
        if self._endpoint_url:
            return f"{self._endpoint_url}/{self._bucket}/{key}"
        return f"https://s3.{self._region}.amazonaws.com/{self._bucket}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> StorageResult:
        try:
            response = self._client.put_object(
                Bucket=self._bucket,
                Key=key,
                Body=data,
                ContentType=content_type,
            )
        except ClientError as exc:
            status = _status_of(exc.response)
            logger.error("object_storage.put.client_error", extra={"key": key, "status": status})
            return StorageResult.failed(status, str(exc))
        except BotoCoreError as exc:
            logger.error("object_storage.put.transport_error", extra={"key": key, "error": str(exc)})
            return StorageResult.failed(None, str(exc))
        status = _status_of(response)
        if status != 200:
            logger.error("object_storage.put.unexpected_status", extra={"key": key, "status": status})
            return StorageResult.failed(status, "unexpected status from object storage")
        return StorageResult.succeeded(status)

    def delete(self, key: str) -> StorageResult:
        try:
            response = self._client.delete_object(Bucket=self._bucket, Key=key)
        except ClientError as exc:
            status = _status_of(exc.response)
            logger.error("object_storage.delete.client_error", extra={"key": key, "status": status})
            return StorageResult.failed(status, str(exc))
        except BotoCoreError as exc:
            logger.error("object_storage.delete.transport_error", extra={"key": key, "error": str(exc)})
            return StorageResult.failed(None, str(exc))
        status = _status_of(response)
        if status not in self.DELETE_OK_STATUSES:
            logger.error("object_storage.delete.unexpected_status", extra={"key": key, "status": status})
            return StorageResult.failed(status, "unexpected status from object storage")
        return StorageResult.succeeded(status)


class InMemoryObjectStorage:
    """Dict-backed bridge for local development and tests.

    Setting ``put_failure_status`` or ``delete_failure_status`` makes every
    subsequent call of that kind fail with the given status.
    """

    def __init__(self, store: Optional[Dict[str, bytes]] = None, base_url: str = "memory://photos") -> None:
        self.blobs: Dict[str, bytes] = store if store is not None else {}
        self.content_types: Dict[str, str] = {}
        self.base_url = base_url.rstrip("/")
        self.put_failure_status: Optional[int] = None
        self.delete_failure_status: Optional[int] = None

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"

    def put(self, key: str, data: bytes, content_type: str) -> StorageResult:
        if self.put_failure_status is not None:
            return StorageResult.failed(self.put_failure_status, "simulated put failure")
        self.blobs[key] = bytes(data)
        self.content_types[key] = content_type
        return StorageResult.succeeded(200)

    def delete(self, key: str) -> StorageResult:
        if self.delete_failure_status is not None:
            return StorageResult.failed(self.delete_failure_status, "simulated delete failure")
        self.blobs.pop(key, None)
        self.content_types.pop(key, None)
        return StorageResult.succeeded(204)


__all__ = [
    "CONTENT_TYPE_EXTENSIONS",
    "extension_for",
    "storage_key_for",
    "StorageResult",
    "ObjectStorage",
    "build_s3_client",
    "S3ObjectStorage",
    "InMemoryObjectStorage",
]
