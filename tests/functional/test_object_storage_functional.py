"""Behavioural tests for the object storage bridge.

S3 responses are stubbed with botocore's Stubber; transport failures use a
small fake client since Stubber only models service responses.
"""

from __future__ import annotations

import pytest
from botocore.exceptions import EndpointConnectionError
from botocore.stub import Stubber

from fleet_photos.logic.object_storage import (
    InMemoryObjectStorage,
    S3ObjectStorage,
    build_s3_client,
    extension_for,
    storage_key_for,
)

BUCKET = "fleet-photos"
REGION = "eu-central-1"
KEY = "11111111-1111-4111-8111-111111111111/22222222-2222-4222-8222-222222222222.png"


def _client():  # type: ignore[no-untyped-def]
    return build_s3_client(REGION, access_key_id="testing", secret_access_key="testing")


class _RecordingClient:
    """Captures call kwargs and returns canned responses or raises."""

    def __init__(self, response=None, error: Exception | None = None) -> None:  # type: ignore[no-untyped-def]
        self.calls: list = []
        self._response = response
        self._error = error

    def _call(self, name: str, kwargs: dict):  # type: ignore[no-untyped-def]
        self.calls.append((name, kwargs))
        if self._error is not None:
            raise self._error
        return self._response

    def put_object(self, **kwargs):  # type: ignore[no-untyped-def]
        return self._call("put_object", kwargs)

    def delete_object(self, **kwargs):  # type: ignore[no-untyped-def]
        return self._call("delete_object", kwargs)


def test_storage_key_uses_parent_item_and_extension() -> None:
    assert storage_key_for("v1", "p1", "image/png") == "v1/p1.png"
    assert storage_key_for("v1", "p1", "image/jpeg") == "v1/p1.jpeg"
    assert extension_for("IMAGE/PNG") == "png"
    assert extension_for("image/gif") is None
    with pytest.raises(ValueError):
        storage_key_for("v1", "p1", "image/gif")


def test_url_for_aws_and_custom_endpoint() -> None:
    aws = S3ObjectStorage(object(), BUCKET, REGION)
    assert aws.url_for(KEY) == f"https://s3.{REGION}.amazonaws.com/{BUCKET}/{KEY}"

    minio = S3ObjectStorage(object(), BUCKET, REGION, endpoint_url="http://localhost:9000/")
    assert minio.url_for(KEY) == f"http://localhost:9000/{BUCKET}/{KEY}"


def test_build_s3_client_disables_retries() -> None:
    client = build_s3_client(REGION, connect_timeout=2.0, read_timeout=7.0)
    assert client.meta.region_name == REGION
    assert client.meta.config.retries["total_max_attempts"] == 1
    assert client.meta.config.connect_timeout == 2.0
    assert client.meta.config.read_timeout == 7.0


def test_put_sends_bucket_key_body_and_content_type() -> None:
    fake = _RecordingClient(response={"ResponseMetadata": {"HTTPStatusCode": 200}})
    storage = S3ObjectStorage(fake, BUCKET, REGION)

    result = storage.put(KEY, b"\x89PNG", "image/png")

    assert result.ok
    assert fake.calls == [
        ("put_object", {"Bucket": BUCKET, "Key": KEY, "Body": b"\x89PNG", "ContentType": "image/png"})
    ]


def test_put_and_delete_succeed_on_expected_statuses() -> None:
    client = _client()
    storage = S3ObjectStorage(client, BUCKET, REGION)
    with Stubber(client) as stub:
        stub.add_response("put_object", {"ETag": '"abc"', "ResponseMetadata": {"HTTPStatusCode": 200}})
        stub.add_response("delete_object", {"ResponseMetadata": {"HTTPStatusCode": 204}})

        put = storage.put(KEY, b"data", "image/png")
        deleted = storage.delete(KEY)

        stub.assert_no_pending_responses()
    assert put.ok and put.status_hint == 200
    assert deleted.ok and deleted.status_hint == 204


def test_service_error_reports_status_hint() -> None:
    client = _client()
    storage = S3ObjectStorage(client, BUCKET, REGION)
    with Stubber(client) as stub:
        stub.add_client_error("put_object", service_error_code="SlowDown", http_status_code=503)
        stub.add_client_error("delete_object", service_error_code="AccessDenied", http_status_code=403)

        put = storage.put(KEY, b"data", "image/png")
        deleted = storage.delete(KEY)

    assert not put.ok and put.status_hint == 503
    assert not deleted.ok and deleted.status_hint == 403


def test_unexpected_success_status_is_a_failure() -> None:
    storage = S3ObjectStorage(_RecordingClient(response={"ResponseMetadata": {"HTTPStatusCode": 202}}), BUCKET, REGION)
    assert storage.put(KEY, b"data", "image/png").status_hint == 202
    assert not storage.put(KEY, b"data", "image/png").ok
    assert not storage.delete(KEY).ok


def test_transport_failure_has_no_status_hint() -> None:
    fake = _RecordingClient(error=EndpointConnectionError(endpoint_url="https://s3.example.invalid"))
    storage = S3ObjectStorage(fake, BUCKET, REGION)

    put = storage.put(KEY, b"data", "image/png")
    deleted = storage.delete(KEY)

    assert not put.ok and put.status_hint is None
    assert not deleted.ok and deleted.status_hint is None
    # Exactly one attempt per call
    assert [name for name, _ in fake.calls] == ["put_object", "delete_object"]


def test_in_memory_storage_failure_switches() -> None:
    storage = InMemoryObjectStorage()
    assert storage.put(KEY, b"x", "image/png").ok
    assert storage.blobs[KEY] == b"x"
    assert storage.content_types[KEY] == "image/png"

    storage.delete_failure_status = 500
    assert storage.delete(KEY).status_hint == 500
    assert KEY in storage.blobs

    storage.put_failure_status = 503
    result = storage.put("other", b"y", "image/png")
    assert not result.ok and result.status_hint == 503
    assert "other" not in storage.blobs
