"""Tagged results returned by the photo saga.

Business failures are values, not exceptions: each saga operation returns an
outcome carrying either the affected item(s) or a ``PhotoError`` whose
``kind`` is one of the ``PhotoErrorKind`` constants.
"""

from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict

from fleet_photos.models.vehicle_photo import OrderedItem


class PhotoErrorKind:
    VALIDATION = "validation"
    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    INVALID_PARENT = "invalid_parent"
    INVALID_ITEM = "invalid_item"
    FORBIDDEN = "forbidden"
    UPLOAD_FAILED = "upload_failed"
    DELETE_FAILED = "delete_failed"
    POSITION_CONFLICT = "position_conflict"


class PhotoError(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: str
    detail: str = ""
    # HTTP status reported by the object store, when one was received
    status_hint: Optional[int] = None


class PhotoOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    item: Optional[OrderedItem] = None
    error: Optional[PhotoError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, item: Optional[OrderedItem] = None) -> "PhotoOutcome":
        return cls(item=item)

    @classmethod
    def failure(cls, kind: str, detail: str = "", status_hint: Optional[int] = None) -> "PhotoOutcome":
        return cls(error=PhotoError(kind=kind, detail=detail, status_hint=status_hint))


class PhotoListOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    items: List[OrderedItem] = []
    error: Optional[PhotoError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "PhotoErrorKind",
    "PhotoError",
    "PhotoOutcome",
    "PhotoListOutcome",
]
