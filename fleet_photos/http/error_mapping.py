"""Central error mapping for photo operations.

Single source of truth for mapping saga error kinds to problem+json codes,
titles and HTTP statuses. Route modules must import from here instead of
hardcoding strings or numbers.
"""

from __future__ import annotations

from fleet_photos.models.outcomes import PhotoErrorKind

PHOTO_ERROR_MAP = {
    PhotoErrorKind.VALIDATION: {"code": "PHOTO_POSITION_OUT_OF_RANGE", "status": 400, "title": "Bad Request"},
    PhotoErrorKind.UNSUPPORTED_MEDIA_TYPE: {"code": "PHOTO_UNSUPPORTED_MEDIA_TYPE", "status": 415, "title": "Unsupported Media Type"},
    PhotoErrorKind.PAYLOAD_TOO_LARGE: {"code": "PHOTO_PAYLOAD_TOO_LARGE", "status": 413, "title": "Payload Too Large"},
    PhotoErrorKind.INVALID_PARENT: {"code": "PHOTO_VEHICLE_NOT_FOUND", "status": 404, "title": "Not Found"},
    PhotoErrorKind.INVALID_ITEM: {"code": "PHOTO_NOT_FOUND", "status": 404, "title": "Not Found"},
    PhotoErrorKind.FORBIDDEN: {"code": "PHOTO_FORBIDDEN", "status": 403, "title": "Forbidden"},
    PhotoErrorKind.UPLOAD_FAILED: {"code": "PHOTO_UPLOAD_FAILED", "status": 500, "title": "Internal Server Error"},
    PhotoErrorKind.DELETE_FAILED: {"code": "PHOTO_DELETE_FAILED", "status": 500, "title": "Internal Server Error"},
    PhotoErrorKind.POSITION_CONFLICT: {"code": "PHOTO_POSITION_CONFLICT", "status": 409, "title": "Conflict"},
}

# Creating a photo under a vehicle that does not exist is a conflict with the
# caller's assumption rather than a missing route target.
CREATE_STATUS_OVERRIDES = {
    PhotoErrorKind.INVALID_PARENT: {"code": "PHOTO_VEHICLE_INVALID", "status": 409, "title": "Conflict"},
}

UNKNOWN_ERROR = {"code": "PHOTO_INTERNAL_ERROR", "status": 500, "title": "Internal Server Error"}

__all__ = ["PHOTO_ERROR_MAP", "CREATE_STATUS_OVERRIDES", "UNKNOWN_ERROR"]
