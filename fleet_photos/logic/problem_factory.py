"""Centralised construction of problem+json payloads.

Turns saga errors and request-shape failures into RFC 7807 dicts using the
codes in ``fleet_photos.http.error_mapping`` so route modules never embed
status literals.
"""

from __future__ import annotations

from typing import Dict
import logging

from fleet_photos.http.error_mapping import CREATE_STATUS_OVERRIDES, PHOTO_ERROR_MAP, UNKNOWN_ERROR
from fleet_photos.models.outcomes import PhotoError


logger = logging.getLogger(__name__)


def problem_for(error: PhotoError, *, operation: str = "") -> Dict[str, object]:
    """Return the problem body for a saga error raised by ``operation``."""
    entry = None
    if operation == "create":
        entry = CREATE_STATUS_OVERRIDES.get(error.kind)
    if entry is None:
        entry = PHOTO_ERROR_MAP.get(error.kind, UNKNOWN_ERROR)
    problem: Dict[str, object] = {
        "title": entry["title"],
        "status": entry["status"],
        "detail": error.detail or entry["title"],
        "code": entry["code"],
    }
    if error.status_hint is not None:
        problem["storage_status"] = int(error.status_hint)
    logger.info("error_handler.handle", extra={"code": problem.get("code"), "operation": operation})
    return problem


def problem_request_not_multipart() -> Dict[str, object]:
    """Return a 415 problem indicating the upload must be multipart/form-data."""
    return {
        "title": "Unsupported Media Type",
        "status": 415,
        "detail": "Request content type is not multipart",
        "code": "PRE_REQUEST_NOT_MULTIPART",
    }


def problem_photo_missing() -> Dict[str, object]:
    """Return a 400 problem indicating no file was attached under 'photo'."""
    return {
        "title": "Bad Request",
        "status": 400,
        "detail": "No vehicle photo uploaded",
        "code": "PRE_PHOTO_MISSING",
    }


def problem_photo_field_invalid() -> Dict[str, object]:
    """Return a 422 problem when a file was attached under a field other than 'photo'."""
    return {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Vehicle photo should be attached to the 'photo' field",
        "code": "PRE_PHOTO_FIELD_INVALID",
    }


def problem_patch_shape_invalid() -> Dict[str, object]:
    """Return a 422 problem when a move request does not carry exactly one operation."""
    return {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Exactly one replace operation on /position is required",
        "code": "PRE_PATCH_SHAPE_INVALID",
    }


def problem_unauthenticated() -> Dict[str, object]:
    """Return a 401 problem for requests without an authenticated rental session."""
    return {
        "title": "Unauthorized",
        "status": 401,
        "detail": "Authentication required",
        "code": "PRE_SESSION_MISSING",
    }


__all__ = [
    "problem_for",
    "problem_request_not_multipart",
    "problem_photo_missing",
    "problem_photo_field_invalid",
    "problem_patch_shape_invalid",
    "problem_unauthenticated",
]
