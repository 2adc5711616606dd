"""Vehicle photo endpoints.

Implements:
- POST   /vehicles/{vehicle_id}/photos             upload (multipart field ``photo``)
- GET    /vehicles/{vehicle_id}/photos             ordered list
- PATCH  /vehicles/{vehicle_id}/photos/{photo_id}  move to a zero-based index
- DELETE /vehicles/{vehicle_id}/photos/{photo_id}  delete content and record

Handlers only translate HTTP into saga calls and saga outcomes into
responses; ordering and consistency live in ``fleet_photos.logic.photo_saga``.
"""

from __future__ import annotations

import logging
from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, File, HTTPException, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from fleet_photos.http.problem import problem_response
from fleet_photos.logic.problem_factory import (
    problem_for,
    problem_patch_shape_invalid,
    problem_photo_field_invalid,
    problem_photo_missing,
    problem_request_not_multipart,
    problem_unauthenticated,
)
from fleet_photos.models.vehicle_photo import PositionReplaceOperation, VehiclePhotoList, VehiclePhotoResponse
from fleet_photos.services import PhotoServices

router = APIRouter()
logger = logging.getLogger(__name__)


def get_services(request: Request) -> PhotoServices:
    return request.app.state.services


def current_rental_id(request: Request) -> str:
    """Rental id of the authenticated session, set upstream on ``request.state``."""
    rental_id = getattr(request.state, "rental_id", None)
    if not rental_id:
        raise HTTPException(status_code=401, detail=problem_unauthenticated())
    return str(rental_id)


@router.post(
    "/vehicles/{vehicle_id}/photos",
    summary="Upload a vehicle photo",
    status_code=201,
    response_model=VehiclePhotoResponse,
)
async def upload_vehicle_photo(
    vehicle_id: UUID,
    request: Request,
    photo: Optional[UploadFile] = File(None),
    services: PhotoServices = Depends(get_services),
    rental_id: str = Depends(current_rental_id),
):
    content_type = (request.headers.get("content-type") or "").lower()
    if not content_type.startswith("multipart/"):
        return problem_response(problem_request_not_multipart())
    if photo is None:
        # Form is already parsed and cached on the request
        form = await request.form()
        if any(not isinstance(value, str) for _, value in form.multi_items()):
            return problem_response(problem_photo_field_invalid())
        return problem_response(problem_photo_missing())

    # One byte over the limit is enough to reject without buffering the rest
    limit = services.config.photos.max_upload_bytes
    data = await photo.read(limit + 1)
    outcome = await run_in_threadpool(
        services.saga.create_photo, str(vehicle_id), rental_id, data, photo.content_type or ""
    )
    if not outcome.ok or outcome.item is None:
        return problem_response(problem_for(outcome.error, operation="create"))  # type: ignore[arg-type]
    return VehiclePhotoResponse.from_item(outcome.item)


@router.get(
    "/vehicles/{vehicle_id}/photos",
    summary="List vehicle photos in display order",
    response_model=VehiclePhotoList,
)
def list_vehicle_photos(
    vehicle_id: UUID,
    services: PhotoServices = Depends(get_services),
    rental_id: str = Depends(current_rental_id),
):
    outcome = services.saga.list_photos(str(vehicle_id), rental_id)
    if not outcome.ok:
        return problem_response(problem_for(outcome.error, operation="list"))  # type: ignore[arg-type]
    return VehiclePhotoList(photos=[VehiclePhotoResponse.from_item(i) for i in outcome.items])


@router.patch(
    "/vehicles/{vehicle_id}/photos/{photo_id}",
    summary="Move a vehicle photo to a zero-based index",
    response_model=VehiclePhotoResponse,
)
def move_vehicle_photo(
    vehicle_id: UUID,
    photo_id: UUID,
    operations: List[PositionReplaceOperation] = Body(...),
    services: PhotoServices = Depends(get_services),
    rental_id: str = Depends(current_rental_id),
):
    if len(operations) != 1:
        return problem_response(problem_patch_shape_invalid())
    outcome = services.saga.move_photo(str(vehicle_id), str(photo_id), rental_id, operations[0].value)
    if not outcome.ok or outcome.item is None:
        return problem_response(problem_for(outcome.error, operation="move"))  # type: ignore[arg-type]
    return VehiclePhotoResponse.from_item(outcome.item)


@router.delete(
    "/vehicles/{vehicle_id}/photos/{photo_id}",
    summary="Delete a vehicle photo",
    status_code=204,
)
def delete_vehicle_photo(
    vehicle_id: UUID,
    photo_id: UUID,
    services: PhotoServices = Depends(get_services),
    rental_id: str = Depends(current_rental_id),
) -> Response:
    outcome = services.saga.delete_photo(str(vehicle_id), str(photo_id), rental_id)
    if not outcome.ok:
        return problem_response(problem_for(outcome.error, operation="delete"))  # type: ignore[arg-type]
    return Response(status_code=204)


__all__ = ["router", "get_services", "current_rental_id"]
