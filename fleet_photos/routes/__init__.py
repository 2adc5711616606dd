"""APIRouter registration for the vehicle photo service."""

from __future__ import annotations

from fastapi import APIRouter

from fleet_photos.routes.vehicle_photos import router as vehicle_photos_router

api_router = APIRouter()
api_router.include_router(vehicle_photos_router, tags=["VehiclePhotos"])

__all__ = ["api_router"]
