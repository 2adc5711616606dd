"""Pydantic models for vehicle photos.

``OrderedItem`` is the stored record; the remaining models describe the
HTTP payloads exchanged by the photo routes.
"""

from __future__ import annotations

from typing import List, Literal

from pydantic import BaseModel, ConfigDict


class OrderedItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    parent_id: str
    position: int
    storage_key: str
    url: str


class VehiclePhotoResponse(BaseModel):
    id: str
    url: str
    position: int

    @classmethod
    def from_item(cls, item: OrderedItem) -> "VehiclePhotoResponse":
        return cls(id=item.id, url=item.url, position=item.position)


class VehiclePhotoList(BaseModel):
    photos: List[VehiclePhotoResponse]


class PositionReplaceOperation(BaseModel):
    """Single JSON-Patch style operation moving a photo to a zero-based index."""

    op: Literal["replace"]
    path: Literal["/position"]
    value: int


__all__ = [
    "OrderedItem",
    "VehiclePhotoResponse",
    "VehiclePhotoList",
    "PositionReplaceOperation",
]
