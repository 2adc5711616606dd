"""Create/move/delete coordination for vehicle photos.

A photo spans two resources that share no transaction: its row in the order
store and its content in object storage. Each operation here runs its steps
in a fixed order and compensates where a later step fails:

- create: reserve the row (final key and URL, appended position), then put
  the content; a failed put removes the row again.
- delete: delete the content first, then the row; a failed content delete
  leaves the row untouched.
- move: recompute the position from the neighbours under the per-vehicle
  scope and update only the moved row.

Every operation returns a ``PhotoOutcome``/``PhotoListOutcome``. Validation
and authorisation failures are detected before any mutation.
"""

from __future__ import annotations

import logging
import uuid
from typing import Callable, Dict, List, Optional, Tuple

from fleet_photos.logic.object_storage import ObjectStorage, extension_for, storage_key_for
from fleet_photos.logic.parent_locks import ParentLocks, ParentLockTimeout
from fleet_photos.logic.position_allocator import (
    DEFAULT_GAP,
    DEFAULT_OFFSET,
    PositionExhausted,
    append_position,
    canonical_positions,
    move_position,
)
from fleet_photos.logic.repository_vehicle_photos import DuplicatePosition, ItemNotFound, OrderStore
from fleet_photos.logic.repository_vehicles import VehicleDirectory, caller_owns_vehicle
from fleet_photos.models.outcomes import PhotoError, PhotoErrorKind, PhotoListOutcome, PhotoOutcome
from fleet_photos.models.vehicle_photo import OrderedItem

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 2 * 1024 * 1024


def _new_photo_id() -> str:
    return str(uuid.uuid4())


class PhotoSaga:
    def __init__(
        self,
        order_store: OrderStore,
        storage: ObjectStorage,
        vehicles: VehicleDirectory,
        locks: Optional[ParentLocks] = None,
        *,
        offset: int = DEFAULT_OFFSET,
        gap: int = DEFAULT_GAP,
        max_upload_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
        id_factory: Callable[[], str] = _new_photo_id,
    ) -> None:
        if gap < 2:
            raise ValueError("position gap must be at least 2")
        self._store = order_store
        self._storage = storage
        self._vehicles = vehicles
        self._locks = locks or ParentLocks()
        self._offset = int(offset)
        self._gap = int(gap)
        self._max_upload_bytes = int(max_upload_bytes)
        self._new_id = id_factory

    # ------------------------------------------------------------------
    # Resolution and authorisation (no side effects)
    # ------------------------------------------------------------------

    def _authorize_parent(self, parent_id: str, caller_rental_id: Optional[str]) -> Optional[PhotoError]:
        vehicle = self._vehicles.resolve_vehicle(parent_id)
        if vehicle is None:
            return PhotoError(kind=PhotoErrorKind.INVALID_PARENT, detail="Invalid vehicle id")
        if not caller_owns_vehicle(vehicle, caller_rental_id):
            return PhotoError(kind=PhotoErrorKind.FORBIDDEN, detail="Not authorized to maintain this vehicle's photos")
        return None

    def _resolve_owned_item(
        self, parent_id: str, item_id: str, caller_rental_id: Optional[str]
    ) -> Tuple[Optional[OrderedItem], Optional[PhotoError]]:
        item = self._store.get(item_id)
        if item is None:
            return None, PhotoError(kind=PhotoErrorKind.INVALID_ITEM, detail="Invalid photo id")
        if item.parent_id != parent_id:
            return None, PhotoError(kind=PhotoErrorKind.INVALID_PARENT, detail="Invalid vehicle id")
        error = self._authorize_parent(parent_id, caller_rental_id)
        if error is not None:
            return None, error
        return item, None

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def list_photos(self, parent_id: str, caller_rental_id: Optional[str]) -> PhotoListOutcome:
        error = self._authorize_parent(parent_id, caller_rental_id)
        if error is not None:
            return PhotoListOutcome(error=error)
        return PhotoListOutcome(items=self._store.list_ordered(parent_id))

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_photo(
        self,
        parent_id: str,
        caller_rental_id: Optional[str],
        data: bytes,
        content_type: str,
    ) -> PhotoOutcome:
        if extension_for(content_type) is None:
            return PhotoOutcome.failure(PhotoErrorKind.UNSUPPORTED_MEDIA_TYPE, "Unsupported vehicle photo content type")
        error = self._authorize_parent(parent_id, caller_rental_id)
        if error is not None:
            return PhotoOutcome(error=error)
        if len(data) > self._max_upload_bytes:
            return PhotoOutcome.failure(
                PhotoErrorKind.PAYLOAD_TOO_LARGE,
                f"Vehicle photo size should not exceed {self._max_upload_bytes} bytes",
            )

        item_id = self._new_id()
        key = storage_key_for(parent_id, item_id, content_type)
        url = self._storage.url_for(key)
        try:
            with self._locks.hold(parent_id):
                positions = [i.position for i in self._store.list_ordered(parent_id)]
                position = append_position(positions, offset=self._offset, gap=self._gap)
                item = self._store.insert(parent_id, item_id, position, key, url)
        except (ParentLockTimeout, DuplicatePosition) as exc:
            logger.warning("photo.create.position_conflict", extra={"parent_id": parent_id, "error": str(exc)})
            return PhotoOutcome.failure(PhotoErrorKind.POSITION_CONFLICT, str(exc))
        logger.info(
            "photo.create.reserved",
            extra={"parent_id": parent_id, "photo_id": item_id, "position": position},
        )

        try:
            result = self._storage.put(key, data, content_type)
        except Exception:
            self._compensate_create(item)
            raise
        if not result.ok:
            self._compensate_create(item)
            return PhotoOutcome.failure(
                PhotoErrorKind.UPLOAD_FAILED,
                "Error while uploading photo",
                status_hint=result.status_hint,
            )
        logger.info("photo.create.confirmed", extra={"parent_id": parent_id, "photo_id": item_id})
        return PhotoOutcome.success(item)

    def _compensate_create(self, item: OrderedItem) -> None:
        try:
            self._store.remove(item.id)
        except ItemNotFound:
            logger.warning("photo.create.compensation_row_missing", extra={"photo_id": item.id})
            return
        except Exception:
            # The upload failure is still reported; the orphan row needs manual cleanup
            logger.error("photo.create.compensation_failed", extra={"photo_id": item.id}, exc_info=True)
            return
        logger.info("photo.create.compensated", extra={"parent_id": item.parent_id, "photo_id": item.id})

    # ------------------------------------------------------------------
    # Move
    # ------------------------------------------------------------------

    def move_photo(
        self,
        parent_id: str,
        item_id: str,
        caller_rental_id: Optional[str],
        target_index: int,
    ) -> PhotoOutcome:
        _, error = self._resolve_owned_item(parent_id, item_id, caller_rental_id)
        if error is not None:
            return PhotoOutcome(error=error)
        try:
            with self._locks.hold(parent_id):
                return self._move_locked(parent_id, item_id, int(target_index))
        except ParentLockTimeout as exc:
            return PhotoOutcome.failure(PhotoErrorKind.POSITION_CONFLICT, str(exc))
        except ItemNotFound as exc:
            if self._store.get(item_id) is None:
                return PhotoOutcome.failure(PhotoErrorKind.INVALID_ITEM, "Invalid photo id")
            logger.warning("photo.move.collection_changed", extra={"parent_id": parent_id, "photo_id": item_id})
            return PhotoOutcome.failure(PhotoErrorKind.POSITION_CONFLICT, f"Photo collection changed during move: {exc}")
        except DuplicatePosition as exc:
            logger.error("photo.move.duplicate_position", extra={"parent_id": parent_id, "photo_id": item_id})
            return PhotoOutcome.failure(PhotoErrorKind.POSITION_CONFLICT, str(exc))

    def _move_locked(self, parent_id: str, item_id: str, target_index: int) -> PhotoOutcome:
        collection = self._store.list_ordered(parent_id)
        ids = [i.id for i in collection]
        if item_id not in ids:
            return PhotoOutcome.failure(PhotoErrorKind.INVALID_ITEM, "Invalid photo id")
        current_index = ids.index(item_id)
        current = collection[current_index]
        others = [i for i in collection if i.id != item_id]
        if target_index < 0 or target_index > len(others):
            return PhotoOutcome.failure(
                PhotoErrorKind.VALIDATION,
                f"Photo position must be between 0 and {len(others)}",
            )
        if target_index == current_index:
            return PhotoOutcome.success(current)

        try:
            new_position = move_position([o.position for o in others], target_index, gap=self._gap)
        except PositionExhausted as exc:
            collection = self._rebalance(parent_id, item_id, collection, exc)
            current = next(i for i in collection if i.id == item_id)
            others = [i for i in collection if i.id != item_id]
            if target_index > len(others):
                return PhotoOutcome.failure(
                    PhotoErrorKind.VALIDATION,
                    f"Photo position must be between 0 and {len(others)}",
                )
            try:
                new_position = move_position([o.position for o in others], target_index, gap=self._gap)
            except PositionExhausted as again:
                return PhotoOutcome.failure(PhotoErrorKind.POSITION_CONFLICT, str(again))

        if new_position == current.position:
            return PhotoOutcome.success(current)
        updated = self._store.update_position(item_id, new_position)
        logger.info(
            "photo.move.updated",
            extra={
                "parent_id": parent_id,
                "photo_id": item_id,
                "target_index": target_index,
                "from_position": current.position,
                "to_position": new_position,
            },
        )
        return PhotoOutcome.success(updated)

    def _rebalance(
        self, parent_id: str, item_id: str, collection: List[OrderedItem], cause: PositionExhausted
    ) -> List[OrderedItem]:
        """Respace the whole collection canonically, keeping display order.

        Deletes do not take the vehicle scope, so the snapshot can lose a
        member before the renumber lands. The collection is then read again
        and renumbered once more, as long as the moved photo is still there.
        """
        try:
            renumbered = self._store.renumber(parent_id, self._canonical_mapping(collection))
        except (ItemNotFound, ValueError):
            collection = self._store.list_ordered(parent_id)
            if all(i.id != item_id for i in collection):
                raise ItemNotFound(item_id)
            logger.info("photo.move.rebalance_retried", extra={"parent_id": parent_id, "count": len(collection)})
            renumbered = self._store.renumber(parent_id, self._canonical_mapping(collection))
        logger.info(
            "photo.move.rebalanced",
            extra={"parent_id": parent_id, "count": len(collection), "lo": cause.lo, "hi": cause.hi},
        )
        return renumbered

    def _canonical_mapping(self, collection: List[OrderedItem]) -> Dict[str, int]:
        targets = canonical_positions(len(collection), offset=self._offset, gap=self._gap)
        return {item.id: position for item, position in zip(collection, targets)}

    # ------------------------------------------------------------------
    # Delete
    # ------------------------------------------------------------------

    def delete_photo(self, parent_id: str, item_id: str, caller_rental_id: Optional[str]) -> PhotoOutcome:
        item, error = self._resolve_owned_item(parent_id, item_id, caller_rental_id)
        if error is not None or item is None:
            return PhotoOutcome(error=error)

        result = self._storage.delete(item.storage_key)
        if not result.ok:
            logger.error(
                "photo.delete.blob_failed",
                extra={"parent_id": parent_id, "photo_id": item_id, "status": result.status_hint},
            )
            return PhotoOutcome.failure(
                PhotoErrorKind.DELETE_FAILED,
                "Error while deleting photo",
                status_hint=result.status_hint,
            )
        try:
            self._store.remove(item_id)
        except ItemNotFound:
            logger.info("photo.delete.row_already_removed", extra={"photo_id": item_id})
        logger.info("photo.delete.completed", extra={"parent_id": parent_id, "photo_id": item_id})
        return PhotoOutcome.success(item)


__all__ = ["PhotoSaga", "DEFAULT_MAX_UPLOAD_BYTES"]
