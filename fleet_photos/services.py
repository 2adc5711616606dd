"""Service context for the vehicle photo API.

Everything a request needs (config, engine, stores, object storage, locks,
saga) is built once by ``build_services`` and attached to ``app.state``.
Nothing here is a module-level singleton.
"""

from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.engine import Engine

from fleet_photos.config import AppConfig
from fleet_photos.db.base import create_db_engine
from fleet_photos.db.migrations_runner import apply_migrations
from fleet_photos.logic.object_storage import (
    InMemoryObjectStorage,
    ObjectStorage,
    S3ObjectStorage,
    build_s3_client,
)
from fleet_photos.logic.parent_locks import ParentLocks
from fleet_photos.logic.photo_saga import PhotoSaga
from fleet_photos.logic.repository_vehicle_photos import OrderStore, SqlOrderStore
from fleet_photos.logic.repository_vehicles import SqlVehicleDirectory, VehicleDirectory

logger = logging.getLogger(__name__)


class PhotoServices:
    def __init__(
        self,
        config: AppConfig,
        order_store: OrderStore,
        storage: ObjectStorage,
        vehicles: VehicleDirectory,
        locks: ParentLocks,
        saga: PhotoSaga,
        engine: Optional[Engine] = None,
    ) -> None:
        self.config = config
        self.order_store = order_store
        self.storage = storage
        self.vehicles = vehicles
        self.locks = locks
        self.saga = saga
        self.engine = engine

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()


def build_object_storage(config: AppConfig) -> ObjectStorage:
    storage_cfg = config.storage
    if storage_cfg.backend == "memory":
        logger.warning("object_storage.memory_backend_in_use")
        return InMemoryObjectStorage()
    client = build_s3_client(
        storage_cfg.region,
        endpoint_url=storage_cfg.endpoint_url,
        access_key_id=storage_cfg.access_key_id,
        secret_access_key=storage_cfg.secret_access_key,
        connect_timeout=storage_cfg.connect_timeout_seconds,
        read_timeout=storage_cfg.read_timeout_seconds,
    )
    return S3ObjectStorage(client, storage_cfg.bucket, storage_cfg.region, endpoint_url=storage_cfg.endpoint_url)


def assemble_services(
    config: AppConfig,
    order_store: OrderStore,
    storage: ObjectStorage,
    vehicles: VehicleDirectory,
    engine: Optional[Engine] = None,
) -> PhotoServices:
    """Wire a saga around explicitly supplied collaborators."""
    locks = ParentLocks(timeout=config.photos.lock_timeout_seconds)
    saga = PhotoSaga(
        order_store,
        storage,
        vehicles,
        locks,
        offset=config.photos.position_offset,
        gap=config.photos.position_gap,
        max_upload_bytes=config.photos.max_upload_bytes,
    )
    return PhotoServices(
        config=config,
        engine=engine,
        order_store=order_store,
        storage=storage,
        vehicles=vehicles,
        locks=locks,
        saga=saga,
    )


def build_services(config: AppConfig) -> PhotoServices:
    """Build the production service graph from configuration."""
    engine = create_db_engine(config.database.dsn)
    if config.auto_apply_migrations:
        apply_migrations(engine)
    return assemble_services(
        config,
        order_store=SqlOrderStore(engine),
        storage=build_object_storage(config),
        vehicles=SqlVehicleDirectory(engine),
        engine=engine,
    )


__all__ = ["PhotoServices", "assemble_services", "build_services", "build_object_storage"]
