from __future__ import annotations

"""Functional test bootstrap for the vehicle photo service.

Each test that needs SQL gets its own file-backed SQLite database under
pytest's tmp_path with the packaged migrations applied, so tests never share
rows. In-memory stores cover the saga and allocator tests. Object storage is
always the in-memory bridge unless a test stubs boto3 directly.
"""

import os
import uuid

import pytest
from fastapi import Request
from fastapi.testclient import TestClient
from sqlalchemy import text as sql_text

# Keep app construction free of network and migration side effects
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ["STORAGE_BACKEND"] = "memory"

from fleet_photos.config import AppConfig, DatabaseConfig, PhotosConfig, StorageConfig  # noqa: E402
from fleet_photos.db.base import create_db_engine  # noqa: E402
from fleet_photos.db.migrations_runner import apply_migrations  # noqa: E402
from fleet_photos.logic.object_storage import InMemoryObjectStorage  # noqa: E402
from fleet_photos.logic.parent_locks import ParentLocks  # noqa: E402
from fleet_photos.logic.photo_saga import PhotoSaga  # noqa: E402
from fleet_photos.logic.repository_vehicle_photos import InMemoryOrderStore, SqlOrderStore  # noqa: E402
from fleet_photos.logic.repository_vehicles import InMemoryVehicleDirectory, SqlVehicleDirectory  # noqa: E402
from fleet_photos.main import create_app  # noqa: E402
from fleet_photos.services import assemble_services  # noqa: E402

RENTAL_ID = "6f1c2a52-0b8e-4c33-9a55-3c7c1f6a2d01"
OTHER_RENTAL_ID = "0d7f4e1b-5a3c-4f0e-8d2b-9e6a1c4b7f02"
RENTAL_HEADER = "X-Test-Rental-Id"


def new_id() -> str:
    return str(uuid.uuid4())


def make_config(**photos) -> AppConfig:
    return AppConfig(
        database=DatabaseConfig(dsn="sqlite+pysqlite:///:memory:"),
        storage=StorageConfig(backend="memory"),
        photos=PhotosConfig(**photos),
        auto_apply_migrations=False,
    )


def seed_vehicle(engine, vehicle_id: str, rental_id: str) -> None:  # type: ignore[no-untyped-def]
    with engine.begin() as conn:
        conn.execute(
            sql_text("INSERT INTO vehicle (id, rental_id) VALUES (:id, :rid)"),
            {"id": vehicle_id, "rid": rental_id},
        )


@pytest.fixture
def sql_engine(tmp_path):
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'photos.db'}")
    apply_migrations(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def object_storage() -> InMemoryObjectStorage:
    return InMemoryObjectStorage(base_url="https://photos.test/bucket")


@pytest.fixture
def vehicles() -> InMemoryVehicleDirectory:
    return InMemoryVehicleDirectory()


@pytest.fixture(params=["memory", "sql"])
def order_store(request, tmp_path):
    """Order store under test: dict-backed and SQLite-backed variants."""
    if request.param == "memory":
        yield InMemoryOrderStore()
        return
    engine = create_db_engine(f"sqlite+pysqlite:///{tmp_path / 'store.db'}")
    apply_migrations(engine)
    yield SqlOrderStore(engine)
    engine.dispose()


@pytest.fixture
def saga(order_store, object_storage, vehicles) -> PhotoSaga:
    return PhotoSaga(order_store, object_storage, vehicles, ParentLocks(timeout=5))


class ApiHarness:
    """Test client plus direct handles on the stores behind it."""

    def __init__(self, client: TestClient, engine, storage: InMemoryObjectStorage, order_store: SqlOrderStore) -> None:  # type: ignore[no-untyped-def]
        self.client = client
        self.engine = engine
        self.storage = storage
        self.order_store = order_store

    def add_vehicle(self, rental_id: str = RENTAL_ID) -> str:
        vehicle_id = new_id()
        seed_vehicle(self.engine, vehicle_id, rental_id)
        return vehicle_id

    def headers(self, rental_id: str = RENTAL_ID) -> dict:
        return {RENTAL_HEADER: rental_id}


@pytest.fixture
def api(sql_engine, object_storage) -> ApiHarness:
    config = make_config(max_upload_bytes=4096)
    order_store = SqlOrderStore(sql_engine)
    services = assemble_services(
        config,
        order_store=order_store,
        storage=object_storage,
        vehicles=SqlVehicleDirectory(sql_engine),
        engine=sql_engine,
    )
    app = create_app(services=services)

    # Stand-in for the session layer: identifies the caller's rental
    @app.middleware("http")
    async def _test_session(request: Request, call_next):  # type: ignore[no-untyped-def]
        rental_id = request.headers.get(RENTAL_HEADER)
        if rental_id:
            request.state.rental_id = rental_id
        return await call_next(request)

    return ApiHarness(TestClient(app), sql_engine, object_storage, order_store)
