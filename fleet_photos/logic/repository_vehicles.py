"""Vehicle lookups needed to authorise photo operations.

Vehicles themselves are managed elsewhere; photo operations only need to
resolve a vehicle id and learn which rental owns it.
"""

from __future__ import annotations

from typing import Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict
from sqlalchemy import text as sql_text
from sqlalchemy.engine import Engine


class Vehicle(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    rental_id: str


class VehicleDirectory(Protocol):
    def resolve_vehicle(self, vehicle_id: str) -> Optional[Vehicle]: ...


def caller_owns_vehicle(vehicle: Vehicle, caller_rental_id: Optional[str]) -> bool:
    return bool(caller_rental_id) and vehicle.rental_id == str(caller_rental_id)


class SqlVehicleDirectory:
    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def resolve_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        with self._engine.connect() as conn:
            row = conn.execute(
                sql_text("SELECT id, rental_id FROM vehicle WHERE id = :vid"),
                {"vid": vehicle_id},
            ).fetchone()
        if not row:
            return None
        return Vehicle(id=str(row[0]), rental_id=str(row[1]))


class InMemoryVehicleDirectory:
    def __init__(self, vehicles: Optional[Dict[str, str]] = None) -> None:
        # vehicle id -> owning rental id
        self.vehicles: Dict[str, str] = dict(vehicles or {})

    def add(self, vehicle_id: str, rental_id: str) -> Vehicle:
        self.vehicles[vehicle_id] = rental_id
        return Vehicle(id=vehicle_id, rental_id=rental_id)

    def resolve_vehicle(self, vehicle_id: str) -> Optional[Vehicle]:
        rental_id = self.vehicles.get(vehicle_id)
        if rental_id is None:
            return None
        return Vehicle(id=vehicle_id, rental_id=rental_id)


__all__ = [
    "Vehicle",
    "VehicleDirectory",
    "caller_owns_vehicle",
    "SqlVehicleDirectory",
    "InMemoryVehicleDirectory",
]
