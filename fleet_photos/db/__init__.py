"""Database bootstrap utilities for the vehicle photo service.

This module exposes engine construction and an optional migrations runner
that applies SQL files from the local migrations/ directory. The DB layer is
intentionally minimal and does not leak ORM models into route handlers.
"""

from fleet_photos.db.base import create_db_engine
from fleet_photos.db.migrations_runner import apply_migrations

__all__ = [
    "create_db_engine",
    "apply_migrations",
]
