"""FastAPI application package for the vehicle photo service.

This package exposes a small FastAPI application factory. It wires only
cross-cutting middleware (request-id) and problem+json handlers, and mounts
the API routers. Ordering and storage consistency live in
`fleet_photos/logic/`, route handlers in `fleet_photos/routes/`.
"""

from __future__ import annotations

from fleet_photos.main import create_app

__all__ = ["create_app"]
