from __future__ import annotations

import logging
from typing import Callable, Optional

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text as sql_text
from sqlalchemy.exc import SQLAlchemyError

from fleet_photos.config import AppConfig, load_config
from fleet_photos.http.problem import (
    handle_http_exception,
    handle_request_validation_error,
    handle_unexpected_error,
)
from fleet_photos.http.request_id import RequestIdMiddleware
from fleet_photos.logging_setup import configure_logging
from fleet_photos.routes import api_router
from fleet_photos.services import PhotoServices, build_services

logger = logging.getLogger(__name__)


def _health_check(services: PhotoServices) -> Callable[[], dict]:
    def check() -> dict:
        engine = services.engine
        if engine is None:
            return {"status": "ok", "db": False}
        try:
            with engine.connect() as conn:
                conn.execute(sql_text("SELECT 1"))
            return {"status": "ok", "db": True}
        except SQLAlchemyError as e:
            logger.error("Health DB check failed", exc_info=True)
            return {"status": "degraded", "db": False, "reason": str(e)}

    return check


def create_app(config: Optional[AppConfig] = None, services: Optional[PhotoServices] = None) -> FastAPI:
    """Build the FastAPI application.

    ``services`` may be supplied pre-wired (tests, embedding); otherwise it is
    built from ``config`` or, failing that, from ``load_config()``.
    """
    # Configure global logging before app instantiation so all modules emit
    configure_logging()
    if services is None:
        services = build_services(config or load_config())

    app = FastAPI(title="Vehicle Photos")
    app.state.services = services

    app.add_exception_handler(HTTPException, handle_http_exception)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(Exception, handle_unexpected_error)
    app.add_middleware(RequestIdMiddleware)

    app.include_router(api_router, prefix="/api/v1")

    # Health endpoint (out of prefix for simplicity in local runs)
    health_check = _health_check(services)

    @app.get("/health")
    def health():  # pragma: no cover - trivial
        return health_check()

    @app.on_event("shutdown")
    def _close_services() -> None:  # pragma: no cover - exercised at process exit
        services.close()

    return app


# Intentionally do not instantiate the app at import time to prevent side effects.
