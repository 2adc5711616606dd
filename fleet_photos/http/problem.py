"""Problem+JSON utilities and global exception handlers.

Defines RFC7807 media type and handler callables that produce
application/problem+json responses.
"""

from __future__ import annotations

from typing import Dict
import logging
from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

PROBLEM_MEDIA_TYPE = "application/problem+json"

logger = logging.getLogger(__name__)


def problem_response(problem: Dict[str, object]) -> JSONResponse:
    """Render a problem dict with its own ``status`` as the HTTP status."""
    return JSONResponse(
        problem,
        status_code=int(problem.get("status", 500) or 500),  # type: ignore[arg-type]
        media_type=PROBLEM_MEDIA_TYPE,
    )


async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:  # noqa: D401
    status_code = int(getattr(exc, "status_code", 500) or 500)
    if isinstance(exc.detail, dict):
        detail = dict(exc.detail)
    else:
        detail = {
            "title": "Error",
            "status": status_code,
            "detail": str(exc.detail or ""),
        }
    headers = {str(k): str(v) for k, v in (exc.headers or {}).items()}
    return JSONResponse(
        detail,
        status_code=status_code,
        media_type=PROBLEM_MEDIA_TYPE,
        headers=headers or None,
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError) -> JSONResponse:  # noqa: D401
    problem = {
        "title": "Invalid Request",
        "status": 422,
        "detail": "Request validation failed",
        "errors": jsonable_encoder(exc.errors()),
    }
    return JSONResponse(problem, status_code=422, media_type=PROBLEM_MEDIA_TYPE)


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:  # noqa: D401
    logger.error("unexpected_error path=%s", request.url.path, exc_info=exc)
    return JSONResponse({"title": "Internal Server Error", "status": 500}, status_code=500, media_type=PROBLEM_MEDIA_TYPE)


__all__ = [
    "PROBLEM_MEDIA_TYPE",
    "problem_response",
    "handle_http_exception",
    "handle_request_validation_error",
    "handle_unexpected_error",
]
