"""SQLAlchemy engine construction.

The service targets PostgreSQL in production but supports SQLite for local
development and CI. No declarative models are defined here; this module only
manages connection lifecycle. Engines are created explicitly and handed to
the repositories through the service context.
"""

from __future__ import annotations

import logging

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


def create_db_engine(url: str) -> Engine:
    """Return a SQLAlchemy Engine for ``url``.

    For SQLite in-memory URLs, use a StaticPool to keep a single connection
    alive across sessions and threads, otherwise every checkout would see an
    empty database.
    """
    kwargs: dict = {"future": True, "pool_pre_ping": True}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs.update({
            "poolclass": StaticPool,
            "connect_args": {"check_same_thread": False},
        })
    elif url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    engine = create_engine(url, **kwargs)
    logger.info("db.engine.created", extra={"dialect": engine.dialect.name})
    return engine


__all__ = ["create_db_engine"]
