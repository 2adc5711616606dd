"""Per-parent exclusive scopes for read-compute-write position updates.

Appends and moves on the same vehicle read the current positions, compute a
new one and write it back; two such sequences interleaving on one vehicle
would compute from the same snapshot. ``ParentLocks.hold`` serialises them
per vehicle id while leaving different vehicles independent.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

logger = logging.getLogger(__name__)


class ParentLockTimeout(Exception):
    def __init__(self, parent_id: str, timeout: float) -> None:
        super().__init__(f"could not lock parent {parent_id} within {timeout}s")
        self.parent_id = parent_id
        self.timeout = timeout


class ParentLocks:
    def __init__(self, timeout: Optional[float] = None) -> None:
        self._timeout = timeout
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, parent_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(parent_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[parent_id] = lock
            return lock

    @contextmanager
    def hold(self, parent_id: str) -> Iterator[None]:
        """Hold the exclusive scope for ``parent_id``; released on every exit path."""
        lock = self._lock_for(parent_id)
        if self._timeout is None:
            acquired = lock.acquire()
        else:
            acquired = lock.acquire(timeout=self._timeout)
        if not acquired:
            logger.warning("parent_lock.timeout", extra={"parent_id": parent_id, "timeout": self._timeout})
            raise ParentLockTimeout(parent_id, float(self._timeout or 0))
        try:
            yield
        finally:
            lock.release()


__all__ = ["ParentLocks", "ParentLockTimeout"]
