"""Order store for vehicle photos.

Holds one row per photo keyed by vehicle (the parent). Positions are unique
per vehicle; the store guards that invariant itself even though the
allocator never hands out a taken position. Two implementations share the
same contract: ``SqlOrderStore`` (SQLAlchemy Core, ``vehicle_photo`` table)
and ``InMemoryOrderStore`` (injectable dict, for development and tests).
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, List, Mapping, Optional, Protocol

from sqlalchemy import text as sql_text
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError

from fleet_photos.models.vehicle_photo import OrderedItem

logger = logging.getLogger(__name__)


class OrderStoreError(Exception):
    """Base class for order store failures."""


class DuplicatePosition(OrderStoreError):
    def __init__(self, parent_id: str, position: int) -> None:
        super().__init__(f"position {position} already taken for parent {parent_id}")
        self.parent_id = parent_id
        self.position = position


class ItemNotFound(OrderStoreError):
    def __init__(self, item_id: str) -> None:
        super().__init__(f"item {item_id} not found")
        self.item_id = item_id


class OrderStore(Protocol):
    def list_ordered(self, parent_id: str) -> List[OrderedItem]: ...

    def get(self, item_id: str) -> Optional[OrderedItem]: ...

    def insert(self, parent_id: str, item_id: str, position: int, storage_key: str, url: str) -> OrderedItem: ...

    def update_position(self, item_id: str, new_position: int) -> OrderedItem: ...

    def remove(self, item_id: str) -> None: ...

    def renumber(self, parent_id: str, positions: Mapping[str, int]) -> List[OrderedItem]: ...


def _shift_above(current: List[int], targets: List[int]) -> int:
    """Offset that moves every current position above all current and target values."""
    if not current:
        return 0
    ceiling = max(list(current) + list(targets))
    return ceiling - min(current) + 1


_SELECT_COLUMNS = "SELECT id, vehicle_id, position, storage_key, url FROM vehicle_photo"


def _row_to_item(row) -> OrderedItem:  # type: ignore[no-untyped-def]
    return OrderedItem(
        id=str(row[0]),
        parent_id=str(row[1]),
        position=int(row[2]),
        storage_key=str(row[3]),
        url=str(row[4]),
    )


class SqlOrderStore:
    """Order store backed by the ``vehicle_photo`` table."""

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _list(self, conn: Connection, parent_id: str) -> List[OrderedItem]:
        rows = conn.execute(
            sql_text(f"{_SELECT_COLUMNS} WHERE vehicle_id = :vid ORDER BY position ASC"),
            {"vid": parent_id},
        ).fetchall()
        return [_row_to_item(r) for r in rows]

    def _get(self, conn: Connection, item_id: str) -> Optional[OrderedItem]:
        row = conn.execute(
            sql_text(f"{_SELECT_COLUMNS} WHERE id = :id"),
            {"id": item_id},
        ).fetchone()
        return _row_to_item(row) if row else None

    def _position_taken(self, conn: Connection, parent_id: str, position: int, exclude_id: Optional[str] = None) -> bool:
        row = conn.execute(
            sql_text(
                "SELECT id FROM vehicle_photo WHERE vehicle_id = :vid AND position = :pos"
            ),
            {"vid": parent_id, "pos": int(position)},
        ).fetchone()
        return bool(row) and str(row[0]) != exclude_id

    def list_ordered(self, parent_id: str) -> List[OrderedItem]:
        with self._engine.connect() as conn:
            return self._list(conn, parent_id)

    def get(self, item_id: str) -> Optional[OrderedItem]:
        with self._engine.connect() as conn:
            return self._get(conn, item_id)

    def insert(self, parent_id: str, item_id: str, position: int, storage_key: str, url: str) -> OrderedItem:
        try:
            with self._engine.begin() as conn:
                if self._position_taken(conn, parent_id, position):
                    raise DuplicatePosition(parent_id, position)
                conn.execute(
                    sql_text(
                        "INSERT INTO vehicle_photo (id, vehicle_id, position, storage_key, url) "
                        "VALUES (:id, :vid, :pos, :key, :url)"
                    ),
                    {"id": item_id, "vid": parent_id, "pos": int(position), "key": storage_key, "url": url},
                )
        except IntegrityError as exc:
            logger.warning(
                "order_store.insert.integrity_error",
                extra={"parent_id": parent_id, "position": position, "error": str(exc.orig)},
            )
            raise DuplicatePosition(parent_id, position) from exc
        return OrderedItem(id=item_id, parent_id=parent_id, position=int(position), storage_key=storage_key, url=url)

    def update_position(self, item_id: str, new_position: int) -> OrderedItem:
        with self._engine.connect() as conn:
            current = self._get(conn, item_id)
        if current is None:
            raise ItemNotFound(item_id)
        try:
            with self._engine.begin() as conn:
                if self._position_taken(conn, current.parent_id, new_position, exclude_id=item_id):
                    raise DuplicatePosition(current.parent_id, new_position)
                result = conn.execute(
                    sql_text("UPDATE vehicle_photo SET position = :pos WHERE id = :id"),
                    {"pos": int(new_position), "id": item_id},
                )
                if not result.rowcount:
                    raise ItemNotFound(item_id)
        except IntegrityError as exc:
            raise DuplicatePosition(current.parent_id, new_position) from exc
        return current.model_copy(update={"position": int(new_position)})

    def remove(self, item_id: str) -> None:
        with self._engine.begin() as conn:
            result = conn.execute(
                sql_text("DELETE FROM vehicle_photo WHERE id = :id"),
                {"id": item_id},
            )
            if not result.rowcount:
                raise ItemNotFound(item_id)

    def renumber(self, parent_id: str, positions: Mapping[str, int]) -> List[OrderedItem]:
        """Rewrite positions for ``parent_id`` in a single transaction.

        Two-phase update: every row is first shifted above all existing and
        target values, then final values are written, so the unique
        ``(vehicle_id, position)`` constraint holds after every statement.
        """
        with self._engine.begin() as conn:
            existing = self._list(conn, parent_id)
            existing_ids = {i.id for i in existing}
            missing = [item_id for item_id in positions if item_id not in existing_ids]
            if missing:
                raise ItemNotFound(missing[0])
            if len(positions) != len(existing_ids):
                raise ValueError("renumber must cover every item of the parent collection")
            shift = _shift_above([i.position for i in existing], [int(p) for p in positions.values()])
            conn.execute(
                sql_text("UPDATE vehicle_photo SET position = position + :shift WHERE vehicle_id = :vid"),
                {"shift": shift, "vid": parent_id},
            )
            for item_id, position in positions.items():
                conn.execute(
                    sql_text("UPDATE vehicle_photo SET position = :pos WHERE id = :id AND vehicle_id = :vid"),
                    {"pos": int(position), "id": item_id, "vid": parent_id},
                )
            return self._list(conn, parent_id)


class InMemoryOrderStore:
    """Dict-backed order store (development and tests).

    ``store`` maps item id to ``OrderedItem``; pass one in to share state
    between instances or inspect it from tests.
    """

    def __init__(self, store: Optional[Dict[str, OrderedItem]] = None) -> None:
        self._items: Dict[str, OrderedItem] = store if store is not None else {}
        self._mutex = threading.Lock()

    def _position_taken(self, parent_id: str, position: int, exclude_id: Optional[str] = None) -> bool:
        for item in self._items.values():
            if item.parent_id == parent_id and item.position == int(position) and item.id != exclude_id:
                return True
        return False

    def list_ordered(self, parent_id: str) -> List[OrderedItem]:
        with self._mutex:
            items = [i for i in self._items.values() if i.parent_id == parent_id]
        return sorted(items, key=lambda item: item.position)

    def get(self, item_id: str) -> Optional[OrderedItem]:
        with self._mutex:
            return self._items.get(item_id)

    def insert(self, parent_id: str, item_id: str, position: int, storage_key: str, url: str) -> OrderedItem:
        with self._mutex:
            if self._position_taken(parent_id, position):
                raise DuplicatePosition(parent_id, position)
            item = OrderedItem(id=item_id, parent_id=parent_id, position=int(position), storage_key=storage_key, url=url)
            self._items[item_id] = item
            return item

    def update_position(self, item_id: str, new_position: int) -> OrderedItem:
        with self._mutex:
            current = self._items.get(item_id)
            if current is None:
                raise ItemNotFound(item_id)
            if self._position_taken(current.parent_id, new_position, exclude_id=item_id):
                raise DuplicatePosition(current.parent_id, new_position)
            updated = current.model_copy(update={"position": int(new_position)})
            self._items[item_id] = updated
            return updated

    def remove(self, item_id: str) -> None:
        with self._mutex:
            if self._items.pop(item_id, None) is None:
                raise ItemNotFound(item_id)

    def renumber(self, parent_id: str, positions: Mapping[str, int]) -> List[OrderedItem]:
        with self._mutex:
            for item_id in positions:
                item = self._items.get(item_id)
                if item is None or item.parent_id != parent_id:
                    raise ItemNotFound(item_id)
            if len(positions) != sum(1 for i in self._items.values() if i.parent_id == parent_id):
                raise ValueError("renumber must cover every item of the parent collection")
            for item_id, position in positions.items():
                self._items[item_id] = self._items[item_id].model_copy(update={"position": int(position)})
        return self.list_ordered(parent_id)


__all__ = [
    "OrderStore",
    "OrderStoreError",
    "DuplicatePosition",
    "ItemNotFound",
    "SqlOrderStore",
    "InMemoryOrderStore",
]
