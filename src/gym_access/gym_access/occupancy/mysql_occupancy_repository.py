from __future__ import annotations

from datetime import datetime
from typing import Optional, Tuple

from ..core.exceptions import RecordDecodeError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchone
from .repository import OccupancyRepository


def apply_delta_with(cur, location_id: str, delta: int, now: datetime) -> Tuple[int, datetime]:
    """Clamped delta on a cursor the caller owns; the caller commits."""
    # Upsert + GREATEST keeps the update one atomic row operation that
    # can never take the counter below zero.
    cur.execute(
        """
        INSERT INTO occupancy(location_id, current_count, last_updated)
        VALUES(%s, GREATEST(%s, 0), %s)
        ON DUPLICATE KEY UPDATE
            current_count = GREATEST(current_count + %s, 0),
            last_updated = VALUES(last_updated)
        """,
        (location_id, int(delta), now, int(delta)),
    )
    # Same transaction: reads back our own write under the row lock.
    cur.execute(
        "SELECT current_count, last_updated FROM occupancy WHERE location_id=%s",
        (location_id,),
    )
    r = fetchone(cur)
    if not r:
        raise RecordDecodeError(f"occupancy row for {location_id!r} vanished after update")
    return int(r["current_count"]), r["last_updated"]


class MySQLOccupancyRepository(OccupancyRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def apply_delta(self, location_id: str, delta: int, *, now: datetime) -> Tuple[int, datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            return apply_delta_with(cur, location_id, delta, now)

    def get(self, location_id: str) -> Optional[Tuple[int, datetime]]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                "SELECT current_count, last_updated FROM occupancy WHERE location_id=%s",
                (location_id,),
            )
            r = fetchone(cur)
            if not r:
                return None
            if r.get("current_count") is None:
                raise RecordDecodeError("occupancy.current_count is missing")
            return int(r["current_count"]), r["last_updated"]
