from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Sequence

from ..core.enums import AttendanceKind
from ..core.exceptions import RecordDecodeError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall
from .model import AttendanceEvent
from .repository import AttendanceRepository

_COLUMNS = "event_id, member_id, kind, occurred_at, recorded_by_staff_id, location_id"


def decode_event(r: Dict[str, Any]) -> AttendanceEvent:
    for key in ("event_id", "member_id", "kind", "occurred_at", "recorded_by_staff_id", "location_id"):
        if r.get(key) is None:
            raise RecordDecodeError(f"attendance_events.{key} is missing")
    if not isinstance(r["occurred_at"], datetime):
        raise RecordDecodeError(f"attendance_events.occurred_at is not a datetime: {r['occurred_at']!r}")
    try:
        kind = AttendanceKind(r["kind"])
    except ValueError:
        raise RecordDecodeError(f"attendance_events.kind has unknown value {r['kind']!r}") from None

    return AttendanceEvent(
        event_id=str(r["event_id"]),
        member_id=str(r["member_id"]),
        kind=kind,
        timestamp=r["occurred_at"],
        recorded_by_staff_id=str(r["recorded_by_staff_id"]),
        location_id=str(r["location_id"]),
    )


def insert_event(cur, event: AttendanceEvent) -> None:
    """INSERT on a cursor the caller owns, so it can join a larger transaction."""
    cur.execute(
        f"""
        INSERT INTO attendance_events({_COLUMNS})
        VALUES(%s,%s,%s,%s,%s,%s)
        """,
        (
            event.event_id,
            event.member_id,
            event.kind.value,
            event.timestamp,
            event.recorded_by_staff_id,
            event.location_id,
        ),
    )


class MySQLAttendanceRepository(AttendanceRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def append(self, event: AttendanceEvent) -> None:
        with db_cursor(self._conn_factory) as (_, cur):
            insert_event(cur, event)

    def list_for_member(
        self,
        member_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> Sequence[AttendanceEvent]:
        clauses = ["member_id=%s"]
        params: list[object] = [member_id]

        if start is not None:
            clauses.append("occurred_at >= %s")
            params.append(start)
        if end is not None:
            clauses.append("occurred_at <= %s")
            params.append(end)

        sql = f"SELECT {_COLUMNS} FROM attendance_events WHERE {' AND '.join(clauses)} ORDER BY occurred_at DESC"
        if limit is not None:
            sql += " LIMIT %s"
            params.append(int(limit))

        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(sql, tuple(params))
            return [decode_event(r) for r in fetchall(cur)]

    def list_recent(self, *, limit: int) -> Sequence[AttendanceEvent]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_COLUMNS} FROM attendance_events ORDER BY occurred_at DESC LIMIT %s",
                (int(limit),),
            )
            return [decode_event(r) for r in fetchall(cur)]
