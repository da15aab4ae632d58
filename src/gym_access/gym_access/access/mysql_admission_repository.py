from __future__ import annotations

from datetime import datetime
from typing import Tuple

from ..attendance.model import AttendanceEvent
from ..attendance.mysql_attendance_repository import insert_event
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor
from ..occupancy.mysql_occupancy_repository import apply_delta_with
from .repository import AdmissionRepository


class MySQLAdmissionRepository(AdmissionRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def record_admission(self, event: AttendanceEvent, delta: int) -> Tuple[int, datetime]:
        with db_cursor(self._conn_factory) as (_, cur):
            insert_event(cur, event)
            return apply_delta_with(cur, event.location_id, delta, event.timestamp)
