from __future__ import annotations

from datetime import datetime
from typing import Protocol, Tuple

from ..attendance.model import AttendanceEvent


class AdmissionRepository(Protocol):
    """Writes one admitted scan: the attendance event and its headcount delta.

    Both land in one transaction or neither does; the returned count and
    timestamp are the occupancy after the delta.
    """

    def record_admission(self, event: AttendanceEvent, delta: int) -> Tuple[int, datetime]:
        raise NotImplementedError
