from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import Optional

from ..common.datetime_utils import format_duration
from ..core.enums import AttendanceKind


@dataclass(frozen=True)
class AttendanceEvent:
    """Domain entity: one scan at the front desk. Append-only."""

    event_id: str
    member_id: str
    kind: AttendanceKind
    timestamp: datetime
    recorded_by_staff_id: str
    location_id: str


@dataclass(frozen=True)
class DayAttendance:
    """Read-model: visit window of one member on one local calendar day."""

    day: date
    check_in: Optional[datetime]
    check_out: Optional[datetime]
    event_count: int = 0

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.check_in is None or self.check_out is None:
            return None
        return (self.check_out - self.check_in).total_seconds()

    @property
    def duration_label(self) -> str:
        return format_duration(self.duration_seconds)


@dataclass(frozen=True)
class AttendanceStats:
    total_visit_days: int
    total_duration_seconds: float
    average_duration_seconds: float
    most_frequent_weekday: Optional[str]
    visits_this_week: int
    visits_this_month: int

    @classmethod
    def empty(cls) -> "AttendanceStats":
        return cls(0, 0.0, 0.0, None, 0, 0)
