from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time
from typing import Callable, List, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_enum, require_non_empty
from ..core.constants import DEFAULT_ACTIVITY_LIMIT, DEFAULT_STATS_EVENT_LIMIT
from ..core.enums import AttendanceKind
from ..core.exceptions import ValidationError
from .model import AttendanceEvent, AttendanceStats, DayAttendance
from .repository import AttendanceRepository
from .stats import compute_stats, day_attendance, group_by_day

logger = logging.getLogger(__name__)


class AttendanceLedger:
    """Raw entry/exit log plus the views derived from it.

    ``record`` never rejects an entry after an entry or an exit without an
    entry; pairing is worked out when reading.
    """

    def __init__(
        self,
        attendance: AttendanceRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        stats_event_limit: int = DEFAULT_STATS_EVENT_LIMIT,
    ):
        self._attendance = attendance
        self._clock = clock
        self._stats_event_limit = int(stats_event_limit)

    def new_event(
        self,
        member_id: str,
        kind: AttendanceKind | str,
        *,
        staff_id: str,
        location_id: str,
        now: datetime | None = None,
    ) -> AttendanceEvent:
        """Validated event, not yet written."""
        return AttendanceEvent(
            event_id=str(uuid.uuid4()),
            member_id=require_non_empty(member_id, "member_id"),
            kind=require_enum(kind, AttendanceKind, "kind"),
            timestamp=now or self._clock(),
            recorded_by_staff_id=require_non_empty(staff_id, "staff_id"),
            location_id=require_non_empty(location_id, "location_id"),
        )

    def record(
        self,
        member_id: str,
        kind: AttendanceKind | str,
        *,
        staff_id: str,
        location_id: str,
        now: datetime | None = None,
    ) -> AttendanceEvent:
        event = self.new_event(member_id, kind, staff_id=staff_id, location_id=location_id, now=now)
        self._attendance.append(event)
        logger.info(
            "attendance %s member=%s location=%s staff=%s",
            event.kind.value,
            event.member_id,
            event.location_id,
            event.recorded_by_staff_id,
        )
        return event

    def attendance_history(self, member_id: str, *, start: date, end: date) -> List[AttendanceEvent]:
        """Events between two local calendar days (inclusive), oldest first."""
        if end < start:
            raise ValidationError("end date must not be before start date")
        rows = self._attendance.list_for_member(
            require_non_empty(member_id, "member_id"),
            start=datetime.combine(start, time.min),
            end=datetime.combine(end, time.max),
        )
        return sorted(rows, key=lambda e: e.timestamp)

    def calendar(self, member_id: str, *, start: date, end: date) -> List[DayAttendance]:
        return group_by_day(self.attendance_history(member_id, start=start, end=end))

    def day(self, member_id: str, day: date) -> DayAttendance:
        return day_attendance(self.attendance_history(member_id, start=day, end=day), day)

    def stats(self, member_id: str, *, now: datetime | None = None) -> AttendanceStats:
        events = self._attendance.list_for_member(
            require_non_empty(member_id, "member_id"),
            limit=self._stats_event_limit,
        )
        return compute_stats(events, now=now or self._clock())

    def recent_activity(self, *, limit: int = DEFAULT_ACTIVITY_LIMIT) -> Sequence[AttendanceEvent]:
        return list(self._attendance.list_recent(limit=int(limit)))
