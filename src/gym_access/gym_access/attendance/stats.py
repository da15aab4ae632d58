"""Day views and statistics derived from raw attendance events.

Pure functions over already-loaded events; no store access, so no compound
index is ever needed to build them.
"""
from __future__ import annotations

from collections import OrderedDict
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from ..common.datetime_utils import start_of_week
from ..core.constants import WEEKDAY_NAMES
from ..core.enums import AttendanceKind
from .model import AttendanceEvent, AttendanceStats, DayAttendance


def _by_day(events: Iterable[AttendanceEvent]) -> Dict[date, List[AttendanceEvent]]:
    grouped: Dict[date, List[AttendanceEvent]] = {}
    for e in sorted(events, key=lambda ev: ev.timestamp):
        grouped.setdefault(e.timestamp.date(), []).append(e)
    return OrderedDict(sorted(grouped.items()))


def _first(events: List[AttendanceEvent], kind: AttendanceKind) -> Optional[datetime]:
    for e in events:
        if e.kind == kind:
            return e.timestamp
    return None


def _day_view(day: date, events: List[AttendanceEvent]) -> DayAttendance:
    # Earliest exit closes the visit, not the latest one.
    return DayAttendance(
        day=day,
        check_in=_first(events, AttendanceKind.ENTRY),
        check_out=_first(events, AttendanceKind.EXIT),
        event_count=len(events),
    )


def day_attendance(events: Iterable[AttendanceEvent], day: date) -> DayAttendance:
    todays = sorted((e for e in events if e.timestamp.date() == day), key=lambda ev: ev.timestamp)
    return _day_view(day, todays)


def group_by_day(events: Iterable[AttendanceEvent]) -> List[DayAttendance]:
    return [_day_view(day, day_events) for day, day_events in _by_day(events).items()]


def compute_stats(events: Iterable[AttendanceEvent], *, now: datetime) -> AttendanceStats:
    days = group_by_day(events)
    if not days:
        return AttendanceStats.empty()

    durations = [d.duration_seconds for d in days if d.duration_seconds is not None]
    total = float(sum(durations))
    average = total / len(durations) if durations else 0.0

    weekday_counts: Dict[int, int] = {}
    for d in days:
        wd = d.day.weekday()
        weekday_counts[wd] = weekday_counts.get(wd, 0) + 1
    # max() keeps the first key on ties; dicts preserve first-seen order.
    most_frequent = max(weekday_counts, key=lambda wd: weekday_counts[wd])

    today = now.date()
    week_start = start_of_week(today)
    month_start = today.replace(day=1)

    return AttendanceStats(
        total_visit_days=len(days),
        total_duration_seconds=total,
        average_duration_seconds=average,
        most_frequent_weekday=WEEKDAY_NAMES[most_frequent],
        visits_this_week=sum(1 for d in days if d.day >= week_start),
        visits_this_month=sum(1 for d in days if d.day >= month_start),
    )
