from __future__ import annotations

from datetime import date, timedelta

from flask import Flask, jsonify, request

from ..common.auth import admin_required, ensure_can_view, login_required
from ..common.datetime_utils import now_local, parse_iso_date
from ..container import Container
from ..core.exceptions import AuthorizationError, StoreError, ValidationError
from .model import AttendanceEvent, AttendanceStats, DayAttendance


def event_json(e: AttendanceEvent) -> dict:
    return {
        "id": e.event_id,
        "member_id": e.member_id,
        "kind": e.kind.value,
        "timestamp": e.timestamp.isoformat(),
        "recorded_by_staff_id": e.recorded_by_staff_id,
        "location_id": e.location_id,
    }


def day_json(d: DayAttendance) -> dict:
    return {
        "date": d.day.isoformat(),
        "check_in": d.check_in.isoformat() if d.check_in else None,
        "check_out": d.check_out.isoformat() if d.check_out else None,
        "duration_seconds": d.duration_seconds,
        "duration": d.duration_label,
    }


def stats_json(s: AttendanceStats) -> dict:
    return {
        "total_visit_days": s.total_visit_days,
        "total_duration_seconds": s.total_duration_seconds,
        "average_duration_seconds": s.average_duration_seconds,
        "most_frequent_weekday": s.most_frequent_weekday,
        "visits_this_week": s.visits_this_week,
        "visits_this_month": s.visits_this_month,
    }


def register(app: Flask, container: Container) -> None:
    ledger = container.attendance_ledger

    def _range() -> tuple[date, date]:
        today = now_local().date()
        try:
            start = parse_iso_date(request.args["start"]) if request.args.get("start") else today.replace(day=1)
            end = parse_iso_date(request.args["end"]) if request.args.get("end") else today
        except ValueError:
            raise ValidationError("dates must be YYYY-MM-DD") from None
        if (end - start) > timedelta(days=366):
            raise ValidationError("date range is limited to one year")
        return start, end

    def _guarded(member_id: str, build):
        try:
            ensure_can_view(member_id)
            return jsonify(build())
        except AuthorizationError as e:
            return jsonify({"success": False, "message": str(e)}), 403
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503

    @app.route("/api/attendance/<member_id>/history", endpoint="attendance_history")
    @login_required
    def attendance_history(member_id: str):
        def build():
            start, end = _range()
            return [event_json(e) for e in ledger.attendance_history(member_id, start=start, end=end)]

        return _guarded(member_id, build)

    @app.route("/api/attendance/<member_id>/calendar", endpoint="attendance_calendar")
    @login_required
    def attendance_calendar(member_id: str):
        def build():
            start, end = _range()
            return [day_json(d) for d in ledger.calendar(member_id, start=start, end=end)]

        return _guarded(member_id, build)

    @app.route("/api/attendance/<member_id>/stats", endpoint="attendance_stats")
    @login_required
    def attendance_stats(member_id: str):
        return _guarded(member_id, lambda: stats_json(ledger.stats(member_id)))

    @app.route("/api/admin/activity", endpoint="admin_activity")
    @admin_required
    def admin_activity():
        limit = request.args.get("limit", default=100, type=int)
        try:
            return jsonify([event_json(e) for e in ledger.recent_activity(limit=limit)])
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503
