from __future__ import annotations

import logging

from flask import Flask, jsonify, request, session

from ..common.auth import admin_required, current_member_id, ensure_can_view, login_required, staff_required
from ..common.validators import require_enum
from ..container import Container
from ..core.enums import PlanKind
from ..core.exceptions import AuthorizationError, StoreError, ValidationError
from .model import MembershipPeriod, RenewalRecord
from .plans import PLANS, plan_for

logger = logging.getLogger(__name__)


def _iso(v):
    return v.isoformat() if v else None


def period_json(p: MembershipPeriod | None) -> dict | None:
    if p is None:
        return None
    return {
        "active": p.active,
        "plan_kind": p.plan_kind.value,
        "start_date": _iso(p.start_date),
        "expiration_date": _iso(p.expiration_date),
        "continuous_tenure_units": p.continuous_tenure_units,
        "last_renewal_date": _iso(p.last_renewal_date),
        "last_renewed_by_staff_id": p.last_renewed_by_staff_id,
        "payment_method": p.payment_method.value if p.payment_method else None,
    }


def renewal_json(r: RenewalRecord) -> dict:
    return {
        "id": r.renewal_id,
        "member_id": r.member_id,
        "staff_id": r.staff_id,
        "staff_name": r.staff_name,
        "payment_method": r.payment_method.value,
        "amount": str(r.amount),
        "currency": r.currency,
        "plan_kind": r.plan_kind.value,
        "duration_months": r.duration_months,
        "period_start": _iso(r.period_start),
        "period_end": _iso(r.period_end),
        "timestamp": _iso(r.timestamp),
    }


def register(app: Flask, container: Container) -> None:
    ledger = container.membership_ledger

    @app.route("/api/membership/plans", endpoint="membership_plans")
    @login_required
    def membership_plans():
        return jsonify(
            [
                {
                    "plan_kind": p.kind.value,
                    "display_name": p.display_name,
                    "duration_months": p.duration_months,
                    "duration_days": p.duration_days,
                    "suggested_price": str(p.suggested_price),
                    "currency": container.settings.default_currency,
                }
                for p in PLANS.values()
            ]
        )

    @app.route("/api/membership/<member_id>", endpoint="membership_status")
    @login_required
    def membership_status(member_id: str):
        try:
            ensure_can_view(member_id)
            period = ledger.get_period(member_id)
            return jsonify(
                {
                    "member_id": member_id,
                    "entitled": ledger.is_entitled(member_id),
                    "days_remaining": ledger.days_remaining(member_id),
                    "membership": period_json(period),
                }
            )
        except AuthorizationError as e:
            return jsonify({"success": False, "message": str(e)}), 403
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503

    @app.route("/api/membership/<member_id>/renew", methods=["POST"], endpoint="membership_renew")
    @staff_required
    def membership_renew(member_id: str):
        data = request.get_json(silent=True) or {}
        try:
            plan_kind = require_enum(data.get("plan_kind", ""), PlanKind, "plan_kind")
            amount = data.get("amount")
            if amount is None or amount == "":
                amount = plan_for(plan_kind).suggested_price
            record = ledger.renew(
                member_id,
                staff_id=current_member_id(),
                staff_name=str(session.get("name") or current_member_id()),
                plan_kind=plan_kind,
                payment_method=data.get("payment_method", ""),
                amount=amount,
                currency=data.get("currency"),
            )
            return jsonify({"success": True, "renewal": renewal_json(record)}), 201
        except ValidationError as e:
            return jsonify({"success": False, "message": str(e)}), 400
        except StoreError as e:
            logger.error("renewal of member=%s aborted: %s", member_id, e)
            return jsonify({"success": False, "retryable": True, "message": "Renewal not saved, try again"}), 503

    @app.route("/api/membership/<member_id>/renewals", endpoint="membership_renewals")
    @login_required
    def membership_renewals(member_id: str):
        limit = request.args.get("limit", default=20, type=int)
        try:
            ensure_can_view(member_id)
            return jsonify([renewal_json(r) for r in ledger.renewal_history(member_id, limit=limit)])
        except AuthorizationError as e:
            return jsonify({"success": False, "message": str(e)}), 403
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503

    @app.route("/api/admin/renewals", endpoint="admin_recent_renewals")
    @admin_required
    def admin_recent_renewals():
        limit = request.args.get("limit", default=50, type=int)
        try:
            return jsonify([renewal_json(r) for r in ledger.recent_renewals(limit=limit)])
        except StoreError as e:
            return jsonify({"success": False, "retryable": True, "message": str(e)}), 503
