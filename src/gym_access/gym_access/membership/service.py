from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Callable, Optional, Sequence

from ..common.datetime_utils import now_local
from ..common.validators import require_amount, require_currency, require_enum, require_non_empty
from ..core.constants import DEFAULT_CURRENCY, DEFAULT_RECENT_RENEWALS_LIMIT, DEFAULT_RENEWAL_HISTORY_LIMIT
from ..core.enums import PaymentMethod, PlanKind
from .model import MembershipPeriod, RenewalRecord
from .plans import plan_for
from .repository import MembershipRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenewalPlan:
    """Period arithmetic for one renewal, before anything is written."""

    period_start: datetime
    period_end: datetime
    continuous_tenure_units: int
    start_date: datetime
    stacked: bool


def plan_renewal(existing: Optional[MembershipPeriod], plan_kind: PlanKind, now: datetime) -> RenewalPlan:
    plan = plan_for(plan_kind)
    entitled = existing is not None and existing.is_entitled_at(now)

    # Stacking onto remaining time never shortens a paid period.
    period_start = existing.expiration_date if entitled else now
    previous_units = existing.continuous_tenure_units if existing is not None else 0

    return RenewalPlan(
        period_start=period_start,
        period_end=plan.period_end(period_start),
        # Tenure keeps accumulating across a lapse as well.
        continuous_tenure_units=previous_units + plan.tenure_units,
        start_date=existing.start_date if entitled else now,
        stacked=entitled,
    )


class MembershipLedger:
    """Source of truth for "may this member enter" and for renewals."""

    def __init__(
        self,
        memberships: MembershipRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        default_currency: str = DEFAULT_CURRENCY,
    ):
        self._memberships = memberships
        self._clock = clock
        self._default_currency = default_currency

    def get_period(self, member_id: str) -> Optional[MembershipPeriod]:
        return self._memberships.get_period(require_non_empty(member_id, "member_id"))

    def is_entitled(self, member_id: str, *, now: datetime | None = None) -> bool:
        period = self.get_period(member_id)
        if period is None:
            return False
        return period.is_entitled_at(now or self._clock())

    def days_remaining(self, member_id: str, *, now: datetime | None = None) -> int:
        period = self.get_period(member_id)
        if period is None:
            return 0
        return period.days_remaining(now or self._clock())

    def renew(
        self,
        member_id: str,
        *,
        staff_id: str,
        staff_name: str,
        plan_kind: PlanKind | str,
        payment_method: PaymentMethod | str,
        amount: Decimal | str | float | int,
        currency: str | None = None,
        now: datetime | None = None,
    ) -> RenewalRecord:
        member_id = require_non_empty(member_id, "member_id")
        staff_id = require_non_empty(staff_id, "staff_id")
        staff_name = require_non_empty(staff_name, "staff_name")
        plan_kind = require_enum(plan_kind, PlanKind, "plan_kind")
        payment_method = require_enum(payment_method, PaymentMethod, "payment_method")
        amount = require_amount(amount)
        currency = require_currency(currency or self._default_currency)
        now = now or self._clock()

        existing = self._memberships.get_period(member_id)
        arithmetic = plan_renewal(existing, plan_kind, now)

        record = RenewalRecord(
            renewal_id=str(uuid.uuid4()),
            member_id=member_id,
            staff_id=staff_id,
            staff_name=staff_name,
            payment_method=payment_method,
            amount=amount,
            currency=currency,
            plan_kind=plan_kind,
            duration_months=plan_for(plan_kind).duration_months,
            period_start=arithmetic.period_start,
            period_end=arithmetic.period_end,
            timestamp=now,
        )
        period = MembershipPeriod(
            active=True,
            plan_kind=plan_kind,
            start_date=arithmetic.start_date,
            expiration_date=arithmetic.period_end,
            continuous_tenure_units=arithmetic.continuous_tenure_units,
            last_renewal_date=now,
            last_renewed_by_staff_id=staff_id,
            payment_method=payment_method,
        )

        self._memberships.save_renewal(member_id=member_id, period=period, record=record)
        logger.info(
            "membership renewed member=%s plan=%s period=%s..%s stacked=%s renewal=%s",
            member_id,
            plan_kind.value,
            record.period_start.isoformat(),
            record.period_end.isoformat(),
            arithmetic.stacked,
            record.renewal_id,
        )
        return record

    def renewal_history(self, member_id: str, *, limit: int = DEFAULT_RENEWAL_HISTORY_LIMIT) -> Sequence[RenewalRecord]:
        rows = self._memberships.list_renewals_for_member(require_non_empty(member_id, "member_id"), limit=int(limit))
        return sorted(rows, key=lambda r: r.timestamp, reverse=True)

    def recent_renewals(self, *, limit: int = DEFAULT_RECENT_RENEWALS_LIMIT) -> Sequence[RenewalRecord]:
        return list(self._memberships.list_recent_renewals(limit=int(limit)))
