from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional, Tuple

from ..core.enums import PaymentMethod, PlanKind, Role


@dataclass(frozen=True)
class MembershipPeriod:
    """Current membership of a member, embedded in the member record.

    ``active`` is a stored flag and may be stale; entitlement is always
    recomputed with :meth:`is_entitled_at`.
    """

    active: bool
    plan_kind: PlanKind
    start_date: datetime
    expiration_date: datetime
    continuous_tenure_units: int = 0
    last_renewal_date: Optional[datetime] = None
    last_renewed_by_staff_id: Optional[str] = None
    payment_method: Optional[PaymentMethod] = None

    def is_entitled_at(self, now: datetime) -> bool:
        return self.active and self.expiration_date > now

    def days_remaining(self, now: datetime) -> int:
        return max(0, (self.expiration_date - now).days)


@dataclass(frozen=True)
class Member:
    member_id: str
    display_name: Optional[str]
    roles: Tuple[Role, ...]
    membership: Optional[MembershipPeriod] = None


@dataclass(frozen=True)
class RenewalRecord:
    """Audit row written once per renewal transaction; never updated."""

    renewal_id: str
    member_id: str
    staff_id: str
    staff_name: str
    payment_method: PaymentMethod
    amount: Decimal
    currency: str
    plan_kind: PlanKind
    duration_months: int
    period_start: datetime
    period_end: datetime
    timestamp: datetime
