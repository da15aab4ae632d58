from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict

from ..common.datetime_utils import add_months
from ..core.enums import PlanKind


@dataclass(frozen=True)
class PlanSpec:
    kind: PlanKind
    display_name: str
    duration_months: int
    duration_days: int
    suggested_price: Decimal

    @property
    def tenure_units(self) -> int:
        # Sub-month plans still count as one unit.
        return max(1, self.duration_months)

    def period_end(self, start: datetime) -> datetime:
        if self.duration_months > 0:
            return add_months(start, self.duration_months)
        return start + timedelta(days=self.duration_days)


PLANS: Dict[PlanKind, PlanSpec] = {
    PlanKind.WEEKLY: PlanSpec(PlanKind.WEEKLY, "Weekly", 0, 7, Decimal("200")),
    PlanKind.BIWEEKLY: PlanSpec(PlanKind.BIWEEKLY, "Biweekly", 0, 15, Decimal("350")),
    PlanKind.MONTHLY: PlanSpec(PlanKind.MONTHLY, "Monthly", 1, 30, Decimal("550")),
    PlanKind.QUARTERLY: PlanSpec(PlanKind.QUARTERLY, "Quarterly", 3, 90, Decimal("1500")),
    PlanKind.SEMIANNUAL: PlanSpec(PlanKind.SEMIANNUAL, "Semiannual", 6, 180, Decimal("2800")),
    PlanKind.ANNUAL: PlanSpec(PlanKind.ANNUAL, "Annual", 12, 365, Decimal("5000")),
}


def plan_for(kind: PlanKind) -> PlanSpec:
    return PLANS[PlanKind(kind)]
