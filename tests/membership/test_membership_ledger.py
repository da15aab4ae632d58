from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from src.gym_access.gym_access.common.datetime_utils import add_months
from src.gym_access.gym_access.core.enums import PaymentMethod, PlanKind
from src.gym_access.gym_access.core.exceptions import StoreError, ValidationError
from src.gym_access.gym_access.membership.model import MembershipPeriod


def _renew(ledger, member_id="m1", plan=PlanKind.MONTHLY, now=None, **overrides):
    kwargs = dict(
        staff_id="staff-1",
        staff_name="Front Desk",
        plan_kind=plan,
        payment_method=PaymentMethod.CASH,
        amount="550",
        now=now,
    )
    kwargs.update(overrides)
    return ledger.renew(member_id, **kwargs)


def test_first_renewal_starts_now(membership_ledger, memberships_repo, fixed_now):
    record = _renew(membership_ledger, now=fixed_now)

    assert record.period_start == fixed_now
    assert record.period_end == add_months(fixed_now, 1)
    assert record.currency == "MXN"
    assert record.amount == Decimal("550.00")
    period = memberships_repo.periods["m1"]
    assert period.active is True
    assert period.continuous_tenure_units == 1
    assert period.start_date == fixed_now
    assert period.last_renewed_by_staff_id == "staff-1"
    assert period.payment_method == PaymentMethod.CASH


def test_renewal_stacks_on_remaining_time(membership_ledger, memberships_repo, fixed_now):
    expiration = fixed_now + timedelta(days=10)
    original_start = fixed_now - timedelta(days=20)
    memberships_repo.periods["m1"] = MembershipPeriod(
        active=True,
        plan_kind=PlanKind.MONTHLY,
        start_date=original_start,
        expiration_date=expiration,
        continuous_tenure_units=4,
    )

    record = _renew(membership_ledger, now=fixed_now)

    assert record.period_start == expiration
    assert record.period_end == add_months(expiration, 1)
    period = memberships_repo.periods["m1"]
    assert period.continuous_tenure_units == 5
    assert period.start_date == original_start
    assert period.expiration_date == add_months(expiration, 1)


def test_lapsed_renewal_starts_now_and_keeps_tenure(membership_ledger, memberships_repo, fixed_now):
    memberships_repo.periods["m1"] = MembershipPeriod(
        active=True,
        plan_kind=PlanKind.MONTHLY,
        start_date=fixed_now - timedelta(days=90),
        expiration_date=fixed_now - timedelta(days=3),
        continuous_tenure_units=3,
    )

    record = _renew(membership_ledger, plan=PlanKind.QUARTERLY, now=fixed_now)

    assert record.period_start == fixed_now
    assert record.period_end == add_months(fixed_now, 3)
    assert memberships_repo.periods["m1"].continuous_tenure_units == 6
    assert memberships_repo.periods["m1"].start_date == fixed_now


def test_inactive_flag_means_not_entitled_even_before_expiration(membership_ledger, memberships_repo, fixed_now):
    memberships_repo.periods["m1"] = MembershipPeriod(
        active=False,
        plan_kind=PlanKind.MONTHLY,
        start_date=fixed_now - timedelta(days=5),
        expiration_date=fixed_now + timedelta(days=5),
    )

    assert membership_ledger.is_entitled("m1", now=fixed_now) is False
    record = _renew(membership_ledger, now=fixed_now)
    assert record.period_start == fixed_now


def test_weekly_cash_renewal_entitles_for_exactly_seven_days(membership_ledger, fixed_now):
    _renew(membership_ledger, plan=PlanKind.WEEKLY, amount=200, now=fixed_now)

    assert membership_ledger.is_entitled("m1", now=fixed_now) is True
    assert membership_ledger.is_entitled("m1", now=fixed_now + timedelta(days=6, hours=23)) is True
    assert membership_ledger.is_entitled("m1", now=fixed_now + timedelta(days=7)) is False
    assert membership_ledger.is_entitled("m1", now=fixed_now + timedelta(days=8)) is False


def test_unknown_member_is_not_entitled(membership_ledger):
    assert membership_ledger.is_entitled("nobody") is False
    assert membership_ledger.days_remaining("nobody") == 0


def test_days_remaining(membership_ledger, fixed_now):
    _renew(membership_ledger, plan=PlanKind.BIWEEKLY, now=fixed_now)

    assert membership_ledger.days_remaining("m1", now=fixed_now) == 15
    assert membership_ledger.days_remaining("m1", now=fixed_now + timedelta(days=20)) == 0


@pytest.mark.parametrize(
    "overrides",
    [
        {"staff_id": ""},
        {"staff_name": "  "},
        {"amount": "-1"},
        {"amount": "abc"},
        {"currency": "pesos"},
        {"payment_method": "bitcoin"},
        {"plan_kind": "daily"},
    ],
)
def test_invalid_input_is_rejected_without_writes(membership_ledger, memberships_repo, fixed_now, overrides):
    with pytest.raises(ValidationError):
        _renew(membership_ledger, now=fixed_now, **overrides)

    assert memberships_repo.renewals == []
    assert memberships_repo.periods == {}


def test_store_failure_aborts_renewal(membership_ledger, memberships_repo, fixed_now):
    memberships_repo.fail_next_save = True

    with pytest.raises(StoreError) as exc:
        _renew(membership_ledger, now=fixed_now)

    assert exc.value.retryable is True
    assert memberships_repo.renewals == []
    assert "m1" not in memberships_repo.periods


def test_history_is_newest_first_and_append_only(membership_ledger, fixed_now):
    first = _renew(membership_ledger, now=fixed_now)
    second = _renew(membership_ledger, now=fixed_now + timedelta(days=1), payment_method="card", currency="usd")

    history = membership_ledger.renewal_history("m1")

    assert [r.renewal_id for r in history] == [second.renewal_id, first.renewal_id]
    assert history[0].currency == "USD"
    assert history[0].payment_method == PaymentMethod.CARD
    assert history[1].period_end == first.period_end
    assert membership_ledger.recent_renewals(limit=1)[0].renewal_id == second.renewal_id
