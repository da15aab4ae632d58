from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence, Tuple

from ..core.enums import PaymentMethod, PlanKind, Role
from ..core.exceptions import RecordDecodeError
from ..database.connection import DatabaseConnection
from ..database.mysql_base import db_cursor, fetchall, fetchone
from .model import Member, MembershipPeriod, RenewalRecord
from .repository import MembershipRepository

_MEMBER_COLUMNS = """
    member_id, display_name, roles, membership_active, plan_kind, start_date, expiration_date,
    continuous_tenure_units, last_renewal_date, last_renewed_by_staff_id, payment_method
"""

_RENEWAL_COLUMNS = """
    renewal_id, member_id, staff_id, staff_name, payment_method, amount, currency,
    plan_kind, duration_months, period_start, period_end, created_at
"""


def _required(row: Dict[str, Any], key: str, table: str) -> Any:
    value = row.get(key)
    if value is None:
        raise RecordDecodeError(f"{table}.{key} is missing")
    return value


def _as_datetime(value: Any, key: str, table: str) -> datetime:
    if not isinstance(value, datetime):
        raise RecordDecodeError(f"{table}.{key} is not a datetime: {value!r}")
    return value


def _as_enum(enum_cls, value: Any, key: str, table: str):
    try:
        return enum_cls(value)
    except ValueError:
        raise RecordDecodeError(f"{table}.{key} has unknown value {value!r}") from None


def _decode_roles(value: Any) -> Tuple[Role, ...]:
    # Absent role list defaults to a plain member (older rows predate roles).
    if not value:
        return (Role.MEMBER,)
    return tuple(_as_enum(Role, part.strip(), "roles", "members") for part in str(value).split(",") if part.strip())


def decode_period(row: Dict[str, Any]) -> Optional[MembershipPeriod]:
    if row.get("plan_kind") is None:
        return None
    t = "members"
    return MembershipPeriod(
        active=bool(_required(row, "membership_active", t)),
        plan_kind=_as_enum(PlanKind, row["plan_kind"], "plan_kind", t),
        start_date=_as_datetime(_required(row, "start_date", t), "start_date", t),
        expiration_date=_as_datetime(_required(row, "expiration_date", t), "expiration_date", t),
        continuous_tenure_units=int(_required(row, "continuous_tenure_units", t)),
        last_renewal_date=row.get("last_renewal_date"),
        last_renewed_by_staff_id=row.get("last_renewed_by_staff_id"),
        payment_method=_as_enum(PaymentMethod, row["payment_method"], "payment_method", t)
        if row.get("payment_method")
        else None,
    )


def decode_renewal(row: Dict[str, Any]) -> RenewalRecord:
    t = "membership_renewals"
    return RenewalRecord(
        renewal_id=str(_required(row, "renewal_id", t)),
        member_id=str(_required(row, "member_id", t)),
        staff_id=str(_required(row, "staff_id", t)),
        staff_name=str(_required(row, "staff_name", t)),
        payment_method=_as_enum(PaymentMethod, _required(row, "payment_method", t), "payment_method", t),
        amount=Decimal(str(_required(row, "amount", t))),
        currency=str(_required(row, "currency", t)),
        plan_kind=_as_enum(PlanKind, _required(row, "plan_kind", t), "plan_kind", t),
        duration_months=int(_required(row, "duration_months", t)),
        period_start=_as_datetime(_required(row, "period_start", t), "period_start", t),
        period_end=_as_datetime(_required(row, "period_end", t), "period_end", t),
        timestamp=_as_datetime(_required(row, "created_at", t), "created_at", t),
    )


class MySQLMembershipRepository(MembershipRepository):
    def __init__(self, conn_factory: DatabaseConnection):
        self._conn_factory = conn_factory

    def get_member(self, member_id: str) -> Optional[Member]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(f"SELECT {_MEMBER_COLUMNS} FROM members WHERE member_id=%s", (member_id,))
            r = fetchone(cur)
            if not r:
                return None
            return Member(
                member_id=str(r["member_id"]),
                display_name=r.get("display_name"),
                roles=_decode_roles(r.get("roles")),
                membership=decode_period(r),
            )

    def get_period(self, member_id: str) -> Optional[MembershipPeriod]:
        member = self.get_member(member_id)
        return member.membership if member else None

    def save_renewal(self, *, member_id: str, period: MembershipPeriod, record: RenewalRecord) -> None:
        # Both statements share one transaction: either the audit row and the
        # materialized period land together or neither does.
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                INSERT INTO membership_renewals({_RENEWAL_COLUMNS})
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s,%s)
                """,
                (
                    record.renewal_id,
                    record.member_id,
                    record.staff_id,
                    record.staff_name,
                    record.payment_method.value,
                    record.amount,
                    record.currency,
                    record.plan_kind.value,
                    record.duration_months,
                    record.period_start,
                    record.period_end,
                    record.timestamp,
                ),
            )
            cur.execute(
                """
                INSERT INTO members(
                    member_id, membership_active, plan_kind, start_date, expiration_date,
                    continuous_tenure_units, last_renewal_date, last_renewed_by_staff_id, payment_method
                )
                VALUES(%s,%s,%s,%s,%s,%s,%s,%s,%s)
                ON DUPLICATE KEY UPDATE
                    membership_active=VALUES(membership_active),
                    plan_kind=VALUES(plan_kind),
                    start_date=VALUES(start_date),
                    expiration_date=VALUES(expiration_date),
                    continuous_tenure_units=VALUES(continuous_tenure_units),
                    last_renewal_date=VALUES(last_renewal_date),
                    last_renewed_by_staff_id=VALUES(last_renewed_by_staff_id),
                    payment_method=VALUES(payment_method)
                """,
                (
                    member_id,
                    1 if period.active else 0,
                    period.plan_kind.value,
                    period.start_date,
                    period.expiration_date,
                    int(period.continuous_tenure_units),
                    period.last_renewal_date,
                    period.last_renewed_by_staff_id,
                    period.payment_method.value if period.payment_method else None,
                ),
            )

    def list_renewals_for_member(self, member_id: str, *, limit: int) -> Sequence[RenewalRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"""
                SELECT {_RENEWAL_COLUMNS}
                FROM membership_renewals
                WHERE member_id=%s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (member_id, int(limit)),
            )
            return [decode_renewal(r) for r in fetchall(cur)]

    def list_recent_renewals(self, *, limit: int) -> Sequence[RenewalRecord]:
        with db_cursor(self._conn_factory) as (_, cur):
            cur.execute(
                f"SELECT {_RENEWAL_COLUMNS} FROM membership_renewals ORDER BY created_at DESC LIMIT %s",
                (int(limit),),
            )
            return [decode_renewal(r) for r in fetchall(cur)]
