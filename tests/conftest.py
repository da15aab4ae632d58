from __future__ import annotations

import threading
from datetime import datetime
from typing import Dict, List, Optional, Tuple

import pytest

from src.gym_access.gym_access.attendance.model import AttendanceEvent
from src.gym_access.gym_access.attendance.service import AttendanceLedger
from src.gym_access.gym_access.access.service import AccessService
from src.gym_access.gym_access.credentials.signer import CredentialSigner
from src.gym_access.gym_access.membership.model import MembershipPeriod, RenewalRecord
from src.gym_access.gym_access.membership.service import MembershipLedger
from src.gym_access.gym_access.occupancy.service import OccupancyCounter

SECRET = "unit-test-secret"


class InMemoryMemberships:
    def __init__(self):
        self.periods: Dict[str, MembershipPeriod] = {}
        self.renewals: List[RenewalRecord] = []
        self.fail_next_save = False

    def get_member(self, member_id: str):
        return None

    def get_period(self, member_id: str) -> Optional[MembershipPeriod]:
        return self.periods.get(member_id)

    def save_renewal(self, *, member_id: str, period: MembershipPeriod, record: RenewalRecord) -> None:
        if self.fail_next_save:
            from src.gym_access.gym_access.core.exceptions import StoreError

            self.fail_next_save = False
            raise StoreError("simulated outage")
        self.renewals.append(record)
        self.periods[member_id] = period

    def list_renewals_for_member(self, member_id: str, *, limit: int):
        return [r for r in self.renewals if r.member_id == member_id][:limit]

    def list_recent_renewals(self, *, limit: int):
        return sorted(self.renewals, key=lambda r: r.timestamp, reverse=True)[:limit]


class InMemoryAttendance:
    def __init__(self):
        self.events: List[AttendanceEvent] = []
        self._lock = threading.Lock()

    def append(self, event: AttendanceEvent) -> None:
        with self._lock:
            self.events.append(event)

    def discard(self, event: AttendanceEvent) -> None:
        with self._lock:
            self.events.remove(event)

    def list_for_member(self, member_id: str, *, start=None, end=None, limit=None):
        items = [e for e in self.events if e.member_id == member_id]
        if start is not None:
            items = [e for e in items if e.timestamp >= start]
        if end is not None:
            items = [e for e in items if e.timestamp <= end]
        items.sort(key=lambda e: e.timestamp, reverse=True)
        return items[:limit] if limit is not None else items

    def list_recent(self, *, limit: int):
        return sorted(self.events, key=lambda e: e.timestamp, reverse=True)[:limit]


class InMemoryOccupancy:
    """Mimics the store's atomic clamped delta; records every value it ever held."""

    def __init__(self):
        self._lock = threading.Lock()
        self.rows: Dict[str, Tuple[int, datetime]] = {}
        self.observed: List[int] = []

    def apply_delta(self, location_id: str, delta: int, *, now: datetime):
        with self._lock:
            count, _ = self.rows.get(location_id, (0, now))
            count = max(count + delta, 0)
            self.rows[location_id] = (count, now)
            self.observed.append(count)
            return count, now

    def get(self, location_id: str):
        return self.rows.get(location_id)


class InMemoryAdmissions:
    """Event + delta as one unit: a failed delta takes the event back out."""

    def __init__(self, attendance: InMemoryAttendance, occupancy: InMemoryOccupancy):
        self._attendance = attendance
        self._occupancy = occupancy

    def record_admission(self, event: AttendanceEvent, delta: int):
        self._attendance.append(event)
        try:
            return self._occupancy.apply_delta(event.location_id, delta, now=event.timestamp)
        except Exception:
            self._attendance.discard(event)
            raise


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2026, 2, 2, 8, 30, 0)


@pytest.fixture
def memberships_repo() -> InMemoryMemberships:
    return InMemoryMemberships()


@pytest.fixture
def attendance_repo() -> InMemoryAttendance:
    return InMemoryAttendance()


@pytest.fixture
def occupancy_repo() -> InMemoryOccupancy:
    return InMemoryOccupancy()


@pytest.fixture
def admissions_repo(attendance_repo, occupancy_repo) -> InMemoryAdmissions:
    return InMemoryAdmissions(attendance_repo, occupancy_repo)


@pytest.fixture
def signer() -> CredentialSigner:
    return CredentialSigner(SECRET)


@pytest.fixture
def membership_ledger(memberships_repo, fixed_now) -> MembershipLedger:
    return MembershipLedger(memberships_repo, clock=lambda: fixed_now)


@pytest.fixture
def attendance_ledger(attendance_repo, fixed_now) -> AttendanceLedger:
    return AttendanceLedger(attendance_repo, clock=lambda: fixed_now)


@pytest.fixture
def occupancy_counter(occupancy_repo, fixed_now) -> OccupancyCounter:
    return OccupancyCounter(occupancy_repo, clock=lambda: fixed_now)


@pytest.fixture
def access_service(signer, membership_ledger, attendance_ledger, occupancy_counter, admissions_repo, fixed_now) -> AccessService:
    return AccessService(
        signer,
        membership_ledger,
        attendance_ledger,
        occupancy_counter,
        admissions_repo,
        tolerance_seconds=60,
        clock=lambda: fixed_now,
    )
