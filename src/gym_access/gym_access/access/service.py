from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Iterator, Optional

from ..attendance.model import AttendanceEvent
from ..attendance.service import AttendanceLedger
from ..common.datetime_utils import epoch_seconds, now_local
from ..common.validators import require_enum, require_non_empty
from ..core.constants import TOKEN_TOLERANCE_SECONDS
from ..core.enums import AttendanceKind, ScanStatus, VerificationStatus
from ..credentials.replay import ConsumedNonceCache
from ..credentials.signer import CredentialSigner
from ..membership.service import MembershipLedger
from ..occupancy.model import OccupancyState
from ..occupancy.service import OccupancyCounter
from .repository import AdmissionRepository

logger = logging.getLogger(__name__)

MESSAGES = {
    ScanStatus.ACCEPTED: "Access granted",
    # Forged and unreadable codes look the same to the operator.
    ScanStatus.INVALID_CODE: "Invalid code",
    ScanStatus.EXPIRED_CODE: "Code expired, ask the member to refresh it",
    ScanStatus.MEMBERSHIP_INACTIVE: "Membership inactive, renewal required",
}


@dataclass(frozen=True)
class ScanOutcome:
    status: ScanStatus
    message: str
    member_id: Optional[str] = None
    event: Optional[AttendanceEvent] = None
    occupancy: Optional[OccupancyState] = None

    @property
    def accepted(self) -> bool:
        return self.status == ScanStatus.ACCEPTED

    def as_dict(self) -> dict:
        return {
            "success": self.accepted,
            "status": self.status.value,
            "message": self.message,
            "member_id": self.member_id,
            "event_id": self.event.event_id if self.event else None,
            "kind": self.event.kind.value if self.event else None,
            "occupancy": self.occupancy.as_dict() if self.occupancy else None,
        }


class _MemberLock:
    __slots__ = ("lock", "users")

    def __init__(self):
        self.lock = threading.Lock()
        self.users = 0


class AccessService:
    """Operator scan flow: verify -> entitlement -> record event -> adjust counter.

    Scans of the same member run one at a time; different members do not
    wait on each other. The event and the counter delta are written in one
    transaction, so a store failure (StoreError) leaves neither behind.
    """

    def __init__(
        self,
        signer: CredentialSigner,
        memberships: MembershipLedger,
        attendance: AttendanceLedger,
        occupancy: OccupancyCounter,
        admissions: AdmissionRepository,
        *,
        tolerance_seconds: int = TOKEN_TOLERANCE_SECONDS,
        replay_guard: ConsumedNonceCache | None = None,
        epoch_clock: Callable[[], int] = epoch_seconds,
        clock: Callable[[], datetime] = now_local,
    ):
        self._signer = signer
        self._memberships = memberships
        self._attendance = attendance
        self._occupancy = occupancy
        self._admissions = admissions
        self._tolerance = int(tolerance_seconds)
        self._replay_guard = replay_guard
        self._epoch_clock = epoch_clock
        self._clock = clock

        self._locks_guard = threading.Lock()
        self._member_locks: Dict[str, _MemberLock] = {}

    @property
    def member_lock_count(self) -> int:
        with self._locks_guard:
            return len(self._member_locks)

    @contextmanager
    def _member_lock(self, member_id: str) -> Iterator[None]:
        # An entry lives only while some scan of that member holds or waits on it.
        with self._locks_guard:
            entry = self._member_locks.get(member_id)
            if entry is None:
                entry = _MemberLock()
                self._member_locks[member_id] = entry
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._locks_guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._member_locks[member_id]

    def process_scan(
        self,
        raw: str,
        *,
        kind: AttendanceKind | str,
        staff_id: str,
        location_id: str,
        now: datetime | None = None,
        now_epoch: int | None = None,
    ) -> ScanOutcome:
        kind = require_enum(kind, AttendanceKind, "kind")
        staff_id = require_non_empty(staff_id, "staff_id")
        location_id = require_non_empty(location_id, "location_id")
        now_epoch = int(self._epoch_clock() if now_epoch is None else now_epoch)

        result = self._signer.verify(raw, now=now_epoch, tolerance_seconds=self._tolerance)
        if result.status == VerificationStatus.EXPIRED:
            return ScanOutcome(ScanStatus.EXPIRED_CODE, MESSAGES[ScanStatus.EXPIRED_CODE])
        if not result.is_valid:
            return ScanOutcome(ScanStatus.INVALID_CODE, MESSAGES[ScanStatus.INVALID_CODE])

        member_id = result.member_id
        with self._member_lock(member_id):
            if self._replay_guard is not None and not self._replay_guard.consume(
                member_id, result.nonce, result.issued_at, now=now_epoch
            ):
                logger.warning("credential replay rejected for member=%s", member_id)
                return ScanOutcome(ScanStatus.INVALID_CODE, MESSAGES[ScanStatus.INVALID_CODE], member_id=member_id)

            return self._admit(member_id, kind, staff_id=staff_id, location_id=location_id, now=now)

    def process_manual(
        self,
        member_id: str,
        *,
        kind: AttendanceKind | str,
        staff_id: str,
        location_id: str,
        now: datetime | None = None,
    ) -> ScanOutcome:
        """Front-desk entry/exit typed in by staff when the member cannot show a code."""
        member_id = require_non_empty(member_id, "member_id")
        kind = require_enum(kind, AttendanceKind, "kind")
        staff_id = require_non_empty(staff_id, "staff_id")
        location_id = require_non_empty(location_id, "location_id")

        with self._member_lock(member_id):
            return self._admit(member_id, kind, staff_id=staff_id, location_id=location_id, now=now)

    def _admit(
        self,
        member_id: str,
        kind: AttendanceKind,
        *,
        staff_id: str,
        location_id: str,
        now: datetime | None,
    ) -> ScanOutcome:
        # Caller holds the member lock.
        now = now or self._clock()
        if not self._memberships.is_entitled(member_id, now=now):
            logger.info("scan refused, membership inactive member=%s", member_id)
            return ScanOutcome(
                ScanStatus.MEMBERSHIP_INACTIVE,
                MESSAGES[ScanStatus.MEMBERSHIP_INACTIVE],
                member_id=member_id,
            )

        event = self._attendance.new_event(member_id, kind, staff_id=staff_id, location_id=location_id, now=now)
        delta = 1 if kind == AttendanceKind.ENTRY else -1
        count, last_updated = self._admissions.record_admission(event, delta)
        logger.info(
            "attendance %s member=%s location=%s staff=%s occupancy=%d",
            kind.value,
            member_id,
            location_id,
            staff_id,
            count,
        )
        # Observers only ever see committed counts.
        state = self._occupancy.applied(location_id, count, last_updated)

        return ScanOutcome(
            ScanStatus.ACCEPTED,
            MESSAGES[ScanStatus.ACCEPTED],
            member_id=member_id,
            event=event,
            occupancy=state,
        )
