from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from .access.mysql_admission_repository import MySQLAdmissionRepository
from .access.repository import AdmissionRepository
from .access.service import AccessService
from .attendance.mysql_attendance_repository import MySQLAttendanceRepository
from .attendance.repository import AttendanceRepository
from .attendance.service import AttendanceLedger
from .core.constants import (
    DEFAULT_CURRENCY,
    DEFAULT_LOCATION_ID,
    DEFAULT_MAX_CAPACITY,
    DEFAULT_STORE_TIMEOUT_SECONDS,
    TOKEN_ROTATION_SECONDS,
    TOKEN_TOLERANCE_SECONDS,
)
from .credentials.replay import ConsumedNonceCache
from .credentials.rotation import RotationRegistry, TokenRotationController
from .credentials.signer import CredentialSigner
from .database.connection import DBConfig, DatabaseConnection
from .membership.mysql_membership_repository import MySQLMembershipRepository
from .membership.repository import MembershipRepository
from .membership.service import MembershipLedger
from .occupancy.mysql_occupancy_repository import MySQLOccupancyRepository
from .occupancy.repository import OccupancyRepository
from .occupancy.service import OccupancyCounter


@dataclass(frozen=True)
class AccessSettings:
    token_secret: str
    rotation_seconds: int = TOKEN_ROTATION_SECONDS
    tolerance_seconds: int = TOKEN_TOLERANCE_SECONDS
    default_location_id: str = DEFAULT_LOCATION_ID
    default_currency: str = DEFAULT_CURRENCY
    max_capacity: int = DEFAULT_MAX_CAPACITY
    replay_guard: bool = False


@dataclass(frozen=True)
class Container:
    settings: AccessSettings

    memberships_repo: MembershipRepository
    attendance_repo: AttendanceRepository
    occupancy_repo: OccupancyRepository
    admissions_repo: AdmissionRepository

    signer: CredentialSigner
    rotations: RotationRegistry
    membership_ledger: MembershipLedger
    attendance_ledger: AttendanceLedger
    occupancy_counter: OccupancyCounter
    access_service: AccessService

    conn: Optional[DatabaseConnection] = field(default=None)


def build_services(
    *,
    settings: AccessSettings,
    memberships_repo: MembershipRepository,
    attendance_repo: AttendanceRepository,
    occupancy_repo: OccupancyRepository,
    admissions_repo: AdmissionRepository,
    conn: DatabaseConnection | None = None,
    autostart_rotation: bool = True,
) -> Container:
    signer = CredentialSigner(settings.token_secret)
    rotations = RotationRegistry(
        lambda: TokenRotationController(signer, interval_seconds=settings.rotation_seconds),
        autostart=autostart_rotation,
    )
    membership_ledger = MembershipLedger(memberships_repo, default_currency=settings.default_currency)
    attendance_ledger = AttendanceLedger(attendance_repo)
    occupancy_counter = OccupancyCounter(occupancy_repo, max_capacity=settings.max_capacity)
    access_service = AccessService(
        signer,
        membership_ledger,
        attendance_ledger,
        occupancy_counter,
        admissions_repo,
        tolerance_seconds=settings.tolerance_seconds,
        replay_guard=ConsumedNonceCache(window_seconds=settings.tolerance_seconds) if settings.replay_guard else None,
    )

    return Container(
        settings=settings,
        memberships_repo=memberships_repo,
        attendance_repo=attendance_repo,
        occupancy_repo=occupancy_repo,
        admissions_repo=admissions_repo,
        signer=signer,
        rotations=rotations,
        membership_ledger=membership_ledger,
        attendance_ledger=attendance_ledger,
        occupancy_counter=occupancy_counter,
        access_service=access_service,
        conn=conn,
    )


def build_container(*, db_config: dict, settings: AccessSettings) -> Container:
    config = DBConfig(
        host=str(db_config["host"]),
        port=int(db_config.get("port", 3306)),
        user=str(db_config["user"]),
        password=str(db_config["password"]),
        database=str(db_config["database"]),
        timeout_seconds=int(db_config.get("timeout_seconds", DEFAULT_STORE_TIMEOUT_SECONDS)),
    )
    conn = DatabaseConnection(config)

    return build_services(
        settings=settings,
        memberships_repo=MySQLMembershipRepository(conn),
        attendance_repo=MySQLAttendanceRepository(conn),
        occupancy_repo=MySQLOccupancyRepository(conn),
        admissions_repo=MySQLAdmissionRepository(conn),
        conn=conn,
    )
