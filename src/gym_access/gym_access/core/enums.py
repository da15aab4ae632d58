from __future__ import annotations

from enum import Enum


class Role(str, Enum):
    """Roles handed over by the identity bridge (consumed, not managed here)."""

    MEMBER = "member"
    STAFF = "staff"
    ADMIN = "admin"


class PlanKind(str, Enum):
    """Membership plan sold at the front desk."""

    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    TRANSFER = "transfer"
    OTHER = "other"


class AttendanceKind(str, Enum):
    """Direction of a scan at the front desk."""

    ENTRY = "entry"
    EXIT = "exit"


class VerificationStatus(str, Enum):
    VALID = "valid"
    INVALID = "invalid"
    EXPIRED = "expired"


class ScanStatus(str, Enum):
    """Outcome of the operator scan flow as shown to staff."""

    ACCEPTED = "ACCEPTED"
    INVALID_CODE = "INVALID_CODE"
    EXPIRED_CODE = "EXPIRED_CODE"
    MEMBERSHIP_INACTIVE = "MEMBERSHIP_INACTIVE"


class OccupancyLevel(str, Enum):
    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"
    FULL = "full"
