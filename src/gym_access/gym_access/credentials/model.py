from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from ..core.enums import VerificationStatus


@dataclass(frozen=True)
class Credential:
    """Short-lived signed access code. Never persisted."""

    member_id: str
    issued_at: int
    nonce: str
    signature: str


@dataclass(frozen=True)
class VerificationResult:
    status: VerificationStatus
    member_id: Optional[str] = None
    reason: Optional[str] = None
    nonce: Optional[str] = None
    issued_at: Optional[int] = None

    @classmethod
    def valid(cls, member_id: str, *, nonce: str | None = None, issued_at: int | None = None) -> "VerificationResult":
        return cls(VerificationStatus.VALID, member_id=member_id, nonce=nonce, issued_at=issued_at)

    @classmethod
    def invalid(cls, reason: str) -> "VerificationResult":
        return cls(VerificationStatus.INVALID, reason=reason)

    @classmethod
    def expired(cls, reason: str) -> "VerificationResult":
        return cls(VerificationStatus.EXPIRED, reason=reason)

    @property
    def is_valid(self) -> bool:
        return self.status == VerificationStatus.VALID


@dataclass(frozen=True)
class RotationSnapshot:
    """What the member's "show my code" view renders."""

    member_id: Optional[str]
    token: str
    seconds_until_refresh: int
    active: bool
