from __future__ import annotations

from typing import Optional, Protocol, Sequence

from .model import Member, MembershipPeriod, RenewalRecord


class MembershipRepository(Protocol):
    """Store interface for member records and the renewal audit trail.

    Note (DIP): the ledger depends on this interface, not on a concrete database.
    """

    def get_member(self, member_id: str) -> Optional[Member]:
        raise NotImplementedError

    def get_period(self, member_id: str) -> Optional[MembershipPeriod]:
        raise NotImplementedError

    def save_renewal(self, *, member_id: str, period: MembershipPeriod, record: RenewalRecord) -> None:
        """Persist the new period and append the renewal record as one unit of work."""

        raise NotImplementedError

    def list_renewals_for_member(self, member_id: str, *, limit: int) -> Sequence[RenewalRecord]:
        raise NotImplementedError

    def list_recent_renewals(self, *, limit: int) -> Sequence[RenewalRecord]:
        raise NotImplementedError
