from __future__ import annotations

from datetime import datetime
from typing import Protocol, Sequence

from .model import AttendanceEvent


class AttendanceRepository(Protocol):
    def append(self, event: AttendanceEvent) -> None:
        raise NotImplementedError

    def list_for_member(
        self,
        member_id: str,
        *,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> Sequence[AttendanceEvent]:
        """Events of one member, newest first."""

        raise NotImplementedError

    def list_recent(self, *, limit: int) -> Sequence[AttendanceEvent]:
        raise NotImplementedError
