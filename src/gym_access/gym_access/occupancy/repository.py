from __future__ import annotations

from datetime import datetime
from typing import Optional, Protocol, Tuple


class OccupancyRepository(Protocol):
    """Headcount per location.

    ``apply_delta`` must be a single atomic store operation (no read-then-write
    in application code) and must clamp the stored count at zero.
    """

    def apply_delta(self, location_id: str, delta: int, *, now: datetime) -> Tuple[int, datetime]:
        """Returns the count and timestamp after the delta was applied."""

        raise NotImplementedError

    def get(self, location_id: str) -> Optional[Tuple[int, datetime]]:
        raise NotImplementedError
