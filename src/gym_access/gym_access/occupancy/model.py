from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from ..core.constants import DEFAULT_MAX_CAPACITY
from ..core.enums import OccupancyLevel


@dataclass(frozen=True)
class OccupancyState:
    location_id: str
    count: int
    last_updated: Optional[datetime]
    max_capacity: int = DEFAULT_MAX_CAPACITY

    @property
    def percentage(self) -> float:
        if self.max_capacity <= 0:
            return 0.0
        return min(self.count / self.max_capacity, 1.0)

    @property
    def level(self) -> OccupancyLevel:
        p = self.percentage
        if p < 0.25:
            return OccupancyLevel.LOW
        if p < 0.50:
            return OccupancyLevel.MODERATE
        if p < 0.75:
            return OccupancyLevel.HIGH
        if p < 0.90:
            return OccupancyLevel.VERY_HIGH
        return OccupancyLevel.FULL

    def as_dict(self) -> dict:
        return {
            "location_id": self.location_id,
            "count": self.count,
            "max_capacity": self.max_capacity,
            "percentage": round(self.percentage, 4),
            "level": self.level.value,
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }
