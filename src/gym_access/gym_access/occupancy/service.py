from __future__ import annotations

import logging
import threading
from datetime import datetime
from typing import Callable, Dict, List

from ..common.datetime_utils import now_local
from ..common.validators import require_non_empty
from ..core.constants import DEFAULT_MAX_CAPACITY
from .model import OccupancyState
from .repository import OccupancyRepository

logger = logging.getLogger(__name__)

Observer = Callable[[OccupancyState], None]


class OccupancyCounter:
    """Best-effort live headcount per location with push updates to observers."""

    def __init__(
        self,
        occupancy: OccupancyRepository,
        *,
        clock: Callable[[], datetime] = now_local,
        max_capacity: int = DEFAULT_MAX_CAPACITY,
    ):
        self._occupancy = occupancy
        self._clock = clock
        self._max_capacity = int(max_capacity)
        self._lock = threading.Lock()
        self._observers: Dict[str, List[Observer]] = {}

    def increment(self, location_id: str, *, now: datetime | None = None) -> OccupancyState:
        return self._apply(location_id, +1, now)

    def decrement(self, location_id: str, *, now: datetime | None = None) -> OccupancyState:
        return self._apply(location_id, -1, now)

    def current(self, location_id: str) -> OccupancyState:
        location_id = require_non_empty(location_id, "location_id")
        row = self._occupancy.get(location_id)
        if row is None:
            return OccupancyState(location_id=location_id, count=0, last_updated=None, max_capacity=self._max_capacity)
        count, last_updated = row
        return OccupancyState(location_id, max(0, count), last_updated, self._max_capacity)

    def subscribe(self, location_id: str, observer: Observer) -> Callable[[], None]:
        """Register an observer for every write on ``location_id``; returns the unsubscribe callable."""
        location_id = require_non_empty(location_id, "location_id")
        with self._lock:
            self._observers.setdefault(location_id, []).append(observer)

        def unsubscribe() -> None:
            with self._lock:
                observers = self._observers.get(location_id, [])
                if observer in observers:
                    observers.remove(observer)
                if not observers:
                    self._observers.pop(location_id, None)

        return unsubscribe

    def observer_count(self, location_id: str) -> int:
        with self._lock:
            return len(self._observers.get(location_id, []))

    def applied(self, location_id: str, count: int, last_updated: datetime) -> OccupancyState:
        """State after a delta some other unit of work has already committed; pushes it to observers."""
        state = OccupancyState(location_id, count, last_updated, self._max_capacity)
        self._publish(state)
        return state

    def _apply(self, location_id: str, delta: int, now: datetime | None) -> OccupancyState:
        location_id = require_non_empty(location_id, "location_id")
        count, last_updated = self._occupancy.apply_delta(location_id, delta, now=now or self._clock())
        logger.debug("occupancy %s %+d -> %d", location_id, delta, count)
        return self.applied(location_id, count, last_updated)

    def _publish(self, state: OccupancyState) -> None:
        with self._lock:
            observers = list(self._observers.get(state.location_id, []))
        for observer in observers:
            try:
                observer(state)
            except Exception:
                logger.exception("occupancy observer failed for location=%s", state.location_id)
