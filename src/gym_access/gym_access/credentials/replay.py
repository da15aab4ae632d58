from __future__ import annotations

import threading
from typing import Dict, Tuple

from ..core.constants import TOKEN_TOLERANCE_SECONDS


class ConsumedNonceCache:
    """Remembers codes already accepted inside the tolerance window.

    Entries expire on their own once the code could no longer pass the
    freshness check, so memory stays bounded by scan volume per window.
    """

    def __init__(self, *, window_seconds: int = TOKEN_TOLERANCE_SECONDS):
        self._window = int(window_seconds)
        self._lock = threading.Lock()
        self._seen: Dict[Tuple[str, str], int] = {}

    def consume(self, member_id: str, nonce: str, issued_at: int, *, now: int) -> bool:
        """Mark a code as used. Returns False if it was already used."""
        key = (member_id, nonce)
        with self._lock:
            self._evict(now)
            if key in self._seen:
                return False
            self._seen[key] = int(issued_at)
            return True

    def __len__(self) -> int:
        with self._lock:
            return len(self._seen)

    def _evict(self, now: int) -> None:
        horizon = int(now) - self._window
        for key in [k for k, ts in self._seen.items() if ts < horizon]:
            del self._seen[key]
