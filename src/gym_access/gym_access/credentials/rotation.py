from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Optional

from ..common.datetime_utils import epoch_seconds
from ..core.constants import TOKEN_ROTATION_SECONDS
from .model import RotationSnapshot
from .signer import CredentialEncodingError, CredentialSigner, encode_credential

logger = logging.getLogger(__name__)


class TokenRotationController:
    """Keeps a fresh code for one presenting member.

    ``tick()`` is the only state transition: it refreshes the countdown and
    re-issues the code once the rotation interval has elapsed. ``start()``
    drives ``tick()`` once per second from a background thread; ``stop()``
    cancels that thread and drops all state. A tick that races with ``stop()``
    sees the bumped session number and does nothing.
    """

    def __init__(
        self,
        signer: CredentialSigner,
        *,
        interval_seconds: int = TOKEN_ROTATION_SECONDS,
        clock: Callable[[], int] = epoch_seconds,
        tick_seconds: float = 1.0,
        idle_timeout_seconds: int | None = None,
    ):
        self._signer = signer
        self._interval = int(interval_seconds)
        # Without a heartbeat (touch) for this long the session ends by itself.
        self._idle_timeout = int(idle_timeout_seconds) if idle_timeout_seconds is not None else 2 * self._interval
        self._clock = clock
        self._tick_seconds = float(tick_seconds)

        self._lock = threading.Lock()
        self._session = 0
        self._member_id: Optional[str] = None
        self._token = ""
        self._issued_at: Optional[int] = None
        self._seconds_left = self._interval
        self._last_seen: Optional[int] = None
        self._stop_event: Optional[threading.Event] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def current_token(self) -> str:
        with self._lock:
            return self._token

    @property
    def seconds_until_refresh(self) -> int:
        with self._lock:
            return self._seconds_left

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._member_id is not None

    def snapshot(self) -> RotationSnapshot:
        with self._lock:
            return RotationSnapshot(
                member_id=self._member_id,
                token=self._token,
                seconds_until_refresh=self._seconds_left,
                active=self._member_id is not None,
            )

    def begin(self, member_id: str) -> int:
        """Open a session and issue the first code without starting the timer thread."""
        with self._lock:
            self._session += 1
            self._member_id = member_id
            self._token = ""
            self._issued_at = None
            self._seconds_left = self._interval
            self._last_seen = int(self._clock())
            session = self._session
        self._rotate(session)
        return session

    def start(self, member_id: str) -> None:
        self.stop()
        session = self.begin(member_id)

        stop_event = threading.Event()
        thread = threading.Thread(
            target=self._run,
            args=(session, stop_event),
            name=f"token-rotation-{member_id}",
            daemon=True,
        )
        with self._lock:
            self._stop_event = stop_event
            self._thread = thread
        thread.start()
        logger.debug("rotation started for member=%s", member_id)

    def stop(self) -> None:
        self._end(None)

    def touch(self) -> None:
        """Heartbeat from the presenting client."""
        with self._lock:
            if self._member_id is not None:
                self._last_seen = int(self._clock())

    def _end(self, expected_session: int | None) -> None:
        with self._lock:
            if expected_session is not None and expected_session != self._session:
                return
            self._session += 1
            member_id = self._member_id
            self._member_id = None
            self._token = ""
            self._issued_at = None
            self._seconds_left = self._interval
            self._last_seen = None
            stop_event, thread = self._stop_event, self._thread
            self._stop_event = None
            self._thread = None

        if stop_event is not None:
            stop_event.set()
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=self._tick_seconds * 2)
        if member_id is not None:
            logger.debug("rotation stopped for member=%s", member_id)

    def tick(self) -> None:
        with self._lock:
            session = self._session
            member_id = self._member_id
            if member_id is None:
                return
            now = int(self._clock())
            idle = self._last_seen is not None and now - self._last_seen > self._idle_timeout
            if not idle and self._issued_at is not None:
                elapsed = now - self._issued_at
                if elapsed < self._interval:
                    self._seconds_left = max(0, self._interval - elapsed)
                    return
        if idle:
            logger.info("rotation expired for member=%s, no heartbeat for %ss", member_id, self._idle_timeout)
            self._end(session)
            return
        self._rotate(session)

    def _run(self, session: int, stop_event: threading.Event) -> None:
        while not stop_event.wait(self._tick_seconds):
            with self._lock:
                if session != self._session:
                    return
            self.tick()

    def _rotate(self, session: int) -> None:
        with self._lock:
            member_id = self._member_id
        if member_id is None:
            return

        now = int(self._clock())
        try:
            token = encode_credential(self._signer.issue(member_id, now=now))
        except CredentialEncodingError as e:
            logger.warning("could not encode code for member=%s, retrying next tick: %s", member_id, e)
            return

        with self._lock:
            if session != self._session:
                return
            self._token = token
            self._issued_at = now
            self._seconds_left = self._interval


class RotationRegistry:
    """At most one rotation session per presenting member."""

    def __init__(self, factory: Callable[[], TokenRotationController], *, autostart: bool = True):
        self._factory = factory
        self._autostart = autostart
        self._lock = threading.Lock()
        self._sessions: Dict[str, TokenRotationController] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _prune(self) -> None:
        # Caller holds self._lock. Expired sessions have already stopped themselves.
        for member_id in [m for m, c in self._sessions.items() if not c.is_running]:
            del self._sessions[member_id]

    def open(self, member_id: str) -> RotationSnapshot:
        with self._lock:
            self._prune()
            controller = self._sessions.get(member_id)
            if controller is None:
                controller = self._factory()
                self._sessions[member_id] = controller
        if not controller.is_running:
            if self._autostart:
                controller.start(member_id)
            else:
                controller.begin(member_id)
        return controller.snapshot()

    def get(self, member_id: str) -> Optional[RotationSnapshot]:
        with self._lock:
            controller = self._sessions.get(member_id)
        if controller is None:
            return None
        if not self._autostart:
            controller.tick()
        if not controller.is_running:
            with self._lock:
                if self._sessions.get(member_id) is controller:
                    del self._sessions[member_id]
            return None
        controller.touch()
        return controller.snapshot()

    def close(self, member_id: str) -> bool:
        with self._lock:
            controller = self._sessions.pop(member_id, None)
        if controller is None:
            return False
        controller.stop()
        return True

    def close_all(self) -> None:
        with self._lock:
            controllers = list(self._sessions.values())
            self._sessions.clear()
        for controller in controllers:
            controller.stop()
