"""Connection tracker - live state per server and the transition rules."""

import threading
from typing import Dict, Optional, Tuple

from ..logging_config import get_logger
from .exceptions import InvalidStateTransitionError
from .model import can_transition, ConnectionState
from .value_objects import ServerStatus

logger = get_logger(__name__)

_DEFAULT_STATE = ConnectionState()


class ConnectionTracker:
    """
    Holds one ConnectionState per server id.

    Writes to the same id are serialized by a per-id lock (atomic
    check-then-set); writes to different ids never contend. Reads return the
    current immutable state object without locking.

    The only way into ACTIVE is ``bind_session``, which keeps the
    session/status invariant inside the tracker.
    """

    def __init__(self):
        self._states: Dict[str, ConnectionState] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, server_id: str) -> threading.Lock:
        lock = self._locks.get(server_id)
        if lock is None:
            with self._locks_guard:
                lock = self._locks.setdefault(server_id, threading.Lock())
        return lock

    def get(self, server_id: str) -> ConnectionState:
        """Current state, INACTIVE with no session if never touched."""
        return self._states.get(server_id, _DEFAULT_STATE)

    def snapshot(self) -> Dict[str, ConnectionState]:
        """Copy of all touched states."""
        return dict(self._states)

    def transition(
        self,
        server_id: str,
        new_status: ServerStatus,
        error: Optional[str] = None,
        expected_session_id: Optional[str] = None,
    ) -> Tuple[ConnectionState, ConnectionState]:
        """
        Move a server to ``new_status``.

        Args:
            server_id: Server to transition
            new_status: Target status (not ACTIVE, use bind_session)
            error: Cause recorded when moving to ERROR
            expected_session_id: Only transition if this session is still bound

        Returns:
            (old_state, new_state)

        Raises:
            InvalidStateTransitionError: If the edge is not allowed or the expected
                session is no longer bound; state is untouched
        """
        if new_status == ServerStatus.ACTIVE:
            old = self.get(server_id)
            raise InvalidStateTransitionError(server_id, old.status.value, new_status.value)

        with self._lock_for(server_id):
            old = self.get(server_id)
            if expected_session_id is not None and old.session_id != expected_session_id:
                raise InvalidStateTransitionError(
                    server_id, old.status.value, new_status.value, reason="session changed"
                )
            if not can_transition(old.status, new_status):
                raise InvalidStateTransitionError(server_id, old.status.value, new_status.value)
            new = old.moved_to(new_status, error=error)
            self._states[server_id] = new

        logger.debug(
            "server_state_transition",
            server_id=server_id,
            old_state=old.status.value,
            new_state=new.status.value,
        )
        return old, new

    def bind_session(self, server_id: str, session_id: str) -> Tuple[ConnectionState, ConnectionState]:
        """
        Complete a handshake: CONNECTING -> ACTIVE bound to ``session_id``.

        Raises:
            InvalidStateTransitionError: If the server is not CONNECTING
            ValueError: If session_id is empty
        """
        if not session_id:
            raise ValueError("session_id cannot be empty")

        with self._lock_for(server_id):
            old = self.get(server_id)
            if not can_transition(old.status, ServerStatus.ACTIVE):
                raise InvalidStateTransitionError(server_id, old.status.value, ServerStatus.ACTIVE.value)
            new = old.activated(session_id)
            self._states[server_id] = new

        logger.debug("server_session_bound", server_id=server_id, session_id=session_id)
        return old, new

    def touch_health_check(self, server_id: str, at: Optional[float] = None) -> ConnectionState:
        """Stamp ``last_health_check`` without changing status."""
        with self._lock_for(server_id):
            new = self.get(server_id).checked(at)
            self._states[server_id] = new
        return new
