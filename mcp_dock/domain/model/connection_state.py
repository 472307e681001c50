"""Connection state value and the lifecycle state machine."""

from dataclasses import dataclass, replace
import time
from typing import Any, Dict, FrozenSet, Mapping, Optional

from ..value_objects import ServerStatus

# Allowed edges. Every state is revisitable; nothing is terminal.
VALID_TRANSITIONS: Mapping[ServerStatus, FrozenSet[ServerStatus]] = {
    ServerStatus.INACTIVE: frozenset({ServerStatus.CONNECTING}),
    ServerStatus.CONNECTING: frozenset({ServerStatus.ACTIVE, ServerStatus.ERROR}),
    ServerStatus.ACTIVE: frozenset({ServerStatus.INACTIVE, ServerStatus.ERROR}),
    ServerStatus.ERROR: frozenset({ServerStatus.CONNECTING, ServerStatus.INACTIVE}),
}


def can_transition(from_status: ServerStatus, to_status: ServerStatus) -> bool:
    return to_status in VALID_TRANSITIONS[from_status]


@dataclass(frozen=True)
class ConnectionState:
    """Live state of one server.

    Instances are immutable; the tracker swaps in a new instance on every
    change so readers always see a consistent snapshot.

    Invariant: ``session_id`` is set if and only if ``status`` is ACTIVE.
    """

    status: ServerStatus = ServerStatus.INACTIVE
    last_health_check: Optional[float] = None
    session_id: Optional[str] = None
    last_error: Optional[str] = None
    changed_at: Optional[float] = None

    def __post_init__(self) -> None:
        if (self.session_id is not None) != (self.status == ServerStatus.ACTIVE):
            raise ValueError(f"session_id must be set exactly when status is active (status={self.status.value})")

    @property
    def is_active(self) -> bool:
        return self.status == ServerStatus.ACTIVE

    def moved_to(self, status: ServerStatus, error: Optional[str] = None) -> "ConnectionState":
        """Return the state after a transition that binds no session."""
        return replace(
            self,
            status=status,
            session_id=None,
            last_error=error if status == ServerStatus.ERROR else self.last_error,
            changed_at=time.time(),
        )

    def activated(self, session_id: str) -> "ConnectionState":
        """Return the active state bound to ``session_id``."""
        now = time.time()
        return replace(
            self,
            status=ServerStatus.ACTIVE,
            session_id=session_id,
            last_error=None,
            last_health_check=now,
            changed_at=now,
        )

    def checked(self, at: Optional[float] = None) -> "ConnectionState":
        return replace(self, last_health_check=at if at is not None else time.time())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "lastHealthCheck": self.last_health_check,
            "sessionId": self.session_id,
            "lastError": self.last_error,
        }
