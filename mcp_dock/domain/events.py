"""Domain events for the server registry.

Events capture lifecycle transitions and tool calls so that logging,
metrics and other observers can react without coupling to the controller.
"""

from abc import ABC
from dataclasses import dataclass
import time
from typing import Any, Dict, Optional
import uuid


class DomainEvent(ABC):
    """
    Base class for all domain events.

    Note: Not a dataclass to avoid inheritance issues.
    Subclasses should be dataclasses.
    """

    def __init__(self):
        self.event_id: str = str(uuid.uuid4())
        self.occurred_at: float = time.time()

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization."""
        return {"event_type": self.__class__.__name__, **self.__dict__}


# Registry Events


@dataclass
class ServerRegistered(DomainEvent):
    """Published when a server descriptor is added to the registry."""

    server_id: str
    category: str
    tools_count: int

    def __post_init__(self):
        super().__init__()


# Lifecycle Events


@dataclass
class ServerStateChanged(DomainEvent):
    """Published on every successful state transition."""

    server_id: str
    old_state: str
    new_state: str

    def __post_init__(self):
        super().__init__()


@dataclass
class ServerStarted(DomainEvent):
    """Published when a server reaches the active state."""

    server_id: str
    session_id: str
    startup_duration_ms: float

    def __post_init__(self):
        super().__init__()


@dataclass
class ServerStopped(DomainEvent):
    """Published when a server returns to inactive."""

    server_id: str
    reason: str  # "stop", "disconnect", "reset"

    def __post_init__(self):
        super().__init__()


@dataclass
class ServerStartFailed(DomainEvent):
    """Published when a start/connect attempt ends in the error state."""

    server_id: str
    error_message: str
    timed_out: bool = False

    def __post_init__(self):
        super().__init__()


@dataclass
class LifecycleActionRejected(DomainEvent):
    """Published when an action is refused because of the current state."""

    server_id: str
    action: str
    current_state: str

    def __post_init__(self):
        super().__init__()


# Health Check Events


@dataclass
class HealthCheckPassed(DomainEvent):
    """Published when a health check succeeds."""

    server_id: str
    duration_ms: float

    def __post_init__(self):
        super().__init__()


@dataclass
class HealthCheckFailed(DomainEvent):
    """Published when a health check fails and the server moves to error."""

    server_id: str
    error_message: str

    def __post_init__(self):
        super().__init__()


# Tool Call Events


@dataclass
class ToolCallRecorded(DomainEvent):
    """Published whenever a call record is appended to the ledger."""

    server_id: str
    tool_name: str
    success: bool
    response_time_ms: float
    error_message: Optional[str] = None

    def __post_init__(self):
        super().__init__()
