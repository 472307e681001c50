"""Domain model - descriptors, connection state and call records."""

from .call_record import CallRecord
from .connection_state import can_transition, ConnectionState, VALID_TRANSITIONS
from .server import ServerDescriptor, ToolDescriptor

__all__ = [
    "CallRecord",
    "ConnectionState",
    "ServerDescriptor",
    "ToolDescriptor",
    "VALID_TRANSITIONS",
    "can_transition",
]
