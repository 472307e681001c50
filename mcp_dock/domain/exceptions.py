"""Domain exceptions.

Every exception carries a human readable ``message`` and a ``details`` dict so
that the HTTP and MCP layers can render it without knowing its type.

Propagation rules:
- ServerNotFoundError, DuplicateServerError, InvalidActionError and
  ValidationError surface to the caller as request failures.
- ConnectionFailure and ConnectTimeoutError never leave the lifecycle
  controller; they are absorbed into the ``error`` state and reported
  through the returned result.
"""

from typing import Any, Dict, Optional


class MCPDockError(Exception):
    """Base class for all mcp-dock errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a serializable payload."""
        return {
            "error": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


# --- Registry errors ---


class ServerNotFoundError(MCPDockError):
    """Raised when a server id is not registered."""

    def __init__(self, server_id: str):
        super().__init__(f"Server {server_id} not found", {"server_id": server_id})
        self.server_id = server_id


class DuplicateServerError(MCPDockError):
    """Raised when registering an id that is already present."""

    def __init__(self, server_id: str):
        super().__init__(f"Server {server_id} is already registered", {"server_id": server_id})
        self.server_id = server_id


# --- State machine errors ---


class InvalidStateTransitionError(MCPDockError):
    """Raised when a state change is not allowed by the state machine."""

    def __init__(self, server_id: str, from_state: str, to_state: str, reason: Optional[str] = None):
        message = f"Invalid transition for {server_id}: {from_state} -> {to_state}"
        details = {"server_id": server_id, "from_state": from_state, "to_state": to_state}
        if reason:
            message = f"{message} ({reason})"
            details["reason"] = reason
        super().__init__(message, details)
        self.server_id = server_id
        self.from_state = from_state
        self.to_state = to_state


class InvalidActionError(MCPDockError):
    """Raised for an unrecognized control action."""

    def __init__(self, action: Any, allowed: tuple[str, ...] = ("start", "stop")):
        quoted = " or ".join(f'"{a}"' for a in allowed)
        super().__init__(f"Invalid action. Use {quoted}", {"action": action, "allowed": list(allowed)})
        self.action = action


# --- Connection errors (absorbed by the lifecycle controller) ---


class ConnectionFailure(MCPDockError):
    """External handshake with a server failed. Recoverable."""

    def __init__(self, server_id: str, reason: str):
        super().__init__(reason, {"server_id": server_id})
        self.server_id = server_id
        self.reason = reason


class ConnectTimeoutError(ConnectionFailure):
    """External call exceeded its time bound."""

    def __init__(self, server_id: str, timeout_s: float, operation: str = "connect"):
        super().__init__(server_id, f"{operation} timed out after {timeout_s:g}s")
        self.details["timeout_s"] = timeout_s
        self.details["operation"] = operation
        self.timeout_s = timeout_s
        self.operation = operation


# --- Tool errors ---


class ToolNotFoundError(MCPDockError):
    """Raised when a tool is unknown or disabled on a server."""

    def __init__(self, server_id: str, tool_name: str):
        super().__init__(
            f"Tool {tool_name} not found or disabled",
            {"server_id": server_id, "tool_name": tool_name},
        )
        self.server_id = server_id
        self.tool_name = tool_name


class ToolCallError(MCPDockError):
    """Raised by connectors when a tool invocation fails."""


# --- Input / configuration errors ---


class ValidationError(MCPDockError):
    """Raised when input fails validation."""

    def __init__(self, message: str, field: Optional[str] = None, value: Any = None):
        details = {}
        if field is not None:
            details["field"] = field
        if value is not None:
            details["value"] = str(value)[:100]
        super().__init__(message, details)
        self.field = field


class ConfigurationError(MCPDockError):
    """Raised when configuration is invalid."""


# Short names used by route handlers and callers.
NotFoundError = ServerNotFoundError
InvalidTransitionError = InvalidStateTransitionError
