"""Connector contract - the external connect primitive per server category.

The lifecycle controller treats a connector as an opaque collaborator: it
either returns a ConnectResult or raises. Any exception is mapped to the
server's ERROR state by the controller.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..model import ServerDescriptor


@dataclass(frozen=True)
class ConnectResult:
    """Outcome of a connect attempt.

    Attributes:
        success: Whether the handshake succeeded.
        message: Failure reason (or informational text on success).
        session_id: Session id proposed by the server, if it issues one.
        latency_ms: Measured handshake latency, if known.
    """

    success: bool
    message: str = ""
    session_id: Optional[str] = None
    latency_ms: Optional[float] = None


class Connector(ABC):
    """Connects to, health-checks and invokes tools on one category of server."""

    @abstractmethod
    def connect(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> ConnectResult:
        """Perform the handshake.

        Args:
            server: Descriptor of the server to connect.
            credentials: Resolved secrets, e.g. ``{server.api_key_name: value}``.
        """

    def disconnect(self, server: ServerDescriptor, session_id: Optional[str]) -> None:
        """Release the session. Default is a no-op."""

    def health_check(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> bool:
        """Check a connected server. Defaults to repeating the handshake."""
        return self.connect(server, credentials).success

    @abstractmethod
    def call_tool(
        self,
        server: ServerDescriptor,
        tool_name: str,
        arguments: Dict[str, Any],
        credentials: Mapping[str, str],
    ) -> Any:
        """Invoke a tool and return its result.

        Raises:
            ToolCallError: If the invocation fails
        """
