"""In-process connector - tools implemented as Python callables."""

from typing import Any, Callable, Dict, Mapping, Optional

from ...domain.contracts import ConnectResult, Connector
from ...domain.exceptions import ToolCallError
from ...domain.model import ServerDescriptor

ToolHandler = Callable[..., Any]


class InProcessConnector(Connector):
    """Connector whose tools are callables registered by the application.

    Used for ``database`` and ``custom`` servers: the surrounding application
    registers ``(server_id, tool_name) -> callable`` and the connect handshake
    always succeeds.
    """

    def __init__(self, handlers: Optional[Dict[str, Dict[str, ToolHandler]]] = None):
        self._handlers: Dict[str, Dict[str, ToolHandler]] = {k: dict(v) for k, v in (handlers or {}).items()}

    def register(self, server_id: str, tool_name: str, handler: ToolHandler) -> None:
        self._handlers.setdefault(server_id, {})[tool_name] = handler

    def connect(self, server: ServerDescriptor, credentials: Mapping[str, str]) -> ConnectResult:
        return ConnectResult(success=True)

    def call_tool(
        self,
        server: ServerDescriptor,
        tool_name: str,
        arguments: Dict[str, Any],
        credentials: Mapping[str, str],
    ) -> Any:
        handler = self._handlers.get(server.id, {}).get(tool_name)
        if handler is None:
            raise ToolCallError(f"Server {server.id} not implemented for tool {tool_name}", {"tool_name": tool_name})
        try:
            return handler(**arguments)
        except ToolCallError:
            raise
        except Exception as e:
            raise ToolCallError(str(e) or type(e).__name__, {"tool_name": tool_name}) from e
