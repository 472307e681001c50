"""Registry management tools: list, start, stop, stats.

Commands (start/stop) go through the command bus; list and stats are plain
reads of the stats aggregator.
"""

from typing import Optional

from mcp.server.fastmcp import FastMCP

from ..application.commands import StartServerCommand, StopServerCommand
from ..bootstrap.runtime import Runtime
from ..domain.exceptions import MCPDockError
from ..domain.value_objects import ServerStatus
from ..logging_config import get_logger

logger = get_logger(__name__)


def registry_list(runtime: Runtime, status_filter: Optional[str] = None) -> dict:
    """
    List all servers with status, tools and usage.

    Args:
        runtime: Runtime to read from
        status_filter: Optional filter by status (inactive, connecting, active, error)

    Returns:
        Dictionary with a 'servers' key
    """
    if status_filter is not None:
        try:
            ServerStatus(status_filter)
        except ValueError:
            raise ValueError(f"invalid_status_filter: {status_filter}") from None

    servers = runtime.stats.list_servers()
    if status_filter is not None:
        servers = [s for s in servers if s["status"] == status_filter]
    return {"servers": servers}


def registry_start(runtime: Runtime, server_id: str) -> dict:
    """
    Start a server. A failed start is reported with ``success: false``.

    Raises:
        ValueError: If the server id is unknown
    """
    if server_id not in runtime.registry:
        raise ValueError(f"unknown_server: {server_id}")
    return runtime.command_bus.send(StartServerCommand(server_id=server_id))


def registry_stop(runtime: Runtime, server_id: str) -> dict:
    """
    Stop a server.

    Raises:
        ValueError: If the server id is unknown
    """
    if server_id not in runtime.registry:
        raise ValueError(f"unknown_server: {server_id}")
    return runtime.command_bus.send(StopServerCommand(server_id=server_id))


def registry_stats(runtime: Runtime) -> dict:
    """Aggregate statistics plus per-tool usage and server health."""
    stats = runtime.stats.compute_server_stats().to_dict()
    stats["toolUsage"] = [u.to_dict() for u in runtime.stats.compute_tool_usage()]
    stats["serverHealth"] = runtime.stats.server_health()
    return stats


def _guarded(tool_name: str, fn, *args) -> dict:
    try:
        return fn(*args)
    except MCPDockError as e:
        logger.warning("mcp_tool_failed", tool=tool_name, error=type(e).__name__, message=e.message)
        raise ValueError(e.message) from e


def register_registry_tools(mcp: FastMCP, runtime: Runtime) -> None:
    """Register registry management tools with MCP server."""

    @mcp.tool(name="registry_list")
    def _registry_list(status_filter: Optional[str] = None) -> dict:
        """List registered MCP servers with status, tools and usage counts."""
        return _guarded("registry_list", registry_list, runtime, status_filter)

    @mcp.tool(name="registry_start")
    def _registry_start(server_id: str) -> dict:
        """Start (connect) a registered MCP server."""
        return _guarded("registry_start", registry_start, runtime, server_id)

    @mcp.tool(name="registry_stop")
    def _registry_stop(server_id: str) -> dict:
        """Stop (disconnect) a registered MCP server."""
        return _guarded("registry_stop", registry_stop, runtime, server_id)

    @mcp.tool(name="registry_stats")
    def _registry_stats() -> dict:
        """Registry-wide call statistics, tool usage and server health."""
        return _guarded("registry_stats", registry_stats, runtime)


def create_mcp_server(runtime: Runtime, name: str = "mcp-dock") -> FastMCP:
    """FastMCP server exposing the registry tools for ``runtime``."""
    mcp = FastMCP(name)
    register_registry_tools(mcp, runtime)
    return mcp
