"""MCP server surface."""

from .tools import create_mcp_server, register_registry_tools

__all__ = ["create_mcp_server", "register_registry_tools"]
