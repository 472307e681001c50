"""MCP Dock - connection registry and lifecycle manager for MCP tool servers.

Tracks a catalog of servers, drives each through the
inactive/connecting/active/error state machine, records tool calls and
derives usage statistics.

Typical use::

    from mcp_dock import create_runtime

    runtime = create_runtime()
    runtime.controller.start("file-system")
    runtime.stats.compute_server_stats()
"""

from .application import LifecycleController, LifecycleResult, ServerStats, StatsAggregator, ToolCallResult
from .bootstrap import create_runtime, Runtime
from .config import DockSettings, load_configuration
from .domain import CallLedger, ConnectionTracker, ServerRegistry
from .domain.exceptions import (
    ConfigurationError,
    ConnectionFailure,
    ConnectTimeoutError,
    DuplicateServerError,
    InvalidActionError,
    InvalidStateTransitionError,
    MCPDockError,
    ServerNotFoundError,
    ToolCallError,
    ToolNotFoundError,
    ValidationError,
)
from .domain.model import CallRecord, ConnectionState, ServerDescriptor, ToolDescriptor
from .domain.value_objects import RetentionPolicy, ServerCategory, ServerStatus

__version__ = "0.3.0"

__all__ = [
    "CallLedger",
    "CallRecord",
    "ConfigurationError",
    "ConnectionFailure",
    "ConnectionState",
    "ConnectionTracker",
    "ConnectTimeoutError",
    "DockSettings",
    "DuplicateServerError",
    "InvalidActionError",
    "InvalidStateTransitionError",
    "LifecycleController",
    "LifecycleResult",
    "MCPDockError",
    "RetentionPolicy",
    "Runtime",
    "ServerCategory",
    "ServerDescriptor",
    "ServerNotFoundError",
    "ServerRegistry",
    "ServerStats",
    "ServerStatus",
    "StatsAggregator",
    "ToolCallError",
    "ToolCallResult",
    "ToolDescriptor",
    "ToolNotFoundError",
    "ValidationError",
    "create_runtime",
    "load_configuration",
]
