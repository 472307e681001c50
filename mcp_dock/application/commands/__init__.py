"""Command handlers for CQRS."""

from .commands import (
    CallToolCommand,
    Command,
    ConnectServerCommand,
    ControlServerCommand,
    DisconnectServerCommand,
    HealthCheckCommand,
    ResetServerCommand,
    StartServerCommand,
    StopServerCommand,
)
from .handlers import (
    CallToolHandler,
    ConnectServerHandler,
    ControlServerHandler,
    DisconnectServerHandler,
    HealthCheckHandler,
    register_all_handlers,
    ResetServerHandler,
    StartServerHandler,
    StopServerHandler,
)

__all__ = [
    # Commands
    "Command",
    "StartServerCommand",
    "StopServerCommand",
    "ConnectServerCommand",
    "DisconnectServerCommand",
    "ResetServerCommand",
    "ControlServerCommand",
    "HealthCheckCommand",
    "CallToolCommand",
    # Handlers
    "StartServerHandler",
    "StopServerHandler",
    "ConnectServerHandler",
    "DisconnectServerHandler",
    "ResetServerHandler",
    "ControlServerHandler",
    "HealthCheckHandler",
    "CallToolHandler",
    "register_all_handlers",
]
