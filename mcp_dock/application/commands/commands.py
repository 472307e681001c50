"""Commands - requests to change server state."""

from abc import ABC
from dataclasses import dataclass, field
from typing import Any, Dict, Optional


class Command(ABC):
    """Base class for all commands."""


@dataclass(frozen=True)
class StartServerCommand(Command):
    server_id: str


@dataclass(frozen=True)
class StopServerCommand(Command):
    server_id: str


@dataclass(frozen=True)
class ConnectServerCommand(Command):
    server_id: str


@dataclass(frozen=True)
class DisconnectServerCommand(Command):
    server_id: str


@dataclass(frozen=True)
class ResetServerCommand(Command):
    server_id: str


@dataclass(frozen=True)
class ControlServerCommand(Command):
    """Start or stop depending on a raw ``action`` string from the API."""

    server_id: str
    action: Any


@dataclass(frozen=True)
class HealthCheckCommand(Command):
    """Health-check one server, or every active server when ``server_id`` is None."""

    server_id: Optional[str] = None


@dataclass(frozen=True)
class CallToolCommand(Command):
    server_id: str
    tool_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
