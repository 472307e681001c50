"""Infrastructure layer: buses and connectors."""

from .command_bus import CommandBus, CommandHandler
from .event_bus import EventBus

__all__ = [
    "CommandBus",
    "CommandHandler",
    "EventBus",
]
