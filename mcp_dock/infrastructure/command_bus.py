"""
Command Bus - dispatches lifecycle commands to their handlers.

Each command type has exactly one handler. Command classes live in
application.commands so infrastructure does not define business commands.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Type, TYPE_CHECKING

from ..logging_config import get_logger

if TYPE_CHECKING:
    from ..application.commands import Command

logger = get_logger(__name__)


class CommandHandler(ABC):
    """Base class for command handlers."""

    @abstractmethod
    def handle(self, command: "Command") -> Any:
        """Handle the command and return result."""


class CommandBus:
    """Routes each command to the single handler registered for its type."""

    def __init__(self):
        self._handlers: Dict[Type, CommandHandler] = {}

    def register(self, command_type: Type, handler: CommandHandler) -> None:
        """
        Register a handler for a command type.

        Raises:
            ValueError: If a handler is already registered for this command type
        """
        if command_type in self._handlers:
            raise ValueError(f"Handler already registered for {command_type.__name__}")
        self._handlers[command_type] = handler

    def send(self, command: "Command") -> Any:
        """
        Send a command to its handler and return the handler's result.

        Raises:
            ValueError: If no handler is registered for this command type
        """
        command_type = type(command)
        handler = self._handlers.get(command_type)
        if handler is None:
            raise ValueError(f"No handler registered for {command_type.__name__}")

        logger.debug("command_dispatched", command=command_type.__name__)
        return handler.handle(command)

    def has_handler(self, command_type: Type) -> bool:
        return command_type in self._handlers
